from datetime import UTC, datetime

from pydantic import BaseModel
from sqlmodel import Field, SQLModel

PENDING = "pending"


class ImageRecord(SQLModel, table=True):
    id: int | None = Field(default=None, primary_key=True)
    original_name: str
    mime_type: str
    size: int  # 현재 artifact_id가 가리키는 파일의 크기 (원본 업로드 크기 아님)
    artifact_id: str | None = None
    last_operation: str = Field(default=PENDING)  # pending, resize, compress, upscale
    last_params: str | None = None  # 현재 아티팩트를 만든 파라미터 (JSON)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ImageSnapshot(BaseModel, frozen=True):
    """파이프라인에 넘기는 레코드의 불변 복사본.

    파이프라인은 ORM 객체를 직접 건드리지 않고, 결과만 돌려준다.
    레지스트리 갱신은 호출자(image_service)의 몫이다.
    """

    id: int
    original_name: str
    mime_type: str
    size: int
    artifact_id: str | None
    last_operation: str

    @classmethod
    def of(cls, record: ImageRecord) -> "ImageSnapshot":
        return cls(
            id=record.id,
            original_name=record.original_name,
            mime_type=record.mime_type,
            size=record.size,
            artifact_id=record.artifact_id,
            last_operation=record.last_operation,
        )
