"""이미지 처리 요청의 타입 정의.

resize / compress / upscale 세 가지 변형을 operation 필드로 구분하는 tagged union.
상속 계층 없이, 파이프라인이 operation 값으로 처리 함수를 고른다.

브라우저 클라이언트는 출력 포맷을 "format" 키로 보내므로
format / outputFormat / output_format 모두 받는다.
"""

from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from core.exceptions import ValidationFailed

OutputFormat = Literal["jpeg", "png", "webp"]

MAX_DIMENSION = 10_000
MAX_SCALE = 8

FormatField = Annotated[
    OutputFormat,
    Field(validation_alias=AliasChoices("format", "outputFormat", "output_format")),
]


class _OperationBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def mime_type(self) -> str:
        return f"image/{self.output_format}"

    def params_json(self) -> str:
        """레코드의 last_params에 저장할 JSON (태그 제외)."""
        return self.model_dump_json(exclude={"operation"})


class ResizeOperation(_OperationBase):
    operation: Literal["resize"] = "resize"
    width: int | None = Field(default=None, gt=0, le=MAX_DIMENSION)
    height: int | None = Field(default=None, gt=0, le=MAX_DIMENSION)
    maintain_aspect_ratio: bool = Field(
        default=True,
        validation_alias=AliasChoices("maintainAspectRatio", "maintain_aspect_ratio"),
    )
    output_format: FormatField

    @model_validator(mode="after")
    def require_dimension(self):
        if self.width is None and self.height is None:
            raise ValueError("width 또는 height 중 하나는 필요합니다")
        return self

    @property
    def quality(self) -> int | None:
        return None


class CompressOperation(_OperationBase):
    operation: Literal["compress"] = "compress"
    quality: int = Field(ge=1, le=100)
    output_format: FormatField


class UpscaleOperation(_OperationBase):
    operation: Literal["upscale"] = "upscale"
    scale: float = Field(gt=1, le=MAX_SCALE)
    output_format: FormatField

    @property
    def quality(self) -> int | None:
        return None


Operation = Annotated[
    ResizeOperation | CompressOperation | UpscaleOperation,
    Field(discriminator="operation"),
]

OPERATION_NAMES = ("resize", "compress", "upscale")

_adapter = TypeAdapter(Operation)


def parse_operation(operation: str, params: dict) -> Operation:
    """라우터가 받은 {operation, params}를 타입이 있는 요청 객체로 바꾼다.

    실패하면 ValidationFailed (400).
    """
    if operation not in OPERATION_NAMES:
        raise ValidationFailed(f"지원하지 않는 작업: {operation}")
    try:
        return _adapter.validate_python({**params, "operation": operation})
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first["loc"][1:])
        msg = first["msg"]
        raise ValidationFailed(f"{loc}: {msg}" if loc else msg) from e
