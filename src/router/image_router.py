from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from core.dependencies import get_executor, get_store
from core.exceptions import ValidationFailed
from model.database import get_session
from model.operation import parse_operation
from service import image_service
from service.artifact_store import ArtifactStore

router = APIRouter(prefix="/api", tags=["images"])


# --- 요청/응답 스키마 ---
# 응답은 브라우저 클라이언트에 맞춰 camelCase로 직렬화한다.


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProcessRequest(BaseModel):
    operation: str
    params: dict = {}


class UploadResponse(_CamelModel):
    id: int
    filename: str
    original_name: str


class ProcessResponse(_CamelModel):
    id: int
    url: str
    filename: str
    size: int
    mime_type: str


class ImageDetail(_CamelModel):
    id: int
    original_name: str
    mime_type: str
    size: int
    filename: str | None
    url: str | None
    last_operation: str
    last_params: str | None
    created_at: datetime
    updated_at: datetime


def _download_url(artifact_id: str) -> str:
    return f"/api/download/{artifact_id}"


# --- 엔드포인트 ---


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_image(
    image: UploadFile | None = File(None),
    file: UploadFile | None = File(None),
    store: ArtifactStore = Depends(get_store),
    session: Session = Depends(get_session),
):
    # 필드 이름은 image. 예전 클라이언트가 보내는 file도 받는다.
    upload = image or file
    if upload is None:
        raise ValidationFailed("No file uploaded")

    record = image_service.save_upload(upload, store, session)
    return UploadResponse(
        id=record.id,
        filename=record.artifact_id,
        original_name=record.original_name,
    )


@router.post("/process/{image_id}", response_model=ProcessResponse)
async def process_image(
    image_id: int,
    req: ProcessRequest,
    store: ArtifactStore = Depends(get_store),
    executor: ThreadPoolExecutor = Depends(get_executor),
    session: Session = Depends(get_session),
):
    op = parse_operation(req.operation, req.params)
    record = await image_service.process_image(image_id, op, store, executor, session)
    return ProcessResponse(
        id=record.id,
        url=_download_url(record.artifact_id),
        filename=record.artifact_id,
        size=record.size,
        mime_type=record.mime_type,
    )


@router.get("/images/{image_id}", response_model=ImageDetail)
def get_image(image_id: int, session: Session = Depends(get_session)):
    record = image_service.get_image_or_raise(image_id, session)
    return ImageDetail(
        id=record.id,
        original_name=record.original_name,
        mime_type=record.mime_type,
        size=record.size,
        filename=record.artifact_id,
        url=_download_url(record.artifact_id) if record.artifact_id else None,
        last_operation=record.last_operation,
        last_params=record.last_params,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


@router.get("/download/{filename}")
def download_image(filename: str, store: ArtifactStore = Depends(get_store)):
    return FileResponse(store.path(filename), filename=filename)
