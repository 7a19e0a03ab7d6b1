import mimetypes
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

from fastapi import UploadFile
from loguru import logger
from sqlmodel import Session

from core.config import settings
from core.exceptions import AppException, ArtifactNotFound, ImageNotFound, TransformTimeout, ValidationFailed
from model.image import PENDING, ImageRecord, ImageSnapshot
from model.operation import Operation
from processor import pipeline
from processor.async_runner import run_in_pool
from service.artifact_store import ArtifactStore

# update_image로 바꿀 수 있는 필드. id / created_at은 불변.
UPDATABLE_FIELDS = {"original_name", "mime_type", "size", "artifact_id", "last_operation", "last_params"}

# 레지스트리 읽기/쓰기는 한 번에 하나씩. 워커 스레드들이 같은 SQLite 커넥션을 쓸 수 있다.
# 커밋 순서만 정할 뿐이고, 같은 이미지에 대한 요청 자체를 직렬화하지는 않는다.
_registry_lock = threading.Lock()


def _basename(filename: str | None) -> str:
    # 디렉토리 구분자(/, \)만 제거하고 나머지는 클라이언트가 보낸 그대로 둔다
    name = re.split(r"[\\/]", filename or "")[-1]
    return name or "unknown"


def _extension(filename: str, mime_type: str) -> str:
    ext = os.path.splitext(filename)[1]
    if not ext:
        ext = mimetypes.guess_extension(mime_type) or ".bin"
    return ext


# --- 레지스트리 ---


def create_image(
    session: Session, original_name: str, mime_type: str, size: int, artifact_id: str
) -> ImageRecord:
    record = ImageRecord(
        original_name=original_name,
        mime_type=mime_type,
        size=size,
        artifact_id=artifact_id,
        last_operation=PENDING,
    )
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def get_image_or_raise(image_id: int, session: Session) -> ImageRecord:
    """ID로 레코드를 조회한다. 없으면 None 대신 ImageNotFound를 발생시킨다."""
    # 다른 세션(워커)이 갱신했을 수 있으므로 identity map 캐시 대신 DB 값을 읽는다
    record = session.get(ImageRecord, image_id, populate_existing=True)
    if not record:
        raise ImageNotFound
    return record


def update_image(image_id: int, fields: dict, session: Session) -> ImageRecord:
    """부분 갱신. 넘긴 필드만 바뀌고, 한 번의 commit으로 반영된다."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"갱신할 수 없는 필드: {sorted(unknown)}")

    record = get_image_or_raise(image_id, session)
    for key, value in fields.items():
        setattr(record, key, value)
    record.updated_at = datetime.now(UTC)

    session.add(record)
    session.commit()
    session.refresh(record)
    return record


# --- 업로드 / 처리 ---


def save_upload(file: UploadFile, store: ArtifactStore, session: Session) -> ImageRecord:
    """업로드 파일을 아티팩트로 저장하고 pending 레코드를 만든다."""
    data = file.file.read()
    if not data:
        raise ValidationFailed("빈 파일은 업로드할 수 없습니다")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationFailed(f"파일이 너무 큽니다 (최대 {settings.MAX_UPLOAD_BYTES} bytes)")

    original_name = _basename(file.filename)
    mime_type = file.content_type or "application/octet-stream"
    artifact_id = store.put(data, _extension(original_name, mime_type), kind="upload")

    try:
        record = create_image(session, original_name, mime_type, len(data), artifact_id)
    except Exception:
        store.delete(artifact_id)
        raise

    logger.info(f"Uploaded #{record.id} {original_name} → {artifact_id} ({len(data)} bytes)")
    return record


def transform_and_commit(
    image_id: int,
    op: Operation,
    store: ArtifactStore,
    bind,
    cancelled: threading.Event | None = None,
) -> ImageSnapshot:
    """워커 스레드에서 변환 + 레지스트리 갱신 + 업로드 원본 정리를 한 번에 끝낸다.

    요청 코루틴이 취소돼도(클라이언트 연결 끊김) 이 함수는 끝까지 실행되므로
    새 아티팩트가 등록되지 않은 채 남는 일이 없다.

    순서:
    1. 레코드 스냅샷을 뜬다 (자체 세션)
    2. 파이프라인으로 새 아티팩트를 디스크에 다 쓴다
    3. 그 뒤에만 레코드를 갱신한다. 실패하거나 타임아웃이 났으면 새 아티팩트를 지우고 에러를 올린다
    4. 이전 아티팩트가 업로드 원본(pending)이었을 때만 즉시 지운다
    """
    with _registry_lock, Session(bind) as session:
        snapshot = ImageSnapshot.of(get_image_or_raise(image_id, session))
    if not snapshot.artifact_id:
        raise ArtifactNotFound

    result = pipeline.transform(snapshot, op, store, cancelled)

    patch = {
        "artifact_id": result.artifact_id,
        "size": result.byte_size,
        "mime_type": result.mime_type,
        "last_operation": op.operation,
        "last_params": op.params_json(),
    }
    try:
        with _registry_lock, Session(bind) as session:
            if cancelled is not None and cancelled.is_set():
                raise TransformTimeout
            updated = ImageSnapshot.of(update_image(image_id, patch, session))
    except Exception:
        store.delete(result.artifact_id)
        raise

    if snapshot.last_operation == PENDING:
        store.delete(snapshot.artifact_id)

    return updated


async def process_image(
    image_id: int,
    op: Operation,
    store: ArtifactStore,
    executor: ThreadPoolExecutor,
    session: Session,
) -> ImageSnapshot:
    """레코드가 가리키는 아티팩트에 op를 적용하고 레코드를 새 아티팩트로 옮긴다.

    DB 작업까지 전부 워커 스레드에서 돌고, 이벤트 루프는 기다리기만 한다.
    같은 이미지에 대한 동시 요청은 직렬화하지 않는다 (마지막 갱신이 이긴다).
    """
    try:
        return await run_in_pool(
            executor,
            transform_and_commit,
            image_id,
            op,
            store,
            session.get_bind(),
            timeout=settings.TRANSFORM_TIMEOUT_SECONDS,
        )
    except AppException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected failure while processing #{image_id}")
        raise AppException("이미지 처리에 실패했습니다") from e
