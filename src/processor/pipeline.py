"""디코드 → 변환 → 인코드 → 새 아티팩트 기록.

입력은 레코드의 불변 스냅샷과 타입이 있는 요청, 출력은 TransformResult.
레지스트리는 건드리지 않으며, 원본 아티팩트도 지우지 않는다
(재시도가 지워진 원본과 경쟁하지 않도록).
"""

import threading
from collections.abc import Callable

from loguru import logger
from PIL import Image
from pydantic import BaseModel

from core.config import settings
from core.exceptions import ArtifactNotFound, TransformTimeout
from model.image import ImageSnapshot
from model.operation import CompressOperation, Operation, ResizeOperation, UpscaleOperation
from processor import codec, operations
from service.artifact_store import ArtifactStore
from utility.timer import timer


class TransformResult(BaseModel, frozen=True):
    artifact_id: str
    byte_size: int
    mime_type: str


def _apply_resize(image: Image.Image, op: ResizeOperation) -> Image.Image:
    return operations.resize(image, op.width, op.height, op.maintain_aspect_ratio)


def _apply_compress(image: Image.Image, op: CompressOperation) -> Image.Image:
    return operations.compress(image)


def _apply_upscale(image: Image.Image, op: UpscaleOperation) -> Image.Image:
    return operations.upscale(image, op.scale)


OPERATIONS: dict[str, Callable[[Image.Image, Operation], Image.Image]] = {
    "resize": _apply_resize,
    "compress": _apply_compress,
    "upscale": _apply_upscale,
}


def transform(
    snapshot: ImageSnapshot,
    op: Operation,
    store: ArtifactStore,
    cancelled: threading.Event | None = None,
) -> TransformResult:
    """스냅샷이 가리키는 아티팩트에 op를 적용해 새 아티팩트를 만든다.

    실패 시 새 아티팩트는 남지 않는다. cancelled가 설정되면(타임아웃)
    결과를 기록하지 않거나, 이미 기록했다면 지운다.
    """
    if not snapshot.artifact_id:
        raise ArtifactNotFound

    with timer(f"transform #{snapshot.id} {op.operation}"):
        data = store.read(snapshot.artifact_id)
        image = codec.decode(data)
        logger.debug(f"Decoded #{snapshot.id}: {image.width}x{image.height} {image.mode}")

        result = OPERATIONS[op.operation](image, op)

        quality = op.quality if op.quality is not None else settings.DEFAULT_QUALITY
        encoded = codec.encode(result, op.output_format, quality)

        if cancelled is not None and cancelled.is_set():
            raise TransformTimeout

        artifact_id = store.put(encoded, codec.EXTENSIONS[op.output_format])
        if cancelled is not None and cancelled.is_set():
            store.delete(artifact_id)
            raise TransformTimeout

    logger.info(
        f"Image #{snapshot.id} {op.operation} → {artifact_id} "
        f"({result.width}x{result.height}, {len(encoded)} bytes)"
    )
    return TransformResult(
        artifact_id=artifact_id,
        byte_size=len(encoded),
        mime_type=op.mime_type,
    )
