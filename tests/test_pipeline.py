"""변환 파이프라인 테스트 (디코드 → 변환 → 인코드 → 아티팩트 기록)."""

import io
import os
import threading

import pytest
from PIL import Image

from core.exceptions import ArtifactNotFound, DecodeFailed, EncodeFailed, TransformTimeout
from model.image import ImageSnapshot
from model.operation import parse_operation
from processor.pipeline import transform


def _snapshot(artifact_id: str | None, last_operation: str = "pending") -> ImageSnapshot:
    return ImageSnapshot(
        id=1,
        original_name="photo.png",
        mime_type="image/png",
        size=0,
        artifact_id=artifact_id,
        last_operation=last_operation,
    )


def _artifacts(store) -> set[str]:
    return set(os.listdir(store.root))


def _open(store, artifact_id: str) -> Image.Image:
    return Image.open(io.BytesIO(store.read(artifact_id)))


def test_resize_keep_ratio(store, make_image_bytes):
    source = store.put(make_image_bytes(300, 200), "png", kind="upload")
    op = parse_operation("resize", {"width": 150, "maintainAspectRatio": True, "format": "webp"})

    result = transform(_snapshot(source), op, store)

    assert result.mime_type == "image/webp"
    assert result.byte_size == store.size(result.artifact_id)
    with _open(store, result.artifact_id) as out:
        assert out.size == (150, 100)
        assert out.format == "WEBP"


def test_upscale(store, make_image_bytes):
    source = store.put(make_image_bytes(100, 80), "png", kind="upload")
    op = parse_operation("upscale", {"scale": 4, "format": "png"})

    result = transform(_snapshot(source), op, store)

    with _open(store, result.artifact_id) as out:
        assert out.size == (400, 320)


def test_source_is_not_deleted(store, make_image_bytes):
    source = store.put(make_image_bytes(20, 20), "png", kind="upload")
    op = parse_operation("compress", {"quality": 50, "format": "jpeg"})

    transform(_snapshot(source), op, store)

    assert store.read(source)


def test_repeat_is_same_shape_but_new_artifact(store, make_image_bytes):
    """같은 원본에 같은 작업을 두 번 → 크기/포맷은 같고 아티팩트는 다르다."""
    source = store.put(make_image_bytes(120, 90), "png", kind="upload")
    op = parse_operation("resize", {"width": 60, "height": 60, "maintainAspectRatio": False, "format": "jpeg"})

    first = transform(_snapshot(source), op, store)
    second = transform(_snapshot(source), op, store)

    assert first.artifact_id != second.artifact_id
    with _open(store, first.artifact_id) as a, _open(store, second.artifact_id) as b:
        assert a.size == b.size == (60, 60)
        assert a.format == b.format == "JPEG"


def test_missing_source(store):
    op = parse_operation("compress", {"quality": 50, "format": "jpeg"})

    with pytest.raises(ArtifactNotFound):
        transform(_snapshot("upload-0-00000000.png"), op, store)
    with pytest.raises(ArtifactNotFound):
        transform(_snapshot(None), op, store)


def test_corrupt_source_leaves_nothing_behind(store):
    source = store.put(b"\x89PNG not really", "png", kind="upload")
    before = _artifacts(store)
    op = parse_operation("compress", {"quality": 50, "format": "jpeg"})

    with pytest.raises(DecodeFailed):
        transform(_snapshot(source), op, store)

    assert _artifacts(store) == before


def test_zero_dimension_is_encode_error(store, make_image_bytes):
    source = store.put(make_image_bytes(1000, 10), "png", kind="upload")
    before = _artifacts(store)
    op = parse_operation("resize", {"width": 1, "format": "png"})

    with pytest.raises(EncodeFailed):
        transform(_snapshot(source), op, store)

    assert _artifacts(store) == before


def test_cancelled_transform_writes_nothing(store, make_image_bytes):
    source = store.put(make_image_bytes(10, 10), "png", kind="upload")
    before = _artifacts(store)
    cancelled = threading.Event()
    cancelled.set()
    op = parse_operation("compress", {"quality": 80, "format": "png"})

    with pytest.raises(TransformTimeout):
        transform(_snapshot(source), op, store, cancelled=cancelled)

    assert _artifacts(store) == before
