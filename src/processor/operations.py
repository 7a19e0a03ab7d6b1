"""
순수 CPU-bound 이미지 처리 함수.
모든 함수는 PIL.Image를 받아서 PIL.Image를 반환한다.
디스크/DB는 건드리지 않는다 (그건 pipeline.py의 몫).
"""

from PIL import Image, ImageFilter

from core.config import settings
from core.exceptions import EncodeFailed

# contain 모드에서 남는 여백: 완전 투명 (JPEG로 저장하면 흰색이 된다)
TRANSPARENT = (255, 255, 255, 0)


def _checked(width: int, height: int) -> tuple[int, int]:
    # Image.resize 전에 호출해야 한다. 큰 래스터는 만드는 순간 메모리를 잡는다.
    if width < 1 or height < 1:
        raise EncodeFailed(f"결과 크기가 0이 되었습니다 ({width}x{height})")
    if width * height > settings.MAX_OUTPUT_PIXELS:
        raise EncodeFailed(f"결과 이미지가 너무 큽니다 ({width}x{height})")
    return width, height


def target_box(
    src_width: int, src_height: int, width: int | None, height: int | None
) -> tuple[int, int]:
    """width/height 중 빠진 값을 원본 비율로 채운다."""
    if width is None and height is None:
        return src_width, src_height
    if width is None:
        width = round(src_width * height / src_height)
    elif height is None:
        height = round(src_height * width / src_width)
    return _checked(width, height)


def contain_size(
    src_width: int, src_height: int, box_width: int, box_height: int
) -> tuple[int, int]:
    """비율을 유지한 채 상자 안에 들어가는 최대 크기 (가로/세로 배율 중 작은 쪽)."""
    scale = min(box_width / src_width, box_height / src_height)
    return _checked(
        min(box_width, round(src_width * scale)),
        min(box_height, round(src_height * scale)),
    )


def resize(
    image: Image.Image,
    width: int | None = None,
    height: int | None = None,
    maintain_aspect_ratio: bool = True,
) -> Image.Image:
    """fill: 정확히 width x height로 늘린다 (비율 왜곡 허용).
    contain: 비율 유지 + 상자 안에 맞추고, 남는 영역은 투명 배경으로 채운다.
    """
    box = target_box(image.width, image.height, width, height)

    if not maintain_aspect_ratio:
        return image.resize(box, Image.LANCZOS)

    inner = contain_size(image.width, image.height, *box)
    scaled = image.resize(inner, Image.LANCZOS)
    if inner == box:
        return scaled

    canvas = Image.new("RGBA", box, TRANSPARENT)
    offset = ((box[0] - inner[0]) // 2, (box[1] - inner[1]) // 2)
    canvas.paste(scaled.convert("RGBA"), offset)
    return canvas


def compress(image: Image.Image) -> Image.Image:
    # 기하 변환 없음. 품질은 인코딩 단계에서만 적용된다.
    return image


def sharpen(image: Image.Image) -> Image.Image:
    return image.filter(ImageFilter.SHARPEN)


def upscale(image: Image.Image, scale: float) -> Image.Image:
    """Lanczos로 확대한 뒤 고정 강도 샤프닝으로 흐려진 윤곽을 보정한다."""
    new_width = round(image.width * scale)
    new_height = round(image.height * new_width / image.width)
    enlarged = image.resize(_checked(new_width, new_height), Image.LANCZOS)
    return sharpen(enlarged)
