"""디코드 / 인코드.

PNG는 무손실이라 quality를 "압축 노력 + 팔레트 축소" 휴리스틱으로 해석한다:
- quality == 100: 풀컬러 무손실, compress_level=9
- quality < 100: round(256 * q / 100)색 (최소 2색) 팔레트로 줄인 뒤 compress_level=9, optimize
"""

import io

from PIL import Image, UnidentifiedImageError

from core.exceptions import DecodeFailed, EncodeFailed

EXTENSIONS = {"jpeg": "jpg", "png": "png", "webp": "webp"}

_ALPHA_MODES = ("RGBA", "LA", "PA", "RGBa", "La")


def decode(data: bytes) -> Image.Image:
    """바이트 → RGB/RGBA 래스터. 여러 프레임이면 첫 프레임만 쓴다."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
        has_alpha = image.mode in _ALPHA_MODES or "transparency" in image.info
        target = "RGBA" if has_alpha else "RGB"
        return image if image.mode == target else image.convert(target)
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as e:
        raise DecodeFailed from e
    except Image.DecompressionBombError as e:
        raise DecodeFailed("이미지가 너무 큽니다") from e


def png_colors(quality: int) -> int:
    return max(2, min(256, round(256 * quality / 100)))


def _flatten(image: Image.Image) -> Image.Image:
    # JPEG은 알파가 없으므로 흰 배경 위에 합성
    if image.mode != "RGBA":
        return image.convert("RGB")
    background = Image.new("RGB", image.size, (255, 255, 255))
    background.paste(image, mask=image.getchannel("A"))
    return background


def encode(image: Image.Image, output_format: str, quality: int) -> bytes:
    buf = io.BytesIO()
    try:
        if output_format == "jpeg":
            _flatten(image).save(buf, format="JPEG", quality=quality, optimize=True)
        elif output_format == "webp":
            image.save(buf, format="WEBP", quality=quality, method=4)
        elif output_format == "png":
            if quality >= 100:
                image.save(buf, format="PNG", compress_level=9)
            else:
                reduced = image.quantize(colors=png_colors(quality), method=Image.Quantize.FASTOCTREE)
                reduced.save(buf, format="PNG", compress_level=9, optimize=True)
        else:
            raise EncodeFailed(f"지원하지 않는 출력 포맷: {output_format}")
    except (OSError, ValueError) as e:
        raise EncodeFailed from e
    return buf.getvalue()
