"""
图片归一化 - Pillow 解码、读取原始尺寸、按输出端可接受格式重编码

输出端不接受的图片格式统一无损转为 PNG
"""

from __future__ import annotations

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from ..interfaces import AttachmentError
from ..models import ImageCell

# Pillow format 名称 -> 统一格式名
_PIL_FORMATS = {
    "PNG": "png",
    "JPEG": "jpeg",
    "GIF": "gif",
    "BMP": "bmp",
    "WEBP": "webp",
    "TIFF": "tiff",
}


def normalize_image(data: bytes, accepted_formats: list[str]) -> ImageCell:
    """
    解码图片并按需重编码（阻塞，需在工作线程中调用）

    Args:
        data: 原始图片字节
        accepted_formats: 输出端可接受的格式（png/jpeg/...）

    Raises:
        AttachmentError: 无法解码
    """
    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            fmt = _PIL_FORMATS.get(img.format or "", (img.format or "").lower())
            width, height = img.size

            if fmt in accepted_formats:
                return ImageCell(data=data, format=fmt, natural_width=width, natural_height=height)

            has_alpha = img.mode in ("RGBA", "LA", "P") or "transparency" in img.info
            converted = img.convert("RGBA" if has_alpha else "RGB")
            buf = BytesIO()
            converted.save(buf, format="PNG")
            return ImageCell(data=buf.getvalue(), format="png", natural_width=width, natural_height=height)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise AttachmentError(f"图片解码失败: {e}") from e
