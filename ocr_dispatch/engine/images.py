"""
Подготовка изображений для движка.

Декодирует входное изображение (bytes, base64, путь, PIL.Image),
учитывает EXIF ориентацию и поворачивает на угол в радианах.
"""

import io
import math
from pathlib import Path
from typing import Any

from PIL import Image, ImageOps

from ocr_dispatch.schemas import coerce_bytes


def load_image(source: Any) -> Image.Image:
    """
    Открывает изображение из любого поддерживаемого источника.

    Args:
        source: PIL.Image, bytes, base64/data URL строка или путь к файлу

    Returns:
        Image.Image: RGB изображение с применённой EXIF ориентацией
    """
    if isinstance(source, Image.Image):
        img = source
    elif _is_file_path(source):
        img = Image.open(source)
    else:
        img = Image.open(io.BytesIO(coerce_bytes(source)))

    # EXIF: фото с телефона часто хранятся повёрнутыми
    img = ImageOps.exif_transpose(img)
    return img.convert("RGB")


def rotate_image(img: Image.Image, angle: float) -> Image.Image:
    """
    Поворачивает изображение для компенсации наклона.

    Args:
        img: исходное изображение
        angle: угол наклона в радианах (как возвращает GetAngle)

    Returns:
        Image.Image: повёрнутое изображение (или исходное при angle == 0)
    """
    if not angle:
        return img

    # Холст расширяется, новые области белые
    return img.rotate(
        -math.degrees(angle),
        resample=Image.Resampling.BICUBIC,
        expand=True,
        fillcolor="white",
    )


def to_png(img: Image.Image) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def binarize(img: Image.Image) -> Image.Image:
    """Ч/б версия: grayscale + autocontrast + порог по середине."""
    grey = ImageOps.autocontrast(img.convert("L"))
    return grey.point(lambda v: 255 if v >= 128 else 0).convert("1")


def _is_file_path(source: Any) -> bool:
    if isinstance(source, Path):
        return True
    if not isinstance(source, str) or source.startswith("data:"):
        return False
    try:
        return Path(source).is_file()
    except OSError:
        # Длинная base64 строка не может быть путём
        return False
