"""
Угол наклона текста для FindLines/GetAngle.

Tesseract CLI угол не отдаёт, поэтому он считается библиотекой deskew
по уменьшенной серой копии страницы.
"""

import logging
import math

import numpy as np
from deskew import determine_skew
from PIL import Image

logger = logging.getLogger(__name__)

# Длинная сторона копии для поиска угла
RESIZE_PX = 1200
NUM_PEAKS = 20


def detect_skew_radians(img: Image.Image) -> float:
    """
    Возвращает наклон строк в радианах (0.0, если угол не найден).

    Крупные сканы уменьшаются до RESIZE_PX, мелкие не увеличиваются.
    """
    w, h = img.size
    ratio = min(1.0, RESIZE_PX / max(w, h))
    small = img.resize(
        (max(1, int(w * ratio)), max(1, int(h * ratio))),
        Image.Resampling.BILINEAR,
    )

    try:
        degrees = determine_skew(np.array(small.convert("L")), num_peaks=NUM_PEAKS)
    except Exception as e:
        logger.warning(f"Не удалось определить наклон: {e}")
        return 0.0

    if degrees is None:
        return 0.0
    return math.radians(degrees)
