"""
Движок распознавания на базе Tesseract CLI.

Модули:
    - core: модуль движка (ФС, буферы, фабрики)
    - api: TessBaseAPI поверх pytesseract
    - fs: виртуальная файловая система
    - images: декодирование и поворот изображений
    - skew: определение угла наклона (deskew)
    - layout: разбор image_to_data
    - pdf: рендерер PDF
"""

from ocr_dispatch.engine.core import TesseractModule, create_tesseract_core

__all__ = [
    "TesseractModule",
    "create_tesseract_core",
]
