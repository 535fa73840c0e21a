"""
OCR Dispatch — воркер задач распознавания текста.

Управляет движком Tesseract по протоколу задач:
    load -> loadLanguage -> initialize -> setParameters -> recognize / detect / getPDF -> terminate

Языковые данные берутся из кэша, сети или локальной папки,
распознавание поддерживает автоповорот, временные параметры и выбор форматов.
"""

from ocr_dispatch.config import settings
from ocr_dispatch.dispatcher import ResponseChannel, Worker
from ocr_dispatch.schemas import Job

__all__ = [
    "settings",
    "Worker",
    "ResponseChannel",
    "Job",
]
