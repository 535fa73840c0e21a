"""
Обработчики задач воркера.

Модули:
    - session: состояние воркера (движок, распознаватель, параметры)
    - lifecycle: load, initialize, terminate, FS
    - language_loader: загрузка traineddata (кэш -> сеть/папка)
    - parameters: setParameters и временные параметры
    - recognizer: recognize (автоповорот, форматы вывода)
    - detector: detect (ориентация и скрипт)
    - pdf_export: getPDF
    - result_builder: сборка результата recognize
"""

from ocr_dispatch.services.detector import detect
from ocr_dispatch.services.language_loader import load_language
from ocr_dispatch.services.lifecycle import fs, initialize, load, terminate
from ocr_dispatch.services.parameters import set_parameters
from ocr_dispatch.services.pdf_export import get_pdf
from ocr_dispatch.services.recognizer import recognize
from ocr_dispatch.services.session import WorkerSession

__all__ = [
    "WorkerSession",
    "load",
    "fs",
    "load_language",
    "initialize",
    "set_parameters",
    "recognize",
    "get_pdf",
    "detect",
    "terminate",
]
