"""
Настройка логирования воркера.

Формат и уровень задаются один раз точкой входа (main.py),
флаг `logging` из задачи load только включает/приглушает логи пакета.
"""

import logging

from ocr_dispatch.config import settings

PACKAGE_LOGGER = "ocr_dispatch"


def setup_logging() -> None:
    """Базовая настройка логгера с временем."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [OCR-Dispatch] %(message)s",
        datefmt="%H:%M:%S",
    )


def set_logging(enabled: bool) -> None:
    """
    Включает подробные логи пакета или оставляет только предупреждения.

    Args:
        enabled: True — INFO и выше, False — только WARNING и выше
    """
    level = logging.INFO if enabled else logging.WARNING
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
