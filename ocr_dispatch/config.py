"""
Конфигурация OCR Dispatch.

Все значения читаются из .env файла (или переменных окружения).
Дефолты подобраны так, чтобы воркер запускался локально без .env.

Единый префикс: OCR_
Документация по параметрам: .env.example
"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки воркера распознавания.

    Читает переменные с префиксом OCR_ из .env файла.
    """

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- Сервер ---
    host: str = "0.0.0.0"
    port: int = 8000

    # --- Хранилище: кэш и локальные traineddata ---
    # Относительные пути кэша разрешаются от этой папки
    cache_dir: str = "."

    # --- Языковые данные ---
    lang_path: str = "https://tessdata.projectnaptha.com/4.0.0"
    fetch_timeout_seconds: float = 60.0

    # --- Tesseract ---
    # Путь к бинарнику tesseract (None = искать в PATH)
    tesseract_cmd: Optional[str] = None
    # Корень виртуальной ФС движка (None = временная папка)
    workspace_dir: Optional[str] = None

    # --- Логирование ---
    log_level: str = "INFO"


# Глобальный экземпляр настроек
settings = Settings()
