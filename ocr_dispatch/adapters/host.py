"""
Адаптер окружения для локального запуска.

Возможности:
    - Движок: Tesseract через pytesseract (ocr_dispatch.engine)
    - Кэш и локальные traineddata: файлы относительно settings.cache_dir
    - Сеть: httpx (file:// читается с диска)
    - gzip: распаковка вне event loop
"""

import asyncio
import functools
import gzip
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import httpx
import pytesseract

from ocr_dispatch.adapters.base import EngineModuleFactory
from ocr_dispatch.config import settings
from ocr_dispatch.engine.core import create_tesseract_core
from ocr_dispatch.errors import CacheMissError, CacheWriteError
from ocr_dispatch.schemas import FetchResponse

logger = logging.getLogger(__name__)


class HostAdapter:
    """
    Реализация CapabilityAdapter поверх файловой системы и httpx.

    Attributes:
        cache_dir: корень для относительных путей кэша
        timeout: таймаут сетевых запросов в секундах
        workspace_dir: корень виртуальной ФС движка (None = временная папка)
    """

    def __init__(
        self,
        cache_dir: Optional[str] = None,
        timeout: Optional[float] = None,
        workspace_dir: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache_dir = Path(cache_dir or settings.cache_dir)
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self.workspace_dir = workspace_dir or settings.workspace_dir
        self._transport = transport

    async def get_core(self, core_path: Optional[str]) -> EngineModuleFactory:
        """
        Возвращает фабрику движка.

        Args:
            core_path: путь к бинарнику tesseract (None = из настроек или PATH)
        """
        tesseract_cmd = core_path or settings.tesseract_cmd
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
            logger.info(f"Tesseract: {tesseract_cmd}")

        return functools.partial(create_tesseract_core, root=self.workspace_dir)

    def _resolve(self, path: str) -> Path:
        candidate = Path(path)
        if candidate.is_absolute():
            return candidate
        return self.cache_dir / candidate

    async def read_cache(self, path: str) -> bytes:
        file_path = self._resolve(path)
        try:
            return await asyncio.to_thread(file_path.read_bytes)
        except FileNotFoundError as e:
            raise CacheMissError(f"Нет в кэше: {file_path}") from e

    async def write_cache(self, path: str, data: bytes) -> None:
        file_path = self._resolve(path)
        try:
            await asyncio.to_thread(_write_file, file_path, data)
        except OSError as e:
            raise CacheWriteError(f"Ошибка записи в кэш {file_path}: {e}") from e

    async def fetch(self, url: str) -> FetchResponse:
        """
        Скачивает файл по URL.

        file:// читается с диска: отсутствующий файл даёт код 404.
        Прочие схемы идут через httpx.
        """
        if url.startswith("file://"):
            file_path = Path(unquote(urlparse(url).path))
            try:
                data = await asyncio.to_thread(file_path.read_bytes)
            except FileNotFoundError:
                return FetchResponse(ok=False, status=404)
            return FetchResponse(ok=True, status=200, data=data)

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            response = await client.get(url)

        return FetchResponse(
            ok=response.is_success,
            status=response.status_code,
            data=response.content,
        )

    async def gunzip(self, data: bytes) -> bytes:
        return await asyncio.to_thread(gzip.decompress, data)


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
