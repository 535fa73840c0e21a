"""
Контракт адаптера окружения.

Воркер не знает, откуда берутся байты и как устроен движок:
всё это поставляет окружение через объект с методами ниже.
"""

from typing import Any, Awaitable, Callable, Optional, Protocol

from ocr_dispatch.engine.core import ProgressCallback
from ocr_dispatch.schemas import FetchResponse

# Фабрика модуля движка: создаёт его асинхронно
EngineModuleFactory = Callable[..., Awaitable[Any]]


class CapabilityAdapter(Protocol):
    """Возможности окружения, которыми пользуется воркер."""

    async def get_core(self, core_path: Optional[str]) -> EngineModuleFactory:
        """Возвращает фабрику модуля движка."""
        ...

    async def read_cache(self, path: str) -> bytes:
        """Читает файл из хранилища. Нет файла -> CacheMissError."""
        ...

    async def write_cache(self, path: str, data: bytes) -> None:
        ...

    async def fetch(self, url: str) -> FetchResponse:
        ...

    async def gunzip(self, data: bytes) -> bytes:
        ...
