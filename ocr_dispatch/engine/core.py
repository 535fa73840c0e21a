"""
Модуль движка: виртуальная ФС, фабрики объектов API и учёт буферов.

Создаётся один раз на воркер задачей load и живёт до terminate.
"""

import asyncio
import itertools
import logging
import tempfile
from typing import Any, Callable, Optional

import pytesseract

from ocr_dispatch.engine.api import OSResults, TessBaseAPI
from ocr_dispatch.engine.fs import VirtualFS
from ocr_dispatch.engine.pdf import PdfRenderer
from ocr_dispatch.errors import EngineError

logger = logging.getLogger(__name__)

# Процент выполнения распознавания (0-100)
ProgressCallback = Callable[[float], None]


class TesseractModule:
    """
    Загруженный движок распознавания.

    Attributes:
        fs: виртуальная файловая система движка
        version: версия Tesseract
    """

    def __init__(
        self,
        fs: VirtualFS,
        version: str,
        progress_callback: Optional[ProgressCallback] = None,
        owns_fs: bool = False,
    ):
        self.fs = fs
        self.version = version
        self._progress_callback = progress_callback
        self._owns_fs = owns_fs
        self._allocations: dict[int, Any] = {}
        self._counter = itertools.count(1)

    # --- Фабрики нативных объектов ---

    def create_api(self) -> TessBaseAPI:
        return TessBaseAPI(self)

    def create_pdf_renderer(self, output_base: str, directory: str, text_only: bool) -> PdfRenderer:
        return PdfRenderer(self, output_base, directory, text_only)

    def create_os_results(self) -> OSResults:
        return OSResults()

    # --- Буферы ---

    def allocate(self, obj: Any) -> int:
        ptr = next(self._counter)
        self._allocations[ptr] = obj
        return ptr

    def free(self, ptr: int) -> None:
        """
        Освобождает буфер изображения или рендерер.

        Raises:
            EngineError: указатель уже освобождён или не существует
        """
        if self._allocations.pop(ptr, None) is None:
            raise EngineError(f"Повторное освобождение указателя {ptr}")

    @property
    def live_allocations(self) -> int:
        return len(self._allocations)

    # --- Прогресс ---

    def report_progress(self, percent: float) -> None:
        if self._progress_callback is not None:
            self._progress_callback(percent)

    def dispose(self) -> None:
        self._allocations.clear()
        if self._owns_fs:
            self.fs.clear()


async def create_tesseract_core(
    progress_callback: Optional[ProgressCallback] = None,
    root: Optional[str] = None,
) -> TesseractModule:
    """
    Создаёт модуль движка.

    Проверяет доступность Tesseract и поднимает виртуальную ФС:
    в root, если задан, иначе во временной папке.

    Args:
        progress_callback: колбэк процента распознавания
        root: корень виртуальной ФС

    Raises:
        EngineError: Tesseract не установлен или недоступен
    """
    try:
        version = await asyncio.to_thread(pytesseract.get_tesseract_version)
    except pytesseract.TesseractNotFoundError as e:
        raise EngineError(f"Tesseract недоступен: {e}") from e

    owns_fs = not root
    fs = VirtualFS(root or tempfile.mkdtemp(prefix="ocr-dispatch-"))
    logger.info(f"Движок загружен: Tesseract {version}, ФС={fs.root}")

    return TesseractModule(
        fs=fs,
        version=str(version),
        progress_callback=progress_callback,
        owns_fs=owns_fs,
    )
