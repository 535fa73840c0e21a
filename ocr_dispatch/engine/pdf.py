"""
Рендерер PDF: пишет распознанную страницу в файл виртуальной ФС.
"""

import logging

logger = logging.getLogger(__name__)


class PdfRenderer:
    """
    Сессия рендеринга PDF.

    Файл появляется в {directory}/{output_base}.pdf после end_document().

    Attributes:
        ptr: указатель на ресурсы рендерера (освобождается module.free)
    """

    def __init__(self, module, output_base: str, directory: str, text_only: bool = False):
        self._module = module
        self.output_base = output_base
        self.directory = directory
        self.text_only = text_only
        self.title = ""
        self._pages: list[bytes] = []
        self.ptr = module.allocate(self)

    def begin_document(self, title: str) -> None:
        self.title = title or ""
        self._pages = []

    def add_image(self, api) -> None:
        self._pages.append(api.render_pdf(self.title, self.text_only))

    def end_document(self) -> None:
        # Одна страница на документ: воркер распознаёт по одному изображению
        data = self._pages[-1] if self._pages else b""
        path = f"{self.directory.rstrip('/')}/{self.output_base}.pdf"
        self._module.fs.write_file(path, data)
        logger.info(f"PDF записан: {path}, {len(data)} байт")
