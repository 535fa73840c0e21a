"""
Экспорт текущего результата распознавания в PDF.
"""

import logging

from ocr_dispatch.constants import PDF_OUTPUT_BASE, PDF_OUTPUT_DIR
from ocr_dispatch.schemas import GetPDFPayload

logger = logging.getLogger(__name__)


def render_pdf(module, api, title: str = "", text_only: bool = False) -> bytes:
    """
    Рендерит PDF из состояния распознавателя и читает его из виртуальной ФС.

    Рендерер освобождается в любом случае.

    Args:
        module: модуль движка
        api: экземпляр распознавателя с установленным изображением
        title: заголовок документа
        text_only: только текстовый слой, без изображения

    Returns:
        bytes: содержимое PDF
    """
    renderer = module.create_pdf_renderer(PDF_OUTPUT_BASE, PDF_OUTPUT_DIR, text_only)
    try:
        renderer.begin_document(title)
        renderer.add_image(api)
        renderer.end_document()
    finally:
        module.free(renderer.ptr)

    return module.fs.read_file(f"{PDF_OUTPUT_DIR.rstrip('/')}/{PDF_OUTPUT_BASE}.pdf")


async def get_pdf(session, job, res) -> None:
    """Отвечает байтами PDF для последнего распознанного изображения."""
    payload = GetPDFPayload.model_validate(job.payload)
    api = session.require_api()
    res.resolve(render_pdf(session.module, api, payload.title, payload.textonly))
