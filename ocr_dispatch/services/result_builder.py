"""
Сборка результата recognize по спецификации вывода.

Каждый формат берётся у распознавателя, только если он запрошен.
Незапрошенные форматы в результате равны None.
"""

import logging
from typing import Any, Optional

from ocr_dispatch.services.pdf_export import render_pdf

logger = logging.getLogger(__name__)

# Формат -> метод распознавателя
TEXT_GETTERS = {
    "text": "get_utf8_text",
    "blocks": "get_blocks",
    "hocr": "get_hocr_text",
    "tsv": "get_tsv_text",
    "box": "get_box_text",
    "unlv": "get_unlv_text",
    "osd": "get_osd_text",
}

IMAGE_KINDS = {
    "imageColor": "color",
    "imageGrey": "grey",
    "imageBinary": "binary",
}


def build_result(
    module,
    api,
    formats: dict[str, bool],
    pdf_title: Optional[str] = None,
    pdf_text_only: bool = False,
    recognized: bool = True,
) -> dict[str, Any]:
    """
    Собирает результат по запрошенным форматам.

    Args:
        module: модуль движка
        api: экземпляр распознавателя
        formats: формат -> нужен ли он
        pdf_title: заголовок PDF
        pdf_text_only: PDF только с текстовым слоем
        recognized: было ли выполнено распознавание

    Returns:
        dict: форматы + confidence, psm, oem, version
    """
    result: dict[str, Any] = {}

    for name, getter in TEXT_GETTERS.items():
        result[name] = getattr(api, getter)() if formats.get(name) else None

    for name, kind in IMAGE_KINDS.items():
        result[name] = api.get_image(kind) if formats.get(name) else None

    result["pdf"] = (
        render_pdf(module, api, pdf_title or "", bool(pdf_text_only))
        if formats.get("pdf")
        else None
    )

    result["confidence"] = api.mean_text_conf() if recognized else None
    result["psm"] = api.get_page_seg_mode()
    result["oem"] = api.oem
    result["version"] = module.version

    return result
