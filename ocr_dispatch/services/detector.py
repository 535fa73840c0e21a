"""
Определение ориентации и скрипта (OSD) для изображения.
"""

import asyncio
import logging
from typing import Any

from ocr_dispatch.constants import ORIENTATION_DEGREES
from ocr_dispatch.schemas import DetectPayload

logger = logging.getLogger(__name__)

EMPTY_DETECTION = {
    "tesseract_script_id": None,
    "script": None,
    "script_confidence": None,
    "orientation_id": None,
    "orientation_degrees": None,
    "orientation_confidence": None,
}


def run_detection(session, image: Any) -> dict[str, Any]:
    """
    Определяет ориентацию и скрипт.

    Если Tesseract не уверен, все поля результата None.
    Буфер изображения освобождается в обоих случаях.

    Returns:
        dict: script id/имя/уверенность, ориентация id/градусы/уверенность
    """
    api = session.require_api()
    module = session.module
    results = module.create_os_results()

    ptr = api.set_image(image)
    try:
        detected = api.detect_os(results)
    finally:
        module.free(ptr)

    if not detected:
        return dict(EMPTY_DETECTION)

    best = results.best_result
    return {
        "tesseract_script_id": best.script_id,
        "script": results.unicharset.get_script_from_script_id(best.script_id),
        "script_confidence": best.sconfidence,
        "orientation_id": best.orientation_id,
        "orientation_degrees": ORIENTATION_DEGREES[best.orientation_id],
        "orientation_confidence": best.oconfidence,
    }


async def detect(session, job, res) -> None:
    payload = DetectPayload.model_validate(job.payload)
    res.resolve(await asyncio.to_thread(run_detection, session, payload.image))
