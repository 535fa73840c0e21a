"""
Оркестратор распознавания.

Пайплайн recognize:
    1. Разделение options: параметры движка / опции воркера
    2. Временное применение параметров движка (восстанавливаются в конце)
    3. Сборка спецификации вывода (дефолт + устаревшие флаги + output)
    4. Установка изображения: с автоповоротом или под заданным углом
    5. Прямоугольник (если задан)
    6. Распознавание (только если его требует хоть один формат)
    7. Сборка результата + фактический угол поворота
    8. Освобождение буфера изображения в любом случае
"""

import asyncio
import logging
from typing import Any, Mapping, Optional

from ocr_dispatch.constants import (
    ANGLE_DETECTION_PSM,
    CLIENT_DEFAULT_OUTPUT,
    DEFAULT_OUTPUT,
    LEGACY_OUTPUT_PARAMS,
    NON_RECOGNITION_OUTPUTS,
    ORCHESTRATOR_OPTIONS,
    PSM,
    ROTATE_AUTO_THRESHOLD,
)
from ocr_dispatch.schemas import OutputSpec, RecognizePayload, Rectangle
from ocr_dispatch.services.parameters import engine_params, scoped_parameters
from ocr_dispatch.services.result_builder import build_result

logger = logging.getLogger(__name__)


def build_output_spec(
    params: Mapping[str, Any],
    output: Optional[Mapping[str, bool]],
) -> OutputSpec:
    """
    Объединяет дефолтный вывод с устаревшими флагами и output пользователя.

    Форматы вывода раньше задавались через setParameters (tessjs_create_*),
    эти флаги учитываются для совместимости.

    Args:
        params: текущие параметры сессии
        output: форматы, запрошенные в recognize

    Returns:
        OutputSpec: итоговые форматы и число форматов, требующих распознавания
    """
    formats = dict(DEFAULT_OUTPUT)

    for param, name in LEGACY_OUTPUT_PARAMS.items():
        if str(params.get(param, "")) == "1":
            formats[name] = True

    formats.update(output or {})

    recognition_count = sum(
        1
        for name, enabled in formats.items()
        if enabled and name not in NON_RECOGNITION_OUTPUTS
    )
    return OutputSpec(formats=formats, recognition_count=recognition_count)


def install_image(module, api, image: Any, rotate_auto: bool, rotate_radians: float) -> tuple[int, float]:
    """
    Устанавливает изображение в движок под нужным углом.

    Автоповорот: угол определяется только в режимах автосегментации,
    поэтому другой PSM временно подменяется на AUTO. Изображение
    ставится под углом 0, Tesseract ищет строки и считает угол.
    Углы меньше порога игнорируются.

    Args:
        module: модуль движка
        api: экземпляр распознавателя
        image: изображение
        rotate_auto: определять угол автоматически
        rotate_radians: угол, если автоповорот выключен

    Returns:
        tuple: (указатель на буфер, фактический угол в радианах)
    """
    if not rotate_auto:
        angle = rotate_radians or 0.0
        return api.set_image(image, angle), angle

    psm_init = api.get_page_seg_mode()
    psm_edit = psm_init not in ANGLE_DETECTION_PSM
    if psm_edit:
        api.set_variable("tessedit_pageseg_mode", str(int(PSM.AUTO)))

    ptr = None
    try:
        ptr = api.set_image(image, 0.0)
        api.find_lines()
        angle = api.get_angle()
    except Exception:
        if ptr is not None:
            module.free(ptr)
        raise
    finally:
        # Возвращаем PSM пользователя
        if psm_edit:
            api.set_variable("tessedit_pageseg_mode", str(psm_init))

    if abs(angle) >= ROTATE_AUTO_THRESHOLD:
        module.free(ptr)
        logger.info(f"Автоповорот: угол {angle:.4f} рад")
        return api.set_image(image, angle), angle

    # Угол искали при другом PSM, изображение ставится заново
    if psm_edit:
        module.free(ptr)
        ptr = api.set_image(image, 0.0)
    return ptr, 0.0


def run_recognition(session, payload: RecognizePayload) -> dict[str, Any]:
    """
    Синхронная часть recognize: все вызовы движка.

    Returns:
        dict: результат с форматами и rotateRadians
    """
    api = session.require_api()
    module = session.module
    options = payload.options

    overrides = engine_params(options, exclude=ORCHESTRATOR_OPTIONS)
    output = CLIENT_DEFAULT_OUTPUT if payload.output is None else payload.output

    with scoped_parameters(api, overrides):
        output_spec = build_output_spec(session.params, output)

        ptr, rotate_radians = install_image(
            module,
            api,
            payload.image,
            rotate_auto=bool(options.get("rotateAuto")),
            rotate_radians=float(options.get("rotateRadians") or 0.0),
        )
        try:
            rectangle = options.get("rectangle")
            if rectangle:
                rect = Rectangle.model_validate(rectangle)
                api.set_rectangle(rect.left, rect.top, rect.width, rect.height)

            recognized = output_spec.recognition_count > 0
            if recognized:
                api.recognize()
            else:
                logger.info(
                    "Распознавание пропущено: все форматы, которым оно нужно, выключены"
                )

            result = build_result(
                module,
                api,
                output_spec.formats,
                pdf_title=options.get("pdfTitle"),
                pdf_text_only=bool(options.get("pdfTextOnly")),
                recognized=recognized,
            )
            result["rotateRadians"] = rotate_radians
        finally:
            module.free(ptr)

    return result


async def recognize(session, job, res) -> None:
    """
    Распознаёт изображение.

    Вызовы движка выполняются в потоке, чтобы не блокировать event loop.
    """
    payload = RecognizePayload.model_validate(job.payload)
    result = await asyncio.to_thread(run_recognition, session, payload)
    res.resolve(result)
