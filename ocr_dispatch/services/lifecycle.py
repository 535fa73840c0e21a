"""
Жизненный цикл движка: load, initialize, terminate и проброс FS.
"""

import logging

from ocr_dispatch.constants import CONFIG_FILE_PATH, DEFAULT_PARAMS
from ocr_dispatch.errors import InitializationError
from ocr_dispatch.log import set_logging
from ocr_dispatch.schemas import (
    FSPayload,
    InitializePayload,
    LoadPayload,
    join_language_codes,
    parse_engine_config,
    render_engine_config,
)
from ocr_dispatch.services.parameters import apply_parameters
from ocr_dispatch.services.session import route_engine_progress

logger = logging.getLogger(__name__)


async def load(session, job, res) -> None:
    """
    Загружает движок, если он ещё не загружен.

    Повторный вызов сразу отвечает {loaded: true}.
    """
    payload = LoadPayload.model_validate(job.payload)
    set_logging(payload.options.logging)

    if session.module is None:
        factory = await session.adapter.get_core(payload.options.core_path)

        res.progress("initializing tesseract", 0)
        session.module = await factory(progress_callback=route_engine_progress)
        res.progress("initialized tesseract", 1)
    else:
        logger.info(f"[{job.worker_id}]: Движок уже загружен")

    res.resolve({"loaded": True})


async def initialize(session, job, res) -> None:
    """
    Создаёт новый экземпляр распознавателя вместо текущего.

    Выполняет:
        1. Завершение предыдущего экземпляра
        2. Запись конфиг-файла (если передан config)
        3. Init с языками и OEM
        4. Сброс параметров к дефолтным и их применение

    Raises:
        InitializationError: любая ошибка создания экземпляра
    """
    payload = InitializePayload.model_validate(job.payload)
    res.progress("initializing api", 0)

    try:
        module = session.require_module()
        langs = join_language_codes(payload.langs)
        session.end_api()

        # config: готовый текст конфиг-файла или словарь параметров
        config_file = None
        config_text = render_engine_config(parse_engine_config(payload.config))
        if config_text is not None:
            config_file = CONFIG_FILE_PATH
            module.fs.write_file(config_file, config_text)

        api = module.create_api()
        api.init(None, langs, payload.oem, config_file)
        session.api = api

        session.params = dict(DEFAULT_PARAMS)
        apply_parameters(session, session.params)
    except Exception as e:
        session.end_api()
        raise InitializationError(str(e)) from e

    logger.info(f"[{job.worker_id}]: Распознаватель создан, языки: {langs}")
    res.progress("initialized api", 1)
    res.resolve(None)


async def terminate(session, job, res) -> None:
    """Завершает распознаватель и выгружает движок."""
    session.dispose()
    res.resolve({"terminated": True})


async def fs(session, job, res) -> None:
    """Вызывает метод виртуальной ФС движка и возвращает результат."""
    payload = FSPayload.model_validate(job.payload)
    module = session.require_module()

    logger.info(f"[{job.worker_id}]: FS.{payload.method} с аргументами {payload.args}")
    res.resolve(module.fs.call(payload.method, payload.args))
