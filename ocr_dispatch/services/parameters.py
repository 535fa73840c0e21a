"""
Хранилище параметров движка.

Зарезервированные ключи (tessjs_create_*) в движок не передаются:
они нужны только для сборки спецификации вывода.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping

from ocr_dispatch.constants import RESERVED_PARAMS
from ocr_dispatch.schemas import SetParametersPayload

logger = logging.getLogger(__name__)


def engine_params(params: Mapping[str, Any], exclude=frozenset()) -> dict[str, Any]:
    """Параметры, которые уходят в движок (без зарезервированных и exclude)."""
    return {
        key: value
        for key, value in params.items()
        if key not in RESERVED_PARAMS and key not in exclude
    }


def apply_parameters(session, params: Mapping[str, Any]) -> dict[str, Any]:
    """
    Применяет параметры к распознавателю и запоминает их.

    Args:
        session: сессия воркера
        params: новые параметры (в т.ч. зарезервированные ключи)

    Returns:
        dict: объединённый набор текущих параметров
    """
    api = session.require_api()
    for key, value in engine_params(params).items():
        api.set_variable(key, value)

    session.params = {**session.params, **params}
    return dict(session.params)


@contextmanager
def scoped_parameters(api, overrides: Mapping[str, Any]) -> Iterator[None]:
    """
    Временно применяет параметры на время одной операции.

    save -> set -> yield -> restore; восстановление выполняется
    при любом выходе, в том числе при исключении.
    """
    if not overrides:
        yield
        return

    api.save_parameters()
    try:
        for key, value in overrides.items():
            api.set_variable(key, value)
        logger.info(f"Временные параметры: {list(overrides)}")
        yield
    finally:
        api.restore_parameters()


async def set_parameters(session, job, res) -> None:
    payload = SetParametersPayload.model_validate(job.payload)
    res.resolve(apply_parameters(session, payload.params))
