"""
Сессия воркера: всё изменяемое состояние в одном объекте.

Модуль движка, экземпляр распознавателя и текущие параметры живут
между задачами. Воркер выполняет задачи по одной, поэтому блокировок нет.
"""

import logging
from contextvars import ContextVar
from typing import Any

from ocr_dispatch.constants import DEFAULT_PARAMS
from ocr_dispatch.errors import ApiNotInitializedError, EngineNotLoadedError

logger = logging.getLogger(__name__)

# Канал ответа задачи, обработчик которой сейчас выполняется.
# Колбэки прогресса движка отправляют события именно в него.
current_job: ContextVar[Any] = ContextVar("current_job", default=None)


class WorkerSession:
    """
    Состояние одного воркера.

    Attributes:
        adapter: возможности окружения (CapabilityAdapter)
        module: модуль движка (после load)
        api: экземпляр распознавателя (после initialize)
        params: последние применённые параметры
    """

    def __init__(self, adapter):
        self.adapter = adapter
        self.module = None
        self.api = None
        self.params: dict[str, Any] = dict(DEFAULT_PARAMS)

    def require_module(self):
        if self.module is None:
            raise EngineNotLoadedError()
        return self.module

    def require_api(self):
        self.require_module()
        if self.api is None:
            raise ApiNotInitializedError()
        return self.api

    def end_api(self) -> None:
        """Завершает экземпляр распознавателя, если он есть."""
        if self.api is not None:
            api, self.api = self.api, None
            api.end()

    def dispose(self) -> None:
        """Освобождает распознаватель и движок."""
        self.end_api()
        if self.module is not None:
            module, self.module = self.module, None
            module.dispose()
        self.params = dict(DEFAULT_PARAMS)
        logger.info("Сессия воркера закрыта")


def route_engine_progress(percent: float) -> None:
    """
    Отправляет прогресс распознавания в канал текущей задачи.

    Движок сообщает проценты в диапазоне [30, 100], наружу уходит [0, 1].
    """
    channel = current_job.get()
    if channel is None:
        return
    channel.progress("recognizing text", max(0.0, (percent - 30) / 70))
