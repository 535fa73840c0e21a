"""
Исключения воркера.

Обработчики задач бросают исключения, диспетчер превращает их
в reject со строковым сообщением.
"""

from typing import Optional


class OCRDispatchError(Exception):
    """Базовая ошибка воркера."""


class CacheMissError(OCRDispatchError):
    """Файла нет в кэше. Обрабатывается локально, наружу не выходит."""


class TransientCacheError(OCRDispatchError):
    """
    Временная ошибка доступа к кэшу со стороны окружения.

    HostAdapter её не бросает: это точка расширения для адаптеров
    с внешним хранилищем (например, занятого другим процессом).

    Загрузка языков её не считает ошибкой задачи: только пишет в лог.
    """


class CacheWriteError(OCRDispatchError):
    """Не удалось записать в кэш. Пишется в лог, задачу не роняет."""


class NetworkError(OCRDispatchError):
    """Неуспешный ответ при скачивании языковых данных."""

    def __init__(self, url: str, status: Optional[int]):
        self.url = url
        self.status = status
        super().__init__(
            f"Ошибка сети при загрузке {url}. Код ответа: {status}"
        )


class EngineError(OCRDispatchError):
    """Ошибка вызова движка распознавания."""


class EngineNotLoadedError(EngineError):
    """Движок ещё не загружен (нужна задача load)."""

    def __init__(self):
        super().__init__("Движок не загружен: сначала выполните load")


class ApiNotInitializedError(EngineError):
    """Экземпляр распознавателя не создан (нужна задача initialize)."""

    def __init__(self):
        super().__init__("Распознаватель не создан: сначала выполните initialize")


class InitializationError(OCRDispatchError):
    """Не удалось создать экземпляр распознавателя."""


class UnknownActionError(OCRDispatchError):
    """Неизвестное действие в задаче."""

    def __init__(self, action):
        self.action = action
        super().__init__(f"Неизвестное действие: {action}")
