"""
Диспетчер задач воркера.

Принимает задачу (Job), вызывает обработчик по имени действия
и отправляет события через send:
    {...задача, "status": "progress" | "resolve" | "reject", "data": ...}

Ошибки обработчиков не выходят наружу: любое исключение превращается
в reject со строковым сообщением.
"""

import logging
from typing import Any, Callable, Optional

from ocr_dispatch.errors import UnknownActionError
from ocr_dispatch.schemas import Job
from ocr_dispatch.services import (
    WorkerSession,
    detect,
    fs,
    get_pdf,
    initialize,
    load,
    load_language,
    recognize,
    set_parameters,
    terminate,
)
from ocr_dispatch.services.session import current_job

logger = logging.getLogger(__name__)

Send = Callable[[dict[str, Any]], None]

HANDLERS = {
    "load": load,
    "FS": fs,
    "loadLanguage": load_language,
    "initialize": initialize,
    "setParameters": set_parameters,
    "recognize": recognize,
    "getPDF": get_pdf,
    "detect": detect,
    "terminate": terminate,
}


class ResponseChannel:
    """
    Канал ответа одной задачи.

    resolve/reject отправляются не более одного раза, progress — только до них.
    Всё, что приходит после завершения задачи, отбрасывается с предупреждением.

    Attributes:
        packet: исходная задача (её поля копируются в каждое событие)
        done: задача уже завершена
    """

    def __init__(self, packet: dict[str, Any], send: Send):
        self.packet = packet
        self._send = send
        self.done = False

    @property
    def worker_id(self) -> Optional[str]:
        return self.packet.get("workerId")

    @property
    def job_id(self) -> Optional[str]:
        return self.packet.get("jobId")

    def _emit(self, status: str, data: Any) -> None:
        if self.done:
            logger.warning(
                f"[{self.worker_id}]: Событие {status} после завершения задачи {self.job_id} отброшено"
            )
            return
        self._send({**self.packet, "status": status, "data": data})

    def progress(self, status: str, progress: float) -> None:
        self._emit(
            "progress",
            {
                "workerId": self.worker_id,
                "jobId": self.job_id,
                "status": status,
                "progress": progress,
            },
        )

    def resolve(self, data: Any = None) -> None:
        self._emit("resolve", data)
        self.done = True

    def reject(self, error: str) -> None:
        self._emit("reject", error)
        self.done = True


class Worker:
    """
    Воркер: сессия + диспетчер.

    Задачи выполняются по одной: следующая отправляется после
    resolve/reject предыдущей.

    Пример:
        worker = Worker(HostAdapter())
        await worker.dispatch({"jobId": "1", "action": "load", "payload": {}}, send)
        worker.dispose()
    """

    def __init__(self, adapter):
        self.session = WorkerSession(adapter)

    async def dispatch(self, packet: dict[str, Any], send: Send) -> None:
        """
        Выполняет задачу и отправляет её события через send.

        Args:
            packet: задача {workerId, jobId, action, payload}
            send: функция отправки события
        """
        res = ResponseChannel(packet, send)
        # Прогресс движка уходит в канал задачи, которая сейчас выполняется
        token = current_job.set(res)
        try:
            job = Job.model_validate(packet)
            handler = HANDLERS.get(job.action)
            if handler is None:
                raise UnknownActionError(job.action)

            await handler(self.session, job, res)
        except Exception as e:
            logger.warning(f"[{res.worker_id}]: Задача {res.job_id} завершилась ошибкой: {e}")
            res.reject(str(e))
        finally:
            current_job.reset(token)

        if not res.done:
            res.resolve(None)

    def dispose(self) -> None:
        self.session.dispose()
