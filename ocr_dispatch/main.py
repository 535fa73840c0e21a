"""
OCR Dispatch — FastAPI транспорт воркера.

Эндпоинты:
    GET  /health — проверка работоспособности (Tesseract + состояние сессии)
    POST /jobs — выполнить одну задачу, вернуть все её события
    WS   /ws — поток задач: события отправляются по мере появления

Задачи выполняются строго по одной на воркер.

Запуск:
    uvicorn ocr_dispatch.main:app --host 0.0.0.0 --port 8000
"""

import asyncio
import base64
import json
import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from ocr_dispatch.adapters.host import HostAdapter
from ocr_dispatch.config import settings
from ocr_dispatch.dispatcher import Worker
from ocr_dispatch.log import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.worker = Worker(HostAdapter())
    app.state.lock = asyncio.Lock()
    yield
    app.state.worker.dispose()


# FastAPI приложение
app = FastAPI(
    title="OCR Dispatch",
    description="Воркер задач распознавания текста (Tesseract OCR)",
    version="1.0.0",
    lifespan=lifespan,
)


def to_jsonable(value: Any) -> Any:
    """Байты (traineddata, PDF, PNG) кодируются в base64 для JSON."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


@app.get("/health")
async def health_check() -> dict:
    """
    Проверка работоспособности сервиса.

    Returns:
        dict: статус, версия Tesseract, состояние движка и распознавателя
    """
    # Проверяем доступность Tesseract
    tesseract_ok = False
    tesseract_version = "unknown"
    try:
        import pytesseract
        tesseract_version = str(pytesseract.get_tesseract_version())
        tesseract_ok = True
    except Exception as e:
        tesseract_version = f"error: {e}"

    session = app.state.worker.session
    return {
        "status": "ok" if tesseract_ok else "degraded",
        "service": "ocr-dispatch",
        "tesseract": {
            "available": tesseract_ok,
            "version": tesseract_version,
        },
        "session": {
            "engine_loaded": session.module is not None,
            "api_initialized": session.api is not None,
        },
    }


@app.post("/jobs")
async def run_job(packet: dict[str, Any]) -> dict:
    """
    Выполняет одну задачу.

    Args:
        packet: задача {workerId, jobId, action, payload}

    Returns:
        dict: {"messages": [...]} — progress события и итоговое resolve/reject
    """
    messages: list[dict] = []
    logger.info(f"Задача: {packet.get('action')}, jobId={packet.get('jobId')}")

    async with app.state.lock:
        await app.state.worker.dispatch(packet, messages.append)

    return {"messages": to_jsonable(messages)}


@app.websocket("/ws")
async def worker_socket(websocket: WebSocket) -> None:
    """
    Поток задач через WebSocket.

    Каждое входящее сообщение — задача; события отправляются сразу,
    в том числе progress из потока движка.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue()

    def send(message: dict) -> None:
        # Может вызываться из потока, где работает движок
        loop.call_soon_threadsafe(outbox.put_nowait, message)

    async def pump() -> None:
        while True:
            message = await outbox.get()
            await websocket.send_text(json.dumps(to_jsonable(message), ensure_ascii=False))

    sender = asyncio.create_task(pump())
    try:
        while True:
            packet = await websocket.receive_json()
            async with app.state.lock:
                await app.state.worker.dispatch(packet, send)
    except WebSocketDisconnect:
        logger.info("WebSocket клиент отключился")
    finally:
        sender.cancel()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Запуск OCR Dispatch на {settings.host}:{settings.port}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )
