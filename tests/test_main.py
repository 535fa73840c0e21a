"""FastAPI транспорт: /health, POST /jobs, WS /ws."""

import base64

import pytesseract
import pytest
from fastapi.testclient import TestClient

from conftest import FakeAdapter
from ocr_dispatch.dispatcher import Worker
from ocr_dispatch.main import app, to_jsonable


@pytest.fixture
def client(tmp_path):
    with TestClient(app) as client:
        app.state.worker.dispose()
        app.state.worker = Worker(FakeAdapter(tmp_path))
        yield client


def job(action: str, payload=None, job_id: str = "1") -> dict:
    return {"workerId": "http", "jobId": job_id, "action": action, "payload": payload or {}}


def test_to_jsonable_encodes_bytes() -> None:
    assert to_jsonable({"pdf": b"%PDF", "items": [b"a", 1]}) == {
        "pdf": base64.b64encode(b"%PDF").decode(),
        "items": ["YQ==", 1],
    }


def test_health(client, monkeypatch) -> None:
    monkeypatch.setattr(pytesseract, "get_tesseract_version", lambda: "5.3.0")

    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["tesseract"] == {"available": True, "version": "5.3.0"}
    assert data["session"] == {"engine_loaded": False, "api_initialized": False}


def test_health_without_tesseract(client, monkeypatch) -> None:
    def missing():
        raise pytesseract.TesseractNotFoundError()

    monkeypatch.setattr(pytesseract, "get_tesseract_version", missing)
    assert client.get("/health").json()["status"] == "degraded"


def test_jobs_endpoint(client) -> None:
    # Данные языка приходят base64 строкой
    inline = {"code": "eng", "data": base64.b64encode(b"traineddata").decode()}

    for packet in (
        job("load"),
        job("loadLanguage", {"langs": [inline]}),
        job("initialize", {"langs": "eng"}),
    ):
        messages = client.post("/jobs", json=packet).json()["messages"]
        assert messages[-1]["status"] == "resolve", messages

    messages = client.post("/jobs", json=job("getPDF", {"title": "T"}, job_id="pdf")).json()["messages"]

    assert messages[-1]["jobId"] == "pdf"
    assert base64.b64decode(messages[-1]["data"]) == b"%PDF-1.4 T"


def test_jobs_endpoint_reject(client) -> None:
    messages = client.post("/jobs", json=job("nope")).json()["messages"]
    assert [m["status"] for m in messages] == ["reject"]


def test_websocket_streams_events(client) -> None:
    with client.websocket_connect("/ws") as ws:
        ws.send_json(job("load", job_id="ws-1"))

        statuses = []
        while True:
            message = ws.receive_json()
            statuses.append(message["status"])
            assert message["jobId"] == "ws-1"
            if message["status"] in ("resolve", "reject"):
                break

    assert statuses == ["progress", "progress", "resolve"]
