"""Общие фикстуры: фейковый адаптер окружения и фейковый распознаватель."""

import gzip
from typing import Optional

import pytest

from ocr_dispatch.dispatcher import Worker
from ocr_dispatch.engine.api import OSBestResult
from ocr_dispatch.engine.core import TesseractModule
from ocr_dispatch.engine.fs import VirtualFS
from ocr_dispatch.errors import CacheMissError, CacheWriteError, EngineError
from ocr_dispatch.schemas import FetchResponse

TRAINEDDATA = b"fake-traineddata-\x00\x01\x02"


class FakeApi:
    """Распознаватель без Tesseract: записывает вызовы, отдаёт заготовки."""

    def __init__(self, module):
        self._module = module
        self.oem = None
        self.langs = None
        self.init_args = None
        self.variables: dict[str, str] = {}
        self.saved: list[dict[str, str]] = []
        self.image_angles: list[float] = []
        self.rectangle = None
        self.recognize_calls = 0
        self.detected_angle = 0.0
        self.fail_recognize = False
        self.fail_init = False
        self.osd: Optional[OSBestResult] = None
        self.ended = False

    def init(self, data_path, langs, oem, config_file=None):
        if self.fail_init or "xxx" in langs.split("+"):
            raise EngineError(f"Не найдены языковые данные: {langs}")
        self.init_args = (data_path, langs, oem, config_file)
        self.langs = langs
        self.oem = oem

    def end(self):
        self.ended = True

    def set_variable(self, name, value):
        self.variables[name] = str(value)
        return True

    def get_variable(self, name):
        return self.variables.get(name)

    def save_parameters(self):
        self.saved.append(dict(self.variables))

    def restore_parameters(self):
        self.variables = self.saved.pop()

    def get_page_seg_mode(self):
        return int(self.variables.get("tessedit_pageseg_mode", 6))

    def set_image(self, image, angle=0.0):
        self.image_angles.append(angle)
        self.rectangle = None
        return self._module.allocate(image)

    def set_rectangle(self, left, top, width, height):
        self.rectangle = (left, top, width, height)

    def find_lines(self):
        pass

    def get_angle(self):
        return self.detected_angle

    def recognize(self):
        self.recognize_calls += 1
        self._module.report_progress(30)
        if self.fail_recognize:
            raise EngineError("Сбой распознавания")
        self._module.report_progress(65)
        self._module.report_progress(100)

    def get_utf8_text(self):
        return "Hello world"

    def get_blocks(self):
        return [{"text": "Hello world", "paragraphs": []}]

    def get_hocr_text(self):
        return "<div class='ocr_page'></div>"

    def get_tsv_text(self):
        return "level\tpage_num\n"

    def get_box_text(self):
        return "H 1 2 3 4 0\n"

    def get_unlv_text(self):
        return "Hello world\n"

    def get_osd_text(self):
        return "Orientation in degrees: 0\n"

    def get_image(self, kind):
        return b"png-" + kind.encode()

    def mean_text_conf(self):
        return 91

    def render_pdf(self, title="", text_only=False):
        return b"%PDF-1.4 " + title.encode() + (b" textonly" if text_only else b"")

    def detect_os(self, results):
        if self.osd is None:
            return False
        results.best_result = self.osd
        return True


class FakeModule(TesseractModule):
    """Настоящий модуль (ФС, буферы, рендерер), но с FakeApi."""

    def __init__(self, root, progress_callback=None):
        super().__init__(
            fs=VirtualFS(root),
            version="5.3.0-fake",
            progress_callback=progress_callback,
        )
        self.apis: list[FakeApi] = []

    def create_api(self):
        api = FakeApi(self)
        self.apis.append(api)
        return api


class FakeAdapter:
    """
    Окружение в памяти.

    Attributes:
        cache: путь -> байты (кэш и локальные папки)
        remote: URL -> байты (остальные URL отвечают 404)
        network: False — fetch падает, как будто сети нет
    """

    def __init__(self, root):
        self.root = root
        self.cache: dict[str, bytes] = {}
        self.remote: dict[str, bytes] = {}
        self.network = True
        self.write_error: Optional[Exception] = None
        self.read_error: Optional[Exception] = None
        self.core_calls = 0
        self.core_paths: list = []
        self.fetch_calls: list[str] = []
        self.read_calls: list[str] = []
        self.write_calls: list[str] = []
        self.gunzip_calls = 0

    async def get_core(self, core_path):
        self.core_paths.append(core_path)

        async def factory(progress_callback=None):
            self.core_calls += 1
            return FakeModule(self.root / f"fs{self.core_calls}", progress_callback)

        return factory

    async def read_cache(self, path):
        self.read_calls.append(path)
        if self.read_error is not None:
            raise self.read_error
        if path not in self.cache:
            raise CacheMissError(path)
        return self.cache[path]

    async def write_cache(self, path, data):
        self.write_calls.append(path)
        if self.write_error is not None:
            raise self.write_error
        self.cache[path] = bytes(data)

    async def fetch(self, url):
        self.fetch_calls.append(url)
        if not self.network:
            raise ConnectionError("Сеть недоступна")
        if url not in self.remote:
            return FetchResponse(ok=False, status=404)
        return FetchResponse(ok=True, status=200, data=self.remote[url])

    async def gunzip(self, data):
        self.gunzip_calls += 1
        return gzip.decompress(data)


class JobRunner:
    """Выполняет задачи на воркере и собирает их события."""

    def __init__(self, worker: Worker):
        self.worker = worker
        self._counter = 0

    async def __call__(self, action: str, payload: Optional[dict] = None, job_id: Optional[str] = None) -> list[dict]:
        self._counter += 1
        messages: list[dict] = []
        packet = {
            "workerId": "worker-1",
            "jobId": job_id or f"job-{self._counter}",
            "action": action,
            "payload": payload or {},
        }
        await self.worker.dispatch(packet, messages.append)
        return messages


def terminal(messages: list[dict]) -> dict:
    """Единственное итоговое событие задачи."""
    finals = [m for m in messages if m["status"] in ("resolve", "reject")]
    assert len(finals) == 1, messages
    assert messages[-1] is finals[0]
    return finals[0]


@pytest.fixture
def adapter(tmp_path) -> FakeAdapter:
    return FakeAdapter(tmp_path)


@pytest.fixture
def worker(adapter) -> Worker:
    worker = Worker(adapter)
    yield worker
    worker.dispose()


@pytest.fixture
def run(worker) -> JobRunner:
    return JobRunner(worker)


@pytest.fixture
def gz_traineddata() -> bytes:
    return gzip.compress(TRAINEDDATA)


async def ready(run: JobRunner, langs="eng") -> FakeApi:
    """load + initialize; возвращает созданный распознаватель."""
    assert terminal(await run("load"))["status"] == "resolve"
    assert terminal(await run("initialize", {"langs": langs}))["status"] == "resolve"
    return run.worker.session.api
