"""Загрузка traineddata: кэш, сеть, локальная папка, gzip."""

import asyncio

import pytest

from conftest import TRAINEDDATA, FakeAdapter, JobRunner, terminal
from ocr_dispatch.dispatcher import Worker
from ocr_dispatch.errors import CacheWriteError, TransientCacheError
from ocr_dispatch.services.language_loader import is_gzip, is_remote_path

LANG_PATH = "https://tessdata.example.org/4.0.0"


def progress_of(messages: list[dict]) -> list[tuple[str, float]]:
    return [
        (m["data"]["status"], m["data"]["progress"])
        for m in messages
        if m["status"] == "progress"
    ]


# =============================================================================
# Вспомогательные функции
# =============================================================================


def test_is_remote_path() -> None:
    assert is_remote_path("https://host/path")
    assert is_remote_path("file:///srv/tessdata")
    assert is_remote_path("chrome-extension://abc/tessdata")
    assert not is_remote_path("/srv/tessdata")
    assert not is_remote_path("./tessdata")


def test_is_gzip(gz_traineddata) -> None:
    assert is_gzip(gz_traineddata)
    assert not is_gzip(TRAINEDDATA)
    assert not is_gzip(b"")


# =============================================================================
# Сеть и кэш
# =============================================================================


@pytest.mark.asyncio
async def test_fetch_unpack_and_install(run, adapter, gz_traineddata) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata.gz"] = gz_traineddata
    await run("load")

    messages = await run("loadLanguage", {"langs": "eng", "options": {"langPath": LANG_PATH}})

    final = terminal(messages)
    assert final["status"] == "resolve"
    assert final["data"] == "eng"
    assert progress_of(messages) == [
        ("loading language traineddata", 0),
        ("loaded language traineddata", 1),
    ]
    assert adapter.gunzip_calls == 1
    assert run.worker.session.module.fs.read_file("/eng.traineddata") == TRAINEDDATA
    # Политика по умолчанию write: в кэш уходят распакованные данные
    assert adapter.cache["./eng.traineddata"] == TRAINEDDATA


@pytest.mark.asyncio
async def test_cache_roundtrip_without_network(tmp_path, gz_traineddata) -> None:
    first = FakeAdapter(tmp_path / "first")
    first.remote[f"{LANG_PATH}/eng.traineddata.gz"] = gz_traineddata
    run_first = JobRunner(Worker(first))
    await run_first("load")
    options = {"langPath": LANG_PATH, "cachePath": "/cache", "cacheMethod": "refresh"}
    await run_first("loadLanguage", {"langs": "eng", "options": options})
    assert first.read_calls == []

    second = FakeAdapter(tmp_path / "second")
    second.cache = dict(first.cache)
    second.network = False
    run_second = JobRunner(Worker(second))
    await run_second("load")
    messages = await run_second(
        "loadLanguage",
        {"langs": "eng", "options": {"langPath": LANG_PATH, "cachePath": "/cache"}},
    )

    assert terminal(messages)["status"] == "resolve"
    assert ("loading language traineddata (from cache)", 0.5) in progress_of(messages)
    assert second.fetch_calls == []
    assert second.write_calls == []
    installed = run_second.worker.session.module.fs.read_file("/eng.traineddata")
    assert installed == first.cache["/cache/eng.traineddata"]

    run_first.worker.dispose()
    run_second.worker.dispose()


@pytest.mark.asyncio
async def test_cache_method_none_never_touches_cache(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata"] = TRAINEDDATA
    adapter.cache["./eng.traineddata"] = b"stale"
    await run("load")

    options = {"langPath": LANG_PATH, "cacheMethod": "none", "gzip": False}
    await run("loadLanguage", {"langs": "eng", "options": options})

    assert adapter.read_calls == []
    assert adapter.write_calls == []
    assert run.worker.session.module.fs.read_file("/eng.traineddata") == TRAINEDDATA


@pytest.mark.asyncio
async def test_gzip_detected_by_signature(run, adapter, gz_traineddata) -> None:
    # gzip=False, но по URL лежит сжатый файл
    adapter.remote[f"{LANG_PATH}/eng.traineddata"] = gz_traineddata
    await run("load")

    options = {"langPath": LANG_PATH, "gzip": False}
    await run("loadLanguage", {"langs": "eng", "options": options})

    assert adapter.fetch_calls == [f"{LANG_PATH}/eng.traineddata"]
    assert run.worker.session.module.fs.read_file("/eng.traineddata") == TRAINEDDATA


@pytest.mark.asyncio
async def test_network_error_is_rejected(run, adapter) -> None:
    await run("load")
    messages = await run("loadLanguage", {"langs": "fra", "options": {"langPath": LANG_PATH}})

    final = terminal(messages)
    assert final["status"] == "reject"
    assert "404" in final["data"]
    assert f"{LANG_PATH}/fra.traineddata.gz" in final["data"]


@pytest.mark.asyncio
async def test_local_lang_path(run, adapter) -> None:
    adapter.cache["/srv/tessdata/rus.traineddata"] = TRAINEDDATA
    await run("load")

    options = {"langPath": "/srv/tessdata/", "gzip": False, "dataPath": "/tessdata"}
    final = terminal(await run("loadLanguage", {"langs": "rus", "options": options}))

    assert final["status"] == "resolve"
    assert adapter.fetch_calls == []
    assert run.worker.session.module.fs.read_file("/tessdata/rus.traineddata") == TRAINEDDATA


@pytest.mark.asyncio
async def test_existing_data_path_is_reused(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata"] = TRAINEDDATA
    adapter.remote[f"{LANG_PATH}/deu.traineddata"] = TRAINEDDATA
    await run("load")
    run.worker.session.module.fs.mkdir("/tessdata")

    options = {"langPath": LANG_PATH, "gzip": False, "dataPath": "/tessdata"}
    final = terminal(await run("loadLanguage", {"langs": ["eng", "deu"], "options": options}))

    assert final["status"] == "resolve"
    assert run.worker.session.module.fs.readdir("/tessdata") == [
        "deu.traineddata",
        "eng.traineddata",
    ]


@pytest.mark.asyncio
async def test_plain_data_with_gzip_flag_is_not_unpacked(run, adapter) -> None:
    # gzip=True по умолчанию, но по URL лежит несжатый файл
    adapter.remote[f"{LANG_PATH}/eng.traineddata.gz"] = TRAINEDDATA
    await run("load")

    final = terminal(await run("loadLanguage", {"langs": "eng", "options": {"langPath": LANG_PATH}}))

    assert final["status"] == "resolve"
    assert adapter.gunzip_calls == 0
    assert run.worker.session.module.fs.read_file("/eng.traineddata") == TRAINEDDATA


@pytest.mark.asyncio
async def test_data_path_outside_fs_is_rejected(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata"] = TRAINEDDATA
    await run("load")

    options = {"langPath": LANG_PATH, "gzip": False, "dataPath": "/../outside"}
    final = terminal(await run("loadLanguage", {"langs": "eng", "options": options}))

    assert final["status"] == "reject"
    assert "/../outside" in final["data"]


@pytest.mark.asyncio
async def test_data_path_occupied_by_file_is_rejected(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata"] = TRAINEDDATA
    await run("load")
    run.worker.session.module.fs.write_file("/tessdata", b"not a folder")

    options = {"langPath": LANG_PATH, "gzip": False, "dataPath": "/tessdata"}
    final = terminal(await run("loadLanguage", {"langs": "eng", "options": options}))

    assert final["status"] == "reject"


class SlowAdapter(FakeAdapter):
    """fetch для одного URL отвечает с задержкой."""

    def __init__(self, root, slow_url):
        super().__init__(root)
        self.slow_url = slow_url

    async def fetch(self, url):
        if url == self.slow_url:
            await asyncio.sleep(0.05)
        return await super().fetch(url)


@pytest.mark.asyncio
async def test_failure_cancels_other_languages(tmp_path) -> None:
    slow_url = f"{LANG_PATH}/rus.traineddata"
    adapter = SlowAdapter(tmp_path, slow_url)
    adapter.remote[slow_url] = TRAINEDDATA
    worker = Worker(adapter)
    run = JobRunner(worker)
    await run("load")
    module = worker.session.module

    options = {"langPath": LANG_PATH, "gzip": False}
    final = terminal(await run("loadLanguage", {"langs": ["rus", "fra"], "options": options}))
    await asyncio.sleep(0.1)

    assert final["status"] == "reject"
    assert "fra" in final["data"]
    # Загрузка rus отменена: ни ФС движка, ни кэш не тронуты
    assert not module.fs.exists("/rus.traineddata")
    assert adapter.write_calls == []
    worker.dispose()


# =============================================================================
# Готовые байты и ошибки кэша
# =============================================================================


@pytest.mark.asyncio
async def test_inline_language_skips_cache_and_network(run, adapter) -> None:
    await run("load")
    langs = [{"code": "custom", "data": TRAINEDDATA}]

    final = terminal(await run("loadLanguage", {"langs": langs}))

    assert final["status"] == "resolve"
    assert adapter.read_calls == []
    assert adapter.fetch_calls == []
    assert adapter.write_calls == []
    assert run.worker.session.module.fs.read_file("/custom.traineddata") == TRAINEDDATA


@pytest.mark.asyncio
async def test_cache_write_failure_still_resolves(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata.gz"] = b"plain-bytes"
    adapter.write_error = CacheWriteError("диск заполнен")
    await run("load")

    messages = await run("loadLanguage", {"langs": "eng", "options": {"langPath": LANG_PATH}})

    assert terminal(messages)["status"] == "resolve"
    assert adapter.write_calls == ["./eng.traineddata"]
    assert adapter.gunzip_calls == 0


@pytest.mark.asyncio
async def test_transient_cache_error_resolves_without_final_progress(run, adapter) -> None:
    adapter.read_error = TransientCacheError("хранилище занято")
    await run("load")

    messages = await run("loadLanguage", {"langs": "eng", "options": {"langPath": LANG_PATH}})

    assert terminal(messages)["status"] == "resolve"
    assert progress_of(messages) == [("loading language traineddata", 0)]


@pytest.mark.asyncio
async def test_load_language_before_load(run, adapter) -> None:
    adapter.remote[f"{LANG_PATH}/eng.traineddata.gz"] = TRAINEDDATA

    final = terminal(await run("loadLanguage", {"langs": "eng", "options": {"langPath": LANG_PATH}}))

    # Движка ещё нет: данные только кэшируются
    assert final["status"] == "resolve"
    assert adapter.cache["./eng.traineddata"] == TRAINEDDATA
