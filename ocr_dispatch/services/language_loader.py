"""
Загрузчик языковых данных (traineddata).

Для каждого языка, параллельно:
    1. Кэш (если политика разрешает чтение)
    2. Сеть (langPath — URL) или локальная папка (langPath — путь)
    3. Готовые байты из payload ({code, data}) — без кэша и сети
    4. Распаковка gzip по сигнатуре файла (флаг gzip не важен)
    5. Запись в виртуальную ФС движка: {dataPath}/{code}.traineddata
    6. Запись в кэш новых данных (ошибка записи только в лог)
"""

import asyncio
import logging
from typing import Optional

from ocr_dispatch.constants import GZIP_SIGNATURE, TRAINEDDATA_SUFFIX
from ocr_dispatch.errors import CacheMissError, NetworkError, TransientCacheError
from ocr_dispatch.schemas import (
    ByCode,
    Inline,
    LanguageSpec,
    LoadLanguageOptions,
    LoadLanguagePayload,
    parse_language_specs,
)

logger = logging.getLogger(__name__)

# Политики кэша
CACHE_READ_DISABLED = ("refresh", "none")
CACHE_WRITE_ENABLED = ("write", "refresh", None)

# Схемы langPath, которые загружаются через fetch
REMOTE_PREFIXES = (
    "http://",
    "https://",
    "file://",
    "moz-extension://",
    "chrome-extension://",
)


def is_remote_path(lang_path: str) -> bool:
    """True если langPath — URL (загрузка через fetch), а не локальная папка."""
    return lang_path.startswith(REMOTE_PREFIXES)


def is_gzip(data: bytes) -> bool:
    return data[:2] == GZIP_SIGNATURE


class LanguageLoader:
    """
    Загрузка языков одной задачи loadLanguage.

    Attributes:
        session: сессия воркера
        options: настройки загрузки
        res: канал ответа задачи
        worker_id: идентификатор воркера для логов
    """

    def __init__(self, session, options: LoadLanguageOptions, res, worker_id: Optional[str] = None):
        self.session = session
        self.adapter = session.adapter
        self.options = options
        self.res = res
        self.worker_id = worker_id

    def _cache_file(self, code: str) -> str:
        return f"{self.options.cache_path or '.'}/{code}{TRAINEDDATA_SUFFIX}"

    async def load(self, spec: LanguageSpec) -> bytes:
        """
        Получает, распаковывает и устанавливает один язык.

        Returns:
            bytes: распакованные данные traineddata
        """
        code = spec.code
        data = None
        from_cache = False

        # 1. Кэш
        if isinstance(spec, ByCode) and self.options.cache_method not in CACHE_READ_DISABLED:
            data = await self._read_cache(code)
            from_cache = data is not None

        # 2-3. Сеть / локальная папка / готовые байты
        if data is None:
            if isinstance(spec, Inline):
                data = spec.data
            else:
                data = await self._load_fresh(code)

        # 4. gzip определяется по сигнатуре, а не по флагу
        if is_gzip(data):
            data = await self.adapter.gunzip(data)

        # 5. Виртуальная ФС движка
        self._install(code, data)

        # 6. Кэш: только новые данные, только если политика разрешает
        if (
            isinstance(spec, ByCode)
            and not from_cache
            and self.options.cache_method in CACHE_WRITE_ENABLED
        ):
            await self._write_cache(code, data)

        return data

    async def _read_cache(self, code: str) -> Optional[bytes]:
        path = self._cache_file(code)
        try:
            data = await self.adapter.read_cache(path)
        except CacheMissError:
            return None

        logger.info(f"[{self.worker_id}]: {code}{TRAINEDDATA_SUFFIX} загружен из кэша")
        self.res.progress("loading language traineddata (from cache)", 0.5)
        return data

    async def _load_fresh(self, code: str) -> bytes:
        lang_path = self.options.lang_path.rstrip("/")
        suffix = TRAINEDDATA_SUFFIX + (".gz" if self.options.gzip else "")
        logger.info(f"[{self.worker_id}]: Загрузка {code}{TRAINEDDATA_SUFFIX} из {lang_path}")

        if is_remote_path(lang_path):
            url = f"{lang_path}/{code}{suffix}"
            response = await self.adapter.fetch(url)
            if not response.ok:
                raise NetworkError(url, response.status)
            return response.data

        return await self.adapter.read_cache(f"{lang_path}/{code}{suffix}")

    def _install(self, code: str, data: bytes) -> None:
        module = self.session.module
        if module is None:
            return

        data_path = self.options.data_path
        if data_path:
            try:
                module.fs.mkdir(data_path)
            except FileExistsError:
                pass
        module.fs.write_file(f"{data_path or '.'}/{code}{TRAINEDDATA_SUFFIX}", data)

    async def _write_cache(self, code: str, data: bytes) -> None:
        try:
            await self.adapter.write_cache(self._cache_file(code), data)
        except Exception as e:
            logger.warning(
                f"[{self.worker_id}]: Не удалось записать {code}{TRAINEDDATA_SUFFIX} в кэш: {e}"
            )


async def _load_all(loader: LanguageLoader, specs: list[LanguageSpec]) -> None:
    """
    Загружает языки параллельно.

    Первая ошибка отменяет остальные загрузки: после ответа задачи
    ни одна из них не пишет в ФС движка или кэш.
    """
    tasks = [asyncio.create_task(loader.load(spec)) for spec in specs]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


async def load_language(session, job, res) -> None:
    """
    Загружает все языки задачи параллельно и устанавливает их в движок.

    Отвечает исходным значением langs.
    """
    payload = LoadLanguagePayload.model_validate(job.payload)
    specs = parse_language_specs(payload.langs)
    loader = LanguageLoader(session, payload.options, res, job.worker_id)

    res.progress("loading language traineddata", 0)
    try:
        await _load_all(loader, specs)
    except TransientCacheError as e:
        # Временная ошибка кэша окружения: задачу не роняем
        logger.warning(f"[{job.worker_id}]: Временная ошибка кэша проигнорирована: {e}")
    else:
        res.progress("loaded language traineddata", 1)

    res.resolve(payload.langs)
