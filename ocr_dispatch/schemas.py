"""
Схемы данных воркера.

Включает:
    - Pydantic модели задачи (Job) и payload'ов для каждого действия
    - Dataclass'ы вариантов: язык по коду / язык с байтами,
      конфиг движка текстом / словарём
    - Внутренние структуры: спецификация вывода, ответ сети
"""

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ocr_dispatch.config import settings
from ocr_dispatch.constants import OEM


def coerce_bytes(value: Any) -> bytes:
    """
    Приводит бинарные данные из payload к bytes.

    Внутри процесса приходят bytes, через JSON — base64 строка
    (в том числе data URL вида data:...;base64,...).

    Args:
        value: bytes, bytearray, memoryview или base64 строка

    Returns:
        bytes: данные

    Raises:
        TypeError: если значение нельзя интерпретировать как байты
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        if value.startswith("data:"):
            value = value.split(",", 1)[-1]
        try:
            return base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise TypeError(f"Строка не является base64: {e}") from e
    raise TypeError(f"Ожидались байты, получен {type(value).__name__}")


# =============================================================================
# Задача и payload'ы
# =============================================================================


class _ProtocolModel(BaseModel):
    """Модели протокола: camelCase в JSON, snake_case в коде."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Job(_ProtocolModel):
    """
    Единица работы воркера.

    Attributes:
        worker_id: идентификатор воркера
        job_id: идентификатор задачи
        action: имя обработчика
        payload: данные для обработчика (зависят от action)
    """

    worker_id: Optional[str] = Field(default=None, alias="workerId")
    job_id: Optional[str] = Field(default=None, alias="jobId")
    action: str
    payload: dict[str, Any] = Field(default_factory=dict)


class LoadOptions(_ProtocolModel):
    core_path: Optional[str] = Field(default=None, alias="corePath")
    logging: bool = False


class LoadPayload(_ProtocolModel):
    options: LoadOptions = Field(default_factory=LoadOptions)


class FSPayload(_ProtocolModel):
    method: str
    args: list[Any] = Field(default_factory=list)


class LoadLanguageOptions(_ProtocolModel):
    """
    Настройки загрузки языковых данных.

    Attributes:
        lang_path: URL или локальная папка с traineddata
        data_path: папка в виртуальной ФС движка
        cache_path: папка кэша
        cache_method: политика кэша (None = write)
        gzip: запрашивать .gz версию файлов
    """

    lang_path: str = Field(
        default_factory=lambda: settings.lang_path, alias="langPath"
    )
    data_path: Optional[str] = Field(default=None, alias="dataPath")
    cache_path: Optional[str] = Field(default=None, alias="cachePath")
    cache_method: Optional[Literal["write", "refresh", "none"]] = Field(
        default=None, alias="cacheMethod"
    )
    gzip: bool = True


class LoadLanguagePayload(_ProtocolModel):
    langs: Union[str, list[Any]]
    options: LoadLanguageOptions = Field(default_factory=LoadLanguageOptions)


class InitializePayload(_ProtocolModel):
    langs: Union[str, list[Any]] = "eng"
    oem: int = int(OEM.LSTM_ONLY)
    config: Union[str, dict[str, Any], None] = None


class SetParametersPayload(_ProtocolModel):
    params: dict[str, Any] = Field(default_factory=dict)


class Rectangle(_ProtocolModel):
    left: int
    top: int
    width: int
    height: int


class RecognizePayload(_ProtocolModel):
    image: Any
    options: dict[str, Any] = Field(default_factory=dict)
    output: Optional[dict[str, bool]] = None


class GetPDFPayload(_ProtocolModel):
    title: str = ""
    textonly: bool = False


class DetectPayload(_ProtocolModel):
    image: Any


# =============================================================================
# Варианты: язык и конфиг движка
# =============================================================================


@dataclass(frozen=True)
class ByCode:
    """Язык по коду: данные берутся из кэша, сети или локальной папки."""

    code: str


@dataclass(frozen=True)
class Inline:
    """Язык с готовыми байтами traineddata: не кэшируется и не скачивается."""

    code: str
    data: bytes = field(repr=False)


LanguageSpec = Union[ByCode, Inline]


def parse_language_specs(langs: Union[str, list[Any]]) -> list[LanguageSpec]:
    """
    Разбирает список языков из payload.

    Args:
        langs: строка "eng+rus" или список из кодов и {code, data}

    Returns:
        list[LanguageSpec]: языки в исходном порядке
    """
    if isinstance(langs, str):
        return [ByCode(code) for code in langs.split("+") if code]

    specs: list[LanguageSpec] = []
    for item in langs:
        if isinstance(item, (ByCode, Inline)):
            specs.append(item)
        elif isinstance(item, str):
            specs.append(ByCode(item))
        elif isinstance(item, dict):
            raw = item.get("data", item.get("bytes"))
            specs.append(Inline(code=item["code"], data=coerce_bytes(raw)))
        else:
            raise TypeError(f"Некорректное описание языка: {item!r}")
    return specs


def join_language_codes(langs: Union[str, list[Any]]) -> str:
    """Строка языков для движка: коды через '+'."""
    return "+".join(spec.code for spec in parse_language_specs(langs))


@dataclass(frozen=True)
class TextConfig:
    """Конфиг движка уже в текстовом виде (строки "ключ значение")."""

    text: str


@dataclass(frozen=True)
class StructuredConfig:
    """Конфиг движка словарём параметров."""

    values: dict[str, Any]


EngineConfig = Union[TextConfig, StructuredConfig]


def parse_engine_config(config: Union[str, dict, None]) -> Optional[EngineConfig]:
    if config is None:
        return None
    if isinstance(config, str):
        return TextConfig(config)
    return StructuredConfig(dict(config))


def render_engine_config(config: Optional[EngineConfig]) -> Optional[str]:
    """
    Превращает конфиг в текст конфиг-файла Tesseract.

    Returns:
        str или None, если конфига нет
    """
    if config is None:
        return None
    if isinstance(config, TextConfig):
        return config.text
    return "\n".join(f"{key} {value}" for key, value in config.values.items())


# =============================================================================
# Внутренние структуры
# =============================================================================


@dataclass
class OutputSpec:
    """
    Итоговый набор форматов вывода для одного recognize.

    Attributes:
        formats: формат -> нужен ли он
        recognition_count: сколько включённых форматов требуют распознавания
    """

    formats: dict[str, bool]
    recognition_count: int


@dataclass
class FetchResponse:
    """
    Ответ сетевого запроса от адаптера окружения.

    Attributes:
        ok: успешный ли код ответа
        status: HTTP код
        data: тело ответа
    """

    ok: bool
    status: int
    data: bytes = b""
