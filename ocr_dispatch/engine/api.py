"""
TessBaseAPI поверх Tesseract CLI (pytesseract).

Повторяет поверхность нативного API, которой пользуется воркер:
параметры с сохранением/восстановлением, установка изображения с углом,
поиск строк и угла, прямоугольник, распознавание, выдача форматов, OSD.
"""

import logging
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import pytesseract
from PIL import Image

from ocr_dispatch.constants import PSM
from ocr_dispatch.engine import layout
from ocr_dispatch.engine.images import binarize, load_image, rotate_image, to_png
from ocr_dispatch.engine.skew import detect_skew_radians
from ocr_dispatch.errors import EngineError

logger = logging.getLogger(__name__)

# Скрипты из unicharset osd.traineddata, которые встречаются чаще всего.
# Остальные добавляются в таблицу по мере появления.
KNOWN_SCRIPTS = (
    "Common",
    "Latin",
    "Cyrillic",
    "Greek",
    "Arabic",
    "Hebrew",
    "Han",
    "Hangul",
    "Japanese",
    "Devanagari",
    "Thai",
)


class ScriptTable:
    """Соответствие script_id <-> имя скрипта."""

    def __init__(self, names=KNOWN_SCRIPTS):
        self._names = list(names)

    def get_script_id(self, name: str) -> int:
        if name not in self._names:
            self._names.append(name)
        return self._names.index(name)

    def get_script_from_script_id(self, script_id: int) -> Optional[str]:
        if 0 <= script_id < len(self._names):
            return self._names[script_id]
        return None


@dataclass
class OSBestResult:
    orientation_id: int = 0
    script_id: int = 0
    oconfidence: float = 0.0
    sconfidence: float = 0.0


@dataclass
class OSResults:
    """Результат DetectOS: лучшая гипотеза + таблица скриптов."""

    best_result: OSBestResult = field(default_factory=OSBestResult)
    unicharset: ScriptTable = field(default_factory=ScriptTable)


class TessBaseAPI:
    """
    Экземпляр распознавателя, привязанный к языкам и режиму OEM.

    Attributes:
        langs: строка языков ("eng+rus")
        oem: режим движка
    """

    def __init__(self, module):
        self._module = module
        self.langs: Optional[str] = None
        self.oem: Optional[int] = None
        self._tessdata: Optional[Path] = None
        self._variables: dict[str, str] = {}
        self._saved: list[dict[str, str]] = []
        self._image: Optional[Image.Image] = None
        self._rectangle: Optional[tuple[int, int, int, int]] = None
        self._data: Optional[dict] = None
        # box/unlv/osd: отдельные запуски Tesseract, кэшируются до смены состояния
        self._outputs: dict[str, str] = {}
        self._angle = 0.0

    # --- Жизненный цикл ---

    def init(
        self,
        data_path: Optional[str],
        langs: str,
        oem: int,
        config_file: Optional[str] = None,
    ) -> None:
        """
        Привязывает экземпляр к языкам.

        Args:
            data_path: папка с traineddata в виртуальной ФС (None = корень)
            langs: языки через '+'
            oem: режим движка
            config_file: путь к конфиг-файлу в виртуальной ФС

        Raises:
            EngineError: нет traineddata для какого-то из языков
        """
        tessdata = self._module.fs.resolve(data_path or "/")
        missing = [
            code
            for code in langs.split("+")
            if code and not (tessdata / f"{code}.traineddata").is_file()
        ]
        if missing:
            raise EngineError(
                f"Не найдены языковые данные: {', '.join(missing)} в {data_path or '/'}"
            )

        self.langs = langs
        self.oem = int(oem)
        self._tessdata = tessdata

        if config_file:
            text = self._module.fs.read_file(config_file, encoding="utf-8")
            for line in text.splitlines():
                parts = line.strip().split(None, 1)
                if not parts or parts[0].startswith("#"):
                    continue
                self.set_variable(parts[0], parts[1] if len(parts) > 1 else "")

        logger.info(f"Распознаватель создан: языки={langs}, oem={oem}")

    def end(self) -> None:
        self.langs = None
        self._image = None
        self._invalidate()
        self._variables.clear()
        self._saved.clear()

    # --- Параметры ---

    def set_variable(self, name: str, value: Any) -> bool:
        self._variables[name] = str(value)
        self._invalidate()
        return True

    def get_variable(self, name: str) -> Optional[str]:
        return self._variables.get(name)

    def save_parameters(self) -> None:
        self._saved.append(dict(self._variables))

    def restore_parameters(self) -> None:
        if self._saved:
            self._variables = self._saved.pop()
            self._invalidate()

    def get_page_seg_mode(self) -> int:
        return int(self._variables.get("tessedit_pageseg_mode", int(PSM.SINGLE_BLOCK)))

    # --- Изображение ---

    def set_image(self, image: Any, angle: float = 0.0) -> int:
        """
        Устанавливает изображение, повернув его на angle.

        Returns:
            int: указатель на буфер; освобождается через module.free()
        """
        img = rotate_image(load_image(image), angle)
        self._image = img
        self._rectangle = None
        self._invalidate()
        self._angle = 0.0
        return self._module.allocate(img)

    def set_rectangle(self, left: int, top: int, width: int, height: int) -> None:
        self._rectangle = (left, top, left + width, top + height)
        self._invalidate()

    def find_lines(self) -> None:
        self._angle = detect_skew_radians(self._require_image())

    def get_angle(self) -> float:
        return self._angle

    def get_image(self, kind: str) -> bytes:
        """PNG установленного изображения: color, grey или binary."""
        img = self._require_image()
        if kind == "grey":
            img = img.convert("L")
        elif kind == "binary":
            img = binarize(img)
        return to_png(img)

    # --- Распознавание ---

    def recognize(self) -> None:
        """
        Выполняет распознавание и запоминает результат image_to_data.

        Сообщает прогресс движка: 30% перед запуском, 100% по завершении.
        """
        target = self._target()
        self._module.report_progress(30)
        self._data = self._call(
            pytesseract.image_to_data,
            target,
            lang=self.langs,
            config=self._config(),
            output_type=pytesseract.Output.DICT,
        )
        self._module.report_progress(100)

    def get_utf8_text(self) -> str:
        return layout.assemble_text(self._recognized())

    def mean_text_conf(self) -> int:
        return int(round(layout.mean_confidence(self._recognized())))

    def get_blocks(self) -> list[dict]:
        return layout.build_blocks(self._recognized())

    def get_tsv_text(self) -> str:
        return layout.to_tsv(self._recognized())

    def get_hocr_text(self) -> str:
        # Из того же image_to_data: без второго прогона распознавания
        width, height = self._target().size
        return layout.to_hocr(self._recognized(), width, height)

    def get_box_text(self) -> str:
        return self._cached(
            "box",
            pytesseract.image_to_boxes,
            self._target(),
            lang=self.langs,
            config=self._config(),
        )

    def get_unlv_text(self) -> str:
        return self._cached(
            "unlv",
            pytesseract.pytesseract.run_and_get_output,
            self._target(),
            extension="unlv",
            lang=self.langs,
            config=f"{self._config()} unlv",
        )

    def get_osd_text(self) -> str:
        return self._cached(
            "osd",
            pytesseract.image_to_osd,
            self._require_image(),
            config=self._config(psm=PSM.OSD_ONLY),
        )

    def render_pdf(self, title: str = "", text_only: bool = False) -> bytes:
        extra = []
        if title:
            extra.append(f"-c {shlex.quote(f'document_title={title}')}")
        if text_only:
            extra.append("-c textonly_pdf=1")
        return self._call(
            pytesseract.image_to_pdf_or_hocr,
            self._target(),
            lang=self.langs,
            config=" ".join([self._config(), *extra]),
            extension="pdf",
        )

    def detect_os(self, results: OSResults) -> bool:
        """
        Определяет ориентацию и скрипт установленного изображения.

        Returns:
            bool: False если Tesseract не смог определить (мало текста и т.п.)
        """
        try:
            osd = pytesseract.image_to_osd(
                self._require_image(),
                config=self._config(psm=PSM.OSD_ONLY),
                output_type=pytesseract.Output.DICT,
            )
        except pytesseract.TesseractError as e:
            logger.info(f"OSD не дал результата: {e}")
            return False

        # "Orientation in degrees" = orientation_id * 90
        results.best_result = OSBestResult(
            orientation_id=(int(osd["orientation"]) // 90) % 4,
            script_id=results.unicharset.get_script_id(osd["script"]),
            oconfidence=float(osd["orientation_conf"]),
            sconfidence=float(osd["script_conf"]),
        )
        return True

    def version(self) -> str:
        return str(pytesseract.get_tesseract_version())

    # --- Внутреннее ---

    def _require_image(self) -> Image.Image:
        if self._image is None:
            raise EngineError("Изображение не установлено")
        return self._image

    def _target(self) -> Image.Image:
        img = self._require_image()
        if self._rectangle is not None:
            return img.crop(self._rectangle)
        return img

    def _invalidate(self) -> None:
        self._data = None
        self._outputs.clear()

    def _cached(self, name: str, func, *args, **kwargs) -> str:
        """Результат отдельного запуска Tesseract, один раз на изображение и параметры."""
        if name not in self._outputs:
            self._outputs[name] = self._call(func, *args, **kwargs)
        return self._outputs[name]

    def _recognized(self) -> dict:
        if self._data is None:
            self.recognize()
        return self._data

    def _config(self, psm: Optional[int] = None) -> str:
        """
        Строка конфигурации Tesseract из текущих параметров.

        Пустые значения пропускаются: CLI не принимает "-c name=".
        """
        if self.langs is None:
            raise EngineError("Распознаватель не инициализирован")

        psm = self.get_page_seg_mode() if psm is None else int(psm)
        parts = [
            f"--tessdata-dir {shlex.quote(str(self._tessdata))}",
            f"--oem {self.oem}",
            f"--psm {psm}",
        ]
        for name, value in self._variables.items():
            if name == "tessedit_pageseg_mode" or value == "":
                continue
            parts.append(f"-c {shlex.quote(f'{name}={value}')}")
        return " ".join(parts)

    @staticmethod
    def _call(func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
            raise EngineError(str(e)) from e
