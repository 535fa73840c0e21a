"""
Константы воркера: режимы Tesseract, дефолтные параметры и форматы вывода.
"""

from enum import IntEnum


class PSM(IntEnum):
    """Режимы сегментации страницы (tessedit_pageseg_mode)."""

    OSD_ONLY = 0
    AUTO_OSD = 1
    AUTO_ONLY = 2
    AUTO = 3
    SINGLE_COLUMN = 4
    SINGLE_BLOCK_VERT_TEXT = 5
    SINGLE_BLOCK = 6
    SINGLE_LINE = 7
    SINGLE_WORD = 8
    CIRCLE_WORD = 9
    SINGLE_CHAR = 10
    SPARSE_TEXT = 11
    SPARSE_TEXT_OSD = 12
    RAW_LINE = 13


class OEM(IntEnum):
    """Режимы движка распознавания."""

    TESSERACT_ONLY = 0
    LSTM_ONLY = 1
    TESSERACT_LSTM_COMBINED = 2
    DEFAULT = 3


# Режимы, в которых Tesseract находит строки и считает угол наклона
ANGLE_DETECTION_PSM = frozenset({PSM.AUTO, PSM.AUTO_ONLY, PSM.AUTO_OSD})

# Углы меньше ~0.3° считаются нулевыми
ROTATE_AUTO_THRESHOLD = 0.005

# orientation_id движка -> градусы
ORIENTATION_DEGREES = (0, 270, 180, 90)

# Параметры, применяемые после каждого initialize
DEFAULT_PARAMS: dict[str, str] = {
    "tessedit_pageseg_mode": str(int(PSM.SINGLE_BLOCK)),
    "tessedit_char_whitelist": "",
}

# Устаревшие флаги форматов вывода. В движок не передаются,
# учитываются только при сборке спецификации вывода.
LEGACY_OUTPUT_PARAMS: dict[str, str] = {
    "tessjs_create_box": "box",
    "tessjs_create_hocr": "hocr",
    "tessjs_create_osd": "osd",
    "tessjs_create_tsv": "tsv",
    "tessjs_create_unlv": "unlv",
}
RESERVED_PARAMS = frozenset(LEGACY_OUTPUT_PARAMS)

# Опции самого воркера в recognize.options (не параметры движка)
ORCHESTRATOR_OPTIONS = frozenset(
    {"rectangle", "pdfTitle", "pdfTextOnly", "rotateAuto", "rotateRadians"}
)

# Все форматы выключены: что нужно, указывает вызывающая сторона
DEFAULT_OUTPUT: dict[str, bool] = {
    "text": False,
    "blocks": False,
    "hocr": False,
    "tsv": False,
    "box": False,
    "unlv": False,
    "osd": False,
    "pdf": False,
    "imageColor": False,
    "imageGrey": False,
    "imageBinary": False,
}

# Дефолт клиента, если в recognize не передан output
CLIENT_DEFAULT_OUTPUT: dict[str, bool] = {
    "text": True,
    "blocks": True,
    "hocr": True,
    "tsv": True,
}

# Форматы, для которых достаточно установленного изображения
NON_RECOGNITION_OUTPUTS = frozenset({"imageColor", "imageGrey", "imageBinary"})

# Имя файла, который рендерит PDF (в корне виртуальной ФС)
PDF_OUTPUT_BASE = "tesseract-ocr"
PDF_OUTPUT_DIR = "/"

# Путь конфиг-файла движка в виртуальной ФС
CONFIG_FILE_PATH = "/config"

TRAINEDDATA_SUFFIX = ".traineddata"
GZIP_SIGNATURE = b"\x1f\x8b"
