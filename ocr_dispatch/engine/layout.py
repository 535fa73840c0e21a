"""
Разбор словаря image_to_data: текст, уверенность, иерархия блоков, TSV, hOCR.

ОДИН вызов image_to_data даёт всё: слова, confidence и структуру
block/par/line, поэтому текст и координаты собираются из него.
"""

import html

TSV_COLUMNS = (
    "level",
    "page_num",
    "block_num",
    "par_num",
    "line_num",
    "word_num",
    "left",
    "top",
    "width",
    "height",
    "conf",
    "text",
)


def _group_words(data: dict) -> dict:
    """
    Группирует слова по структуре {block_num: {par_num: {line_num: [word]}}}.

    Пустые записи (уровни страницы/блока без текста) пропускаются.
    """
    blocks: dict = {}

    for i in range(len(data["text"])):
        text = str(data["text"][i]).strip()
        if not text:
            continue

        conf = float(data["conf"][i])
        word = {
            "text": text,
            "confidence": conf if conf >= 0 else 0.0,
            "bbox": {
                "x0": data["left"][i],
                "y0": data["top"][i],
                "x1": data["left"][i] + data["width"][i],
                "y1": data["top"][i] + data["height"][i],
            },
        }

        (
            blocks.setdefault(data["block_num"][i], {})
            .setdefault(data["par_num"][i], {})
            .setdefault(data["line_num"][i], [])
            .append(word)
        )

    return blocks


def assemble_text(data: dict) -> str:
    """
    Текст страницы (GetUTF8Text): слова строки через пробел,
    строки блока через \\n, блоки через пустую строку.
    """
    blocks = _group_words(data)
    result_blocks = []

    for block_num in sorted(blocks):
        block_lines = []
        for par_num in sorted(blocks[block_num]):
            for line_num in sorted(blocks[block_num][par_num]):
                words = blocks[block_num][par_num][line_num]
                block_lines.append(" ".join(w["text"] for w in words))
        result_blocks.append("\n".join(block_lines))

    return "\n\n".join(result_blocks)


def mean_confidence(data: dict) -> float:
    """Средняя уверенность по реальным словам (conf >= 0)."""
    confidences = [
        float(c)
        for c, t in zip(data["conf"], data["text"])
        if float(c) >= 0 and str(t).strip()
    ]
    return sum(confidences) / len(confidences) if confidences else 0.0


def build_blocks(data: dict) -> list[dict]:
    """
    Строит иерархию Block -> Paragraph -> Line -> Word с bbox на каждом уровне.

    Args:
        data: словарь от pytesseract.image_to_data()

    Returns:
        list[dict]: блоки с параграфами, строками и словами
    """
    grouped = _group_words(data)
    blocks = []

    for block_num in sorted(grouped):
        paragraphs = []

        for par_num in sorted(grouped[block_num]):
            lines = []

            for line_num in sorted(grouped[block_num][par_num]):
                words = grouped[block_num][par_num][line_num]
                lines.append(
                    {
                        "text": " ".join(w["text"] for w in words),
                        "confidence": _average(w["confidence"] for w in words),
                        "bbox": _union_bbox([w["bbox"] for w in words]),
                        "words": words,
                    }
                )

            paragraphs.append(
                {
                    "text": "\n".join(ln["text"] for ln in lines),
                    "confidence": _average(ln["confidence"] for ln in lines),
                    "bbox": _union_bbox([ln["bbox"] for ln in lines]),
                    "lines": lines,
                }
            )

        blocks.append(
            {
                "text": "\n".join(p["text"] for p in paragraphs),
                "confidence": _average(p["confidence"] for p in paragraphs),
                "bbox": _union_bbox([p["bbox"] for p in paragraphs]),
                "paragraphs": paragraphs,
            }
        )

    return blocks


def to_tsv(data: dict) -> str:
    """Текстовый TSV (как tesseract ... tsv) из того же словаря."""
    rows = ["\t".join(TSV_COLUMNS)]
    for i in range(len(data["text"])):
        rows.append("\t".join(str(data[col][i]) for col in TSV_COLUMNS))
    return "\n".join(rows) + "\n"


def to_hocr(data: dict, width: int, height: int) -> str:
    """
    hOCR страницы (как tesseract ... hocr) из того же словаря.

    Уровни: ocr_page -> ocr_carea -> ocr_par -> ocr_line -> ocrx_word,
    у слов x_wconf.
    """
    rows = [f"<div class='ocr_page' id='page_1' title='bbox 0 0 {width} {height}'>"]

    for b, block in enumerate(build_blocks(data), start=1):
        rows.append(f"  <div class='ocr_carea' id='block_1_{b}' title='{_hocr_bbox(block)}'>")
        for p, par in enumerate(block["paragraphs"], start=1):
            rows.append(f"   <p class='ocr_par' id='par_1_{b}_{p}' title='{_hocr_bbox(par)}'>")
            for n, line in enumerate(par["lines"], start=1):
                words = " ".join(
                    _hocr_word(word, f"1_{b}_{p}_{n}_{w}")
                    for w, word in enumerate(line["words"], start=1)
                )
                rows.append(
                    f"    <span class='ocr_line' id='line_1_{b}_{p}_{n}' title='{_hocr_bbox(line)}'>{words}</span>"
                )
            rows.append("   </p>")
        rows.append("  </div>")

    rows.append("</div>")
    return "\n".join(rows) + "\n"


def _hocr_word(word: dict, word_id: str) -> str:
    conf = int(round(word["confidence"]))
    text = html.escape(word["text"])
    return (
        f"<span class='ocrx_word' id='word_{word_id}'"
        f" title='{_hocr_bbox(word)}; x_wconf {conf}'>{text}</span>"
    )


def _hocr_bbox(item: dict) -> str:
    box = item["bbox"]
    return f"bbox {box['x0']} {box['y0']} {box['x1']} {box['y1']}"


def _union_bbox(bboxes: list[dict]) -> dict:
    if not bboxes:
        return {"x0": 0, "y0": 0, "x1": 0, "y1": 0}

    return {
        "x0": min(b["x0"] for b in bboxes),
        "y0": min(b["y0"] for b in bboxes),
        "x1": max(b["x1"] for b in bboxes),
        "y1": max(b["y1"] for b in bboxes),
    }


def _average(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0
