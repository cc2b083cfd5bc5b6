"""Parsing of machine-display recognition results.

Two inputs are supported:

- the JSON reply of the image-recognition service
  (``{"valid": true, "line": "A", "batchCount": 402, "checkTime": "09:42", "confidence": 0.92}``);
- raw text read from the display (e.g. ``"A라인 ... 오전 9:42 ... 제품 카운트 402"``).
"""

from __future__ import annotations

import json
import logging
import re

from linewatch.core.calendar import to_minutes
from linewatch.core.models import LINE_CODES, RecognitionResult

logger = logging.getLogger(__name__)

TEXT_CONFIDENCE = 0.85

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)
_HHMM_RE = re.compile(r"^\d{2}:\d{2}$")

_LINE_PATTERNS = [
    re.compile(r"([A-C])-?LINE", re.IGNORECASE),
    re.compile(r"([A-C])-?라인"),
]
_MERIDIEM_TIME_RE = re.compile(r"(오전|오후)\s*(\d{1,2}):(\d{2})")
_PLAIN_TIME_RE = re.compile(r"(\d{1,2}):(\d{2})")
_COUNT_PATTERNS = [
    re.compile(r"(?:배치\s*)?제품\s*카운트?\s*[:\s]*(\d{1,3}(?:,\d{3})+|\d+)", re.IGNORECASE),
    re.compile(r"제품\s*카운터?\s*[:\s]*(\d{1,3}(?:,\d{3})+|\d+)", re.IGNORECASE),
]
_THREE_DIGITS_RE = re.compile(r"\b\d{3}\b")


class RecognitionError(ValueError):
    """Recognition output that cannot be turned into a check."""


def parse_recognition_payload(text: str) -> RecognitionResult:
    """Validate the recognition service reply and build a :class:`RecognitionResult`.

    The service sometimes wraps the JSON object in prose, so the first ``{...}``
    block is used when present.
    """
    raw = str(text or "").strip()
    m = _JSON_OBJECT_RE.search(raw)
    try:
        data = json.loads(m.group(0) if m else raw)
    except json.JSONDecodeError as ex:
        raise RecognitionError(f"respuesta de reconocimiento no es JSON válido: {ex}") from ex

    if not isinstance(data, dict):
        raise RecognitionError("respuesta de reconocimiento inválida (se espera un objeto)")
    if data.get("valid") is False:
        raise RecognitionError("imagen no corresponde a un display de línea de producción")

    line = data.get("line")
    batch_count = data.get("batchCount", data.get("batch_count"))
    check_time = data.get("checkTime", data.get("check_time"))
    confidence = data.get("confidence")

    if not isinstance(line, str) or line.strip().upper() not in LINE_CODES:
        raise RecognitionError(f"línea inválida: {line!r}")
    if isinstance(batch_count, bool) or not isinstance(batch_count, (int, float)) or batch_count < 0:
        raise RecognitionError(f"conteo de lotes inválido: {batch_count!r}")
    if not float(batch_count).is_integer():
        raise RecognitionError(f"conteo de lotes inválido (no entero): {batch_count!r}")
    if not isinstance(check_time, str) or not _HHMM_RE.match(check_time):
        raise RecognitionError(f"hora de control inválida: {check_time!r}")
    try:
        to_minutes(check_time)
    except ValueError as ex:
        raise RecognitionError(str(ex)) from ex
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not 0 <= confidence <= 1:
        raise RecognitionError(f"confianza inválida: {confidence!r}")

    result = RecognitionResult(
        line=line.strip().upper(),
        batch_count=int(batch_count),
        check_time=check_time,
        confidence=float(confidence),
    )
    logger.info("Reconocimiento OK: línea %s, conteo %s, confianza %.2f", result.line, result.batch_count, result.confidence)
    return result


def extract_line(text: str) -> str:
    """Line letter from labels like ``A-LINE``, ``B라인``; defaults to ``A``."""
    for pattern in _LINE_PATTERNS:
        m = pattern.search(text)
        if m:
            return m.group(1).upper()
    return LINE_CODES[0]


def extract_check_time(text: str) -> str:
    """24 h ``HH:MM`` from ``오전/오후 H:MM`` (Korean am/pm) or plain ``H:MM``."""
    m = _MERIDIEM_TIME_RE.search(text)
    if m:
        meridiem, hours, minutes = m.group(1), int(m.group(2)), m.group(3)
        if meridiem == "오후" and hours != 12:
            hours += 12
        elif meridiem == "오전" and hours == 12:
            hours = 0
        return f"{hours:02d}:{minutes}"

    m = _PLAIN_TIME_RE.search(text)
    if m:
        return f"{int(m.group(1)):02d}:{m.group(2)}"

    raise RecognitionError("no se encontró hora de control en el texto reconocido")


def extract_batch_count(text: str) -> int:
    """Counter value next to the product-count label, else the first 3-digit number, else 0."""
    for pattern in _COUNT_PATTERNS:
        m = pattern.search(text)
        if m:
            return int(m.group(1).replace(",", ""))

    for token in _THREE_DIGITS_RE.findall(text):
        value = int(token)
        if 100 <= value < 1000:
            return value
    return 0


def parse_recognition_text(text: str) -> RecognitionResult:
    s = str(text or "")
    check_time = extract_check_time(s)
    try:
        to_minutes(check_time)
    except ValueError as ex:
        raise RecognitionError(str(ex)) from ex
    return RecognitionResult(
        line=extract_line(s),
        batch_count=extract_batch_count(s),
        check_time=check_time,
        confidence=TEXT_CONFIDENCE,
    )


def parse_recognition(text: str) -> RecognitionResult:
    """Service JSON when the input holds an object (possibly inside prose), display text otherwise."""
    raw = str(text or "").strip()
    if "{" in raw:
        return parse_recognition_payload(raw)
    return parse_recognition_text(raw)
