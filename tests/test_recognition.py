from __future__ import annotations

import json

import pytest

from linewatch.recognition.parser import (
    TEXT_CONFIDENCE,
    RecognitionError,
    extract_batch_count,
    extract_check_time,
    extract_line,
    parse_recognition,
    parse_recognition_payload,
    parse_recognition_text,
)


def payload(**overrides) -> str:
    data = {"valid": True, "line": "A", "batchCount": 402, "checkTime": "09:42", "confidence": 0.92}
    data.update(overrides)
    return json.dumps(data)


def test_parse_payload_normalizes_line():
    result = parse_recognition_payload(payload(line="b"))
    assert result.line == "B"
    assert result.batch_count == 402
    assert result.check_time == "09:42"
    assert result.confidence == pytest.approx(0.92)


def test_parse_payload_extracts_json_from_prose():
    text = "Resultado:\n```json\n" + payload() + "\n```\n"
    assert parse_recognition_payload(text).line == "A"


def test_parse_payload_rejects_irrelevant_image():
    with pytest.raises(RecognitionError):
        parse_recognition_payload('{"valid": false}')


@pytest.mark.parametrize(
    "overrides",
    [
        {"line": "D"},
        {"line": 1},
        {"batchCount": -1},
        {"batchCount": "402"},
        {"batchCount": 4.5},
        {"checkTime": "9:42"},
        {"checkTime": "25:00"},
        {"confidence": 1.5},
        {"confidence": None},
    ],
)
def test_parse_payload_validates_structure(overrides):
    with pytest.raises(RecognitionError):
        parse_recognition_payload(payload(**overrides))


def test_parse_payload_rejects_non_json():
    with pytest.raises(ValueError):
        parse_recognition_payload("no es json")


def test_extract_line():
    assert extract_line("A-LINE OUT") == "A"
    assert extract_line("b-line") == "B"
    assert extract_line("C라인아웃카튼") == "C"
    assert extract_line("sin etiqueta") == "A"


def test_extract_check_time_korean_meridiem():
    assert extract_check_time("오전 9:42") == "09:42"
    assert extract_check_time("오후 2:15") == "14:15"
    assert extract_check_time("오후 12:30") == "12:30"
    assert extract_check_time("오전 12:05") == "00:05"
    assert extract_check_time("hora 9:46") == "09:46"


def test_extract_check_time_missing_raises():
    with pytest.raises(RecognitionError):
        extract_check_time("sin hora")


def test_extract_batch_count():
    assert extract_batch_count("배치 제품 카운트 402") == 402
    assert extract_batch_count("제품 카운터: 1,609") == 1609
    assert extract_batch_count("display 10:05 count 155") == 155
    assert extract_batch_count("nada") == 0


def test_parse_recognition_text():
    result = parse_recognition_text("A-LINE OUT 오전 9:42 배치 제품 카운트 402")
    assert result.line == "A"
    assert result.check_time == "09:42"
    assert result.batch_count == 402
    assert result.confidence == TEXT_CONFIDENCE


def test_parse_recognition_text_rejects_out_of_range_time():
    with pytest.raises(RecognitionError):
        parse_recognition_text("B라인 27:10 제품 카운트 155")


def test_parse_payload_accepts_whole_float_count():
    assert parse_recognition_payload(payload(batchCount=402.0)).batch_count == 402


def test_parse_recognition_routes_wrapped_json_to_payload():
    text = "Aquí está el resultado:\n```json\n" + payload(line="C", batchCount=155, checkTime="10:05") + "\n```"
    result = parse_recognition(text)
    assert result.line == "C"
    assert result.batch_count == 155
    assert result.confidence == pytest.approx(0.92)


def test_parse_recognition_routes_plain_text_to_heuristics():
    result = parse_recognition("B-LINE 오후 2:15 제품 카운터 609")
    assert result.line == "B"
    assert result.check_time == "14:15"
    assert result.confidence == TEXT_CONFIDENCE
