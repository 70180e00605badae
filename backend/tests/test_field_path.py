import pytest

from lotetrace.services.sensors.field_path import (
    FieldPath,
    InvalidFieldPath,
    coerce_number,
    validate_field_path,
)


def test_nested_keys_and_indexes():
    payload = {"uplink_message": {"decoded_payload": {"temperature": 4.2, "values": [1, 2.5]}}}

    assert FieldPath.compile("uplink_message.decoded_payload.temperature").extract(payload) == 4.2
    assert FieldPath.compile("uplink_message.decoded_payload.values[1]").extract(payload) == 2.5


def test_missing_or_wrong_container_yields_none():
    path = FieldPath.compile("data.values[3]")

    assert path.extract({"data": {"values": [1]}}) is None
    assert path.extract({"data": {"values": {"3": 1}}}) is None
    assert path.extract({"other": 1}) is None
    assert path.extract([1, 2, 3]) is None


def test_non_numeric_values_are_rejected():
    path = FieldPath.compile("value")

    assert path.extract({"value": True}) is None
    assert path.extract({"value": "warm"}) is None
    assert path.extract({"value": None}) is None
    assert path.extract({"value": "nan"}) is None
    assert path.extract({"value": " 12.5 "}) == 12.5


@pytest.mark.parametrize("expression", ["", "  ", "a..b", "a.", ".a", "a[x]", "a[1", "a b", "1abc"])
def test_invalid_expressions(expression):
    with pytest.raises(InvalidFieldPath):
        FieldPath.compile(expression)


def test_equality_follows_segments():
    assert FieldPath.compile("a.b[0]") == FieldPath.compile(" a.b[0] ")
    assert FieldPath.compile("a.b") != FieldPath.compile("a.c")


def test_validate_field_path_keeps_none():
    assert validate_field_path(None) is None
    assert validate_field_path("decoded.temp") == "decoded.temp"


def test_coerce_number():
    assert coerce_number(3) == 3.0
    assert coerce_number(False) is None
    assert coerce_number(float("inf")) is None
    assert coerce_number({"value": 1}) is None
