from datetime import timezone

import pytest

from api.shared.exceptions import InvalidInputError
from api.shared.utils import parse_timestamp, serialize_metadata, truncate_text


def test_truncate_text():
    assert truncate_text("short", 50) == "short"
    assert truncate_text("abcdef", 3) == "abc..."


def test_parse_timestamp():
    parsed = parse_timestamp("2024-05-01T12:30:00Z")
    assert parsed.tzinfo is not None
    assert (parsed.year, parsed.hour, parsed.minute) == (2024, 12, 30)
    assert parse_timestamp("2024-05-01T12:30:00").tzinfo == timezone.utc
    assert parse_timestamp(None).tzinfo == timezone.utc


def test_parse_timestamp_rejects_garbage():
    with pytest.raises(InvalidInputError, match="Invalid created_at date format"):
        parse_timestamp("last tuesday")


def test_serialize_metadata():
    assert serialize_metadata(None) is None
    assert serialize_metadata('{"a": 1}') == '{"a": 1}'
    assert serialize_metadata({"name": "é"}) == '{"name": "é"}'
