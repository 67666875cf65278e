"""Tests for JsonLinesParser."""

from typing import Any

import pytest
from typing_extensions import override

from s3_batch_streamer.errors import DataParserError, ObjectLengthError, TransportAbortedError
from s3_batch_streamer.parsers.jsonl import JsonLinesParser, JsonParserFactory
from s3_batch_streamer.sources.base import ObjectHandle

DATA = b'{"a": 1}\n{"a": 2}\n\n{"a": 3}\n'


class BytesHandle(ObjectHandle):
    def __init__(self, data: bytes) -> None:
        super().__init__("a.json")
        self.data = data

    @override
    def _read(self, size: int) -> bytes:
        size = len(self.data) if size < 0 else size
        chunk, self.data = self.data[:size], self.data[size:]
        return chunk

    @override
    def _close(self) -> None:
        pass

    @override
    def get_metadata(self) -> dict[str, Any]:
        return {}


def parse_all(parser: JsonLinesParser) -> list[Any]:
    values = []
    while (record := parser.parse()) is not None:
        values.append(record.value)
    return values


def test_parse_records_in_order() -> None:
    """Test that every line is decoded in order and blank lines are skipped."""
    parser = JsonLinesParser("bucket/a.json", BytesHandle(DATA), chunk_size=3)

    assert parse_all(parser) == [{"a": 1}, {"a": 2}, {"a": 3}]
    assert parser.get_offset() == str(len(DATA))


def test_record_ids_and_offsets() -> None:
    """Test that record ids carry the start position and offsets the end."""
    parser = JsonLinesParser("bucket/a.json", BytesHandle(DATA))

    first = parser.parse()
    assert first is not None
    assert first.record_id == "bucket/a.json::0"
    assert parser.get_offset() == "9"

    second = parser.parse()
    assert second is not None
    assert second.record_id == "bucket/a.json::9"
    assert parser.get_offset() == "18"


def test_resume_from_offset() -> None:
    """Test that a parser created at an offset continues after that record."""
    parser = JsonLinesParser("bucket/a.json", BytesHandle(DATA))
    parser.parse()
    offset = parser.get_offset()

    resumed = JsonLinesParser("bucket/a.json", BytesHandle(DATA), offset, chunk_size=4)

    assert parse_all(resumed) == [{"a": 2}, {"a": 3}]


def test_last_line_without_newline() -> None:
    """Test that a final record without a trailing newline is returned."""
    parser = JsonLinesParser("k", BytesHandle(b'{"a": 1}\n[1, 2]'))

    assert parse_all(parser) == [{"a": 1}, [1, 2]]
    assert parser.get_offset() == "15"


def test_empty_object() -> None:
    """Test that an empty object yields no records."""
    parser = JsonLinesParser("k", BytesHandle(b""))

    assert parser.parse() is None
    assert parser.get_offset() == "0"


@pytest.mark.parametrize("offset", ["abc", "-5", "100"])
def test_invalid_offsets(offset: str) -> None:
    """Test that offsets that are not positions inside the object are rejected."""
    with pytest.raises(DataParserError):
        JsonLinesParser("k", BytesHandle(DATA), offset)


def test_malformed_json_keeps_last_good_offset() -> None:
    """Test that a malformed record raises and the offset stays at the previous record."""
    parser = JsonLinesParser("k", BytesHandle(b'{"a": 1}\n{broken\n{"a": 3}\n'))
    parser.parse()

    with pytest.raises(DataParserError, match="Cannot parse JSON at k::9"):
        parser.parse()
    assert parser.get_offset() == "9"


def test_oversized_record_with_newline_in_buffer() -> None:
    """Test that a line longer than max_object_len raises ObjectLengthError."""
    data = b'{"a": 1}\n{"long": "' + b"x" * 50 + b'"}\n{"a": 3}\n'
    parser = JsonLinesParser("k", BytesHandle(data), max_object_len=20)
    parser.parse()

    with pytest.raises(ObjectLengthError) as exc_info:
        parser.parse()

    assert exc_info.value.offset == "9"
    assert parser.get_offset() == "9"
    assert parser.parse() is not None


def test_oversized_record_spanning_chunks() -> None:
    """Test that an oversized line is skipped without buffering it whole."""
    data = b'{"long": "' + b"x" * 100 + b'"}\n{"a": 3}\n'
    parser = JsonLinesParser("k", BytesHandle(data), max_object_len=20, chunk_size=8)

    with pytest.raises(ObjectLengthError) as exc_info:
        parser.parse()

    assert exc_info.value.offset == "0"
    record = parser.parse()
    assert record is not None
    assert record.value == {"a": 3}


def test_oversized_last_line_without_newline() -> None:
    """Test that an oversized final line reports its own start offset."""
    data = b'{"a": 1}\n"' + b"x" * 30 + b'"'
    parser = JsonLinesParser("k", BytesHandle(data), max_object_len=20, chunk_size=4)
    parser.parse()

    with pytest.raises(ObjectLengthError, match="k::9") as exc_info:
        parser.parse()

    assert exc_info.value.offset == "9"
    assert parser.get_offset() == "9"
    assert parser.parse() is None


def test_read_failures_propagate_unchanged() -> None:
    """Test that an aborted read surfaces as OSError with its cause intact."""
    handle = BytesHandle(DATA)
    parser = JsonLinesParser("k", handle, chunk_size=4)
    parser.parse()
    handle.abort()

    with pytest.raises(OSError) as exc_info:
        parser.parse()
    assert isinstance(exc_info.value.__cause__, TransportAbortedError)


def test_close_closes_handle() -> None:
    """Test that closing the parser closes its handle."""
    handle = BytesHandle(DATA)
    parser = JsonLinesParser("k", handle)

    parser.close()

    assert handle.closed


def test_factory_passes_settings() -> None:
    """Test JsonParserFactory configuration."""
    factory = JsonParserFactory(max_object_len=10, chunk_size=2)
    parser = factory.get_parser("k", BytesHandle(DATA), "0")

    assert parser.max_object_len == 10
    assert parser.chunk_size == 2
    assert parser.record_id == "k"
