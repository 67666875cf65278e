"""Newline-delimited JSON parser."""

import json
import logging

from typing_extensions import override

from s3_batch_streamer.errors import DataParserError, ObjectLengthError
from s3_batch_streamer.models import START_OFFSET, Record
from s3_batch_streamer.parsers.base import DataParser, DataParserFactory
from s3_batch_streamer.sources.base import ObjectHandle

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 65536


class JsonLinesParser(DataParser):
    """
    Decode one JSON value per line from an object handle.

    Offsets are byte positions in the object. A parser created with a
    non-zero offset reads and drops that many bytes first, since the handle
    is sequential. Blank lines are skipped.
    """

    def __init__(
        self,
        record_id: str,
        handle: ObjectHandle,
        offset: str = START_OFFSET,
        max_object_len: int = 4096,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize the parser and position it at ``offset``.

        Args:
            record_id: Prefix for the ids of produced records.
            handle: Open handle on the object to decode.
            offset: Byte position to resume from.
            max_object_len: Maximum bytes in a single line.
            chunk_size: Bytes requested from the handle per read.

        Raises:
            DataParserError: If the offset is not a byte position inside the object.
            OSError: If reading the handle fails while skipping.
        """
        self.record_id = record_id
        self.handle = handle
        self.max_object_len = max_object_len
        self.chunk_size = chunk_size
        self._buffer = bytearray()
        self._position = 0
        self._offset = 0
        self._eof = False

        try:
            start = int(offset)
        except ValueError as e:
            raise DataParserError(f"Invalid offset '{offset}' for {record_id}") from e
        if start < 0:
            raise DataParserError(f"Invalid offset '{offset}' for {record_id}")
        if start:
            self._skip(start)
        logger.debug("JsonLinesParser for %s positioned at offset %d", record_id, start)

    def _fill(self) -> bool:
        if self._eof:
            return False
        chunk = self.handle.read(self.chunk_size)
        if not chunk:
            self._eof = True
            return False
        self._buffer.extend(chunk)
        return True

    def _skip(self, count: int) -> None:
        while len(self._buffer) < count:
            if not self._fill():
                raise DataParserError(
                    f"Offset {count} is beyond the end of {self.record_id} ({len(self._buffer)} bytes)"
                )
        del self._buffer[:count]
        self._position = self._offset = count

    def _discard_rest_of_line(self) -> None:
        while True:
            idx = self._buffer.find(b"\n")
            if idx >= 0:
                del self._buffer[: idx + 1]
                self._position += idx + 1
                return
            self._position += len(self._buffer)
            self._buffer.clear()
            if not self._fill():
                return

    def _read_line(self) -> bytes | None:
        start = self._position
        while True:
            idx = self._buffer.find(b"\n")
            if idx >= 0:
                line = bytes(self._buffer[:idx])
                del self._buffer[: idx + 1]
                self._position += idx + 1
                break
            if len(self._buffer) > self.max_object_len:
                self._discard_rest_of_line()
                raise ObjectLengthError(
                    f"Record at {self.record_id}::{start} exceeds {self.max_object_len} bytes",
                    offset=str(start),
                )
            if not self._fill():
                if not self._buffer:
                    return None
                line = bytes(self._buffer)
                self._position += len(line)
                self._buffer.clear()
                break

        if len(line) > self.max_object_len:
            raise ObjectLengthError(
                f"Record at {self.record_id}::{start} exceeds {self.max_object_len} bytes",
                offset=str(start),
            )
        return line

    @override
    def parse(self) -> Record | None:
        while True:
            start = self._position
            line = self._read_line()
            if line is None:
                return None
            if line.strip():
                break

        try:
            value = json.loads(line)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DataParserError(f"Cannot parse JSON at {self.record_id}::{start}: {e}") from e

        self._offset = self._position
        return Record(record_id=f"{self.record_id}::{start}", value=value)

    @override
    def get_offset(self) -> str:
        return str(self._offset)

    @override
    def close(self) -> None:
        self._buffer.clear()
        self.handle.close()


class JsonParserFactory(DataParserFactory):
    """Factory for newline-delimited JSON parsers."""

    def __init__(self, max_object_len: int = 4096, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self.max_object_len = max_object_len
        self.chunk_size = chunk_size

    @override
    def get_parser(self, record_id: str, handle: ObjectHandle, offset: str) -> JsonLinesParser:
        return JsonLinesParser(
            record_id,
            handle,
            offset,
            max_object_len=self.max_object_len,
            chunk_size=self.chunk_size,
        )
