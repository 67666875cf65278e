"""Whole-file records: object metadata plus a lazy reference to the content."""

from collections.abc import Iterator
from dataclasses import dataclass, field
import hashlib
import logging
from typing import Any

from typing_extensions import override

from s3_batch_streamer.errors import DataParserError
from s3_batch_streamer.models import DONE_OFFSET, START_OFFSET, ObjectDescriptor, Record
from s3_batch_streamer.parsers.base import DataParser, DataParserFactory
from s3_batch_streamer.sources.base import ObjectHandle, ObjectStore

logger = logging.getLogger(__name__)

FILE_REF_FIELD = "fileRef"
FILE_INFO_FIELD = "fileInfo"


class ChecksumVerifyingStream:
    """
    Read-through wrapper that hashes everything read from a handle.

    When the underlying handle reports end of stream the digest is compared
    with the expected checksum.
    """

    def __init__(self, handle: ObjectHandle, algorithm: str, expected: str) -> None:
        self.handle = handle
        self.expected = expected.lower()
        self._digest = hashlib.new(algorithm)
        self._verified = False

    def read(self, size: int = -1) -> bytes:
        data = self.handle.read(size)
        if data:
            self._digest.update(data)
        elif not self._verified:
            self._verified = True
            actual = self._digest.hexdigest()
            if actual != self.expected:
                raise DataParserError(
                    f"Checksum mismatch for '{self.handle.key}': expected {self.expected}, got {actual}"
                )
        return data

    def close(self) -> None:
        self.handle.close()


@dataclass(frozen=True)
class ObjectFileRef:
    """
    Opaque reference to a full remote object.

    Nothing is read until ``create_input_stream()`` is called.
    """

    store: ObjectStore = field(repr=False, compare=False)
    descriptor: ObjectDescriptor
    buffer_size: int
    verify_checksum: bool = False
    checksum: str | None = None
    checksum_algorithm: str = "md5"

    @property
    def total_size_in_bytes(self) -> int:
        return self.descriptor.size

    def create_input_stream(self) -> ObjectHandle | ChecksumVerifyingStream:
        """
        Open the referenced object for reading.

        Returns:
            A handle, wrapped in a checksum verifier when verification is on
            and the ETag is a plain digest. Multipart ETags ('<hex>-<parts>')
            are not content digests and are not verified.
        """
        handle = self.store.get_object(self.descriptor.key)
        if not self.verify_checksum:
            return handle
        if not self.checksum or "-" in self.checksum:
            logger.warning(
                "Skipping checksum verification for '%s': checksum '%s' is not a %s digest",
                self.descriptor.key,
                self.checksum,
                self.checksum_algorithm,
            )
            return handle
        return ChecksumVerifyingStream(handle, self.checksum_algorithm, self.checksum)

    def iter_chunks(self) -> Iterator[bytes]:
        """Yield the object content in ``buffer_size`` chunks."""
        stream = self.create_input_stream()
        try:
            while True:
                chunk = stream.read(self.buffer_size)
                if not chunk:
                    break
                yield chunk
        finally:
            stream.close()


class WholeFileParser(DataParser):
    """Produces exactly one record carrying the file reference and its metadata."""

    def __init__(self, record_id: str, metadata: dict[str, Any], file_ref: ObjectFileRef) -> None:
        self.record_id = record_id
        self.metadata = metadata
        self.file_ref = file_ref
        self._offset = START_OFFSET

    @override
    def parse(self) -> Record | None:
        if self._offset == DONE_OFFSET:
            return None
        self._offset = DONE_OFFSET
        return Record(
            record_id=self.record_id,
            value={FILE_REF_FIELD: self.file_ref, FILE_INFO_FIELD: dict(self.metadata)},
        )

    @override
    def get_offset(self) -> str:
        return self._offset

    @override
    def close(self) -> None:
        pass


class WholeFileParserFactory(DataParserFactory):
    """Factory for whole-file records; streaming parsers are not available."""

    @override
    def get_parser(self, record_id: str, handle: ObjectHandle, offset: str) -> DataParser:
        raise DataParserError("Whole file format does not decode object content")

    @override
    def get_whole_file_parser(
        self,
        record_id: str,
        metadata: dict[str, Any],
        file_ref: ObjectFileRef,
    ) -> WholeFileParser:
        return WholeFileParser(record_id, metadata, file_ref)
