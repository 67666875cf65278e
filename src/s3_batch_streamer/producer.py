"""Resumable batch producer over objects of an object store."""

from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any, NamedTuple

from botocore.exceptions import BotoCoreError, ClientError

from s3_batch_streamer.config import DEFAULT_FETCH_SIZE, DataFormat, OnRecordError, ProducerConfig
from s3_batch_streamer.error_handler import ErrorRecordHandler
from s3_batch_streamer.errors import (
    BadSpoolObjectError,
    DataParserError,
    ErrorCode,
    ObjectLengthError,
    ObjectStoreError,
    OverrunError,
    StageError,
    TransportAbortedError,
)
from s3_batch_streamer.models import DONE_OFFSET, BatchMaker, ObjectDescriptor, Record
from s3_batch_streamer.parsers import get_parser_factory
from s3_batch_streamer.parsers.base import DataParser, DataParserFactory
from s3_batch_streamer.parsers.whole_file import ObjectFileRef
from s3_batch_streamer.sources.base import ObjectHandle, ObjectStore

logger = logging.getLogger(__name__)

BUCKET = "bucket"
OBJECT_KEY = "objectKey"
OWNER = "owner"
SIZE = "size"
NAME = "Name"

_TRANSPORT_ERRORS = (ObjectStoreError, BotoCoreError, ClientError)
_READ_ERRORS = (*_TRANSPORT_ERRORS, DataParserError, OSError)


class FaultKind(Enum):
    OVERSIZED = "oversized"
    CANCELLED = "cancelled"
    TRANSPORT = "transport"
    DECODE = "decode"


@dataclass(frozen=True)
class Parsed:
    record: Record


@dataclass(frozen=True)
class EndOfStream:
    pass


@dataclass(frozen=True)
class Fault:
    kind: FaultKind
    error: BaseException


DecodeResult = Parsed | EndOfStream | Fault


class BatchResult(NamedTuple):
    offset: str
    records: list[Record]


def classify(error: BaseException) -> FaultKind:
    """Map an exception raised while opening or decoding an object to a fault kind."""
    if isinstance(error, ObjectLengthError):
        return FaultKind.OVERSIZED
    if isinstance(error, _TRANSPORT_ERRORS):
        return FaultKind.TRANSPORT
    if isinstance(error.__cause__, TransportAbortedError):
        return FaultKind.CANCELLED
    return FaultKind.DECODE


def decode_step(parser: DataParser) -> DecodeResult:
    """Pull one record from ``parser`` and tag the outcome."""
    try:
        record = parser.parse()
    except _READ_ERRORS as e:
        return Fault(classify(e), e)
    if record is None:
        return EndOfStream()
    return Parsed(record)


@dataclass
class ReaderSession:
    """Open handle and parser for the object currently being read."""

    key: str
    handle: ObjectHandle | None = None
    parser: DataParser | None = None
    metadata: dict[str, Any] | None = field(default=None, repr=False)

    def close(self) -> None:
        """Close parser and handle; failures are logged and never raised."""
        if self.parser is not None:
            try:
                self.parser.close()
            except Exception as e:
                logger.debug("Exception while closing parser for '%s': %s", self.key, e, exc_info=True)
            self.parser = None
        if self.handle is not None:
            try:
                self.handle.close()
            except Exception as e:
                logger.debug("Exception while closing object '%s': %s", self.key, e, exc_info=True)
            self.handle = None
        self.metadata = None


class BatchProducer:
    """
    Produce batches of records from one object at a time.

    ``produce()`` is called repeatedly by a scheduler with the offset it
    returned last time. The handle and parser for the object are opened on
    the first call and kept in ``session`` until the object is exhausted,
    a fault occurs or the producer is destroyed.
    """

    def __init__(
        self,
        config: ProducerConfig,
        store: ObjectStore,
        parser_factory: DataParserFactory | None = None,
        error_handler: ErrorRecordHandler | None = None,
    ) -> None:
        self.config = config
        self.store = store
        self.parser_factory = parser_factory or get_parser_factory(
            config.data_format, config.data_format_config
        )
        self.error_handler = error_handler or ErrorRecordHandler(config.on_error_record)
        self.session: ReaderSession | None = None

    def produce(
        self,
        descriptor: ObjectDescriptor,
        offset: str,
        max_batch_size: int,
        batch_maker: BatchMaker,
    ) -> str:
        """
        Append up to ``max_batch_size`` records of ``descriptor`` to ``batch_maker``.

        Args:
            descriptor: Object to read.
            offset: START_OFFSET, or the offset returned by the previous call
                for the same object.
            max_batch_size: Upper bound on records added by this call.
            batch_maker: Sink receiving records in decode order.

        Returns:
            str: Offset to pass to the next call; DONE_OFFSET once the object
            is exhausted or cannot be read further.

        Raises:
            StageError: On transport failures, or decode failures under the
                STOP_PIPELINE policy.
            BadSpoolObjectError: On decode failures under the TO_ERROR policy.
        """
        if max_batch_size < 1:
            raise ValueError("max_batch_size must be at least 1")

        if self.session is not None and self.session.key != descriptor.key:
            logger.warning(
                "Closing reader for '%s' before reading '%s'", self.session.key, descriptor.key
            )
            self._close_session()

        if self.session is None and offset == DONE_OFFSET:
            return offset

        fault: Fault | None = None
        completed = False
        try:
            if self.session is None:
                fault = self._open_session(descriptor, offset)

            if fault is None:
                for _ in range(max_batch_size):
                    result = decode_step(self.session.parser)
                    if isinstance(result, Parsed):
                        self._attach_metadata(result.record)
                        batch_maker.add_record(result.record)
                        offset = self.session.parser.get_offset()
                    elif isinstance(result, EndOfStream):
                        offset = DONE_OFFSET
                        break
                    else:
                        fault = result
                        break

            if fault is not None:
                offset = self._handle_fault(descriptor, offset, fault)
            completed = True
        finally:
            if offset == DONE_OFFSET or fault is not None or not completed:
                self._close_session()

        return offset

    def produce_batch(
        self,
        descriptor: ObjectDescriptor,
        offset: str,
        max_batch_size: int,
    ) -> BatchResult:
        """Like ``produce()`` but collects the batch into a BatchResult."""
        batch_maker = BatchMaker()
        next_offset = self.produce(descriptor, offset, max_batch_size, batch_maker)
        return BatchResult(next_offset, batch_maker.records)

    def stop(self) -> None:
        """Abort reads on the open handle so a blocked ``produce()`` returns."""
        # The producer thread may close the session concurrently.
        session = self.session
        handle = session.handle if session is not None else None
        if handle is not None:
            logger.info("Aborting read of '%s'", session.key)
            handle.abort()

    def destroy(self) -> None:
        """Release the open session, if any."""
        self._close_session()

    def _close_session(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def _record_id(self, descriptor: ObjectDescriptor) -> str:
        return f"{descriptor.bucket}{self.config.s3.delimiter}{descriptor.key}"

    def _open_session(self, descriptor: ObjectDescriptor, offset: str) -> Fault | None:
        self.session = ReaderSession(key=descriptor.key)
        record_id = self._record_id(descriptor)
        try:
            if self.config.data_format == DataFormat.WHOLE_FILE:
                self._open_whole_file(descriptor, record_id)
            else:
                self.session.handle = self._open_handle(descriptor)
                self.session.parser = self.parser_factory.get_parser(
                    record_id, self.session.handle, offset
                )
        except _READ_ERRORS as e:
            return Fault(classify(e), e)
        logger.debug("Opened reader for '%s' at offset '%s'", descriptor.key, offset)
        return None

    def _open_handle(self, descriptor: ObjectDescriptor) -> ObjectHandle:
        if not self.config.preview:
            return self.store.get_object(descriptor.key)

        fetch_size = min(descriptor.size, DEFAULT_FETCH_SIZE)
        if fetch_size > 0:
            return self.store.get_object_range(descriptor.key, fetch_size)
        logger.warning("Size of object with key '%s' is 0", descriptor.key)
        return self.store.get_object(descriptor.key)

    def _open_whole_file(self, descriptor: ObjectDescriptor, record_id: str) -> None:
        # A single byte is fetched only to read the object's metadata.
        format_config = self.config.data_format_config
        if descriptor.size > 0:
            partial = self.store.get_object_range(descriptor.key, 1)
        else:
            partial = self.store.get_object(descriptor.key)
        with partial:
            metadata = partial.get_metadata()

        checksum = metadata.get("ETag") if format_config.verify_checksum else None
        file_ref = ObjectFileRef(
            store=self.store,
            descriptor=descriptor,
            buffer_size=format_config.whole_file_max_object_len,
            verify_checksum=format_config.verify_checksum,
            checksum=checksum,
            checksum_algorithm=format_config.checksum_algorithm.value,
        )
        metadata[BUCKET] = descriptor.bucket
        metadata[OBJECT_KEY] = descriptor.key
        metadata[OWNER] = descriptor.owner
        metadata[SIZE] = descriptor.size

        self.session.metadata = metadata
        self.session.parser = self.parser_factory.get_whole_file_parser(record_id, metadata, file_ref)

    def _attach_metadata(self, record: Record) -> None:
        if not self.config.enable_metadata:
            return
        session = self.session
        try:
            metadata = session.metadata if session.metadata is not None else session.handle.get_metadata()
        except Exception as e:
            logger.warning("Could not retrieve metadata for '%s': %s", session.key, e)
            metadata = {}
        for key, value in metadata.items():
            record.header.set_attribute(key, "" if value is None else str(value))
        record.header.set_attribute(NAME, session.key)

    def _error_offset(self, offset: str, error: BaseException) -> str:
        if isinstance(error, OverrunError):
            return str(error.stream_offset)
        parser = self.session.parser if self.session is not None else None
        if parser is None:
            return DONE_OFFSET
        try:
            return parser.get_offset()
        except (OSError, DataParserError) as e:
            logger.warning("Could not get the object offset to report with error, reason: %s", e)
            return DONE_OFFSET

    def _handle_fault(self, descriptor: ObjectDescriptor, offset: str, fault: Fault) -> str:
        key = descriptor.key
        error = fault.error

        if fault.kind is FaultKind.CANCELLED:
            # The pipeline is stopping; keep what was read and the last good offset.
            logger.info("Read of '%s' aborted at offset '%s'", key, offset)
            return offset

        if fault.kind is FaultKind.TRANSPORT:
            logger.error("Error processing object with key '%s' offset '%s'", key, offset, exc_info=error)
            raise StageError(ErrorCode.S3_SPOOLDIR_25, key, offset, error) from error

        if fault.kind is FaultKind.OVERSIZED:
            self.error_handler.on_error(ErrorCode.S3_SPOOLDIR_02, key, offset, error)
            return DONE_OFFSET

        error_offset = self._error_offset(offset, error)
        policy = self.config.on_error_record
        if policy == OnRecordError.DISCARD:
            logger.debug("Discarding rest of '%s' after error at offset '%s': %s", key, error_offset, error)
            return DONE_OFFSET
        if policy == OnRecordError.TO_ERROR:
            # The rest of the object is in an unknown state; report the whole object.
            raise BadSpoolObjectError(key, error_offset, error) from error
        if policy == OnRecordError.STOP_PIPELINE:
            raise StageError(ErrorCode.S3_SPOOLDIR_03, key, error_offset, error) from error
        raise ValueError(f"Unknown OnError value '{policy}'")
