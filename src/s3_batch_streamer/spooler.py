"""Drive a BatchProducer over a sequence of objects."""

from collections.abc import Callable, Iterable, MutableMapping
import logging

from s3_batch_streamer.errors import BadSpoolObjectError
from s3_batch_streamer.models import DONE_OFFSET, START_OFFSET, ObjectDescriptor, Record
from s3_batch_streamer.producer import BatchProducer

logger = logging.getLogger(__name__)

BatchCallback = Callable[[ObjectDescriptor, str, list[Record]], None]


class ObjectSpooler:
    """
    Read each object to the end, one batch at a time.

    Offsets are kept per key in ``offsets``; pass the mapping from an earlier
    run to resume where it stopped. Objects already at DONE_OFFSET are
    skipped. Objects that fail under the TO_ERROR policy are recorded in
    ``failed`` and the spooler moves on.
    """

    def __init__(
        self,
        producer: BatchProducer,
        batch_size: int = 1000,
        offsets: MutableMapping[str, str] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.producer = producer
        self.batch_size = batch_size
        self.offsets: MutableMapping[str, str] = offsets if offsets is not None else {}
        self.failed: list[BadSpoolObjectError] = []
        self._stopped = False

    def stop(self) -> None:
        """Finish the current batch and stop."""
        self._stopped = True
        self.producer.stop()

    def run(self, descriptors: Iterable[ObjectDescriptor], on_batch: BatchCallback) -> None:
        """
        Spool every object in ``descriptors``.

        ``on_batch`` is called with each non-empty batch and the offset that
        follows it, before the offset is stored.

        Raises:
            StageError: If the producer reports a fatal error.
        """
        try:
            for descriptor in descriptors:
                if self._stopped:
                    break
                self._spool(descriptor, on_batch)
        finally:
            self.producer.destroy()

    def _spool(self, descriptor: ObjectDescriptor, on_batch: BatchCallback) -> None:
        key = descriptor.key
        offset = self.offsets.get(key, START_OFFSET)
        if offset == DONE_OFFSET:
            logger.debug("Skipping '%s', already processed", key)
            return

        logger.info("Spooling '%s' from offset '%s'", key, offset)
        batches = 0
        while offset != DONE_OFFSET and not self._stopped:
            try:
                result = self.producer.produce_batch(descriptor, offset, self.batch_size)
            except BadSpoolObjectError as e:
                logger.error("Object '%s' could not be processed at offset '%s': %s", key, e.offset, e.cause)
                self.failed.append(e)
                self.offsets[key] = DONE_OFFSET
                return
            if result.records:
                on_batch(descriptor, result.offset, result.records)
                batches += 1
            offset = self.offsets[key] = result.offset

        logger.info("Finished '%s' after %d batches (offset '%s')", key, batches, offset)
