"""Dispatch of recoverable errors according to the on-error-record policy."""

from dataclasses import dataclass
import logging

from s3_batch_streamer.config import OnRecordError
from s3_batch_streamer.errors import ErrorCode, StageError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageErrorReport:
    """An error reported for operator visibility while the pipeline keeps running."""

    code: ErrorCode
    key: str
    offset: str
    cause: BaseException

    @property
    def message(self) -> str:
        return self.code.render(self.key, self.offset, self.cause)


class ErrorRecordHandler:
    """
    Apply the configured policy to an error that is not tied to a record.

    - DISCARD: drop it silently.
    - TO_ERROR: keep a report in ``reported_errors`` and log it.
    - STOP_PIPELINE: raise StageError.
    """

    def __init__(self, on_error_record: OnRecordError) -> None:
        self.on_error_record = on_error_record
        self.reported_errors: list[StageErrorReport] = []

    def on_error(self, code: ErrorCode, key: str, offset: str, cause: BaseException) -> None:
        """
        Handle one error.

        Raises:
            StageError: If the policy is STOP_PIPELINE.
            ValueError: If the policy is not a known OnRecordError value.
        """
        if self.on_error_record == OnRecordError.DISCARD:
            logger.debug("Discarding error for '%s' at offset '%s': %s", key, offset, cause)
        elif self.on_error_record == OnRecordError.TO_ERROR:
            report = StageErrorReport(code, key, offset, cause)
            self.reported_errors.append(report)
            logger.error("%s", report.message)
        elif self.on_error_record == OnRecordError.STOP_PIPELINE:
            raise StageError(code, key, offset, cause) from cause
        else:
            raise ValueError(f"Unknown OnError value '{self.on_error_record}'")
