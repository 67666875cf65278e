"""Error types raised by stores, parsers and the batch producer."""

from enum import StrEnum


class ErrorCode(StrEnum):
    """Stage error codes; the value is the message template."""

    S3_SPOOLDIR_02 = "Object '{}' at offset '{}' exceeds maximum length: {}"
    S3_SPOOLDIR_03 = "Error processing object '{}' at offset '{}': {}"
    S3_SPOOLDIR_25 = "Error accessing S3 object '{}' at offset '{}': {}"

    def render(self, *params: object) -> str:
        return f"{self.name} - " + self.value.format(*params)


class ErrorKind(StrEnum):
    """Classification of object store errors."""

    CONNECTION = "connection"
    NOT_FOUND = "not_found"
    PROVIDER = "provider"


class StageError(Exception):
    """Fatal error that stops the pipeline."""

    def __init__(self, code: ErrorCode, *params: object) -> None:
        super().__init__(code.render(*params))
        self.code = code
        self.params = params


class BadSpoolObjectError(Exception):
    """The object could not be processed past ``offset``; report it and move on."""

    def __init__(self, key: str, offset: str, cause: BaseException) -> None:
        super().__init__(f"Object '{key}' could not be processed at offset '{offset}': {cause}")
        self.key = key
        self.offset = offset
        self.cause = cause


class ObjectStoreError(Exception):
    """Transport-level failure talking to the object store."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.PROVIDER,
        source: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.source = source

    def __repr__(self) -> str:
        return f"ObjectStoreError({self.message!r}, kind={self.kind!r})"


class TransportAbortedError(Exception):
    """A read was aborted because the pipeline is stopping."""


class DataParserError(Exception):
    """A record could not be decoded."""


class ObjectLengthError(DataParserError):
    """A single record is larger than the configured maximum."""

    def __init__(self, message: str, offset: str) -> None:
        super().__init__(message)
        self.offset = offset


class OverrunError(DataParserError):
    """The parser read past its limit without completing a record."""

    def __init__(self, message: str, stream_offset: int) -> None:
        super().__init__(message)
        self.stream_offset = stream_offset
