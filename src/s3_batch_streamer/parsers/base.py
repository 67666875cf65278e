"""Abstract base classes for record parsers."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from s3_batch_streamer.models import Record
from s3_batch_streamer.sources.base import ObjectHandle

if TYPE_CHECKING:
    from s3_batch_streamer.parsers.whole_file import ObjectFileRef


class DataParser(ABC):
    """
    Pull-based decoder producing one record per ``parse()`` call.

    The offset reported by ``get_offset()`` after a record is returned can be
    handed to a new parser over the same object to resume right after it.
    """

    @abstractmethod
    def parse(self) -> Record | None:
        """
        Decode the next record.

        Returns:
            Record | None: The next record, or None at end of stream.

        Raises:
            DataParserError: If the record cannot be decoded.
            OSError: If reading the underlying stream fails.
        """
        ...

    @abstractmethod
    def get_offset(self) -> str:
        """Return the resume offset after the last returned record."""
        ...

    @abstractmethod
    def close(self) -> None: ...


class DataParserFactory(ABC):
    """Builds parsers for one data format."""

    @abstractmethod
    def get_parser(self, record_id: str, handle: ObjectHandle, offset: str) -> DataParser:
        """
        Create a parser reading ``handle`` from ``offset``.

        Raises:
            DataParserError: If the offset is not valid for this format.
            OSError: If positioning the stream fails.
        """
        ...

    def get_whole_file_parser(
        self,
        record_id: str,
        metadata: dict[str, Any],
        file_ref: "ObjectFileRef",
    ) -> DataParser:
        raise NotImplementedError(f"{type(self).__name__} does not support whole file records")
