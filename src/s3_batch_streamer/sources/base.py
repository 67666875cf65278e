"""Abstract base classes for object stores and open object handles."""

from abc import ABC, abstractmethod
import logging
import threading
from types import TracebackType
from typing import Any

from typing_extensions import Self

from s3_batch_streamer.errors import TransportAbortedError
from s3_batch_streamer.models import ObjectDescriptor

logger = logging.getLogger(__name__)

class ObjectHandle(ABC):
    """
    An open byte channel bound to one object key.

    The handle owns the underlying connection and must be closed explicitly
    (or used as a context manager). Reads are sequential.
    """

    def __init__(self, key: str) -> None:
        self.key = key
        self._aborted = threading.Event()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, size: int = -1) -> bytes:
        """
        Read up to ``size`` bytes, or everything left when ``size`` is negative.

        Returns:
            bytes: The data read; empty at end of stream.

        Raises:
            OSError: If the read fails. A read interrupted by ``abort()`` raises
                an OSError whose ``__cause__`` is a TransportAbortedError.
        """
        self._check_aborted()
        try:
            data = self._read(size)
        except Exception:
            # Whatever the interrupted connection raised, report the abort.
            self._check_aborted()
            raise
        self._check_aborted()
        return data

    def _check_aborted(self) -> None:
        if self._aborted.is_set():
            raise OSError(f"Read of '{self.key}' aborted") from TransportAbortedError(self.key)

    def abort(self) -> None:
        """
        Make pending and future reads fail with an aborted-transport cause.

        May be called from another thread. The underlying connection is shut
        down so that a read blocked on it returns.
        """
        if self._aborted.is_set():
            return
        self._aborted.set()
        try:
            self._abort()
        except Exception as e:
            logger.debug("Exception while aborting read of '%s': %s", self.key, e, exc_info=True)

    def close(self) -> None:
        """Release the connection. Calling close more than once is a no-op."""
        if self._closed:
            return
        self._closed = True
        self._close()

    @abstractmethod
    def _read(self, size: int) -> bytes: ...

    @abstractmethod
    def _close(self) -> None: ...

    def _abort(self) -> None:
        """Interrupt a read in progress; handles with blocking reads override this."""

    @abstractmethod
    def get_metadata(self) -> dict[str, Any]:
        """
        Return user and system metadata of the object.

        Returns:
            dict[str, Any]: Metadata entries; user metadata keys are as stored,
            system entries use their HTTP header names (e.g. 'Content-Length').
        """
        ...

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class ObjectStore(ABC):
    """Opens handles on objects of a single bucket."""

    bucket: str

    @abstractmethod
    def get_object(self, key: str) -> ObjectHandle:
        """
        Open the whole object for sequential reading.

        Raises:
            ObjectStoreError: If the object cannot be opened.
        """
        ...

    @abstractmethod
    def get_object_range(self, key: str, length: int) -> ObjectHandle:
        """
        Open only the first ``length`` bytes of the object.

        Raises:
            ObjectStoreError: If the object cannot be opened.
        """
        ...

    @abstractmethod
    def head(self, key: str) -> ObjectDescriptor:
        """
        Describe an object without reading it.

        Stores that cannot report an owner leave ``owner`` unset; callers
        that know it (for example from a bucket listing) build their own
        descriptor.

        Raises:
            ObjectStoreError: If the object does not exist or cannot be reached.
        """
        ...
