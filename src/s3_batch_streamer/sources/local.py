"""Local directory standing in for an object store bucket."""

from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import Any, BinaryIO

from typing_extensions import override

from s3_batch_streamer.errors import ErrorKind, ObjectStoreError
from s3_batch_streamer.models import ObjectDescriptor
from s3_batch_streamer.sources.base import ObjectHandle, ObjectStore

logger = logging.getLogger(__name__)


class LocalObjectHandle(ObjectHandle):
    """An open file, optionally limited to its first ``limit`` bytes."""

    def __init__(self, key: str, path: Path, limit: int | None = None) -> None:
        super().__init__(key)
        self.path = path
        self._remaining = limit
        self._fp: BinaryIO = path.open("rb")

    @override
    def _read(self, size: int) -> bytes:
        if self._remaining is not None:
            if self._remaining <= 0:
                return b""
            size = self._remaining if size < 0 else min(size, self._remaining)
        data = self._fp.read(size)
        if self._remaining is not None:
            self._remaining -= len(data)
        return data

    @override
    def _close(self) -> None:
        self._fp.close()

    @override
    def _abort(self) -> None:
        self._fp.close()

    @override
    def get_metadata(self) -> dict[str, Any]:
        stat = self.path.stat()
        return {
            "Content-Length": stat.st_size,
            "Last-Modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        }


class LocalObjectStore(ObjectStore):
    """
    Serve objects from files under a root directory.

    Keys are paths relative to the root; the root's name is used as the
    bucket name.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

        if not self.root.is_dir():
            raise ValueError(f"Path is not a directory: {root}")

        self.bucket = self.root.name
        logger.info("LocalObjectStore initialized for: %s", self.root)

    def _resolve(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise ObjectStoreError(f"Key escapes store root: {key}", kind=ErrorKind.NOT_FOUND)
        if not path.is_file():
            raise ObjectStoreError(f"Object not found: {key}", kind=ErrorKind.NOT_FOUND)
        return path

    def _open(self, key: str, limit: int | None = None) -> LocalObjectHandle:
        path = self._resolve(key)
        try:
            return LocalObjectHandle(key, path, limit)
        except OSError as e:
            raise ObjectStoreError(f"Failed to open {path}: {e}", source=e) from e

    @override
    def get_object(self, key: str) -> LocalObjectHandle:
        return self._open(key)

    @override
    def get_object_range(self, key: str, length: int) -> LocalObjectHandle:
        if length < 1:
            raise ValueError("length must be positive")
        return self._open(key, limit=length)

    @override
    def head(self, key: str) -> ObjectDescriptor:
        stat = self._resolve(key).stat()
        return ObjectDescriptor(
            bucket=self.bucket,
            key=key,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
