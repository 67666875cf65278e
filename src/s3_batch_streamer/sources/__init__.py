"""Object store abstraction layer."""

from s3_batch_streamer.sources.base import ObjectHandle, ObjectStore
from s3_batch_streamer.sources.local import LocalObjectHandle, LocalObjectStore
from s3_batch_streamer.sources.s3 import S3ObjectHandle, S3ObjectStore

__all__ = [
    "LocalObjectHandle",
    "LocalObjectStore",
    "ObjectHandle",
    "ObjectStore",
    "S3ObjectHandle",
    "S3ObjectStore",
]
