"""Configuration models for the batch producer."""

from enum import Enum
import logging
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, PrivateAttr, field_validator

if TYPE_CHECKING:
    from mypy_boto3_s3 import S3Client

logger = logging.getLogger(__name__)

DEFAULT_FETCH_SIZE = 1 * 1024 * 1024
"""Upper bound on bytes fetched per object in preview mode."""


class DataFormat(str, Enum):
    """How object contents are turned into records."""

    JSON = "json"
    WHOLE_FILE = "whole_file"


class OnRecordError(str, Enum):
    """What to do when a record cannot be decoded."""

    DISCARD = "discard"
    TO_ERROR = "to_error"
    STOP_PIPELINE = "stop_pipeline"


class ChecksumAlgorithm(str, Enum):
    """Digest used to verify whole-file transfers against the ETag."""

    MD5 = "md5"


class S3Config(BaseModel, frozen=True):
    """Connection settings for the bucket being read."""

    bucket: str
    delimiter: str = "/"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None

    _client: Any = PrivateAttr(default=None)

    @field_validator("bucket")
    @classmethod
    def _bucket_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("bucket must be non-empty")
        return value

    def get_s3_client(self) -> "S3Client":
        """Return a boto3 S3 client, created on first use."""
        if self._client is None:
            import boto3

            self._client = boto3.client(  # pyright: ignore[reportUnknownMemberType]
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            )
            logger.debug("Created S3 client for bucket %s (region=%s)", self.bucket, self.region)
        return self._client


class DataFormatConfig(BaseModel, frozen=True):
    """Parser settings."""

    max_object_len: int = Field(default=4096, gt=0)
    """Maximum characters in a single JSON record."""

    whole_file_max_object_len: int = Field(default=8192, gt=0)
    """Read buffer size used when streaming a whole file reference."""

    verify_checksum: bool = False
    checksum_algorithm: ChecksumAlgorithm = ChecksumAlgorithm.MD5


class ProducerConfig(BaseModel, frozen=True):
    """Everything the batch producer reads from configuration."""

    s3: S3Config
    data_format: DataFormat = DataFormat.JSON
    data_format_config: DataFormatConfig = Field(default_factory=DataFormatConfig)
    enable_metadata: bool = False
    preview: bool = False
    on_error_record: OnRecordError = OnRecordError.TO_ERROR
