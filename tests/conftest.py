"""Shared fixtures."""

from collections.abc import Iterator
from typing import Any

import pytest

try:
    import moto  # noqa: F401

    HAS_MOTO = True
except ImportError:
    HAS_MOTO = False

BUCKET = "test-bucket"


@pytest.fixture
def s3_client() -> Iterator[Any]:
    """A boto3 S3 client backed by moto, with BUCKET created."""
    if not HAS_MOTO:
        pytest.skip("Requires moto for mocking")

    import boto3
    from moto import mock_aws

    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket=BUCKET)
        yield client
