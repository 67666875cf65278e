"""Command-line interface for streaming S3 objects as JSON records."""

import json
import logging
import sys
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError
import typer

from s3_batch_streamer.config import (
    DataFormat,
    DataFormatConfig,
    OnRecordError,
    ProducerConfig,
    S3Config,
)
from s3_batch_streamer.errors import ObjectStoreError, StageError
from s3_batch_streamer.models import ObjectDescriptor, Record
from s3_batch_streamer.parsers.whole_file import ObjectFileRef
from s3_batch_streamer.producer import BatchProducer
from s3_batch_streamer.sources import LocalObjectStore, S3ObjectStore
from s3_batch_streamer.sources.base import ObjectStore
from s3_batch_streamer.spooler import ObjectSpooler

app = typer.Typer(add_completion=False)


def _parse_s3_uri(uri: str) -> tuple[str, str]:
    parsed = urlparse(uri)
    bucket = parsed.netloc
    key = parsed.path.lstrip("/")
    if parsed.scheme != "s3" or not bucket or not key:
        raise ValueError(f"Invalid S3 URI: {uri}. Expected: s3://bucket/key")
    return bucket, key


def _json_default(value: Any) -> Any:
    if isinstance(value, ObjectFileRef):
        return f"s3://{value.descriptor.bucket}/{value.descriptor.key}"
    return str(value)


def _record_to_json(record: Record) -> str:
    return json.dumps(
        {"id": record.record_id, "header": record.header.attributes, "value": record.value},
        default=_json_default,
    )


@app.command()
def main(
    sources: list[str] = typer.Argument(
        ...,
        help="Objects to read: s3://bucket/key, or keys relative to --local-root",
    ),
    batch_size: int = typer.Option(1000, help="Maximum records per batch"),
    whole_file: bool = typer.Option(False, "--whole-file", help="Emit one metadata record per object"),
    enable_metadata: bool = typer.Option(
        False, "--enable-metadata", help="Copy object metadata into record headers"
    ),
    verify_checksum: bool = typer.Option(
        False, "--verify-checksum", help="Verify whole-file content against the ETag"
    ),
    preview: bool = typer.Option(False, "--preview", help="Read at most 1 MiB of each object"),
    max_object_len: int = typer.Option(4096, help="Maximum bytes in a single JSON record"),
    on_error: OnRecordError = typer.Option(OnRecordError.TO_ERROR, help="What to do with bad records"),
    local_root: str | None = typer.Option(None, help="Read from this directory instead of S3"),
    endpoint_url: str | None = typer.Option(None, help="Custom S3 endpoint URL"),
    region: str = typer.Option("us-east-1", help="AWS region"),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Stream records from objects as JSON lines on stdout.

    Sources:
    - S3: s3://bucket/key (all sources must share one bucket)
    - Local: path/to/key.json with --local-root DIR
    """
    # Configure logging
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)

    try:
        store: ObjectStore
        if local_root:
            store = LocalObjectStore(local_root)
            bucket = store.bucket
            keys = sources
        else:
            parsed = [_parse_s3_uri(uri) for uri in sources]
            buckets = {b for b, _ in parsed}
            if len(buckets) != 1:
                raise ValueError("All sources must be in the same bucket")
            bucket = buckets.pop()
            keys = [k for _, k in parsed]

        config = ProducerConfig(
            s3=S3Config(bucket=bucket, region=region, endpoint_url=endpoint_url),
            data_format=DataFormat.WHOLE_FILE if whole_file else DataFormat.JSON,
            data_format_config=DataFormatConfig(
                max_object_len=max_object_len, verify_checksum=verify_checksum
            ),
            enable_metadata=enable_metadata,
            preview=preview,
            on_error_record=on_error,
        )
        if not local_root:
            store = S3ObjectStore(config.s3)

        descriptors: list[ObjectDescriptor] = [store.head(key) for key in keys]
        producer = BatchProducer(config, store)
        spooler = ObjectSpooler(producer, batch_size=batch_size)

        def write_batch(descriptor: ObjectDescriptor, offset: str, records: list[Record]) -> None:
            for record in records:
                typer.echo(_record_to_json(record))

        spooler.run(descriptors, write_batch)

        for report in producer.error_handler.reported_errors:
            typer.echo(f"Error: {report.message}", err=True)
        for failure in spooler.failed:
            typer.echo(f"Error: {failure}", err=True)
        if spooler.failed:
            raise typer.Exit(code=1)

    except typer.Exit:
        raise
    except (StageError, ObjectStoreError, ValidationError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        if verbose:
            import traceback

            traceback.print_exc(file=sys.stderr)
        raise typer.Exit(code=1) from None


if __name__ == "__main__":
    app()
