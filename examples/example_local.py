"""Example: Spooling every JSON object in a local directory."""

from pathlib import Path
import sys

from s3_batch_streamer import BatchProducer, ProducerConfig
from s3_batch_streamer.config import OnRecordError, S3Config
from s3_batch_streamer.sources import LocalObjectStore
from s3_batch_streamer.spooler import ObjectSpooler

root = Path(sys.argv[1] if len(sys.argv) > 1 else ".")
store = LocalObjectStore(root)
config = ProducerConfig(s3=S3Config(bucket=store.bucket), on_error_record=OnRecordError.DISCARD)

spooler = ObjectSpooler(BatchProducer(config, store), batch_size=100)
descriptors = [store.head(p.relative_to(root).as_posix()) for p in sorted(root.glob("*.json"))]


def print_batch(descriptor, offset, records):
    print(f"{descriptor.key}: {len(records)} records, next offset {offset}")


spooler.run(descriptors, print_batch)
