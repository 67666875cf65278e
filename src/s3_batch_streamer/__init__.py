"""S3-Batch-Streamer: resumable, batch-oriented record streaming from S3 objects."""

from s3_batch_streamer.config import ProducerConfig
from s3_batch_streamer.models import DONE_OFFSET, START_OFFSET, BatchMaker, ObjectDescriptor, Record
from s3_batch_streamer.producer import BatchProducer

__all__ = [
    "DONE_OFFSET",
    "START_OFFSET",
    "BatchMaker",
    "BatchProducer",
    "ObjectDescriptor",
    "ProducerConfig",
    "Record",
]
