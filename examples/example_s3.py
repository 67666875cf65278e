"""Example: Reading JSON records from AWS S3 in resumable batches."""

from s3_batch_streamer import START_OFFSET, BatchMaker, BatchProducer, ProducerConfig
from s3_batch_streamer.config import S3Config
from s3_batch_streamer.models import DONE_OFFSET
from s3_batch_streamer.sources import S3ObjectStore

config = ProducerConfig(s3=S3Config(bucket="my-bucket"), enable_metadata=True)

# Or pass an explicit client for more control
# import boto3
# s3_client = boto3.client("s3", region_name="us-east-1")
# store = S3ObjectStore(config.s3, client=s3_client)
store = S3ObjectStore(config.s3)
producer = BatchProducer(config, store)

descriptor = store.head("path/to/records.json")
print("Object:", descriptor)

offset = START_OFFSET
try:
    while offset != DONE_OFFSET:
        batch = BatchMaker()
        offset = producer.produce(descriptor, offset, 10, batch)
        for record in batch:
            print(f"{record.record_id}: {record.value}")

        # Persist `offset` here to resume after a restart
        print(f"\n--- next offset: {offset} ---")
        if offset == DONE_OFFSET:
            break

        user_input = input("\nPress Enter for next 10 records, or type 'q' and Enter to quit: ")
        if user_input.lower() == "q":
            break
except KeyboardInterrupt:
    print("\nUser interrupted. Exiting.")
finally:
    producer.destroy()
