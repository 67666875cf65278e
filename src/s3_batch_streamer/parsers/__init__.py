"""Record parsers."""

from s3_batch_streamer.config import DataFormat, DataFormatConfig
from s3_batch_streamer.parsers.base import DataParser, DataParserFactory
from s3_batch_streamer.parsers.jsonl import JsonLinesParser, JsonParserFactory
from s3_batch_streamer.parsers.whole_file import (
    ObjectFileRef,
    WholeFileParser,
    WholeFileParserFactory,
)


def get_parser_factory(data_format: DataFormat, config: DataFormatConfig) -> DataParserFactory:
    """Return the parser factory for ``data_format``."""
    if data_format == DataFormat.JSON:
        return JsonParserFactory(max_object_len=config.max_object_len)
    if data_format == DataFormat.WHOLE_FILE:
        return WholeFileParserFactory()
    raise ValueError(f"Unsupported data format: {data_format}")


__all__ = [
    "DataParser",
    "DataParserFactory",
    "JsonLinesParser",
    "JsonParserFactory",
    "ObjectFileRef",
    "WholeFileParser",
    "WholeFileParserFactory",
    "get_parser_factory",
]
