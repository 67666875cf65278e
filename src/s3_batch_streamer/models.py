"""Core data types shared by the producer, parsers and object stores."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

START_OFFSET = "0"
"""Offset token meaning decoding of an object has not begun."""

DONE_OFFSET = "-1"
"""Offset token meaning an object is fully consumed and must not be reopened."""


@dataclass(frozen=True)
class ObjectDescriptor:
    """Identifies one remote object as reported by a lister."""

    bucket: str
    key: str
    size: int = 0
    owner: str | None = None
    last_modified: datetime | None = None


@dataclass
class Header:
    """String-keyed attribute bag attached to every record."""

    _attributes: dict[str, str] = field(default_factory=dict)

    def set_attribute(self, name: str, value: str) -> None:
        self._attributes[name] = value

    def get_attribute(self, name: str) -> str | None:
        return self._attributes.get(name)

    @property
    def attributes(self) -> dict[str, str]:
        return dict(self._attributes)


@dataclass
class Record:
    """A decoded unit of data plus its header."""

    record_id: str
    value: Any
    header: Header = field(default_factory=Header)


class BatchMaker:
    """
    Ordered, append-only sink for the records of one batch.

    Records are kept in the order they were added; nothing is reordered
    or deduplicated.
    """

    def __init__(self) -> None:
        self._records: list[Record] = []

    def add_record(self, record: Record) -> None:
        self._records.append(record)

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)
