"""Splitting of packed "__properties_version1.0" streams."""

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator

from .container import StreamEntry
from .exceptions import ContainerReadError, MalformedPropertyStreamError
from .properties import (
    PROPERTY_STREAM_PREFIX,
    VARIABLE_LENGTH_TYPES, FIXED_4_BYTE_TYPES, FIXED_8_BYTE_TYPES,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PropertyRecord:
    """A synthetic property stream cut out of a properties stream."""
    name: str
    data: bytes


class PropertyStreamSplitter:
    """
    Cuts a properties stream into one record per fixed-size property.

    Each entry starts with a 4-byte little-endian property tag. Entries
    with a zero class are skipped after their tag; variable-length types
    only carry a size here, their value lives in a sibling stream.
    """

    TAG_SIZE = 4
    FLAGS_SIZE = 4

    def __init__(self, strict: bool = False):
        """
        Args:
            strict: Raise MalformedPropertyStreamError when the stream
                ends inside a tag or a value instead of stopping
        """
        self.strict = strict

    def split(self, entry: StreamEntry) -> list[PropertyRecord]:
        """Read a properties stream entry and return its records."""
        try:
            with entry.open() as stream:
                return list(self.iter_records(stream))
        except (OSError, ValueError, IndexError) as e:
            raise ContainerReadError(f"Failed to read stream {entry.name}: {e}") from e

    def iter_records(self, stream: BinaryIO) -> Iterator[PropertyRecord]:
        while True:
            header = stream.read(self.TAG_SIZE)
            if len(header) < self.TAG_SIZE:
                if header and self.strict:
                    raise MalformedPropertyStreamError(
                        f"Truncated property tag: {len(header)} of {self.TAG_SIZE} bytes"
                    )
                break

            tag_hex = header[::-1].hex().upper()
            tag_class, type_hex = tag_hex[:4], tag_hex[4:]

            if tag_class == "0000":
                continue

            type_code = int(type_hex, 16)
            self._read(stream, self.FLAGS_SIZE)

            if type_code in VARIABLE_LENGTH_TYPES:
                # inline size only, the value is in __substg1.0_<tag>
                self._read(stream, 4)
                continue

            if type_code in FIXED_4_BYTE_TYPES:
                data = self._read(stream, 4)
                self._read(stream, 4)  # padding
            elif type_code in FIXED_8_BYTE_TYPES:
                data = self._read(stream, 8)
            else:
                # no payload is consumed for other types, later tags may
                # be read from inside this entry's value
                logger.debug(f"No inline size known for property type 0x{type_code:04x}")
                continue

            yield PropertyRecord(PROPERTY_STREAM_PREFIX + tag_hex, data)

    def _read(self, stream: BinaryIO, size: int) -> bytes:
        data = stream.read(size)
        if len(data) < size and self.strict:
            raise MalformedPropertyStreamError(
                f"Properties stream ended inside a value: {len(data)} of {size} bytes"
            )
        return data
