"""Type-driven decoding of single MAPI property streams."""

import logging
import struct
from datetime import datetime, timedelta, timezone
from typing import Optional

from .container import StreamEntry, read_stream
from .properties import (
    PropertyTag, MessageProperty, DecodeResult, ValueKind, UNKNOWN_TAG,
    PT_STRING8, PT_UNICODE, PT_BINARY, PT_SYSTIME,
)

logger = logging.getLogger(__name__)

# Windows FILETIME epoch: January 1, 1601
_FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)


def filetime_to_datetime(ticks: int) -> datetime:
    """Convert a count of 100-nanosecond intervals since 1601 to UTC datetime."""
    return _FILETIME_EPOCH + timedelta(microseconds=ticks // 10)


class PropertyDecoder:
    """
    Converts a (stream name, bytes) pair into a MessageProperty.

    Only strings, binary blobs and FILETIMEs carry a value; every other
    type is recorded as UNSUPPORTED with its declared size.
    """

    def parse_tag(self, name: str) -> PropertyTag:
        tag = PropertyTag.from_stream_name(name)
        if tag is None:
            logger.debug(f"Could not parse property tag from entry {name!r}")
            return UNKNOWN_TAG
        return tag

    def decode(self, name: str, data: bytes, declared_size: Optional[int] = None) -> DecodeResult:
        """
        Decode the full content of one property stream.

        Args:
            name: Stream name, "__substg1.0_" followed by class and type
            data: Complete stream content
            declared_size: Size reported by the container (defaults to len(data))

        Returns:
            DecodeResult, never raises
        """
        if declared_size is None:
            declared_size = len(data)

        tag = self.parse_tag(name)
        if tag.is_unknown:
            return DecodeResult(
                MessageProperty.unsupported(tag.tag_class, declared_size),
                f"{name}: unparseable property tag",
            )

        type_code = tag.type_code

        if type_code == PT_STRING8:
            text = data.decode("latin-1")
            return DecodeResult(MessageProperty(tag.tag_class, ValueKind.TEXT, text, declared_size))

        if type_code == PT_UNICODE:
            # trailing odd byte is dropped
            even = data[:len(data) - len(data) % 2]
            text = even.decode("utf-16-le", errors="surrogatepass")
            return DecodeResult(MessageProperty(tag.tag_class, ValueKind.TEXT, text, declared_size))

        if type_code == PT_BINARY:
            return DecodeResult(MessageProperty(tag.tag_class, ValueKind.BYTES, bytes(data), declared_size))

        if type_code == PT_SYSTIME:
            return self._decode_filetime(name, tag, data, declared_size)

        logger.debug(f"Unsupported property type 0x{type_code:04x} in {name}")
        return DecodeResult(
            MessageProperty.unsupported(tag.tag_class, declared_size),
            f"{name}: unsupported property type 0x{type_code:04x}",
        )

    def decode_entry(self, entry: StreamEntry) -> DecodeResult:
        """Read a stream entry completely and decode it."""
        data = read_stream(entry)
        return self.decode(entry.name, data, entry.size)

    def _decode_filetime(self, name: str, tag: PropertyTag, data: bytes, declared_size: int) -> DecodeResult:
        if len(data) < 8:
            return DecodeResult(
                MessageProperty.unsupported(tag.tag_class, declared_size),
                f"{name}: FILETIME needs 8 bytes, got {len(data)}",
            )

        ticks = struct.unpack('<Q', data[:8])[0]
        try:
            value = filetime_to_datetime(ticks)
        except OverflowError:
            return DecodeResult(
                MessageProperty.unsupported(tag.tag_class, declared_size),
                f"{name}: FILETIME {ticks} out of range",
            )

        return DecodeResult(MessageProperty(tag.tag_class, ValueKind.TIMESTAMP, value, declared_size))
