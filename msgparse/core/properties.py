"""MAPI property tags, value kinds and well-known property classes."""

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Union

# Stream name prefixes inside a .msg compound file
PROPERTY_STREAM_PREFIX = "__substg1.0_"
PROPERTIES_STREAM_NAME = "__properties_version1.0"
ATTACHMENT_DIR_PREFIX = "__attach_version1.0"
RECIPIENT_DIR_PREFIX = "__recip_version1.0"

# --- Property Types (low 2 bytes of property tag) ---
PT_SHORT = 0x0002  # 16-bit integer
PT_LONG = 0x0003  # 32-bit integer
PT_FLOAT = 0x0004
PT_DOUBLE = 0x0005
PT_CURRENCY = 0x0006
PT_APPTIME = 0x0007
PT_ERROR = 0x000A
PT_BOOLEAN = 0x000B
PT_OBJECT = 0x000D  # embedded storage
PT_LONG_LONG = 0x0014
PT_STRING8 = 0x001E  # 8-bit string
PT_UNICODE = 0x001F  # UTF-16LE string
PT_SYSTIME = 0x0040  # FILETIME (8 bytes)
PT_CLSID = 0x0048
PT_BINARY = 0x0102

# Types whose value lives in a separate __substg1.0_ stream
VARIABLE_LENGTH_TYPES = frozenset((PT_CLSID, PT_STRING8, PT_UNICODE, PT_OBJECT, PT_BINARY))

# Types stored inline in the properties stream, by payload width
FIXED_4_BYTE_TYPES = frozenset((PT_LONG, PT_FLOAT, PT_ERROR, PT_BOOLEAN, PT_SHORT))
FIXED_8_BYTE_TYPES = frozenset((PT_DOUBLE, PT_APPTIME, PT_CURRENCY, PT_LONG_LONG, PT_SYSTIME))

# --- Message Properties (class codes, lowercase hex) ---
PR_MESSAGE_CLASS = "001a"
PR_SUBJECT = "0037"
PR_CLIENT_SUBMIT_TIME = "0039"
PR_SENT_REPRESENTING_NAME = "0042"
PR_SENT_REPRESENTING_EMAIL = "0065"
PR_TRANSPORT_MESSAGE_HEADERS = "007d"
PR_SENDER_NAME = "0c1a"
PR_SENDER_EMAIL_ADDRESS = "0c1f"
PR_DISPLAY_BCC = "0e02"
PR_DISPLAY_CC = "0e03"
PR_DISPLAY_TO = "0e04"
PR_MESSAGE_DELIVERY_TIME = "0e06"
PR_BODY = "1000"
PR_RTF_COMPRESSED = "1009"
PR_HTML = "1013"
PR_INTERNET_MESSAGE_ID = "1035"
PR_SENDER_SMTP_ADDRESS = "5d01"

# --- Recipient Properties ---
PR_DISPLAY_NAME = "3001"
PR_ADDRTYPE = "3002"
PR_EMAIL_ADDRESS = "3003"
PR_SMTP_ADDRESS = "39fe"

# --- Attachment Properties ---
PR_ATTACH_DATA_BIN = "3701"
PR_ATTACH_EXTENSION = "3703"
PR_ATTACH_FILENAME = "3704"
PR_ATTACH_LONG_FILENAME = "3707"
PR_ATTACH_MIME_TAG = "370e"
PR_ATTACH_CONTENT_ID = "3712"

_HEX = re.compile(r"[0-9a-f]+")


@dataclass(frozen=True)
class PropertyTag:
    """Class code (semantic field) plus type code (data representation)."""
    tag_class: str
    type_code: int

    @classmethod
    def from_stream_name(cls, name: str) -> Optional["PropertyTag"]:
        """
        Parse a "__substg1.0_CCCCTTTT" stream name.

        Returns:
            The tag, or None if the name carries no parseable tag
        """
        if not name.startswith(PROPERTY_STREAM_PREFIX):
            return None

        val = name[len(PROPERTY_STREAM_PREFIX):].lower()
        tag_class, type_hex = val[:4], val[4:]
        if len(tag_class) != 4 or not _HEX.fullmatch(tag_class):
            return None
        if not _HEX.fullmatch(type_hex):
            return None

        return cls(tag_class, int(type_hex, 16))

    @property
    def type_hex(self) -> str:
        if self.type_code < 0:
            return "unknown"
        return f"{self.type_code:04x}"

    @property
    def is_unknown(self) -> bool:
        return self.type_code < 0

    def __str__(self):
        return f"{self.tag_class}{self.type_hex}"


UNKNOWN_TAG = PropertyTag("unknown", -1)


class ValueKind(Enum):
    TEXT = "text"
    BYTES = "bytes"
    TIMESTAMP = "timestamp"
    UNSUPPORTED = "unsupported"


PropertyValue = Union[str, bytes, datetime, None]


@dataclass(frozen=True)
class MessageProperty:
    """One decoded MAPI property."""
    tag_class: str
    kind: ValueKind
    value: PropertyValue
    declared_size: int

    @classmethod
    def unsupported(cls, tag_class: str, declared_size: int) -> "MessageProperty":
        return cls(tag_class, ValueKind.UNSUPPORTED, None, declared_size)


@dataclass(frozen=True)
class DecodeResult:
    """
    Outcome of decoding one property.

    A skipped result still carries an UNSUPPORTED property so the owning
    entity can record that the field was present.
    """
    prop: MessageProperty
    skip_reason: Optional[str] = None

    @property
    def decoded(self) -> bool:
        return self.skip_reason is None


def as_text(prop: Optional[MessageProperty]) -> Optional[str]:
    """Text view of a property value; bytes are read as UTF-8."""
    if prop is None:
        return None
    if prop.kind is ValueKind.TEXT:
        return prop.value
    if prop.kind is ValueKind.BYTES:
        return prop.value.decode("utf-8", errors="replace")
    if prop.kind is ValueKind.TIMESTAMP:
        return prop.value.isoformat()
    if prop.kind is ValueKind.UNSUPPORTED:
        return None
    raise ValueError(f"Unhandled value kind: {prop.kind}")


def as_bytes(prop: Optional[MessageProperty]) -> Optional[bytes]:
    """Bytes view of a property value; text is encoded as UTF-8."""
    if prop is None:
        return None
    if prop.kind is ValueKind.BYTES:
        return prop.value
    if prop.kind is ValueKind.TEXT:
        return prop.value.encode("utf-8")
    if prop.kind in (ValueKind.TIMESTAMP, ValueKind.UNSUPPORTED):
        return None
    raise ValueError(f"Unhandled value kind: {prop.kind}")


def as_timestamp(prop: Optional[MessageProperty]) -> Optional[datetime]:
    if prop is None:
        return None
    if prop.kind is ValueKind.TIMESTAMP:
        return prop.value
    if prop.kind in (ValueKind.TEXT, ValueKind.BYTES, ValueKind.UNSUPPORTED):
        return None
    raise ValueError(f"Unhandled value kind: {prop.kind}")
