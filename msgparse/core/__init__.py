"""Core components for .msg reading and parsing."""

from .container import DirectoryEntry, StreamEntry, MsgContainer
from .exceptions import MsgParseError, ContainerReadError, MalformedPropertyStreamError
from .message import Message, RecipientEntry, Attachment, FileAttachment, NestedMessageAttachment
from .msg_parser import MsgParser, ParserConfig, parse, parse_msg

__all__ = [
    "DirectoryEntry", "StreamEntry", "MsgContainer",
    "MsgParseError", "ContainerReadError", "MalformedPropertyStreamError",
    "Message", "RecipientEntry", "Attachment", "FileAttachment", "NestedMessageAttachment",
    "MsgParser", "ParserConfig", "parse", "parse_msg",
]
