"""Outlook .msg message parser."""

from .core import (
    Message, RecipientEntry, FileAttachment, NestedMessageAttachment,
    MsgParser, ParserConfig, parse, parse_msg,
    MsgParseError, ContainerReadError, MalformedPropertyStreamError,
)

__version__ = "1.0.0"
