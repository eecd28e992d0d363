"""Parser that assembles a Message from a .msg compound file tree."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from .container import DirectoryEntry, StreamEntry, MsgContainer, MsgSource
from .decoder import PropertyDecoder
from .message import Message, RecipientEntry, FileAttachment, NestedMessageAttachment, PropertyBag
from .properties import (
    DecodeResult, PROPERTIES_STREAM_NAME, ATTACHMENT_DIR_PREFIX, RECIPIENT_DIR_PREFIX,
)
from .rtf import RtfToHtmlConverter, SimpleRtfToHtmlConverter
from .splitter import PropertyStreamSplitter

logger = logging.getLogger(__name__)


@dataclass
class ParserConfig:
    """Options for parse operation."""
    rtf_converter: RtfToHtmlConverter = field(default_factory=SimpleRtfToHtmlConverter)
    close_source: bool = True  # Close a caller-supplied file object after parsing
    strict_property_streams: bool = False


class MessageBuilder:
    """
    Sets decoded properties onto the entity under construction.

    Recipient and attachment directories get their own entities; embedded
    messages are walked through the ``walk`` callback.
    """

    def __init__(self, config: ParserConfig, walk: Callable[[DirectoryEntry, Message], None]):
        self.config = config
        self.walk = walk
        self.decoder = PropertyDecoder()
        self.splitter = PropertyStreamSplitter(strict=config.strict_property_streams)

    def new_message(self) -> Message:
        return Message(rtf_converter=self.config.rtf_converter)

    def add_stream(self, stream: StreamEntry, target: PropertyBag, owner: Message):
        """
        Decode a stream onto ``target``.

        Args:
            stream: Property stream or packed properties stream
            target: Entity receiving the properties
            owner: Message collecting skip reasons
        """
        if stream.name.startswith(PROPERTIES_STREAM_NAME):
            records = self.splitter.split(stream)
            logger.debug(f"Split {stream.name} into {len(records)} records")
            for record in records:
                self._apply(self.decoder.decode(record.name, record.data), target, owner)
        else:
            self._apply(self.decoder.decode_entry(stream), target, owner)

    def add_attachment(self, directory: DirectoryEntry, message: Message):
        """Parse an attachment directory into file and nested-message attachments."""
        attachment = FileAttachment()

        for entry in directory.children:
            if isinstance(entry, StreamEntry):
                self._apply(self.decoder.decode_entry(entry), attachment, message)
            elif isinstance(entry, DirectoryEntry):
                # a storage inside an attachment is an embedded .msg
                nested = self.new_message()
                message.add_attachment(NestedMessageAttachment(nested))
                self.walk(entry, nested)

        # only if there was really an attachment
        if attachment.size > -1:
            message.add_attachment(attachment)
        else:
            logger.debug(f"No attachment data in {directory.name}")

    def add_recipient(self, directory: DirectoryEntry, message: Message):
        recipient = RecipientEntry()

        for entry in directory.children:
            if isinstance(entry, StreamEntry):
                self.add_stream(entry, recipient, message)

        message.add_recipient(recipient)

    def _apply(self, result: DecodeResult, target: PropertyBag, owner: Message):
        target.set_property(result.prop)
        if not result.decoded:
            owner.parse_warnings.append(result.skip_reason)


class DirectoryClassifier:
    """Depth-first walk routing each entry to the message builder."""

    def __init__(self, config: ParserConfig):
        self.builder = MessageBuilder(config, walk=self.walk)

    def walk(self, directory: DirectoryEntry, message: Message):
        for entry in directory.children:
            if isinstance(entry, DirectoryEntry):
                if entry.name.startswith(ATTACHMENT_DIR_PREFIX):
                    self.builder.add_attachment(entry, message)
                elif entry.name.startswith(RECIPIENT_DIR_PREFIX):
                    self.builder.add_recipient(entry, message)
                else:
                    self.walk(entry, message)
            elif isinstance(entry, StreamEntry):
                self.builder.add_stream(entry, message, message)


class MsgParser:
    """
    Parser for Outlook .msg files.

    The whole message, attachments included, is held in memory.
    """

    def __init__(self, config: Optional[ParserConfig] = None):
        """
        Initialize parser.

        Args:
            config: Parser options, defaults to ParserConfig()
        """
        self.config = config or ParserConfig()
        self.classifier = DirectoryClassifier(self.config)

    def parse(self, root: DirectoryEntry) -> Message:
        """
        Build a Message from a container tree.

        Raises:
            ContainerReadError: A stream could not be read
            MalformedPropertyStreamError: Truncated properties stream (strict mode)
        """
        message = self.classifier.builder.new_message()
        self.classifier.walk(root, message)

        logger.debug(
            f"Parsed {root.name!r}: {len(message.properties)} properties, "
            f"{len(message.recipients)} recipients, {len(message.attachments)} attachments"
        )
        return message

    def parse_msg(self, source: MsgSource) -> Message:
        """
        Open a .msg file (path, bytes or binary file object) and parse it.

        Raises:
            ContainerReadError: Not a readable compound file
            MalformedPropertyStreamError: Truncated properties stream (strict mode)
        """
        with MsgContainer(source, close_source=self.config.close_source) as container:
            return self.parse(container.root)


def parse(root: DirectoryEntry, config: Optional[ParserConfig] = None) -> Message:
    return MsgParser(config).parse(root)


def parse_msg(source: MsgSource, config: Optional[ParserConfig] = None) -> Message:
    return MsgParser(config).parse_msg(source)
