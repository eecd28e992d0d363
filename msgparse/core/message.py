"""Email message data models."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from email.parser import HeaderParser
from email.utils import parsedate_to_datetime
from typing import Any, Optional

from .properties import (
    MessageProperty, PropertyValue, ValueKind, as_text, as_bytes, as_timestamp,
    PR_MESSAGE_CLASS, PR_SUBJECT, PR_CLIENT_SUBMIT_TIME, PR_SENT_REPRESENTING_NAME,
    PR_SENT_REPRESENTING_EMAIL, PR_TRANSPORT_MESSAGE_HEADERS, PR_SENDER_NAME,
    PR_SENDER_EMAIL_ADDRESS, PR_DISPLAY_BCC, PR_DISPLAY_CC, PR_DISPLAY_TO,
    PR_MESSAGE_DELIVERY_TIME, PR_BODY, PR_RTF_COMPRESSED, PR_HTML,
    PR_INTERNET_MESSAGE_ID, PR_SENDER_SMTP_ADDRESS,
    PR_DISPLAY_NAME, PR_ADDRTYPE, PR_EMAIL_ADDRESS, PR_SMTP_ADDRESS,
    PR_ATTACH_DATA_BIN, PR_ATTACH_EXTENSION, PR_ATTACH_FILENAME,
    PR_ATTACH_LONG_FILENAME, PR_ATTACH_MIME_TAG, PR_ATTACH_CONTENT_ID,
)
from .rtf import RtfToHtmlConverter, decompress_rtf

logger = logging.getLogger(__name__)


@dataclass
class PropertyBag:
    """Decoded properties keyed by lowercase class code, last write wins."""
    properties: dict[str, MessageProperty] = field(default_factory=dict)

    def set_property(self, prop: MessageProperty):
        self.properties[prop.tag_class.lower()] = prop

    def get_property(self, tag_class: str) -> Optional[MessageProperty]:
        return self.properties.get(tag_class.lower())

    def get(self, tag_class: str) -> PropertyValue:
        """Value of a property, or None if absent or unsupported."""
        prop = self.get_property(tag_class)
        return prop.value if prop else None

    def _text(self, tag_class: str) -> Optional[str]:
        return as_text(self.get_property(tag_class))


@dataclass
class RecipientEntry(PropertyBag):
    """One entry of a message's recipient table."""

    @property
    def name(self) -> Optional[str]:
        return self._text(PR_DISPLAY_NAME)

    @property
    def email(self) -> Optional[str]:
        return self._text(PR_EMAIL_ADDRESS) or self._text(PR_SMTP_ADDRESS)

    @property
    def address_type(self) -> Optional[str]:
        return self._text(PR_ADDRTYPE)

    def __str__(self):
        return f'"{self.name or ""}" <{self.email or ""}>'


class Attachment:
    """Base class for message attachments."""
    attachment_type = "unknown"


@dataclass
class FileAttachment(PropertyBag, Attachment):
    """Email attachment data."""
    # -1 until an attachment data property has been seen
    size: int = -1

    attachment_type = "file"

    def set_property(self, prop: MessageProperty):
        super().set_property(prop)
        if prop.tag_class == PR_ATTACH_DATA_BIN and prop.kind is ValueKind.BYTES:
            self.size = len(prop.value)

    @property
    def data(self) -> Optional[bytes]:
        return as_bytes(self.get_property(PR_ATTACH_DATA_BIN))

    @property
    def filename(self) -> Optional[str]:
        return self._text(PR_ATTACH_LONG_FILENAME) or self._text(PR_ATTACH_FILENAME)

    @property
    def extension(self) -> Optional[str]:
        return self._text(PR_ATTACH_EXTENSION)

    @property
    def mime_type(self) -> Optional[str]:
        return self._text(PR_ATTACH_MIME_TAG)

    @property
    def content_id(self) -> Optional[str]:
        return self._text(PR_ATTACH_CONTENT_ID)

    @property
    def display_name(self) -> Optional[str]:
        return self._text(PR_DISPLAY_NAME)


@dataclass
class NestedMessageAttachment(Attachment):
    """An attached .msg, parsed into a full Message."""
    message: "Message"

    attachment_type = "message"


@dataclass
class Message(PropertyBag):
    """Email message data structure."""
    recipients: list[RecipientEntry] = field(default_factory=list)
    attachments: list[Attachment] = field(default_factory=list)

    # Skipped properties, for diagnostics
    parse_warnings: list[str] = field(default_factory=list)

    rtf_converter: Optional[RtfToHtmlConverter] = field(default=None, repr=False, compare=False)

    def add_recipient(self, recipient: RecipientEntry):
        self.recipients.append(recipient)

    def add_attachment(self, attachment: Attachment):
        self.attachments.append(attachment)

    @property
    def message_class(self) -> Optional[str]:
        return self._text(PR_MESSAGE_CLASS)

    @property
    def subject(self) -> Optional[str]:
        return self._text(PR_SUBJECT)

    @property
    def message_id(self) -> Optional[str]:
        return self._text(PR_INTERNET_MESSAGE_ID)

    @property
    def sender_name(self) -> Optional[str]:
        return self._text(PR_SENDER_NAME) or self._text(PR_SENT_REPRESENTING_NAME)

    @property
    def sender_email(self) -> Optional[str]:
        email = self._text(PR_SENDER_EMAIL_ADDRESS)
        if email and "@" in email:
            return email

        # Exchange senders carry an X.500 address in 0c1f
        for tag_class in (PR_SENDER_SMTP_ADDRESS, PR_SENT_REPRESENTING_EMAIL):
            alternative = self._text(tag_class)
            if alternative and "@" in alternative:
                return alternative

        return email

    @property
    def display_to(self) -> Optional[str]:
        return self._text(PR_DISPLAY_TO)

    @property
    def display_cc(self) -> Optional[str]:
        return self._text(PR_DISPLAY_CC)

    @property
    def display_bcc(self) -> Optional[str]:
        return self._text(PR_DISPLAY_BCC)

    @property
    def headers(self) -> Optional[str]:
        return self._text(PR_TRANSPORT_MESSAGE_HEADERS)

    @property
    def client_submit_time(self) -> Optional[datetime]:
        return as_timestamp(self.get_property(PR_CLIENT_SUBMIT_TIME))

    @property
    def delivery_time(self) -> Optional[datetime]:
        return as_timestamp(self.get_property(PR_MESSAGE_DELIVERY_TIME))

    @property
    def date(self) -> Optional[datetime]:
        """Get the best available date for display."""
        if self.client_submit_time or self.delivery_time:
            return self.client_submit_time or self.delivery_time

        if not self.headers:
            return None

        date_header = HeaderParser().parsestr(self.headers).get('Date')
        if not date_header:
            return None
        try:
            return parsedate_to_datetime(date_header)
        except (TypeError, ValueError):
            logger.debug(f"Unparseable Date header: {date_header!r}")
            return None

    @property
    def body_text(self) -> Optional[str]:
        return self._text(PR_BODY)

    @property
    def body_rtf(self) -> Optional[str]:
        """RTF body, decompressed from PR_RTF_COMPRESSED."""
        compressed = as_bytes(self.get_property(PR_RTF_COMPRESSED))
        if not compressed:
            return None
        try:
            return decompress_rtf(compressed)
        except Exception as e:
            # compressed_rtf reports bad input with a bare Exception
            logger.warning(f"Could not decompress RTF body: {e}")
            return None

    @property
    def body_html(self) -> Optional[str]:
        return self._text(PR_HTML)

    @property
    def converted_body_html(self) -> Optional[str]:
        """HTML body, falling back to a conversion of the RTF body."""
        if self.body_html:
            return self.body_html

        rtf = self.body_rtf
        if rtf and self.rtf_converter is not None:
            return self.rtf_converter.convert(rtf)
        return None

    def _recipients_listed_in(self, display: Optional[str]) -> list[RecipientEntry]:
        if not display:
            return []
        names = {n.strip() for n in display.split(';') if n.strip()}
        return [r for r in self.recipients if r.name and r.name.strip() in names]

    @property
    def to_recipients(self) -> list[RecipientEntry]:
        return self._recipients_listed_in(self.display_to)

    @property
    def cc_recipients(self) -> list[RecipientEntry]:
        return self._recipients_listed_in(self.display_cc)

    @property
    def bcc_recipients(self) -> list[RecipientEntry]:
        return self._recipients_listed_in(self.display_bcc)

    @property
    def has_attachments(self) -> bool:
        return len(self.attachments) > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert message to dictionary for serialization."""
        attachments = []
        for attachment in self.attachments:
            if isinstance(attachment, FileAttachment):
                attachments.append({
                    "type": attachment.attachment_type,
                    "filename": attachment.filename,
                    "size": attachment.size,
                })
            elif isinstance(attachment, NestedMessageAttachment):
                attachments.append({
                    "type": attachment.attachment_type,
                    "subject": attachment.message.subject,
                })

        return {
            "date": self.date.isoformat() if self.date else None,
            "subject": self.subject,
            "from": f'"{self.sender_name or ""}" <{self.sender_email or ""}>',
            "to": "; ".join(str(r) for r in self.to_recipients),
            "cc": "; ".join(str(r) for r in self.cc_recipients),
            "body_html": self.body_html,
            "body_rtf": self.body_rtf,
            "body_text": self.body_text,
            "attachments": attachments,
        }
