"""EML format exporter - RFC 2822 standard email format."""

import logging
from email import encoders
from email.mime.base import MIMEBase
from email.mime.message import MIMEMessage
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, format_datetime
from pathlib import Path

from ..core.message import Message, FileAttachment, NestedMessageAttachment, RecipientEntry
from .base import BaseExporter

logger = logging.getLogger(__name__)


class EMLExporter(BaseExporter):
    """
    Exports messages to EML format (RFC 2822).

    Nested messages become message/rfc822 parts, file attachments
    base64 encoded parts.
    """

    format_name = "EML"
    file_extension = ".eml"

    def _write_message(self, message: Message, file_path: Path):
        mime = self.build_mime(message)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(mime.as_string())

    def build_mime(self, message: Message) -> MIMEMultipart:
        """Build the MIME tree for a message and its attachments."""
        body_html = message.converted_body_html
        body_text = message.body_text

        if body_html and body_text:
            # Multipart alternative for both text and HTML
            body = MIMEMultipart('alternative')
            body.attach(MIMEText(body_text, 'plain', 'utf-8'))
            body.attach(MIMEText(body_html, 'html', 'utf-8'))
        elif body_html:
            body = MIMEText(body_html, 'html', 'utf-8')
        else:
            body = MIMEText(body_text or '', 'plain', 'utf-8')

        msg = MIMEMultipart('mixed')
        msg.attach(body)

        # Set headers
        msg['Subject'] = message.subject or "(No Subject)"

        if message.sender_email:
            msg['From'] = formataddr((message.sender_name or '', message.sender_email))
        else:
            msg['From'] = "unknown@unknown"

        to = self._format_recipients(message.to_recipients) or message.display_to
        if to:
            msg['To'] = to

        cc = self._format_recipients(message.cc_recipients) or message.display_cc
        if cc:
            msg['Cc'] = cc

        if message.date:
            msg['Date'] = format_datetime(message.date)

        if message.message_id:
            msg['Message-ID'] = message.message_id

        if self.options.include_attachments:
            for attachment in message.attachments:
                if isinstance(attachment, FileAttachment):
                    msg.attach(self._file_part(attachment))
                elif isinstance(attachment, NestedMessageAttachment):
                    msg.attach(MIMEMessage(self.build_mime(attachment.message)))

        return msg

    def _file_part(self, attachment: FileAttachment) -> MIMEBase:
        mime_type = attachment.mime_type or 'application/octet-stream'
        maintype, subtype = mime_type.split('/', 1) \
            if '/' in mime_type else ('application', 'octet-stream')

        part = MIMEBase(maintype, subtype)
        part.set_payload(attachment.data or b'')
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment',
                        filename=attachment.filename or 'attachment')

        if attachment.content_id:
            part.add_header('Content-ID', f'<{attachment.content_id}>')

        return part

    def _format_recipients(self, recipients: list[RecipientEntry]) -> str:
        return ", ".join(formataddr((r.name or '', r.email or '')) for r in recipients if r.email)
