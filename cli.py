#!/usr/bin/env python3
"""
Outlook MSG Parser - Console Mode

Usage:
    python cli.py <msg_file> [options]

Options:
    --info                  Print message information as JSON (default)
    --attachment <n>        Print attachment n as a BASE64 string
    --body                  Print the message body as HTML
    --export-eml <path>     Write the message as an EML file
    --export-json <path>    Write the JSON summary to a file or directory
    --strict                Fail on truncated properties streams
    --verbose               Verbose output
"""

import argparse
import base64
import logging
import sys
from pathlib import Path

from msgparse.core.container import is_msg_file
from msgparse.core.exceptions import MsgParseError
from msgparse.core.message import Message, FileAttachment
from msgparse.core.msg_parser import MsgParser, ParserConfig
from msgparse.exporters.base import ExportOptions
from msgparse.exporters.eml_exporter import EMLExporter
from msgparse.exporters.json_exporter import JSONExporter


def setup_logging(verbose: bool):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def load_message(msg_path: str, strict: bool) -> Message:
    """Parse a .msg file, exiting with status 1 on failure."""
    if not Path(msg_path).exists():
        print(f"ERROR: File not found: {msg_path}", file=sys.stderr)
        sys.exit(1)

    if not is_msg_file(msg_path):
        print("ERROR: Not a valid msg file: invalid OLE2 signature", file=sys.stderr)
        sys.exit(1)

    parser = MsgParser(ParserConfig(strict_property_streams=strict))
    try:
        return parser.parse_msg(msg_path)
    except MsgParseError as e:
        print(f"ERROR: Not a valid msg file: {e}", file=sys.stderr)
        sys.exit(1)


def show_info(message: Message):
    """Print message information as JSON."""
    print(JSONExporter.render(message))


def show_attachment(message: Message, index: int) -> int:
    """Print one file attachment as BASE64."""
    if index < 0 or index >= len(message.attachments):
        print(f"Attachment {index} does not exist", file=sys.stderr)
        return 1

    attachment = message.attachments[index]
    if not isinstance(attachment, FileAttachment):
        print(f"Attachment {index} is a message, only file attachments can be printed",
              file=sys.stderr)
        return 1

    print(base64.b64encode(attachment.data or b'').decode('ascii'))
    return 0


def show_body(message: Message):
    """Print the HTML body, converted from RTF if needed."""
    print(message.converted_body_html or "")


def export_message(message: Message, exporter_class, output_path: str) -> int:
    """Export a message with the given exporter."""
    exporter = exporter_class(ExportOptions(output_path=output_path, overwrite_existing=True))
    progress = exporter.export([message], total_count=1)

    if progress.error or progress.failed_messages:
        print(f"ERROR: Export failed: {progress.error or 'could not write message'}",
              file=sys.stderr)
        return 1

    for written in progress.written_files:
        print(f"Exported: {written}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Outlook MSG Parser - Console Mode",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python cli.py mail.msg --info
    python cli.py mail.msg --attachment 0 > attachment.b64
    python cli.py mail.msg --body > body.html
    python cli.py mail.msg --export-eml ./exported
        """
    )

    parser.add_argument('msg_file', help='Path to .msg file')
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--info', '-i', action='store_true',
                      help='Print message information as JSON')
    mode.add_argument('--attachment', '-a', type=int, metavar='N',
                      help='Print attachment N as a BASE64 string')
    mode.add_argument('--body', '-b', action='store_true',
                      help='Print the message body as HTML')
    mode.add_argument('--export-eml', metavar='PATH',
                      help='Write the message as EML (file or directory)')
    mode.add_argument('--export-json', metavar='PATH',
                      help='Write the JSON summary (file or directory)')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on truncated properties streams')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Verbose output')

    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    message = load_message(args.msg_file, args.strict)

    if args.attachment is not None:
        return show_attachment(message, args.attachment)
    elif args.body:
        show_body(message)
    elif args.export_eml:
        return export_message(message, EMLExporter, args.export_eml)
    elif args.export_json:
        return export_message(message, JSONExporter, args.export_json)
    else:
        # Default: show info
        show_info(message)

    return 0


if __name__ == '__main__':
    sys.exit(main())
