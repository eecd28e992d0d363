"""Tests for assembling messages from container trees."""

import io
import struct
from datetime import datetime, timezone

import olefile
import pytest

from msgparse.core.container import DirectoryEntry, StreamEntry
from msgparse.core.exceptions import ContainerReadError, MalformedPropertyStreamError
from msgparse.core.message import FileAttachment, NestedMessageAttachment
from msgparse.core.msg_parser import MsgParser, ParserConfig, parse, parse_msg
from msgparse.core.properties import ValueKind

from builders import (
    FILETIME_1970, packed, properties_stream, stream, unicode_stream,
    recipient_dir, file_attachment_dir, simple_message_dir,
)


def build_root(*children):
    return DirectoryEntry("Root Entry", list(children))


def test_top_level_properties():
    root = build_root(
        unicode_stream("0037", "Quarterly report"),
        unicode_stream("0c1a", "Alice Example"),
        unicode_stream("0c1f", "alice@example.com"),
        stream("1000001E", b"Plain body"),
        properties_stream(packed(0x00390040, struct.pack("<Q", FILETIME_1970)), header=b"\x00" * 32),
    )

    message = parse(root)

    assert message.subject == "Quarterly report"
    assert message.sender_name == "Alice Example"
    assert message.sender_email == "alice@example.com"
    assert message.body_text == "Plain body"
    assert message.client_submit_time == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert message.get("0037") == "Quarterly report"
    assert message.get("ffff") is None


def test_recipients_keep_visit_order():
    root = build_root(
        recipient_dir(0, "Bob", "bob@example.com"),
        unicode_stream("0037", "Hi"),
        recipient_dir(1, "Carol", "carol@example.com"),
    )

    message = parse(root)

    assert [r.name for r in message.recipients] == ["Bob", "Carol"]
    assert [r.email for r in message.recipients] == ["bob@example.com", "carol@example.com"]
    assert message.recipients[0].address_type == "SMTP"


def test_empty_recipient_is_still_added():
    message = parse(build_root(DirectoryEntry("__recip_version1.0_#00000000")))

    assert len(message.recipients) == 1
    assert message.recipients[0].properties == {}


def test_recipient_properties_stream_is_split():
    recipient = DirectoryEntry("__recip_version1.0_#00000000", [
        unicode_stream("3001", "Dave"),
        properties_stream(packed(0x0C150003, b"\x01\x00\x00\x00" + b"\x00" * 4), header=b"\x00" * 8),
    ])

    message = parse(build_root(recipient))

    prop = message.recipients[0].get_property("0c15")
    assert prop.kind is ValueKind.UNSUPPORTED
    assert prop.declared_size == 4
    assert any("0c15" in w.lower() for w in message.parse_warnings)


def test_file_attachment():
    payload = b"%PDF-1.4 fake document"
    message = parse(build_root(file_attachment_dir(0, "report.pdf", payload)))

    assert len(message.attachments) == 1
    attachment = message.attachments[0]
    assert isinstance(attachment, FileAttachment)
    assert attachment.filename == "report.pdf"
    assert attachment.size == len(payload)
    assert attachment.data == payload


def test_attachment_without_data_is_dropped():
    directory = DirectoryEntry("__attach_version1.0_#00000000", [
        unicode_stream("3707", "orphan.txt"),
    ])

    message = parse(build_root(directory))

    assert message.attachments == []


def test_nested_message_matches_independent_parse():
    inner = simple_message_dir("__substg1.0_3701000D", "Forwarded")
    attachment = DirectoryEntry("__attach_version1.0_#00000000", [
        unicode_stream("3001", "Forwarded"),
        inner,
    ])

    message = parse(build_root(unicode_stream("0037", "Outer"), attachment))

    assert len(message.attachments) == 1
    nested = message.attachments[0]
    assert isinstance(nested, NestedMessageAttachment)
    assert nested.message == parse(inner)
    assert nested.message.subject == "Forwarded"
    assert [r.name for r in nested.message.recipients] == ["Inner Recipient"]


def test_nested_messages_recurse():
    innermost = simple_message_dir("__substg1.0_3701000D", "Level 2")
    middle = DirectoryEntry("__substg1.0_3701000D", [
        unicode_stream("0037", "Level 1"),
        DirectoryEntry("__attach_version1.0_#00000000", [innermost]),
    ])

    message = parse(build_root(DirectoryEntry("__attach_version1.0_#00000000", [middle])))

    level1 = message.attachments[0].message
    assert level1.subject == "Level 1"
    assert level1.attachments[0].message.subject == "Level 2"


def test_mixed_attachment_directory_yields_both_entries():
    # nested message is appended when found, the file attachment after the
    # directory has been read
    attachment = DirectoryEntry("__attach_version1.0_#00000000", [
        unicode_stream("3707", "data.bin"),
        stream("37010102", b"12345"),
        simple_message_dir("__substg1.0_3701000D", "Embedded"),
    ])

    message = parse(build_root(attachment))

    assert [type(a) for a in message.attachments] == [NestedMessageAttachment, FileAttachment]
    assert message.attachments[1].filename == "data.bin"


def test_unsupported_property_does_not_block_siblings():
    root = build_root(
        stream("0E080003", b"\x10\x00\x00\x00"),
        unicode_stream("0037", "Still here"),
        recipient_dir(0, "Eve", "eve@example.com"),
    )

    message = parse(root)

    prop = message.get_property("0e08")
    assert prop.kind is ValueKind.UNSUPPORTED
    assert prop.declared_size == 4
    assert message.subject == "Still here"
    assert len(message.recipients) == 1
    assert len(message.parse_warnings) == 1


def test_plain_subdirectories_are_walked_into_the_same_message():
    nameid = DirectoryEntry("__nameid_version1.0", [stream("00020102", b"\x01\x02")])

    message = parse(build_root(nameid))

    assert message.get("0002") == b"\x01\x02"


def test_last_write_wins():
    first = datetime(1970, 1, 1, tzinfo=timezone.utc)
    root = build_root(
        unicode_stream("0037", "First"),
        unicode_stream("0037", "Second"),
        properties_stream(
            packed(0x00390040, struct.pack("<Q", FILETIME_1970)),
            packed(0x00390040, struct.pack("<Q", FILETIME_1970 + 10_000_000)),
        ),
    )

    message = parse(root)

    assert message.subject == "Second"
    assert (message.client_submit_time - first).total_seconds() == 1


def test_strict_mode_rejects_truncated_properties_stream():
    root = build_root(properties_stream(packed(0x0E070003, b"\x01\x00\x00\x00" + b"\x00" * 4), b"\x03"))
    config = ParserConfig(strict_property_streams=True)

    with pytest.raises(MalformedPropertyStreamError):
        MsgParser(config).parse(root)

    assert parse(root).properties["0e07"].declared_size == 4


def test_stream_read_failure_aborts_parse():
    def broken():
        raise OSError("bad sector")

    root = build_root(
        unicode_stream("0037", "Subject"),
        DirectoryEntry("__recip_version1.0_#00000000", [StreamEntry("__substg1.0_3001001F", 8, broken)]),
    )

    with pytest.raises(ContainerReadError):
        parse(root)


def test_streams_are_closed_after_reading():
    opened = []

    def opener():
        handle = io.BytesIO("Closed".encode("utf-16-le"))
        opened.append(handle)
        return handle

    parse(build_root(StreamEntry("__substg1.0_0037001F", 12, opener)))

    assert opened and all(handle.closed for handle in opened)


def test_converter_is_passed_to_nested_messages():
    config = ParserConfig()
    attachment = DirectoryEntry("__attach_version1.0_#00000000", [
        simple_message_dir("__substg1.0_3701000D", "Inner"),
    ])

    message = MsgParser(config).parse(build_root(attachment))

    assert message.rtf_converter is config.rtf_converter
    assert message.attachments[0].message.rtf_converter is config.rtf_converter


def test_parse_msg_rejects_non_ole_data():
    with pytest.raises(ContainerReadError):
        parse_msg(b"\x00" * 2048)


@pytest.mark.parametrize("tail", [b"\x00" * 1000, b"\xff" * 1000, bytes(range(256)) * 4])
def test_parse_msg_rejects_corrupt_compound_file(tail):
    with pytest.raises(ContainerReadError):
        parse_msg(olefile.MAGIC + tail)


@pytest.mark.parametrize("close_source", [True, False])
def test_parse_msg_close_source_option(close_source):
    source = io.BytesIO(b"not a compound file" * 100)

    with pytest.raises(ContainerReadError):
        parse_msg(source, ParserConfig(close_source=close_source))

    assert source.closed is close_source
