"""Tests for RTF body handling."""

from compressed_rtf import compress

from msgparse.core.rtf import SimpleRtfToHtmlConverter, decompress_rtf

ENCAPSULATED = (
    r"{\rtf1\ansi\ansicpg1252\fromhtml1 {\fonttbl{\f0 Arial;}}"
    r"{\*\htmltag64 <html>}{\*\htmltag64 <body>}"
    r"\htmlrtf {\htmlrtf0 Hello {\*\htmltag84 <b>}world{\*\htmltag92 </b>}\htmlrtf }\htmlrtf0 "
    r"{\*\htmltag72 </body>}{\*\htmltag64 </html>}}"
)


def test_encapsulated_html_is_restored():
    html = SimpleRtfToHtmlConverter().convert(ENCAPSULATED)

    assert html == "<html><body>Hello <b>world</b></body></html>"


def test_plain_rtf_becomes_paragraphs():
    rtf = r"{\rtf1\ansi{\fonttbl{\f0 Arial;}}\f0 Hello\par World & more}"

    html = SimpleRtfToHtmlConverter().convert(rtf)

    assert html == "<html><body>Hello<br/>\nWorld &amp; more</body></html>"


def test_hex_escapes_use_code_page():
    html = SimpleRtfToHtmlConverter().convert(r"{\rtf1\ansi caf\'e9}")

    assert html == "<html><body>café</body></html>"


def test_unicode_escape_skips_fallback_character():
    html = SimpleRtfToHtmlConverter().convert(r"{\rtf1\ansi\uc1 \u8364? euro}")

    assert html == "<html><body>€ euro</body></html>"


def test_ignorable_destinations_are_dropped():
    rtf = r"{\rtf1\ansi{\*\generator Riched20;}{\info{\author Someone}}Body text}"

    assert SimpleRtfToHtmlConverter().convert(rtf) == "<html><body>Body text</body></html>"


def test_decompress_rtf():
    rtf = b"{\\rtf1\\ansi\\deff0 {\\fonttbl{\\f0 Arial;}}Text\\par}"

    assert decompress_rtf(compress(rtf)) == rtf.decode("latin-1")


def test_non_breaking_controls_survive():
    html = SimpleRtfToHtmlConverter().convert(r"{\rtf1\ansi co\_op and 5\~kg}")

    assert html == "<html><body>co\u2011op and 5\u00a0kg</body></html>"


def test_encapsulated_hex_escapes_and_paragraphs():
    rtf = (
        r"{\rtf1\ansi\ansicpg1252\fromhtml1 "
        r"{\*\htmltag64 <p>}caf\'e9\htmlrtf \par \htmlrtf0 {\*\htmltag72 </p>}}"
    )

    assert SimpleRtfToHtmlConverter().convert(rtf) == "<p>café</p>"
