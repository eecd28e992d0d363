"""RTF body handling: compressed RTF and RTF to HTML conversion."""

import codecs
import html
import logging
import re
from abc import ABC, abstractmethod

from compressed_rtf import decompress
from striprtf.striprtf import rtf_to_text

logger = logging.getLogger(__name__)

DEFAULT_CODEPAGE = "cp1252"


def decompress_rtf(data: bytes) -> str:
    """Decompress a PR_RTF_COMPRESSED blob into RTF source text."""
    return decompress(data).decode('latin-1')


class RtfToHtmlConverter(ABC):
    """Converts an RTF message body to HTML."""

    @abstractmethod
    def convert(self, rtf: str) -> str:
        pass


_ANSICPG = re.compile(r"\\ansicpg(\d+)")
# striprtf drops the non-breaking hyphen symbol; rewrite it as \u8209
_NB_HYPHEN = re.compile(r"\\\\|\\_")

# Tokens needed to lift \htmltag groups out of HTML-encapsulated RTF
_TOKEN = re.compile(
    r"\\'(?P<hex>[0-9a-fA-F]{2})"
    r"|\\(?P<word>[a-zA-Z]+)(?P<param>-?\d+)? ?"
    r"|\\(?P<symbol>[^a-zA-Z])"
    r"|(?P<open>\{)"
    r"|(?P<close>\})"
    r"|[\r\n]+"
    r"|(?P<text>[^\\{}\r\n]+)"
)

_ENCAPSULATED_CHARS = {"par": "\r\n", "line": "\r\n", "tab": "\t"}


def _codepage(rtf: str) -> str:
    match = _ANSICPG.search(rtf)
    if not match:
        return DEFAULT_CODEPAGE
    try:
        return codecs.lookup(f"cp{match.group(1)}").name
    except LookupError:
        logger.debug(f"Unknown RTF code page {match.group(1)}, using {DEFAULT_CODEPAGE}")
        return DEFAULT_CODEPAGE


class SimpleRtfToHtmlConverter(RtfToHtmlConverter):
    """
    Default RTF to HTML conversion.

    Bodies generated from HTML (\\fromhtml1) are de-encapsulated back to
    the original markup. Any other RTF is reduced to text with striprtf
    and wrapped in a plain HTML document.
    """

    def convert(self, rtf: str) -> str:
        codepage = _codepage(rtf)

        if "\\fromhtml" in rtf:
            logger.debug("De-encapsulating HTML from RTF body")
            return self._deencapsulate(rtf, codepage)

        rtf = _NB_HYPHEN.sub(lambda m: m.group() if m.group() == "\\\\" else r"\u8209?", rtf)
        text = rtf_to_text(rtf, encoding=codepage)
        paragraphs = html.escape(text.strip()).replace("\n", "<br/>\n")
        return f"<html><body>{paragraphs}</body></html>"

    @staticmethod
    def _deencapsulate(rtf: str, codepage: str) -> str:
        """
        Keep \\*\\htmltag group content and text outside \\htmlrtf blocks.

        Every other destination group is dropped.
        """
        out: list[str] = []
        # (skip, in_htmltag, suppressed) per group
        stack: list[tuple] = []
        skip = in_tag = suppressed = star = False
        skip_chars, uc = 0, 1

        def emit(chunk: str):
            if not skip and (in_tag or not suppressed):
                out.append(chunk)

        for m in _TOKEN.finditer(rtf):
            kind = m.lastgroup

            if kind == "open":
                stack.append((skip, in_tag, suppressed))
                star = False
            elif kind == "close":
                skip, in_tag, suppressed = stack.pop() if stack else (False, False, False)
            elif kind == "symbol":
                symbol = m.group("symbol")
                if symbol == "*":
                    star = True
                elif skip_chars:
                    skip_chars -= 1
                elif symbol in "\\{}":
                    emit(symbol)
                elif symbol == "~":
                    emit("\u00a0")
                elif symbol == "_":
                    emit("\u2011")
            elif kind == "hex":
                if skip_chars:
                    skip_chars -= 1
                else:
                    emit(bytes([int(m.group("hex"), 16)]).decode(codepage, errors="replace"))
            elif kind == "text":
                text = m.group("text")
                drop = min(skip_chars, len(text))
                skip_chars -= drop
                if text[drop:]:
                    emit(text[drop:])
            elif kind == "word":
                word, param = m.group("word"), m.group("param")
                if star:
                    star = False
                    if word == "htmltag":
                        in_tag = True
                    else:
                        skip = True
                elif word in ("fonttbl", "colortbl", "stylesheet", "info", "pict"):
                    skip = True
                elif word == "htmlrtf":
                    suppressed = param != "0"
                elif word == "uc" and param:
                    uc = int(param)
                elif word == "u" and param:
                    code = int(param)
                    emit(chr(code + 65536 if code < 0 else code))
                    skip_chars = uc
                elif word in _ENCAPSULATED_CHARS:
                    emit(_ENCAPSULATED_CHARS[word])

        return "".join(out)
