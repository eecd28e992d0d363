"""Error kinds raised by the .msg parser."""


class MsgParseError(Exception):
    """Base class for fatal parse failures."""


class ContainerReadError(MsgParseError):
    """The compound file or one of its streams could not be read."""


class MalformedPropertyStreamError(MsgParseError):
    """A packed properties stream ended inside a record."""
