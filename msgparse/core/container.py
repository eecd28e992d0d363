"""Compound file (OLE2) access for Outlook .msg files."""

import io
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Callable, Optional, Union

import olefile

from .exceptions import ContainerReadError

logger = logging.getLogger(__name__)

MsgSource = Union[str, os.PathLike, bytes, BinaryIO]


@dataclass
class StreamEntry:
    """A named byte stream inside the container."""
    name: str
    size: int
    opener: Callable[[], BinaryIO] = field(repr=False, compare=False)

    @classmethod
    def from_bytes(cls, name: str, data: bytes) -> "StreamEntry":
        """Build an in-memory stream entry."""
        return cls(name, len(data), lambda: io.BytesIO(data))

    def open(self) -> BinaryIO:
        return self.opener()


@dataclass
class DirectoryEntry:
    """A named storage holding ordered child entries."""
    name: str
    children: list = field(default_factory=list)

    def add(self, entry) -> "DirectoryEntry":
        self.children.append(entry)
        return self


def read_stream(entry: StreamEntry) -> bytes:
    """Read a stream entry completely, releasing it afterwards."""
    try:
        with entry.open() as stream:
            return stream.read()
    except (OSError, ValueError, IndexError) as e:
        raise ContainerReadError(f"Failed to read stream {entry.name}: {e}") from e


def is_msg_file(file_path: Union[str, os.PathLike]) -> bool:
    """Check the OLE2 signature of a file on disk."""
    path = Path(file_path)
    if not path.is_file():
        return False
    with open(path, 'rb') as f:
        return f.read(len(olefile.MAGIC)) == olefile.MAGIC


class MsgContainer:
    """
    Reader for the compound file that holds a .msg message.

    Uses the olefile library and exposes the storage tree as
    DirectoryEntry / StreamEntry nodes.
    """

    def __init__(self, source: MsgSource, close_source: bool = True):
        """
        Initialize container reader.

        Args:
            source: Path, raw bytes or binary file object
            close_source: Close a caller-supplied file object on close()
        """
        self.source = source
        self.close_source = close_source
        self._ole: Optional[olefile.OleFileIO] = None
        self._root: Optional[DirectoryEntry] = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def open(self) -> DirectoryEntry:
        """
        Open the compound file and build its entry tree.

        Returns:
            Root DirectoryEntry
        """
        if self._root is not None:
            return self._root

        source = self.source
        if isinstance(source, (bytes, bytearray)):
            source = io.BytesIO(source)
        elif isinstance(source, os.PathLike):
            source = os.fspath(source)

        try:
            self._ole = olefile.OleFileIO(source)
            self._root = self._build_tree(self._ole.root, [])
        except Exception as e:
            # olefile raises ValueError and IndexError on corrupt sector tables
            logger.error(f"Failed to open compound file: {e}")
            self.close()
            raise ContainerReadError(f"Not a readable compound file: {e}") from e

        logger.info(f"Opened compound file with {len(self._root.children)} top-level entries")
        return self._root

    def close(self):
        """Close the compound file and, if requested, the caller's stream."""
        if self._ole is not None:
            try:
                self._ole.close()
            finally:
                self._ole = None
                self._root = None

        if self.close_source and hasattr(self.source, 'close'):
            self.source.close()

    @property
    def root(self) -> DirectoryEntry:
        if self._root is None:
            raise RuntimeError("Container not open")
        return self._root

    def _build_tree(self, ole_entry, path: list[str]) -> DirectoryEntry:
        directory = DirectoryEntry(ole_entry.name)

        for kid in ole_entry.kids:
            kid_path = path + [kid.name]
            if kid.entry_type == olefile.STGTY_STORAGE:
                directory.add(self._build_tree(kid, kid_path))
            elif kid.entry_type == olefile.STGTY_STREAM:
                directory.add(StreamEntry(kid.name, kid.size, self._stream_opener(kid_path)))
            else:
                logger.debug(f"Ignoring entry {kid.name!r} of type {kid.entry_type}")

        return directory

    def _stream_opener(self, path: list[str]) -> Callable[[], BinaryIO]:
        def opener():
            if self._ole is None:
                raise ContainerReadError("Container closed")
            return self._ole.openstream(path)
        return opener
