"""Base exporter class for parsed message output formats."""

import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, Optional
from dataclasses import dataclass, field

from ..core.message import Message

logger = logging.getLogger(__name__)


@dataclass
class ExportProgress:
    """Progress information for export operation."""
    total_messages: int
    exported_messages: int
    failed_messages: int
    current_message: Optional[str] = None
    is_complete: bool = False
    error: Optional[str] = None
    written_files: list = field(default_factory=list)


@dataclass
class ExportOptions:
    """Options for export operation."""
    output_path: str
    include_attachments: bool = True
    overwrite_existing: bool = False


class BaseExporter(ABC):
    """
    Abstract base class for message exporters.

    Subclasses implement specific format writers (JSON, EML).
    """

    format_name: str = "Unknown"
    file_extension: str = ""

    def __init__(self, options: ExportOptions):
        """
        Initialize exporter.

        Args:
            options: Export configuration options
        """
        self.options = options
        self._progress = ExportProgress(0, 0, 0)

    def export(self, messages: Iterable[Message], total_count: int = 0) -> ExportProgress:
        """
        Export messages to the configured format.

        Args:
            messages: Parsed Message objects
            total_count: Total number of messages (for progress reporting)

        Returns:
            ExportProgress with final status
        """
        self._progress = ExportProgress(total_count, 0, 0)
        output_path = Path(self.options.output_path)

        try:
            self._prepare_output(output_path)

            for message in messages:
                self._progress.current_message = message.subject
                try:
                    written = self.export_message(message, output_path)
                    self._progress.written_files.append(written)
                    self._progress.exported_messages += 1
                except OSError as e:
                    logger.warning(f"Failed to export message {message.subject!r}: {e}")
                    self._progress.failed_messages += 1

        except OSError as e:
            logger.error(f"Export failed: {e}")
            self._progress.error = str(e)

        self._progress.is_complete = True
        return self._progress

    def export_message(self, message: Message, output_path: Path) -> Path:
        """
        Export a single message into a directory or onto a file path.

        Returns:
            Path of the written file
        """
        if output_path.is_dir():
            file_path = self._unique_path(output_path / self._generate_filename(message))
        else:
            file_path = output_path

        self._write_message(message, file_path)
        logger.debug(f"Exported: {file_path}")
        return file_path

    def _prepare_output(self, output_path: Path):
        """
        Prepare output location.

        A path without the format's extension is treated as a directory.
        """
        if output_path.suffix.lower() == self.file_extension:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        else:
            output_path.mkdir(parents=True, exist_ok=True)

    @abstractmethod
    def _write_message(self, message: Message, file_path: Path):
        """
        Write a single message.

        Args:
            message: Message to export
            file_path: Target file
        """
        pass

    def _unique_path(self, file_path: Path) -> Path:
        counter = 1
        base_path = file_path.with_suffix('')
        while file_path.exists() and not self.options.overwrite_existing:
            file_path = base_path.parent / f"{base_path.name}_{counter}{self.file_extension}"
            counter += 1
        return file_path

    def _generate_filename(self, message: Message) -> str:
        """Generate a filename for the message."""
        # Use date and subject for filename
        date_str = ""
        if message.date:
            date_str = message.date.strftime("%Y%m%d_%H%M%S")

        subject = self._sanitize_filename(message.subject or "no_subject")
        subject = subject[:50]  # Truncate long subjects

        if date_str:
            return f"{date_str}_{subject}{self.file_extension}"
        return f"{subject}{self.file_extension}"

    def _sanitize_filename(self, name: str) -> str:
        """Remove invalid characters from filename."""
        invalid_chars = r'[<>:"/\\|?*\x00-\x1f]'
        sanitized = re.sub(invalid_chars, '_', name)
        sanitized = sanitized.strip('. ')
        return sanitized or "unnamed"
