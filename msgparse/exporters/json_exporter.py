"""JSON summary exporter."""

import json
import logging
from pathlib import Path

from ..core.message import Message
from .base import BaseExporter

logger = logging.getLogger(__name__)


class JSONExporter(BaseExporter):
    """
    Exports a JSON summary per message: date, subject, sender, recipients,
    the three bodies and the attachment list.
    """

    format_name = "JSON"
    file_extension = ".json"

    def _write_message(self, message: Message, file_path: Path):
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(self.render(message))

    @staticmethod
    def render(message: Message) -> str:
        return json.dumps(message.to_dict(), indent=4, ensure_ascii=False)
