"""Message export format handlers."""

from .base import BaseExporter, ExportOptions, ExportProgress
from .eml_exporter import EMLExporter
from .json_exporter import JSONExporter

__all__ = ["BaseExporter", "ExportOptions", "ExportProgress", "EMLExporter", "JSONExporter"]
