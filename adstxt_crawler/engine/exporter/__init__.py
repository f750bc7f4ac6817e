"""Exporter SPI and implementations."""

from .base import BaseExporter
from .file_exporter import CSV_HEADER, FileExporter, render_csv
from .sqlite_exporter import SQLiteExporter

__all__ = ["BaseExporter", "CSV_HEADER", "FileExporter", "SQLiteExporter", "render_csv"]
