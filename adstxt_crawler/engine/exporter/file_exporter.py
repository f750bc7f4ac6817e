"""File based exporter supporting CSV and JSON lines."""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from ..matcher import VerificationResult
from .base import BaseExporter

CSV_HEADER = ("domain", "exchange", "status")


def _csv_row(result: VerificationResult) -> tuple[str, str, str]:
    return result.domain, result.exchange, result.status


def render_csv(results: Iterable[VerificationResult]) -> str:
    """Render the report as CSV text with a ``domain,exchange,status`` header."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for result in results:
        writer.writerow(_csv_row(result))
    return buffer.getvalue()


class FileExporter(BaseExporter):
    """Write verification results to a local report file."""

    def __init__(
        self, output_dir: Path, fmt: str = "csv", run_tag: str | None = None, prefix: str = "adstxt-report"
    ) -> None:
        if fmt not in ("csv", "json"):
            raise ValueError(f"Unsupported file format: {fmt}")
        self.output_dir = output_dir
        self.format = fmt
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path = self.output_dir / f"{prefix}-{self.run_tag}.{self._extension}"
        self._file = self.path.open("w", encoding="utf-8", newline="")
        self._csv_writer = None
        if self.format == "csv":
            self._csv_writer = csv.writer(self._file, lineterminator="\n")
            self._csv_writer.writerow(CSV_HEADER)

    @property
    def _extension(self) -> str:
        return "jsonl" if self.format == "json" else "csv"

    def export(self, result: VerificationResult) -> None:
        if self._csv_writer is not None:
            self._csv_writer.writerow(_csv_row(result))
        else:
            json.dump(result.to_dict(), self._file, ensure_ascii=False)
            self._file.write("\n")

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()


__all__ = ["CSV_HEADER", "FileExporter", "render_csv"]
