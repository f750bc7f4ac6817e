"""Exporter Service Provider Interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable

from ..matcher import VerificationResult


class BaseExporter(ABC):
    """Uniform exporter contract enabling plug-and-play outputs."""

    path: Path | None = None

    @abstractmethod
    def export(self, result: VerificationResult) -> None:
        """Persist a single verification result."""

    def export_many(self, results: Iterable[VerificationResult]) -> None:
        for result in results:
            self.export(result)

    @abstractmethod
    def flush(self) -> None:
        """Flush buffered data to destination."""

    @abstractmethod
    def close(self) -> None:
        """Release underlying resources."""


__all__ = ["BaseExporter"]
