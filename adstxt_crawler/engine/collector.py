"""Single-writer aggregation of verification results."""

from __future__ import annotations

from threading import Lock
from typing import Callable, Iterable, Sequence

from .matcher import VerificationResult

GroupSink = Callable[[Sequence[VerificationResult]], None]


class ResultCollector:
    """Own the result sequence of a run.

    Each domain's results arrive as one group and are committed under a lock,
    so a group is never split, interleaved or committed twice.
    """

    def __init__(self, sinks: Iterable[GroupSink] | None = None) -> None:
        self._results: list[VerificationResult] = []
        self._domains: set[str] = set()
        self._sinks = list(sinks or [])
        self._lock = Lock()

    def add_sink(self, sink: GroupSink) -> None:
        with self._lock:
            self._sinks.append(sink)

    def add(self, group: Sequence[VerificationResult]) -> None:
        if not group:
            return
        domain = group[0].domain
        if any(result.domain != domain for result in group):
            raise ValueError("a result group must belong to a single domain")
        with self._lock:
            if domain in self._domains:
                raise ValueError(f"results for {domain} already collected")
            self._domains.add(domain)
            self._results.extend(group)
            for sink in self._sinks:
                sink(group)

    def results(self) -> tuple[VerificationResult, ...]:
        with self._lock:
            return tuple(self._results)

    def domains(self) -> list[str]:
        with self._lock:
            return sorted(self._domains)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)


__all__ = ["GroupSink", "ResultCollector"]
