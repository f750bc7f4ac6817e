"""Comparison of a domain's records against the reference set."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, Sequence

from ..errors import FetchError
from .parser import Record

STATUS_MATCHED = "1"
STATUS_MISSING = "0"
STATUS_FAILED = "failed"


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Outcome for one (domain, reference record) pair, or one failed domain."""

    domain: str
    exchange_domain: str
    publisher_account_id: str
    matched: bool = False
    fetch_error: str | None = None

    @property
    def failed(self) -> bool:
        return self.fetch_error is not None

    @property
    def status(self) -> str:
        if self.failed:
            return STATUS_FAILED
        return STATUS_MATCHED if self.matched else STATUS_MISSING

    @property
    def exchange(self) -> str:
        if self.failed:
            return self.fetch_error or ""
        return f"{self.exchange_domain}, {self.publisher_account_id}"

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["status"] = self.status
        return payload


def match(candidates: Iterable[Record], record: Record) -> bool:
    """Return True when any candidate shares the reference record's match key."""

    return any(candidate.matches(record) for candidate in candidates)


def compare(
    domain: str, reference: Sequence[Record], candidates: Iterable[Record]
) -> tuple[VerificationResult, ...]:
    """Build one result per reference record, in reference order."""

    keys = {candidate.key for candidate in candidates}
    return tuple(
        VerificationResult(
            domain=domain,
            exchange_domain=record.exchange_domain,
            publisher_account_id=record.publisher_account_id,
            matched=record.key in keys,
        )
        for record in reference
    )


def failure(domain: str, error: FetchError | str) -> tuple[VerificationResult, ...]:
    reason = error.reason if isinstance(error, FetchError) else str(error)
    return (
        VerificationResult(
            domain=domain,
            exchange_domain="",
            publisher_account_id="",
            matched=False,
            fetch_error=reason,
        ),
    )


__all__ = [
    "STATUS_FAILED",
    "STATUS_MATCHED",
    "STATUS_MISSING",
    "VerificationResult",
    "compare",
    "failure",
    "match",
]
