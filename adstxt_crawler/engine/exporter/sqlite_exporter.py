"""Export verification results to a SQLite table."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path

from ..matcher import VerificationResult
from .base import BaseExporter


class SQLiteExporter(BaseExporter):
    """Persist one row per verification result, tagged with the run."""

    def __init__(self, path: Path, table: str = "verification_results", run_tag: str | None = None) -> None:
        self.path = path
        self.table = table
        self.run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                run_tag TEXT NOT NULL,
                domain TEXT NOT NULL,
                exchange_domain TEXT NOT NULL,
                publisher_account_id TEXT NOT NULL,
                matched INTEGER NOT NULL,
                fetch_error TEXT
            )
            """
        )
        self.conn.commit()

    def export(self, result: VerificationResult) -> None:
        self.conn.execute(
            f"INSERT INTO {self.table}(run_tag, domain, exchange_domain, publisher_account_id, matched, fetch_error)"
            " VALUES (?, ?, ?, ?, ?, ?)",
            (
                self.run_tag,
                result.domain,
                result.exchange_domain,
                result.publisher_account_id,
                int(result.matched),
                result.fetch_error,
            ),
        )

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        self.conn.close()


__all__ = ["SQLiteExporter"]
