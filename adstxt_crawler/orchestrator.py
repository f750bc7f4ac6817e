"""Verification run wiring together store, fetching, matching, export and delivery."""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .config import CrawlerConfig
from .engine import (
    BatchThrottle,
    Fetcher,
    Parser,
    Record,
    ResultCollector,
    VerificationResult,
    compare,
    failure,
    normalise_domain,
)
from .engine.collector import GroupSink
from .engine.exporter import BaseExporter, FileExporter, SQLiteExporter, render_csv
from .engine.parser import ParseSource
from .errors import FetchError
from .infra import ReferenceStore, SlackUploader, build_store
from .logging_conf import configure_logging
from .ui import ProgressReporter


@dataclass(slots=True)
class RunSummary:
    """Counters describing one completed verification run."""

    domains: int
    results: int
    matched: int
    unmatched: int
    failed: int
    report_path: Path | None = None
    slack_file_id: str | None = None

    @classmethod
    def from_results(
        cls, domains: int, results: Sequence[VerificationResult], report_path: Path | None = None
    ) -> "RunSummary":
        failed = sum(1 for result in results if result.failed)
        matched = sum(1 for result in results if result.matched)
        return cls(
            domains=domains,
            results=len(results),
            matched=matched,
            unmatched=len(results) - matched - failed,
            failed=failed,
            report_path=report_path,
        )


class Orchestrator:
    """Drive a verification run across many target domains.

    Each domain is one unit of work on the thread pool. A unit returns its whole
    result group; only the orchestrator thread commits groups to the collector.
    """

    def __init__(
        self,
        config: CrawlerConfig,
        base_dir: Path | None = None,
        fetcher: Fetcher | None = None,
        store: ReferenceStore | None = None,
        uploader: SlackUploader | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.base_dir = base_dir or Path.cwd()
        self.logger = configure_logging().bind(component="orchestrator")
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or Fetcher(self.config.http, clock=clock)
        self.store = store
        self.uploader = uploader
        self._sleep = sleep
        self._clock = clock

    def close(self) -> None:
        if self._owns_fetcher:
            self.fetcher.close()
        if self.uploader is not None:
            self.uploader.close()

    # ------------------------------------------------------------------
    def load_reference(self, source: ParseSource) -> tuple[Record, ...]:
        """Parse the publisher's own ads.txt; a ParseError aborts the run."""

        reference = tuple(Parser(strict=self.config.strict).parse(source))
        if not reference:
            self.logger.warning("empty_reference")
        return reference

    def verify(
        self,
        reference: Sequence[Record],
        domains: Iterable[str],
        batch_size: int | None = None,
        batch_pause: float | None = None,
        progress: ProgressReporter | None = None,
        sinks: Iterable[GroupSink] | None = None,
    ) -> list[VerificationResult]:
        reference = tuple(reference)
        targets = self._unique_targets(domains)
        throttle_cfg = self.config.throttle
        throttle = BatchThrottle(
            batch_size or throttle_cfg.batch_size,
            throttle_cfg.batch_pause if batch_pause is None else batch_pause,
            sleep=self._sleep,
        )
        workers = throttle_cfg.workers(throttle.batch_size)
        deadline = None
        if throttle_cfg.run_timeout is not None:
            deadline = self._clock() + throttle_cfg.run_timeout
        collector = ResultCollector(sinks)

        self.logger.info(
            "verify_started",
            domains=len(targets),
            reference_records=len(reference),
            batch_size=throttle.batch_size,
            batch_pause=throttle.batch_pause,
            workers=workers,
        )
        if progress is not None:
            progress.start(total=len(targets))
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="adstxt") as executor:
                futures: dict[Future[tuple[VerificationResult, ...]], str] = {}
                for index, batch in enumerate(throttle.batches(targets), start=1):
                    for domain in batch:
                        future = executor.submit(self._process_domain, domain, reference, deadline)
                        futures[future] = domain
                    self.logger.info(
                        "batch_dispatched", batch=index, size=len(batch), dispatched=len(futures)
                    )
                for future in as_completed(futures):
                    group = future.result()
                    collector.add(group)
                    if progress is not None:
                        progress.advance(futures[future], failed=bool(group) and group[0].failed)
        finally:
            if progress is not None:
                progress.close()

        results = list(collector.results())
        self.logger.info("verify_finished", domains=len(targets), results=len(results))
        return results

    def run(
        self,
        progress_enabled: bool = False,
        output_format: str | None = None,
        deliver: bool = True,
        batch_size: int | None = None,
        batch_pause: float | None = None,
    ) -> RunSummary:
        """Load inputs, verify every domain, export the report and deliver it."""

        store = self.store or build_store(self.config.store, self.base_dir)
        try:
            with store.open_reference() as stream:
                reference = self.load_reference(stream)
            domains = store.load_domains()
        finally:
            if self.store is None:
                store.close()

        run_tag = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        exporter = self._create_exporter(output_format or self.config.report.output_format, run_tag)
        progress = ProgressReporter(enabled=progress_enabled and self.config.enable_progress_bar)
        try:
            results = self.verify(
                reference,
                domains,
                batch_size=batch_size,
                batch_pause=batch_pause,
                progress=progress,
                sinks=[exporter.export_many],
            )
        finally:
            exporter.flush()
            exporter.close()

        summary = RunSummary.from_results(
            len(self._unique_targets(domains)), results, report_path=exporter.path
        )
        self.logger.info(
            "run_finished",
            domains=summary.domains,
            matched=summary.matched,
            unmatched=summary.unmatched,
            failed=summary.failed,
            report=str(summary.report_path),
        )

        slack = self.config.report.slack
        if deliver and slack.enabled:
            uploader = self.uploader or SlackUploader(slack)
            self.uploader = uploader
            summary.slack_file_id = uploader.upload(render_csv(results))
        return summary

    # ------------------------------------------------------------------
    def _process_domain(
        self, domain: str, reference: tuple[Record, ...], deadline: float | None
    ) -> tuple[VerificationResult, ...]:
        try:
            response = self.fetcher.fetch(domain, deadline=deadline)
        except FetchError as exc:
            self.logger.warning("domain_failed", domain=domain, error=exc.reason)
            return failure(domain, exc)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("domain_error", domain=domain, error=f"{type(exc).__name__}: {exc}")
            return failure(domain, f"{type(exc).__name__}: {exc}")
        group = compare(domain, reference, response.records)
        self.logger.debug(
            "domain_verified",
            domain=domain,
            url=response.url,
            status=response.status_code,
            records=len(response.records),
            matched=sum(1 for result in group if result.matched),
        )
        return group

    @staticmethod
    def _unique_targets(domains: Iterable[str]) -> list[str]:
        targets: list[str] = []
        seen: set[str] = set()
        for entry in domains:
            if not entry or not entry.strip():
                continue
            domain = normalise_domain(entry) or entry.strip()
            if domain not in seen:
                seen.add(domain)
                targets.append(domain)
        return targets

    def _create_exporter(self, output_format: str, run_tag: str) -> BaseExporter:
        outputs_dir = self.config.report.outputs_dir
        if not outputs_dir.is_absolute():
            outputs_dir = self.base_dir / outputs_dir
        outputs_dir.mkdir(parents=True, exist_ok=True)
        if output_format in {"csv", "json"}:
            return FileExporter(outputs_dir, output_format, run_tag=run_tag)
        if output_format == "sqlite":
            return SQLiteExporter(outputs_dir / "adstxt-results.db", run_tag=run_tag)
        raise ValueError(f"Unsupported output format: {output_format}")


__all__ = ["Orchestrator", "RunSummary"]
