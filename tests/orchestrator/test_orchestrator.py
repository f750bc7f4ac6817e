from __future__ import annotations

import csv
import threading
from pathlib import Path

import httpx
import pytest

from adstxt_crawler.config import CrawlerConfig, SlackConfig
from adstxt_crawler.engine.fetcher import Fetcher, FetchResponse
from adstxt_crawler.engine.parser import Parser, Record
from adstxt_crawler.errors import FetchError, InvalidRecordError
from adstxt_crawler.infra.store import FileStore
from adstxt_crawler.orchestrator import Orchestrator, RunSummary

REFERENCE_TEXT = "google.com, pub-1, DIRECT\nappnexus.com, 1234, RESELLER\n"


class StubFetcher:
    """Serve records per domain; domains in ``failing`` raise FetchError."""

    def __init__(self, records: dict[str, list[Record]] | None = None, failing: set[str] | None = None):
        self.records = records or {}
        self.failing = failing or set()
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def fetch(self, domain: str, deadline: float | None = None) -> FetchResponse:
        with self._lock:
            self.calls.append(domain)
        if domain in self.failing:
            raise FetchError(domain, f"http://{domain}/ads.txt", "ConnectError: refused")
        if domain == "explode.test":
            raise RuntimeError("boom")
        return FetchResponse(domain, f"https://{domain}/ads.txt", 200, self.records.get(domain, []))

    def close(self) -> None:
        return


class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _reference() -> list[Record]:
    return Parser().parse(REFERENCE_TEXT)


@pytest.mark.parametrize("count", [1, 10, 1000])
def test_verify_emits_one_result_per_domain_and_record(sample_config: CrawlerConfig, count: int) -> None:
    sample_config.throttle.batch_size = 50
    domains = [f"site{i}.test" for i in range(count)]
    orchestrator = Orchestrator(sample_config, fetcher=StubFetcher(), sleep=FakeSleep())
    results = orchestrator.verify(_reference(), domains)
    assert len(results) == count * 2
    triples = {(r.domain, r.exchange_domain, r.publisher_account_id) for r in results}
    assert len(triples) == len(results)
    assert {r.domain for r in results} == set(domains)


def test_verify_keeps_each_domain_group_contiguous(sample_config: CrawlerConfig) -> None:
    domains = [f"site{i}.test" for i in range(40)]
    orchestrator = Orchestrator(sample_config, fetcher=StubFetcher(), sleep=FakeSleep())
    results = orchestrator.verify(_reference(), domains)
    for offset in range(0, len(results), 2):
        assert results[offset].domain == results[offset + 1].domain
        assert results[offset].exchange_domain == "google.com"
        assert results[offset + 1].exchange_domain == "appnexus.com"


def test_verify_isolates_failures(sample_config: CrawlerConfig) -> None:
    fetcher = StubFetcher(
        records={"good.test": [Record("google.com", "pub-1")]},
        failing={"down.test"},
    )
    orchestrator = Orchestrator(sample_config, fetcher=fetcher, sleep=FakeSleep())
    results = orchestrator.verify(_reference(), ["good.test", "down.test", "explode.test"])
    by_domain: dict[str, list] = {}
    for result in results:
        by_domain.setdefault(result.domain, []).append(result)
    assert [r.status for r in by_domain["good.test"]] == ["1", "0"]
    assert len(by_domain["down.test"]) == 1
    assert by_domain["down.test"][0].status == "failed"
    assert by_domain["down.test"][0].exchange == "ConnectError: refused"
    assert by_domain["explode.test"][0].fetch_error == "RuntimeError: boom"


def test_verify_dedupes_and_skips_blank_domains(sample_config: CrawlerConfig) -> None:
    fetcher = StubFetcher()
    orchestrator = Orchestrator(sample_config, fetcher=fetcher, sleep=FakeSleep())
    results = orchestrator.verify(
        _reference(), ["a.test", "", "  ", "https://A.test/", "b.test", "a.test"]
    )
    assert sorted(fetcher.calls) == ["a.test", "b.test"]
    assert len(results) == 4


def test_verify_pauses_between_batches(sample_config: CrawlerConfig) -> None:
    sleep = FakeSleep()
    orchestrator = Orchestrator(sample_config, fetcher=StubFetcher(), sleep=sleep)
    orchestrator.verify(_reference(), [f"s{i}.test" for i in range(10)], batch_size=4, batch_pause=30.0)
    assert sleep.calls == [30.0, 30.0]


def test_verify_with_empty_reference_fetches_but_emits_nothing(sample_config: CrawlerConfig) -> None:
    fetcher = StubFetcher()
    orchestrator = Orchestrator(sample_config, fetcher=fetcher, sleep=FakeSleep())
    assert orchestrator.verify([], ["a.test"]) == []
    assert fetcher.calls == ["a.test"]


def test_verify_end_to_end_over_http(sample_config: CrawlerConfig, fetcher_factory) -> None:
    fetcher = fetcher_factory(
        {
            "pub.test": "GOOGLE.com , PUB-1 , reseller # comment\n",
            "slow.test": httpx.ConnectTimeout("timed out"),
        }
    )
    orchestrator = Orchestrator(sample_config, fetcher=fetcher, sleep=FakeSleep())
    results = orchestrator.verify(_reference(), ["pub.test", "slow.test"])
    pub = [r for r in results if r.domain == "pub.test"]
    slow = [r for r in results if r.domain == "slow.test"]
    assert [r.matched for r in pub] == [True, False]
    assert len(slow) == 1 and slow[0].failed
    assert "ConnectTimeout" in slow[0].fetch_error


def test_verify_reports_fetch_past_deadline_as_failure(sample_config: CrawlerConfig, fetcher_factory) -> None:
    sample_config.throttle.run_timeout = 5.0
    ticks = iter([0.0] + [100.0] * 50)
    clock = lambda: next(ticks)  # noqa: E731
    fetcher: Fetcher = fetcher_factory({"pub.test": "google.com, pub-1"}, clock=clock)
    orchestrator = Orchestrator(sample_config, fetcher=fetcher, sleep=FakeSleep(), clock=clock)
    results = orchestrator.verify(_reference(), ["pub.test"])
    assert len(results) == 1
    assert "deadline" in results[0].fetch_error


def test_load_reference_strict_rejects_unknown_type(sample_config: CrawlerConfig) -> None:
    sample_config.strict = True
    orchestrator = Orchestrator(sample_config, fetcher=StubFetcher())
    with pytest.raises(InvalidRecordError):
        orchestrator.load_reference("google.com, pub-1, DIRECT\nfoo.com, 1, syndicated\n")


def _seed(tmp_path: Path, domains: list[str]) -> FileStore:
    store = FileStore(tmp_path / "ads.txt", tmp_path / "domains.txt")
    store.seed(REFERENCE_TEXT, domains)
    return store


def test_run_writes_csv_report(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    _seed(tmp_path, ["good.test", "down.test"])
    fetcher = StubFetcher(records={"good.test": [Record("appnexus.com", "1234")]}, failing={"down.test"})
    orchestrator = Orchestrator(sample_config, base_dir=tmp_path, fetcher=fetcher, sleep=FakeSleep())
    summary = orchestrator.run()

    assert isinstance(summary, RunSummary)
    assert (summary.domains, summary.results) == (2, 3)
    assert (summary.matched, summary.unmatched, summary.failed) == (1, 1, 1)
    assert summary.slack_file_id is None
    assert summary.report_path is not None and summary.report_path.suffix == ".csv"
    rows = list(csv.reader(summary.report_path.read_text(encoding="utf-8").splitlines()))
    assert rows[0] == ["domain", "exchange", "status"]
    assert sorted(rows[1:]) == [
        ["down.test", "ConnectError: refused", "failed"],
        ["good.test", "appnexus.com, 1234", "1"],
        ["good.test", "google.com, pub-1", "0"],
    ]


def test_run_sqlite_format(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    _seed(tmp_path, ["good.test"])
    orchestrator = Orchestrator(sample_config, base_dir=tmp_path, fetcher=StubFetcher(), sleep=FakeSleep())
    summary = orchestrator.run(output_format="sqlite")
    assert summary.report_path is not None and summary.report_path.name == "adstxt-results.db"


def test_run_aborts_on_unreadable_reference(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    from adstxt_crawler.errors import StoreError

    fetcher = StubFetcher()
    orchestrator = Orchestrator(sample_config, base_dir=tmp_path, fetcher=fetcher)
    with pytest.raises(StoreError):
        orchestrator.run()
    assert fetcher.calls == []


def test_run_aborts_before_fetching_on_strict_parse_error(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    sample_config.strict = True
    store = FileStore(tmp_path / "ads.txt", tmp_path / "domains.txt")
    store.seed("google.com, pub-1, syndicated\n", ["a.test"])
    fetcher = StubFetcher()
    orchestrator = Orchestrator(sample_config, base_dir=tmp_path, fetcher=fetcher)
    with pytest.raises(InvalidRecordError):
        orchestrator.run()
    assert fetcher.calls == []


def test_run_delivers_to_slack_when_enabled(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    _seed(tmp_path, ["good.test"])
    sample_config.report.slack = SlackConfig(enabled=True, token="xoxb", channel_id="C1")

    class StubUploader:
        def __init__(self) -> None:
            self.uploads: list[str] = []

        def upload(self, content: str, filename: str | None = None, title: str | None = None) -> str:
            self.uploads.append(content)
            return "F42"

        def close(self) -> None:
            return

    uploader = StubUploader()
    orchestrator = Orchestrator(
        sample_config, base_dir=tmp_path, fetcher=StubFetcher(), uploader=uploader, sleep=FakeSleep()
    )
    summary = orchestrator.run()
    assert summary.slack_file_id == "F42"
    assert uploader.uploads[0].startswith("domain,exchange,status\n")

    skipped = orchestrator.run(deliver=False)
    assert skipped.slack_file_id is None
    assert len(uploader.uploads) == 1


@pytest.mark.parametrize(
    ("max_workers", "batch_size", "expected"),
    [(None, None, 4), (None, 7, 7), (2, 7, 2)],
)
def test_verify_pool_size_follows_throttle_config(
    sample_config: CrawlerConfig,
    monkeypatch: pytest.MonkeyPatch,
    max_workers: int | None,
    batch_size: int | None,
    expected: int,
) -> None:
    from concurrent.futures import ThreadPoolExecutor

    sizes: list[int] = []

    class RecordingExecutor(ThreadPoolExecutor):
        def __init__(self, max_workers: int, **kwargs) -> None:
            sizes.append(max_workers)
            super().__init__(max_workers=max_workers, **kwargs)

    monkeypatch.setattr("adstxt_crawler.orchestrator.ThreadPoolExecutor", RecordingExecutor)
    sample_config.throttle.max_workers = max_workers
    orchestrator = Orchestrator(sample_config, fetcher=StubFetcher(), sleep=FakeSleep())
    orchestrator.verify(_reference(), ["a.test", "b.test"], batch_size=batch_size)
    assert sizes == [expected]


def test_run_aborts_on_reference_with_invalid_utf8(sample_config: CrawlerConfig, tmp_path: Path) -> None:
    from adstxt_crawler.errors import ParseError

    (tmp_path / "ads.txt").write_bytes(b"google.com, pub-1, DIRECT\nex\xff.com, p1, DIRECT\n")
    (tmp_path / "domains.txt").write_text("a.test\n", encoding="utf-8")
    fetcher = StubFetcher()
    orchestrator = Orchestrator(sample_config, base_dir=tmp_path, fetcher=fetcher)
    with pytest.raises(ParseError):
        orchestrator.run()
    assert fetcher.calls == []
