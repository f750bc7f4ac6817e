"""Pytest configuration providing shared fixtures."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Iterable

import httpx
import pytest

from adstxt_crawler.config import (
    ConfigLocator,
    ConfigRepository,
    CrawlerConfig,
    HttpConfig,
    ReportConfig,
    StoreConfig,
    ThrottleConfig,
)
from adstxt_crawler.engine import Fetcher


@pytest.fixture(scope="session", autouse=True)
def _isolated_home(tmp_path_factory: pytest.TempPathFactory) -> Iterable[Path]:
    home = tmp_path_factory.mktemp("home")
    previous = os.environ.get("ADSTXT_CRAWLER_HOME")
    os.environ["ADSTXT_CRAWLER_HOME"] = str(home)
    yield home
    if previous is None:
        os.environ.pop("ADSTXT_CRAWLER_HOME", None)
    else:
        os.environ["ADSTXT_CRAWLER_HOME"] = previous


@pytest.fixture
def sample_config(tmp_path: Path) -> CrawlerConfig:
    return CrawlerConfig(
        http=HttpConfig(timeout=5.0),
        throttle=ThrottleConfig(batch_size=4, batch_pause=0.0),
        store=StoreConfig(
            reference_path=tmp_path / "ads.txt",
            domains_path=tmp_path / "domains.txt",
        ),
        report=ReportConfig(outputs_dir=tmp_path / "outputs"),
        enable_progress_bar=False,
    )


@pytest.fixture
def ads_txt_server() -> Callable[..., httpx.Client]:
    """Build an httpx client whose transport serves ads.txt bodies per host.

    ``bodies`` maps host to body text, an ``(status, body)`` tuple, or an
    exception instance raised for every request to that host.
    """

    def _builder(bodies: dict[str, Any], calls: list[str] | None = None) -> httpx.Client:
        def handler(request: httpx.Request) -> httpx.Response:
            if calls is not None:
                calls.append(str(request.url))
            payload = bodies.get(request.url.host)
            if payload is None:
                raise httpx.ConnectError("name resolution failed", request=request)
            if isinstance(payload, Exception):
                raise payload
            if isinstance(payload, tuple):
                status, text = payload
                return httpx.Response(status, text=text, request=request)
            return httpx.Response(200, text=payload, request=request)

        return httpx.Client(transport=httpx.MockTransport(handler))

    return _builder


@pytest.fixture
def fetcher_factory(ads_txt_server) -> Callable[..., Fetcher]:
    def _builder(bodies: dict[str, Any], calls: list[str] | None = None, **kwargs: Any) -> Fetcher:
        return Fetcher(HttpConfig(timeout=5.0), client=ads_txt_server(bodies, calls), **kwargs)

    return _builder


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("ADSTXT_CRAWLER_HOME", str(tmp_path))
    locator = ConfigLocator(project_root=tmp_path)
    repository = ConfigRepository(locator)
    yield repository
