"""Pydantic models describing a verification run."""

from __future__ import annotations

import os
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = "adstxt-crawler/0.1 (+https://iabtechlab.com/ads-txt/)"


class ScheduleType(str, Enum):
    """Scheduler modes for recurring runs."""

    CRON = "cron"
    INTERVAL = "interval"
    ONCE = "once"


class StoreType(str, Enum):
    """Where the reference file and domain list are read from."""

    FILE = "file"
    MONGODB = "mongodb"


class ScheduleConfig(BaseModel):
    """Configuration describing when the verification job should run."""

    type: ScheduleType = Field(default=ScheduleType.CRON)
    value: Any = Field(
        default="0 6 * * *",
        description="Cron expression, interval seconds or ISO datetime, depending on type.",
    )

    @model_validator(mode="after")
    def _validate_value(self) -> "ScheduleConfig":
        if self.type is ScheduleType.CRON and not isinstance(self.value, str):
            raise ValueError("Cron schedule requires string expression")
        if self.type is ScheduleType.INTERVAL and not isinstance(self.value, (int, float, dict)):
            raise ValueError("Interval schedule requires seconds (int/float) or kwargs dict")
        if (
            self.type is ScheduleType.ONCE
            and self.value is not None
            and not isinstance(self.value, str)
        ):
            raise ValueError("Once schedule expects ISO datetime string or null")
        return self


class HttpConfig(BaseModel):
    """Settings of the HTTP client shared by every fetch."""

    timeout: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = True
    max_connections: int = 100

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be > 0")
        return value

    @field_validator("max_connections")
    @classmethod
    def _positive_connections(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_connections must be >= 1")
        return value


class ThrottleConfig(BaseModel):
    """Batch dispatch policy bounding the outbound request rate."""

    batch_size: int = 100
    batch_pause: float = 30.0
    max_workers: int | None = None
    run_timeout: float | None = None

    @model_validator(mode="after")
    def _validate_limits(self) -> "ThrottleConfig":
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.batch_pause < 0:
            raise ValueError("batch_pause must be >= 0")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ValueError("run_timeout must be > 0")
        return self

    def workers(self, batch_size: int | None = None) -> int:
        """Pool size: ``max_workers`` when set, otherwise one worker per batch slot."""

        return self.max_workers or batch_size or self.batch_size


class StoreConfig(BaseModel):
    """Location of the publisher's reference ads.txt and the target domains."""

    type: StoreType = StoreType.FILE
    reference_path: Path = Field(default=Path("data/ads.txt"))
    domains_path: Path = Field(default=Path("data/domains.txt"))
    mongo_url: str = Field(default_factory=lambda: os.environ.get("MONGODB_URL", ""))
    database: str = "adstxt"
    collection: str = "adstxt"
    document_id: str = "ads_txt_file"

    @field_validator("reference_path", "domains_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _validate_mongo(self) -> "StoreConfig":
        if self.type is StoreType.MONGODB and not self.mongo_url:
            raise ValueError("mongodb store requires mongo_url (or MONGODB_URL)")
        return self


class SlackConfig(BaseModel):
    """Slack delivery of the CSV report."""

    enabled: bool = False
    token: str = Field(default_factory=lambda: os.environ.get("SLACK_TOKEN", ""), repr=False)
    channel_id: str = ""
    title: str = "Today's report"
    filename: str = "adstxt-report.csv"

    @model_validator(mode="after")
    def _validate_credentials(self) -> "SlackConfig":
        if self.enabled and not (self.token and self.channel_id):
            raise ValueError("Slack delivery requires token and channel_id")
        return self


class ReportConfig(BaseModel):
    """Where verification results are written."""

    output_format: Literal["csv", "json", "sqlite"] = "csv"
    outputs_dir: Path = Field(default=Path("data/outputs"))
    slack: SlackConfig = Field(default_factory=SlackConfig)

    @field_validator("outputs_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path:
        return Path(value)


class CrawlerConfig(BaseModel):
    """Top-level configuration for a verification run."""

    http: HttpConfig = Field(default_factory=HttpConfig)
    throttle: ThrottleConfig = Field(default_factory=ThrottleConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
    strict: bool = False
    enable_progress_bar: bool = True


__all__ = [
    "CrawlerConfig",
    "HttpConfig",
    "ReportConfig",
    "ScheduleConfig",
    "ScheduleType",
    "SlackConfig",
    "StoreConfig",
    "StoreType",
    "ThrottleConfig",
]
