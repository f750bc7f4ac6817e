"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    CrawlerConfig,
    HttpConfig,
    ReportConfig,
    ScheduleConfig,
    ScheduleType,
    SlackConfig,
    StoreConfig,
    StoreType,
    ThrottleConfig,
)

__all__ = [
    "ConfigLocator",
    "ConfigRepository",
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
