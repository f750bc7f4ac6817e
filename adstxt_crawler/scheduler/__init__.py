"""Scheduling of recurring verification runs."""

from .apsched_adapter import APSchedulerAdapter

__all__ = ["APSchedulerAdapter"]
