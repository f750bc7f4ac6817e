"""Batch dispatch throttling."""

from __future__ import annotations

import time
from typing import Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")


class BatchThrottle:
    """Split work into batches and pause between them.

    The pause happens after a batch has been handed out and before the next one
    is, never after the last batch. ``sleep`` is injectable for tests.
    """

    def __init__(
        self,
        batch_size: int,
        batch_pause: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if batch_pause < 0:
            raise ValueError("batch_pause must be >= 0")
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self._sleep = sleep

    def batches(self, items: Iterable[T]) -> Iterator[list[T]]:
        batch: list[T] = []
        started = False
        for item in items:
            batch.append(item)
            if len(batch) == self.batch_size:
                if started:
                    self.pause()
                yield batch
                started = True
                batch = []
        if batch:
            if started:
                self.pause()
            yield batch

    def pause(self) -> None:
        if self.batch_pause > 0:
            self._sleep(self.batch_pause)


__all__ = ["BatchThrottle"]
