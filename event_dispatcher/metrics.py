from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class Counter:
    """Monotonic count."""

    value: int = 0

    def inc(self, n: int = 1) -> None:
        self.value += n


@dataclass
class Gauge:
    """Point-in-time value, overwritten on each set."""

    value: int = 0

    def set(self, v: int) -> None:
        self.value = v


class Timer:
    """Wall-clock timer in milliseconds.

    Starts nest: each ``stop`` closes the most recent ``start``, so a timed
    block re-entered from inside itself still records the outer duration.
    """

    def __init__(self) -> None:
        self.last_ms: float | None = None
        self._starts: list[float] = []

    def start(self) -> None:
        self._starts.append(time.perf_counter())

    def stop(self) -> float | None:
        if not self._starts:
            return None
        self.last_ms = (time.perf_counter() - self._starts.pop()) * 1000
        return self.last_ms

    @contextmanager
    def time(self) -> Iterator[None]:
        self.start()
        try:
            yield
        finally:
            self.stop()


@dataclass
class DispatchMetrics:
    """Counters owned by a single dispatcher instance."""

    emits_total: Counter = field(default_factory=Counter)
    handler_calls_total: Counter = field(default_factory=Counter)
    once_removals_total: Counter = field(default_factory=Counter)
    registered_handlers: Gauge = field(default_factory=Gauge)
    emit_ms: Timer = field(default_factory=Timer)

    def snapshot(self) -> dict[str, float | int | None]:
        return {
            "emits_total": self.emits_total.value,
            "handler_calls_total": self.handler_calls_total.value,
            "once_removals_total": self.once_removals_total.value,
            "registered_handlers": self.registered_handlers.value,
            "emit_ms": self.emit_ms.last_ms,
        }
