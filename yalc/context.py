"""Utilities for tracing store operations.

Operations such as publish and add are wrapped in `trace_context` which emits
nested debug log lines. A `TraceCollector` may be installed to accumulate the
time spent per operation name, e.g. to print a summary at the end of a command.
"""

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Generator


_LOGGER = logging.getLogger(__name__)

# No public API
__all__: list[str] = []


@dataclass
class TraceCollector:
    """Accumulated timings of traced operations."""

    timings: dict[str, float] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)

    def add(self, name: str, duration: float) -> None:
        """Record a single run of the named operation."""
        self.timings[name] = self.timings.get(name, 0.0) + duration
        self.counts[name] = self.counts.get(name, 0) + 1


trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")
collector: contextvars.ContextVar[TraceCollector | None] = contextvars.ContextVar(
    "collector", default=None
)


@contextmanager
def get_trace_collector() -> Generator[TraceCollector, None, None]:
    """Install a collector for all operations traced within the context."""
    result = TraceCollector()
    token = collector.set(result)
    try:
        yield result
    finally:
        collector.reset(token)


@contextmanager
def trace_context(name: str) -> Generator[None, None, None]:
    """Trace a named operation, nested under any outer operation."""
    stack = trace.get([])
    token = trace.set(stack + [name])
    label = " > ".join(stack + [name])
    t1 = perf_counter()
    _LOGGER.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        t2 = perf_counter()
        trace.reset(token)
        if (active := collector.get()) is not None:
            active.add(name.split(" ")[0], t2 - t1)
        _LOGGER.debug("[Trace] < %s (%0.2fs)", label, (t2 - t1))
