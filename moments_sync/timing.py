from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from .logging_config import get_sync_run_id

logger = logging.getLogger(__name__)


class TimingStats:
    def __init__(self) -> None:
        self.timings: dict[str, float] = {}
        self.start_time = time.perf_counter()

    def record(self, phase: str, duration: float) -> None:
        self.timings[phase] = duration

    def total_time(self) -> float:
        return time.perf_counter() - self.start_time

    def log_summary(self, label: str, counts: dict[str, int] | None = None) -> None:
        """Log phase durations, followed by the run's non-zero counters."""
        total = self.total_time()
        phases = " ".join(f"{k}={v:.2f}s" for k, v in sorted(self.timings.items()))
        outcome = " ".join(f"{k}={v}" for k, v in sorted((counts or {}).items()) if v)

        logger.info(
            "Sync timing summary for %s (sync_run_id=%s): total=%.2fs %s%s",
            label,
            get_sync_run_id(),
            total,
            phases,
            f" | {outcome}" if outcome else "",
        )


@asynccontextmanager
async def measure_time(stats: TimingStats, phase: str) -> AsyncIterator[None]:
    """Context manager to measure and record a sync phase duration."""
    start = time.perf_counter()
    try:
        yield
    finally:
        duration = time.perf_counter() - start
        stats.record(phase, duration)
        logger.debug("Phase '%s' took %.2fs", phase, duration)
