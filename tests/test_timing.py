from __future__ import annotations

import asyncio
import logging

import pytest

from moments_sync.logging_config import sync_run_id_var
from moments_sync.timing import TimingStats, measure_time


class TestTimingStats:
    def test_timing_stats_records_phases(self) -> None:
        stats = TimingStats()
        stats.record("pull", 1.5)
        stats.record("push", 2.3)

        assert stats.timings["pull"] == 1.5
        assert stats.timings["push"] == 2.3
        assert stats.total_time() > 0

    def test_timing_stats_log_summary(self, caplog) -> None:
        caplog.set_level(logging.INFO)
        stats = TimingStats()
        stats.record("push", 0.5)

        token = sync_run_id_var.set("run-42")
        try:
            stats.log_summary("quick sync")
        finally:
            sync_run_id_var.reset(token)

        assert "Sync timing summary for quick sync" in caplog.text
        assert "sync_run_id=run-42" in caplog.text
        assert "push=0.50s" in caplog.text

    def test_log_summary_includes_nonzero_counts(self, caplog) -> None:
        caplog.set_level(logging.INFO)
        stats = TimingStats()

        stats.log_summary("quick sync", {"events_created": 2, "events_skipped": 0})

        assert "| events_created=2" in caplog.text
        assert "events_skipped" not in caplog.text


class TestMeasureTime:
    @pytest.mark.asyncio
    async def test_measure_time_records_duration(self) -> None:
        stats = TimingStats()

        async with measure_time(stats, "pull"):
            await asyncio.sleep(0.01)

        assert stats.timings["pull"] >= 0.01

    @pytest.mark.asyncio
    async def test_measure_time_records_on_exception(self) -> None:
        stats = TimingStats()

        with pytest.raises(ValueError):
            async with measure_time(stats, "push"):
                await asyncio.sleep(0.01)
                raise ValueError("test error")

        assert stats.timings["push"] >= 0.01
