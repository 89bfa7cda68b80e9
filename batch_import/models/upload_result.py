from __future__ import annotations

import statistics
from dataclasses import dataclass

"""Commit outcome models.

UploadResult is produced once per commit pass; BatchStatsAccumulator collects
per-batch timings so that slow backing-store batches show up in the summary.
"""

__all__ = [
    "UploadResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class UploadResult:
    """Aggregated result of committing ``ValidationResult.valid_rows``."""
    processed: int  # 成功行数
    errors: int  # Record Store に拒否された行数
    message: str
    inserted_keys: tuple[str, ...] = ()  # natural keys created, in commit order
    failed_keys: tuple[str, ...] = ()  # natural keys rejected by the store
    failed_rows: tuple[int, ...] = ()  # source row indexes rejected by the store
    failure_messages: tuple[str, ...] = ()  # aligned with failed_rows
    total_batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.errors == 0

    @property
    def attempted(self) -> int:
        return self.processed + self.errors


class BatchStatsAccumulator:
    """Helper class to accumulate batch timing statistics for UploadResult."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a batch timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]  # 95th percentile (19th out of 20 quantiles, 0-indexed)

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
