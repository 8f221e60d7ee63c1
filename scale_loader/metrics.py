import math
import statistics
from collections import Counter
from typing import Dict, List, Sequence

from scale_loader.models import ByteMetrics, LatencyMetrics, MetricsSummary, ResultRecord


def percentile(sorted_values: Sequence[int], pct: float) -> int:
    """Nearest-rank percentile of an already sorted sequence."""
    if not sorted_values:
        return 0
    rank = math.ceil(pct / 100.0 * len(sorted_values))
    index = min(max(rank - 1, 0), len(sorted_values) - 1)
    return sorted_values[index]


class MetricsAccumulator:
    """Collects result records of one round and finalizes them into a summary."""

    def __init__(self) -> None:
        self._latencies: List[int] = []
        self._bytes_in = 0
        self._bytes_out = 0
        self._earliest = 0.0
        self._latest = 0.0
        self._end = 0.0
        self._successes = 0
        self._status_codes: Dict[str, int] = Counter()
        self._errors: Dict[str, None] = {}
        self._closed = False

    def add(self, record: ResultRecord) -> None:
        if self._closed:
            raise RuntimeError("metrics already finalized")

        if not self._latencies or record.timestamp < self._earliest:
            self._earliest = record.timestamp
        if not self._latencies or record.timestamp > self._latest:
            self._latest = record.timestamp
        self._end = max(self._end, record.timestamp + record.latency / 1e9)

        self._latencies.append(record.latency)
        self._bytes_in += record.bytes_in
        self._bytes_out += record.bytes_out
        self._status_codes[str(record.code)] += 1
        if 200 <= record.code < 400:
            self._successes += 1
        if record.error:
            self._errors.setdefault(record.error, None)

    def close(self) -> MetricsSummary:
        if self._closed:
            raise RuntimeError("metrics already finalized")
        self._closed = True

        count = len(self._latencies)
        if count == 0:
            return MetricsSummary()

        ordered = sorted(self._latencies)
        duration = self._latest - self._earliest
        wait = max(self._end - self._latest, 0.0)
        elapsed = duration + wait

        return MetricsSummary(
            latencies=LatencyMetrics(
                total=sum(ordered),
                mean=int(statistics.mean(ordered)),
                p50=percentile(ordered, 50),
                p90=percentile(ordered, 90),
                p95=percentile(ordered, 95),
                p99=percentile(ordered, 99),
                max=ordered[-1],
                min=ordered[0],
            ),
            bytes_in=ByteMetrics(total=self._bytes_in, mean=self._bytes_in / count),
            bytes_out=ByteMetrics(total=self._bytes_out, mean=self._bytes_out / count),
            earliest=self._earliest,
            latest=self._latest,
            end=self._end,
            duration=duration,
            wait=wait,
            requests=count,
            rate=count / duration if duration > 0 else 0.0,
            throughput=self._successes / elapsed if elapsed > 0 else 0.0,
            success=self._successes / count,
            status_codes=dict(self._status_codes),
            errors=list(self._errors),
        )
