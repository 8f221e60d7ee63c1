"""
Offline report over saved results files.

Usage:
  scale-loader-report results/results-1700000000.json
  scale-loader-report results/*.json --histogram latency.png
"""

import argparse
import sys
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from pydantic import ValidationError

from scale_loader.metrics import MetricsAccumulator
from scale_loader.models import MetricsSummary, ResultRecord


def read_results(path: Path) -> Iterator[ResultRecord]:
    with open(path, encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            try:
                yield ResultRecord.model_validate_json(line)
            except ValidationError as exc:
                raise ValueError(f"{path}:{lineno}: malformed result record") from exc


def summarize(records: Iterable[ResultRecord]) -> MetricsSummary:
    metrics = MetricsAccumulator()
    for record in records:
        metrics.add(record)
    return metrics.close()


def _ms(nanos: int) -> str:
    return f"{nanos / 1e6:.3f}ms"


def format_report(summary: MetricsSummary) -> str:
    lat = summary.latencies
    lines = [
        f"Requests      [total, rate]            {summary.requests}, {summary.rate:.2f}",
        f"Throughput    [successful/s]           {summary.throughput:.2f}",
        f"Duration      [total, attack, wait]    "
        f"{summary.duration + summary.wait:.3f}s, {summary.duration:.3f}s, {summary.wait:.3f}s",
        f"Latencies     [min, mean, 50, 90, 95, 99, max]  "
        + ", ".join(_ms(v) for v in (lat.min, lat.mean, lat.p50, lat.p90, lat.p95, lat.p99, lat.max)),
        f"Bytes In      [total, mean]            {summary.bytes_in.total}, {summary.bytes_in.mean:.2f}",
        f"Bytes Out     [total, mean]            {summary.bytes_out.total}, {summary.bytes_out.mean:.2f}",
        f"Success       [ratio]                  {summary.success * 100:.2f}%",
        "Status Codes  [code:count]             "
        + " ".join(f"{code}:{count}" for code, count in sorted(summary.status_codes.items())),
        "Error Set:",
    ]
    lines.extend(summary.errors)
    return "\n".join(lines)


def save_histogram(records: List[ResultRecord], output_path: Path) -> None:
    latencies_ms = [record.latency / 1e6 for record in records]
    plt.figure(figsize=(10, 6))
    plt.hist(latencies_ms, bins=30, color="steelblue", alpha=0.7, edgecolor="black")
    plt.xlabel("Latency (ms)", fontsize=12)
    plt.ylabel("Frequency", fontsize=12)
    plt.title(f"Distribution of Request Latencies\n(Total: {len(records)} requests)", fontsize=13, fontweight="bold")
    plt.grid(True, alpha=0.3)
    plt.savefig(output_path, dpi=150, bbox_inches="tight")
    plt.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Summarize saved load test results files")
    parser.add_argument("files", nargs="+", type=Path, help="results-*.json files to read")
    parser.add_argument("--histogram", type=Path, default=None, help="Save a latency histogram PNG here")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    records: List[ResultRecord] = []
    try:
        for path in args.files:
            records.extend(read_results(path))
    except (OSError, ValueError) as exc:
        print(f"Failed to read results: {exc}", file=sys.stderr)
        sys.exit(1)

    print(format_report(summarize(records)))

    if args.histogram is not None:
        save_histogram(records, args.histogram)
        print(f"\nHistogram saved to: {args.histogram}")


if __name__ == "__main__":
    main()
