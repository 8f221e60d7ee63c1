import logging
import sys
from contextlib import closing
from typing import Optional, Protocol, Sequence

from scale_loader.attack import Attacker
from scale_loader.metrics import MetricsAccumulator
from scale_loader.models import Target
from scale_loader.publisher import MetricsPublisher
from scale_loader.sink import ResultSink

logger = logging.getLogger(__name__)

EXIT_RESULTS_FAILURE = 3


class StopFlag(Protocol):
    def is_set(self) -> bool:
        ...


class RoundRunner:
    """Attacks the targets round after round until the stop flag is raised.

    Each round drains the attacker's result stream into a fresh accumulator and,
    when persistence is enabled, into the sink. The flag is checked before every
    round and after every record, so a stop request ends the current round early
    and still publishes what was collected so far.
    """

    def __init__(
        self,
        attacker: Attacker,
        targets: Sequence[Target],
        rate: int,
        duration: float,
        publisher: MetricsPublisher,
        stop: StopFlag,
        sink: Optional[ResultSink] = None,
    ) -> None:
        self._attacker = attacker
        self._targets = list(targets)
        self._rate = rate
        self._duration = duration
        self._publisher = publisher
        self._stop = stop
        self._sink = sink
        self.rounds = 0

    def run(self) -> None:
        while not self._stop.is_set():
            self.run_round()
        logger.info("Stop requested, exiting after %d rounds", self.rounds)

    def run_round(self) -> None:
        if self._sink is not None:
            try:
                self._sink.rotate()
            except OSError as exc:
                print(f"Error opening results file: {exc}", file=sys.stderr)
                sys.exit(EXIT_RESULTS_FAILURE)

        metrics = MetricsAccumulator()
        stream = self._attacker.attack(self._targets, self._rate, self._duration)
        with closing(stream) as results:
            for record in results:
                metrics.add(record)
                if self._sink is not None:
                    try:
                        self._sink.write(record)
                    except OSError as exc:
                        print(f"Error writing results file: {exc}", file=sys.stderr)
                        sys.exit(EXIT_RESULTS_FAILURE)
                if self._stop.is_set():
                    break

        summary = metrics.close()
        self._publisher.set(summary)
        self.rounds += 1
        logger.info(
            "Round %d: %d requests, %.1f req/s, success %.2f%%, mean latency %.2fms",
            self.rounds,
            summary.requests,
            summary.rate,
            summary.success * 100,
            summary.latencies.mean / 1e6,
        )
