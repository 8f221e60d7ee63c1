import logging
import sys
from pathlib import Path
from typing import List, Optional

from scale_loader.attack import Attacker
from scale_loader.config import LoaderConfig, parse_args
from scale_loader.publisher import MetricsPublisher
from scale_loader.runner import RoundRunner
from scale_loader.shutdown import ShutdownController
from scale_loader.sink import ResultSink
from scale_loader.targets import ResolutionError, build_targets, resolve_ipv4

logger = logging.getLogger("scale_loader")

EXIT_RESOLUTION_FAILURE = 2


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(config: LoaderConfig) -> None:
    try:
        ip = resolve_ipv4(config.host)
    except ResolutionError as exc:
        print(exc, file=sys.stderr)
        sys.exit(EXIT_RESOLUTION_FAILURE)

    targets = build_targets(config.host, ip, config.port, config.paths)
    logger.info("Attacking %d targets on %s (%s)", len(targets), config.host, ip)

    publisher = MetricsPublisher()
    publisher.serve(config.address, log_level=config.log_level)

    shutdown = ShutdownController()
    shutdown.install()

    sink = ResultSink(Path(config.results)) if config.results else None
    runner = RoundRunner(
        attacker=Attacker(workers=config.workers, timeout=config.timeout, name=config.host),
        targets=targets,
        rate=config.rate,
        duration=config.duration,
        publisher=publisher,
        stop=shutdown,
        sink=sink,
    )
    try:
        runner.run()
    finally:
        if sink is not None:
            sink.close()


def main(argv: Optional[List[str]] = None) -> None:
    config = parse_args(argv)
    configure_logging(config.log_level)
    run(config)


if __name__ == "__main__":
    main()
