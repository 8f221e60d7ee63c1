import argparse
import os
import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "LOADER_"
DURATION_UNITS = {"ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}
DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse ``1m30s``/``500ms`` style durations, or bare seconds, into seconds."""
    text = value.strip()
    try:
        seconds = float(text)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in DURATION_PART.finditer(text):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * DURATION_UNITS[match.group(2)]
            pos = match.end()
        if pos == 0 or pos != len(text):
            raise argparse.ArgumentTypeError(f"invalid duration '{value}'")
    if seconds < 0:
        raise argparse.ArgumentTypeError(f"duration must not be negative: '{value}'")
    return seconds


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer '{value}'") from None
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: '{value}'")
    return number


class LoaderConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str
    port: int = 80
    paths: str = "/"
    rate: int = Field(default=0, ge=0)
    results: str = ""
    duration: float = 10.0
    address: str = "localhost:8080"
    workers: int = 10
    timeout: float = 30.0
    log_level: str = "INFO"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name.upper(), default)


def parse_args(argv: Optional[List[str]] = None) -> LoaderConfig:
    parser = argparse.ArgumentParser(
        description="Continuously load test a host in fixed-duration rounds and serve the latest metrics."
    )
    parser.add_argument("--host", default=_env("host"), help="The host to load test")
    parser.add_argument("--port", type=int, default=_env("port", "80"), help="The port to load test")
    parser.add_argument(
        "--paths",
        default=_env("paths", "/"),
        help="A comma separated list of URL paths to load test",
    )
    parser.add_argument(
        "--rate",
        type=non_negative_int,
        default=_env("rate", "0"),
        help="Requests per second to send (0 sends as fast as the workers allow)",
    )
    parser.add_argument(
        "--results",
        default=_env("results", ""),
        help="If set, a directory in which to save per-round results",
    )
    parser.add_argument(
        "--duration",
        type=parse_duration,
        default=_env("duration", "10s"),
        help="Duration of each round (e.g. 10s, 1m30s)",
    )
    parser.add_argument(
        "--address",
        default=_env("address", "localhost:8080"),
        help="The address to serve metrics on",
    )
    parser.add_argument("--workers", type=int, default=_env("workers", "10"), help="The number of workers to use")
    parser.add_argument(
        "--timeout",
        type=parse_duration,
        default=_env("timeout", "30s"),
        help="Per-request timeout",
    )
    parser.add_argument(
        "--log-level",
        default=_env("log_level", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging verbosity",
    )
    args = parser.parse_args(argv)
    if not args.host:
        parser.error("--host is required")
    return LoaderConfig(**vars(args))
