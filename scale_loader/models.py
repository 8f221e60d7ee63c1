from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field


class Target(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: str = "GET"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)


class ResultRecord(BaseModel):
    """Outcome of a single request.

    ``latency`` is in nanoseconds and ``timestamp`` is the wall-clock time (seconds)
    the request was issued. ``code`` is 0 when no response came back.
    """

    model_config = ConfigDict(frozen=True)

    attack: str = ""
    seq: int = 0
    code: int = 0
    timestamp: float = 0.0
    latency: int = 0
    bytes_out: int = 0
    bytes_in: int = 0
    error: str = ""
    method: str = ""
    url: str = ""


class LatencyMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    mean: int = 0
    p50: int = 0
    p90: int = 0
    p95: int = 0
    p99: int = 0
    max: int = 0
    min: int = 0


class ByteMetrics(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    mean: float = 0.0


class MetricsSummary(BaseModel):
    """Aggregated statistics of one round. The zero value is the empty summary."""

    model_config = ConfigDict(frozen=True)

    latencies: LatencyMetrics = Field(default_factory=LatencyMetrics)
    bytes_in: ByteMetrics = Field(default_factory=ByteMetrics)
    bytes_out: ByteMetrics = Field(default_factory=ByteMetrics)
    earliest: float = 0.0
    latest: float = 0.0
    end: float = 0.0
    duration: float = 0.0
    wait: float = 0.0
    requests: int = 0
    rate: float = 0.0
    throughput: float = 0.0
    success: float = 0.0
    status_codes: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
