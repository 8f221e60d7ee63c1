import logging
import threading
from typing import Tuple

import uvicorn
from fastapi import FastAPI, Request, Response

from scale_loader.models import MetricsSummary

logger = logging.getLogger(__name__)


def split_address(address: str) -> Tuple[str, int]:
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid address '{address}', expected host:port")
    return host or "0.0.0.0", int(port)


class MetricsPublisher:
    """Holds the latest finalized summary and serves it over HTTP."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._summary = MetricsSummary()
        self.app = self._build_app()

    def get(self) -> MetricsSummary:
        with self._lock:
            return self._summary

    def set(self, summary: MetricsSummary) -> None:
        with self._lock:
            self._summary = summary

    def _build_app(self) -> FastAPI:
        app = FastAPI(docs_url=None, redoc_url=None, openapi_url=None)

        # answers before routing so no path or method is ever rejected
        @app.middleware("http")
        async def report(request: Request, call_next) -> Response:
            return Response(
                content=self.get().model_dump_json(),
                status_code=200,
                media_type="application/json",
            )

        return app

    def serve(self, address: str, log_level: str = "info") -> threading.Thread:
        """Run the reporting endpoint in a daemon thread. It lives until the process exits."""
        host, port = split_address(address)
        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level=log_level.lower(),
            access_log=False,
        )
        server = uvicorn.Server(config)
        thread = threading.Thread(target=server.run, name="metrics-reporter", daemon=True)
        thread.start()
        logger.info("Serving metrics on http://%s:%d", host, port)
        return thread
