import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import List, Optional

import pytest


class RecordingServer:
    """Local HTTP server that answers every GET with 200 and remembers what it saw."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.hits = 0
        self.host_headers: List[str] = []
        self.paths: List[str] = []
        self.cookies: List[Optional[str]] = []
        self.set_cookie: Optional[str] = None
        self.delay = 0.0

        server = self

        class Handler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                with server._lock:
                    server.hits += 1
                    server.host_headers.append(self.headers.get("Host", ""))
                    server.paths.append(self.path)
                    server.cookies.append(self.headers.get("Cookie"))
                if server.delay:
                    time.sleep(server.delay)
                body = b"ok"
                self.send_response(200)
                self.send_header("Content-Type", "text/plain")
                self.send_header("Content-Length", str(len(body)))
                if server.set_cookie:
                    self.send_header("Set-Cookie", server.set_cookie)
                self.end_headers()
                self.wfile.write(body)

            def log_message(self, format, *args) -> None:
                pass

        self.httpd = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
        self.httpd.daemon_threads = True
        self.port = self.httpd.server_address[1]
        self._thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def hit_count(self) -> int:
        with self._lock:
            return self.hits

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self.httpd.shutdown()
        self.httpd.server_close()
        self._thread.join(timeout=2)


@pytest.fixture
def http_server():
    server = RecordingServer()
    server.start()
    try:
        yield server
    finally:
        server.stop()
