"""Attack engine: fires HTTP requests at a target set for one round."""

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from http.cookiejar import DefaultCookiePolicy
from typing import Iterator, List, Sequence

import requests
from requests.adapters import HTTPAdapter

from scale_loader.models import ResultRecord, Target

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10
DEFAULT_TIMEOUT = 30.0
SLOT_POLL_INTERVAL = 0.1

_DONE = object()


class WorkerSessions:
    """One cookie-less ``requests.Session`` per worker thread, closed together."""

    def __init__(self) -> None:
        self._local = threading.local()
        self._lock = threading.Lock()
        self._sessions: List[requests.Session] = []

    def get(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
            adapter = HTTPAdapter(pool_connections=1, pool_maxsize=1)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def close_all(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()


class Attacker:
    def __init__(self, workers: int = DEFAULT_WORKERS, timeout: float = DEFAULT_TIMEOUT, name: str = "") -> None:
        self._workers = max(1, workers)
        self._timeout = timeout
        self._name = name

    def attack(self, targets: Sequence[Target], rate: int, duration: float) -> Iterator[ResultRecord]:
        """Yield one record per request, in completion order, until the round ends.

        A ``rate`` of 0 sends requests back to back for the whole ``duration``.
        Closing the returned iterator stops the pacer and releases the worker pool.
        """
        if not targets:
            raise ValueError("at least one target is required")

        results: "queue.Queue[object]" = queue.Queue()
        stopped = threading.Event()
        executor = ThreadPoolExecutor(max_workers=self._workers, thread_name_prefix="attack")
        pacer = threading.Thread(
            target=self._pace,
            args=(executor, list(targets), rate, duration, results, stopped),
            name="attack-pacer",
            daemon=True,
        )
        return self._drain(pacer, executor, results, stopped)

    def _drain(
        self,
        pacer: threading.Thread,
        executor: ThreadPoolExecutor,
        results: "queue.Queue[object]",
        stopped: threading.Event,
    ) -> Iterator[ResultRecord]:
        pacer.start()
        try:
            while True:
                item = results.get()
                if item is _DONE:
                    return
                yield item
        finally:
            stopped.set()
            executor.shutdown(wait=False, cancel_futures=True)

    def _pace(
        self,
        executor: ThreadPoolExecutor,
        targets: List[Target],
        rate: int,
        duration: float,
        results: "queue.Queue[object]",
        stopped: threading.Event,
    ) -> None:
        sessions = WorkerSessions()
        slots = threading.Semaphore(self._workers)
        start = time.monotonic()
        seq = 0
        try:
            while not stopped.is_set():
                if rate > 0:
                    offset = seq / rate
                    if offset >= duration:
                        break
                    delay = start + offset - time.monotonic()
                    if delay > 0 and stopped.wait(delay):
                        break
                elif time.monotonic() - start >= duration:
                    break

                if not self._acquire_slot(slots, stopped):
                    break
                if rate <= 0 and time.monotonic() - start >= duration:
                    # waited on a saturated pool past the end of the round
                    slots.release()
                    break

                target = targets[seq % len(targets)]
                try:
                    executor.submit(self._hit, sessions, target, seq, slots, results)
                except RuntimeError:
                    # executor already shut down by an abandoned consumer
                    slots.release()
                    break
                seq += 1

            executor.shutdown(wait=True)
        finally:
            sessions.close_all()
            results.put(_DONE)
        logger.debug("Pacer finished after %d hits", seq)

    @staticmethod
    def _acquire_slot(slots: threading.Semaphore, stopped: threading.Event) -> bool:
        while not slots.acquire(timeout=SLOT_POLL_INTERVAL):
            if stopped.is_set():
                return False
        if stopped.is_set():
            slots.release()
            return False
        return True

    def _hit(
        self,
        sessions: "WorkerSessions",
        target: Target,
        seq: int,
        slots: threading.Semaphore,
        results: "queue.Queue[object]",
    ) -> None:
        try:
            results.put(self._issue_request(sessions.get(), target, seq))
        finally:
            slots.release()

    def _issue_request(self, session: requests.Session, target: Target, seq: int) -> ResultRecord:
        timestamp = time.time()
        start = time.perf_counter_ns()
        code = 0
        bytes_in = 0
        error = ""
        try:
            response = session.request(
                target.method,
                target.url,
                headers=target.headers,
                timeout=self._timeout,
                allow_redirects=False,
            )
            code = response.status_code
            bytes_in = len(response.content)
            if not 200 <= code < 400:
                error = f"{code} {response.reason}"
        except requests.RequestException as exc:
            error = str(exc)
        latency = time.perf_counter_ns() - start

        return ResultRecord(
            attack=self._name,
            seq=seq,
            code=code,
            timestamp=timestamp,
            latency=latency,
            bytes_out=0,
            bytes_in=bytes_in,
            error=error,
            method=target.method,
            url=target.url,
        )
