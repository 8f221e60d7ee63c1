import signal
import threading

STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """One-shot stop flag flipped by SIGINT or SIGTERM.

    After the first signal the default dispositions are restored, so a second
    signal terminates the process the way the OS normally would.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._installed = False

    def install(self) -> None:
        if self._installed:
            return
        for signum in STOP_SIGNALS:
            signal.signal(signum, self._handle)
        self._installed = True

    def is_set(self) -> bool:
        return self._event.is_set()

    def _handle(self, signum, frame) -> None:
        for stop_signal in STOP_SIGNALS:
            signal.signal(stop_signal, signal.SIG_DFL)
        self._event.set()
