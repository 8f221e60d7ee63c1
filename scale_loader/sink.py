import logging
import os
import time
from pathlib import Path
from typing import Callable, Optional, TextIO

from scale_loader.models import ResultRecord

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".tmp"


def results_filename(seconds: int) -> str:
    return f"results-{seconds}.json"


class ResultSink:
    """Writes one JSON-lines file per round.

    A file is written under ``<final name>.tmp`` and only renamed to
    ``results-<unixSeconds>.json`` once it is closed, so a final name never
    refers to a partially written file. Rotations within the same wall-clock
    second get consecutive second values instead of colliding.
    """

    def __init__(self, directory: Path, clock: Callable[[], float] = time.time) -> None:
        self._directory = Path(directory)
        self._clock = clock
        self._file: Optional[TextIO] = None
        self._final_path: Optional[Path] = None
        self._last_seconds: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self._file is not None

    @property
    def current_path(self) -> Optional[Path]:
        """Final path of the file currently being written, if any."""
        return self._final_path if self._file is not None else None

    def rotate(self) -> Path:
        self.close()

        seconds = int(self._clock())
        if self._last_seconds is not None and seconds <= self._last_seconds:
            seconds = self._last_seconds + 1

        self._directory.mkdir(parents=True, exist_ok=True)
        final_path = self._directory / results_filename(seconds)
        self._file = open(self._temp_path(final_path), "w", encoding="utf-8")
        self._final_path = final_path
        self._last_seconds = seconds
        logger.debug("Opened results file %s", self._temp_path(final_path))
        return final_path

    def write(self, record: ResultRecord) -> None:
        if self._file is None:
            return
        self._file.write(record.model_dump_json())
        self._file.write("\n")

    def close(self) -> None:
        if self._file is None:
            return
        file, final_path = self._file, self._final_path
        self._file = None
        self._final_path = None
        file.close()
        os.replace(self._temp_path(final_path), final_path)
        logger.info("Saved results to %s", final_path)

    @staticmethod
    def _temp_path(final_path: Path) -> Path:
        return final_path.with_name(final_path.name + TEMP_SUFFIX)
