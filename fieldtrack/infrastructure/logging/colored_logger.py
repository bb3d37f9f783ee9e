"""Stage logger for the media attachment pipeline.

Each line is prefixed with a colored stage tag so a single photo can be
followed from capture to record (or from unstore to unrecord) in a terminal.

    green    CAPTURE, COMPLETE
    yellow   TRANSFORM
    blue     UPLOAD
    cyan     RECORD
    magenta  UNSTORE, UNRECORD, SWEEP
    red      ERROR and any failed step
"""

import enum
import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_GRAY = "\033[90m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_MAGENTA = "\033[95m"
_CYAN = "\033[96m"


class PipelineStage(enum.Enum):
    """Pipeline stages; the value is the ANSI color used for the tag."""

    CAPTURE = _GREEN
    TRANSFORM = _YELLOW
    UPLOAD = _BLUE
    RECORD = _CYAN
    UNSTORE = _MAGENTA
    UNRECORD = _MAGENTA
    SWEEP = _MAGENTA
    ERROR = _RED
    COMPLETE = _GREEN

    @property
    def tag(self) -> str:
        return f"[{self.name}]"


def _fields(values: dict[str, Any]) -> str:
    if not values:
        return ""
    joined = " ".join(f"{key}={value}" for key, value in values.items())
    return f" {_DIM}{joined}{_RESET}"


class PipelineLogger:
    """Colored stage logging on top of a standard ``logging.Logger``.

    Usage:
        plog = PipelineLogger("fieldtrack.pipeline")
        plog.step_start(PipelineStage.UPLOAD, "Uploading photo", path=path)
        plog.step_complete(PipelineStage.UPLOAD, "Uploaded", status=201)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, color: str, tag: str, text: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, f"{color}{_BOLD}{tag}{_RESET} {color}{text}{_RESET}{_fields(fields)}")

    def step_start(self, stage: PipelineStage, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, stage.value, stage.tag, message, fields)

    def step_complete(self, stage: PipelineStage, message: str, **fields: Any) -> None:
        self._emit(logging.INFO, stage.value, stage.tag, f"ok: {message}", fields)

    def step_error(self, stage: PipelineStage, message: str, error: Exception | None = None) -> None:
        fields = {"error": f"{type(error).__name__}: {error}"} if error is not None else {}
        self._emit(logging.ERROR, _RED, stage.tag, message, fields)

    def detail(self, message: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, _GRAY, "  .", message, fields)

    def separator(self, title: str = "") -> None:
        if self._logger.isEnabledFor(logging.INFO):
            self._logger.info(f"{_GRAY}---- {title} ----{_RESET}" if title else f"{_GRAY}{'-' * 40}{_RESET}")

    @contextmanager
    def timed_step(self, stage: PipelineStage, message: str, **fields: Any) -> Iterator[None]:
        """Log start and end of a step with its elapsed time; failures are logged and re-raised."""
        self.step_start(stage, message, **fields)
        started = time.perf_counter()
        try:
            yield
        except Exception as exc:
            self.step_error(stage, f"{message} failed after {time.perf_counter() - started:.2f}s", exc)
            raise
        self.step_complete(stage, f"{message} in {time.perf_counter() - started:.2f}s")
