"""Progress notification sinks for analysis runs."""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from .logging import get_logger

_LOGGER = get_logger("progress")


class ProgressSink(Protocol):
    """Receives lifecycle notifications for a repository's analysis run."""

    def started(self, repository_id: UUID, run_id: UUID) -> None: ...

    def progress(self, repository_id: UUID, message: str, percent: int) -> None: ...

    def completed(self, repository_id: UUID, run_id: UUID) -> None: ...

    def error(self, repository_id: UUID, message: str) -> None: ...


class NullProgressSink:
    def started(self, repository_id: UUID, run_id: UUID) -> None:
        return None

    def progress(self, repository_id: UUID, message: str, percent: int) -> None:
        return None

    def completed(self, repository_id: UUID, run_id: UUID) -> None:
        return None

    def error(self, repository_id: UUID, message: str) -> None:
        return None


class LoggingProgressSink:
    """Reports progress through the ``codehealth.progress`` logger."""

    def started(self, repository_id: UUID, run_id: UUID) -> None:
        _LOGGER.info("Analysis %s started for repository %s", run_id, repository_id)

    def progress(self, repository_id: UUID, message: str, percent: int) -> None:
        _LOGGER.info("[%3d%%] %s", percent, message)

    def completed(self, repository_id: UUID, run_id: UUID) -> None:
        _LOGGER.info("Analysis %s completed for repository %s", run_id, repository_id)

    def error(self, repository_id: UUID, message: str) -> None:
        _LOGGER.error("Analysis failed for repository %s: %s", repository_id, message)


class SafeProgressSink:
    """Wraps another sink so that its exceptions never reach the pipeline."""

    def __init__(self, sink: ProgressSink) -> None:
        self._sink = sink
        self._last_percent = 0

    def started(self, repository_id: UUID, run_id: UUID) -> None:
        self._last_percent = 0
        self._call("started", repository_id, run_id)

    def progress(self, repository_id: UUID, message: str, percent: int) -> None:
        percent = max(self._last_percent, min(100, int(percent)))
        self._last_percent = percent
        self._call("progress", repository_id, message, percent)

    def completed(self, repository_id: UUID, run_id: UUID) -> None:
        self._call("completed", repository_id, run_id)

    def error(self, repository_id: UUID, message: str) -> None:
        self._call("error", repository_id, message)

    def _call(self, method: str, *args: object) -> None:
        try:
            getattr(self._sink, method)(*args)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Progress sink %s.%s raised: %s", type(self._sink).__name__, method, exc)


__all__ = ["LoggingProgressSink", "NullProgressSink", "ProgressSink", "SafeProgressSink"]
