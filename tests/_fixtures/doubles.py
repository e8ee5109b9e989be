"""Recording and failing test doubles for progress sinks, stores and git."""

from __future__ import annotations

import asyncio
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
from uuid import UUID

from codehealth.errors import StorageError
from codehealth.models import AnalysisRun, CodeFile, Dependency, Repository
from codehealth.stores import InMemoryStore


class RecordingProgressSink:
    def __init__(self) -> None:
        self.kinds: List[str] = []
        self.percents: List[int] = []
        self.errors: List[str] = []

    def started(self, repository_id: UUID, run_id: UUID) -> None:
        self.kinds.append("started")

    def progress(self, repository_id: UUID, message: str, percent: int) -> None:
        self.kinds.append("progress")
        self.percents.append(percent)

    def completed(self, repository_id: UUID, run_id: UUID) -> None:
        self.kinds.append("completed")

    def error(self, repository_id: UUID, message: str) -> None:
        self.kinds.append("error")
        self.errors.append(message)


class ExplodingProgressSink:
    """Raises from every notification."""

    def started(self, repository_id: UUID, run_id: UUID) -> None:
        raise RuntimeError("sink down")

    def progress(self, repository_id: UUID, message: str, percent: int) -> None:
        raise RuntimeError("sink down")

    def completed(self, repository_id: UUID, run_id: UUID) -> None:
        raise RuntimeError("sink down")

    def error(self, repository_id: UUID, message: str) -> None:
        raise RuntimeError("sink down")


class FailingWriteStore(InMemoryStore):
    """Accepts runs and repositories but refuses to write analysis results."""

    def replace_code_files(self, repository_id: UUID, files: Sequence[CodeFile]) -> None:
        raise StorageError("disk full while writing files.json")

    def replace_dependencies(self, repository_id: UUID, dependencies: Sequence[Dependency]) -> None:
        raise StorageError("disk full while writing dependencies.json")


def _event_loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class LoopAwareStore(InMemoryStore):
    """Records, per read, whether it ran on the event loop thread."""

    def __init__(self) -> None:
        super().__init__()
        self.reads_on_loop: List[bool] = []

    def get_repository(self, repository_id: UUID) -> Repository | None:
        self.reads_on_loop.append(_event_loop_running())
        return super().get_repository(repository_id)

    def get_analysis_run(self, run_id: UUID) -> AnalysisRun | None:
        self.reads_on_loop.append(_event_loop_running())
        return super().get_analysis_run(run_id)


class FakeGitRunner:
    """Stands in for ``subprocess.run``: writes ``files`` into the clone target or fails."""

    def __init__(self, files: Mapping[str, str] | None = None, *, fail_with: str | None = None) -> None:
        self.files = dict(files or {})
        self.fail_with = fail_with
        self.calls: List[List[str]] = []
        self.envs: List[Dict[str, str] | None] = []

    def __call__(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: Dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        command = list(args)
        self.calls.append(command)
        self.envs.append(env)
        target = Path(command[-1])
        target.mkdir(parents=True)
        if self.fail_with is not None:
            (target / "partial.kt").write_text("class Partial", encoding="utf-8")
            raise subprocess.CalledProcessError(128, command, output="", stderr=self.fail_with)
        for relative, content in self.files.items():
            path = target / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return ""


__all__ = [
    "ExplodingProgressSink",
    "FailingWriteStore",
    "FakeGitRunner",
    "LoopAwareStore",
    "RecordingProgressSink",
]
