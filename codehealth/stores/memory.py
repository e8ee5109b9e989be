"""Thread-safe in-memory store, used by tests and one-shot CLI runs."""

from __future__ import annotations

import threading
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from ..models import AnalysisRun, CodeFile, Dependency, Repository
from .base import AnalysisStore


class InMemoryStore(AnalysisStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._repositories: Dict[UUID, Repository] = {}
        self._files: Dict[UUID, List[CodeFile]] = {}
        self._dependencies: Dict[UUID, List[Dependency]] = {}
        self._runs: Dict[UUID, AnalysisRun] = {}

    def save_repository(self, repository: Repository) -> Repository:
        with self._lock:
            self._repositories[repository.id] = repository
        return repository

    def get_repository(self, repository_id: UUID) -> Optional[Repository]:
        with self._lock:
            return self._repositories.get(repository_id)

    def list_repositories(self) -> List[Repository]:
        with self._lock:
            return sorted(self._repositories.values(), key=lambda item: item.created_at)

    def delete_repository(self, repository_id: UUID) -> bool:
        with self._lock:
            if self._repositories.pop(repository_id, None) is None:
                return False
            self._files.pop(repository_id, None)
            self._dependencies.pop(repository_id, None)
            for run_id in [run.id for run in self._runs.values() if run.repository_id == repository_id]:
                del self._runs[run_id]
            return True

    def replace_code_files(self, repository_id: UUID, files: Sequence[CodeFile]) -> None:
        with self._lock:
            self._files[repository_id] = list(files)

    def get_code_files(self, repository_id: UUID) -> List[CodeFile]:
        with self._lock:
            return list(self._files.get(repository_id, []))

    def replace_dependencies(self, repository_id: UUID, dependencies: Sequence[Dependency]) -> None:
        with self._lock:
            self._dependencies[repository_id] = list(dependencies)

    def get_dependencies(self, repository_id: UUID) -> List[Dependency]:
        with self._lock:
            return list(self._dependencies.get(repository_id, []))

    def save_analysis_run(self, run: AnalysisRun) -> AnalysisRun:
        with self._lock:
            self._runs[run.id] = run
        return run

    def get_analysis_run(self, run_id: UUID) -> Optional[AnalysisRun]:
        with self._lock:
            return self._runs.get(run_id)

    def get_latest_analysis_run(self, repository_id: UUID) -> Optional[AnalysisRun]:
        with self._lock:
            runs = [
                (run.started_at, order, run)
                for order, run in enumerate(self._runs.values())
                if run.repository_id == repository_id
            ]
        return max(runs)[2] if runs else None


__all__ = ["InMemoryStore"]
