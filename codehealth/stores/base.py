"""Persistence contract for repositories and analysis results."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence
from uuid import UUID

from ..models import AnalysisRun, CodeFile, Dependency, Repository


class AnalysisStore(ABC):
    """Stores repositories, per-run file and dependency sets, and run records.

    ``replace_code_files`` and ``replace_dependencies`` discard whatever was
    stored for the repository before writing the new set.
    """

    @abstractmethod
    def save_repository(self, repository: Repository) -> Repository: ...

    @abstractmethod
    def get_repository(self, repository_id: UUID) -> Optional[Repository]: ...

    @abstractmethod
    def list_repositories(self) -> List[Repository]: ...

    @abstractmethod
    def delete_repository(self, repository_id: UUID) -> bool:
        """Remove the repository and everything stored for it; False if unknown."""

    @abstractmethod
    def replace_code_files(self, repository_id: UUID, files: Sequence[CodeFile]) -> None: ...

    @abstractmethod
    def get_code_files(self, repository_id: UUID) -> List[CodeFile]: ...

    @abstractmethod
    def replace_dependencies(self, repository_id: UUID, dependencies: Sequence[Dependency]) -> None: ...

    @abstractmethod
    def get_dependencies(self, repository_id: UUID) -> List[Dependency]: ...

    @abstractmethod
    def save_analysis_run(self, run: AnalysisRun) -> AnalysisRun:
        """Insert or update ``run`` by id."""

    @abstractmethod
    def get_analysis_run(self, run_id: UUID) -> Optional[AnalysisRun]: ...

    @abstractmethod
    def get_latest_analysis_run(self, repository_id: UUID) -> Optional[AnalysisRun]:
        """Return the most recently started run for the repository."""

    def find_repository_by_path(self, local_path: str) -> Optional[Repository]:
        for repository in self.list_repositories():
            if repository.local_path == local_path:
                return repository
        return None


__all__ = ["AnalysisStore"]
