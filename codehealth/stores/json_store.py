"""JSON-file backed store, one directory per storage root."""

from __future__ import annotations

import json
import os
import shutil
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar
from uuid import UUID

from ..errors import StorageError
from ..logging import get_logger
from ..models import AnalysisRun, CodeFile, Dependency, Repository
from .base import AnalysisStore

_STORE_VERSION = 1
_LOGGER = get_logger("stores.json")

T = TypeVar("T")


class JsonStore(AnalysisStore):
    """Persists analysis state as versioned JSON documents under ``root``.

    Layout::

        <root>/repositories.json
        <root>/runs.json
        <root>/<repository-id>/files.json
        <root>/<repository-id>/dependencies.json

    Every document is written to a temporary file and renamed into place.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Repositories

    def save_repository(self, repository: Repository) -> Repository:
        with self._lock:
            repositories = self._load_repositories()
            repositories[str(repository.id)] = repository.to_dict()
            self._write(self.root / "repositories.json", "repositories", list(repositories.values()))
        return repository

    def get_repository(self, repository_id: UUID) -> Optional[Repository]:
        with self._lock:
            payload = self._load_repositories().get(str(repository_id))
        return Repository.from_dict(payload) if payload else None

    def list_repositories(self) -> List[Repository]:
        with self._lock:
            payloads = list(self._load_repositories().values())
        return [Repository.from_dict(payload) for payload in payloads]

    def delete_repository(self, repository_id: UUID) -> bool:
        with self._lock:
            repositories = self._load_repositories()
            if repositories.pop(str(repository_id), None) is None:
                return False
            self._write(self.root / "repositories.json", "repositories", list(repositories.values()))
            runs = [run for run in self._load_runs() if run.get("repositoryId") != str(repository_id)]
            self._write(self.root / "runs.json", "runs", runs)
            shutil.rmtree(self._repository_dir(repository_id), ignore_errors=True)
            return True

    # ------------------------------------------------------------------
    # Files and dependencies

    def replace_code_files(self, repository_id: UUID, files: Sequence[CodeFile]) -> None:
        with self._lock:
            self._write(
                self._repository_dir(repository_id) / "files.json",
                "files",
                [code_file.to_dict() for code_file in files],
            )

    def get_code_files(self, repository_id: UUID) -> List[CodeFile]:
        with self._lock:
            payloads = self._read(self._repository_dir(repository_id) / "files.json", "files")
        return _decode(payloads, CodeFile.from_dict)

    def replace_dependencies(self, repository_id: UUID, dependencies: Sequence[Dependency]) -> None:
        with self._lock:
            self._write(
                self._repository_dir(repository_id) / "dependencies.json",
                "dependencies",
                [dependency.to_dict() for dependency in dependencies],
            )

    def get_dependencies(self, repository_id: UUID) -> List[Dependency]:
        with self._lock:
            payloads = self._read(self._repository_dir(repository_id) / "dependencies.json", "dependencies")
        return _decode(payloads, Dependency.from_dict)

    # ------------------------------------------------------------------
    # Analysis runs

    def save_analysis_run(self, run: AnalysisRun) -> AnalysisRun:
        with self._lock:
            runs = self._load_runs()
            payload = run.to_dict()
            for index, existing in enumerate(runs):
                if existing.get("id") == payload["id"]:
                    runs[index] = payload
                    break
            else:
                runs.append(payload)
            self._write(self.root / "runs.json", "runs", runs)
        return run

    def get_analysis_run(self, run_id: UUID) -> Optional[AnalysisRun]:
        with self._lock:
            runs = self._load_runs()
        for payload in runs:
            if payload.get("id") == str(run_id):
                return AnalysisRun.from_dict(payload)
        return None

    def get_latest_analysis_run(self, repository_id: UUID) -> Optional[AnalysisRun]:
        with self._lock:
            runs = [
                AnalysisRun.from_dict(payload)
                for payload in self._load_runs()
                if payload.get("repositoryId") == str(repository_id)
            ]
        if not runs:
            return None
        return max(enumerate(runs), key=lambda item: (item[1].started_at, item[0]))[1]

    # ------------------------------------------------------------------
    # Internal helpers

    def _repository_dir(self, repository_id: UUID) -> Path:
        return self.root / str(repository_id)

    def _load_repositories(self) -> Dict[str, Dict[str, Any]]:
        payloads = self._read(self.root / "repositories.json", "repositories")
        return {str(payload.get("id")): payload for payload in payloads if isinstance(payload, dict)}

    def _load_runs(self) -> List[Dict[str, Any]]:
        return [payload for payload in self._read(self.root / "runs.json", "runs") if isinstance(payload, dict)]

    def _read(self, path: Path, key: str) -> List[Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            raise StorageError(f"Unsupported store document {path}")
        items = data.get(key)
        if not isinstance(items, list):
            raise StorageError(f"Store document {path} has no '{key}' list")
        return items

    def _write(self, path: Path, key: str, items: List[Any]) -> None:
        payload = {"version": _STORE_VERSION, key: items}
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StorageError(f"Failed to write {path}: {exc}") from exc
        _LOGGER.debug("Wrote %d %s to %s", len(items), key, path)


def _decode(payloads: List[Any], factory: Callable[[Dict[str, Any]], T]) -> List[T]:
    try:
        return [factory(payload) for payload in payloads]
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Corrupt store record: {exc}") from exc


__all__ = ["JsonStore"]
