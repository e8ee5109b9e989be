"""Repository registration from local directories, zip archives and git URLs."""

from __future__ import annotations

import os
import re
import shutil
import subprocess
import time
import zipfile
from pathlib import Path
from typing import BinaryIO, Callable, Iterable, Optional
from urllib.parse import urlsplit, urlunsplit
from uuid import UUID, uuid4

from .config import CodeHealthConfig
from .errors import (
    ArchiveSecurityError,
    RepositoryIngestionError,
    RepositoryNotFound,
    RepositoryValidationError,
)
from .logging import get_logger
from .models import Repository, RepositoryStatus
from .repo_scanner import RepoScanner
from .stores import AnalysisStore

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]")

Runner = Callable[..., str]


def generate_local_path(name: str, *, millis: Optional[int] = None) -> str:
    """Return a filesystem-safe directory name: ``<sanitized-name>_<millis>``."""
    stamp = millis if millis is not None else int(time.time() * 1000)
    safe = _UNSAFE_NAME_CHARS.sub("_", name.strip()) or "repository"
    return f"{safe}_{stamp}"


def authenticated_url(url: str, access_token: Optional[str]) -> str:
    """Embed ``access_token`` as the user of an http(s) URL; other URLs are returned as is."""
    if not access_token:
        return url
    parts = urlsplit(url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        return url
    host = parts.hostname if parts.port is None else f"{parts.hostname}:{parts.port}"
    return urlunsplit((parts.scheme, f"{access_token}@{host}", parts.path, parts.query, parts.fragment))


class RepositoryIngestor:
    """Registers repositories with the store and manages their on-disk copies."""

    def __init__(self, store: AnalysisStore, config: CodeHealthConfig, runner: Runner | None = None) -> None:
        self.store = store
        self.config = config
        self.scanner = RepoScanner(config.analyzers)
        self.logger = get_logger("ingestion")
        self._runner = runner or self._default_runner

    def register_directory(self, name: str, path: str | Path) -> Repository:
        """Register an existing directory in place; it is never copied or deleted."""
        root = Path(path).expanduser().resolve()
        if not root.is_dir():
            raise RepositoryValidationError(f"Repository path is not a directory: {path}")
        existing = self.store.find_repository_by_path(str(root))
        if existing is not None:
            self.logger.debug("Directory %s already registered as %s", root, existing.id)
            return existing
        self._validate(root)
        repository = Repository(
            id=uuid4(), name=name or root.name, local_path=str(root), status=RepositoryStatus.READY
        )
        self.store.save_repository(repository)
        self.logger.info("Registered repository %s from %s", repository.name, root)
        return repository

    def add_from_zip(self, name: str, stream: BinaryIO) -> Repository:
        """Extract ``stream`` under the storage root and register the result."""
        local_path = generate_local_path(name)
        target = self.config.storage_root / local_path
        target.mkdir(parents=True, exist_ok=False)
        try:
            self._extract(stream, target)
            self._validate(target)
        except Exception:
            shutil.rmtree(target, ignore_errors=True)
            raise
        repository = Repository(id=uuid4(), name=name, local_path=local_path, status=RepositoryStatus.READY)
        self.store.save_repository(repository)
        self.logger.info("Registered repository %s from archive into %s", name, target)
        return repository

    def add_from_git_url(self, name: str, url: str, access_token: Optional[str] = None) -> Repository:
        """Clone ``url`` under the storage root and register the working tree.

        The repository is saved as CLONING before git runs and ends up READY, or
        ERROR with the partial clone removed.
        """
        local_path = generate_local_path(name)
        target = self.config.storage_root / local_path
        repository = self.store.save_repository(
            Repository(id=uuid4(), name=name, local_path=local_path, url=url, status=RepositoryStatus.CLONING)
        )
        self.config.storage_root.mkdir(parents=True, exist_ok=True)
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        try:
            self._run(
                ["git", "clone", "--depth", "1", authenticated_url(url, access_token), str(target)],
                cwd=self.config.storage_root,
                env=env,
                capture_output=True,
            )
            self._validate(target)
        except Exception as exc:
            shutil.rmtree(target, ignore_errors=True)
            self.store.save_repository(repository.with_status(RepositoryStatus.ERROR))
            message = _redact(_describe_failure(exc), access_token)
            self.logger.warning("Cloning %s failed: %s", url, message)
            raise RepositoryIngestionError(f"Failed to clone repository {url}: {message}") from exc
        ready = self.store.save_repository(repository.with_status(RepositoryStatus.READY))
        self.logger.info("Registered repository %s cloned from %s into %s", name, url, target)
        return ready

    def delete_repository(self, repository_id: UUID) -> None:
        """Unregister a repository; only copies the ingestor made itself are removed from disk."""
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise RepositoryNotFound(f"Repository not found: {repository_id}")
        if repository.is_managed_copy:
            storage_root = self.config.storage_root.resolve()
            local = (storage_root / repository.local_path).resolve()
            if local == storage_root or not _is_within(local, storage_root):
                raise RepositoryValidationError(
                    f"Refusing to delete {local}: it is not an extracted copy under {storage_root}"
                )
            if local.exists():
                shutil.rmtree(local)
                self.logger.info("Removed local copy %s", local)
        self.store.delete_repository(repository_id)

    def _extract(self, stream: BinaryIO, target: Path) -> None:
        root = target.resolve()
        try:
            archive = zipfile.ZipFile(stream)
        except zipfile.BadZipFile as exc:
            raise RepositoryValidationError(f"Invalid zip archive: {exc}") from exc
        with archive:
            for entry in archive.infolist():
                destination = (root / entry.filename).resolve()
                if not _is_within(destination, root):
                    raise ArchiveSecurityError(f"Archive entry escapes the extraction directory: {entry.filename}")
            archive.extractall(root)

    def _validate(self, root: Path) -> None:
        if not self.scanner.discover(root, uuid4()):
            raise RepositoryValidationError(f"No supported source files found in {root}")

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, env=env, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            env=env,
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


def _describe_failure(exc: Exception) -> str:
    if isinstance(exc, subprocess.CalledProcessError):
        detail = (exc.stderr or "").strip()
        return detail or f"git exited with status {exc.returncode}"
    return str(exc)


def _redact(message: str, access_token: Optional[str]) -> str:
    return message.replace(access_token, "***") if access_token else message


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


__all__ = ["RepositoryIngestor", "authenticated_url", "generate_local_path"]
