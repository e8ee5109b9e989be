"""Repository discovery: walk a source tree and seed one CodeFile per supported file."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from datetime import UTC, datetime
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Set, Tuple
from uuid import UUID, uuid4

from .config import AnalyzerSettings
from .errors import RepositoryNotFoundOnDisk
from .languages import SUPPORTED_EXTENSIONS, detect_language, extension_of, extensions_for_languages
from .logging import get_logger
from .models import CodeFile

_LOGGER = get_logger("scanner")


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .codehealth.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            if fnmatchcase(rel_path, self.pattern):
                return True
            return self.directory_only and rel_path.startswith(f"{self.pattern}/")

        return any(fnmatchcase(part, self.pattern) for part in rel_path.split("/"))


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash="/" in pattern,
    )


def parse_gitignore(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return []
    except (OSError, UnicodeDecodeError) as exc:
        _LOGGER.warning("Ignoring unreadable %s: %s", path, exc)
        return []

    rules: List[IgnoreRule] = []
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


class RepoScanner:
    """Walks a repository tree and seeds a CodeFile for each supported source file."""

    def __init__(self, settings: AnalyzerSettings | None = None) -> None:
        self.settings = settings or AnalyzerSettings()
        if self.settings.languages:
            self.extensions = extensions_for_languages(set(self.settings.languages))
        else:
            self.extensions = SUPPORTED_EXTENSIONS

    def discover(self, root: str | Path, repository_id: UUID) -> List[CodeFile]:
        """Return seeds for every supported file under ``root``, sorted by path."""
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise RepositoryNotFoundOnDisk(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise RepositoryNotFoundOnDisk(f"Repository path is not a directory: {root}")
        root_path = root_path.resolve()

        rules = self._load_rules(root_path)
        files: List[CodeFile] = []
        for path, rel_path in self._iter_files(root_path, rules):
            seed = self._seed(path, rel_path, repository_id)
            if seed is not None:
                files.append(seed)

        files.sort(key=lambda item: item.path)
        _LOGGER.debug("Discovered %d source files under %s", len(files), root_path)
        return files

    def _load_rules(self, root: Path) -> List[IgnoreRule]:
        rules: List[IgnoreRule] = []
        if self.settings.respect_gitignore:
            rules.extend(parse_gitignore(root / ".gitignore"))
        for pattern in self.settings.exclude_paths:
            rule = build_ignore_rule(pattern)
            if rule is not None:
                rules.append(rule)
        return rules

    def _iter_files(self, root: Path, rules: Sequence[IgnoreRule]) -> Iterator[Tuple[Path, str]]:
        excluded = set(self.settings.excluded_dirs)
        root_real = os.path.realpath(root)
        visited: Set[str] = {root_real}

        def _on_error(error: OSError) -> None:
            _LOGGER.warning("Skipping unreadable directory %s: %s", error.filename, error.strerror or error)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=True):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            kept: List[str] = []
            for name in sorted(dirnames):
                if name in excluded:
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if should_ignore(rel_path, True, rules):
                    continue
                real = os.path.realpath(current_dir / name)
                if not _is_under(real, root_real):
                    _LOGGER.debug("Skipping %s: links outside the repository", rel_path)
                    continue
                if real in visited:
                    _LOGGER.debug("Skipping already visited directory %s", rel_path)
                    continue
                visited.add(real)
                kept.append(name)
            dirnames[:] = kept

            for filename in filenames:
                if extension_of(filename) not in self.extensions:
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if should_ignore(rel_path, False, rules):
                    continue
                if not _is_under(os.path.realpath(current_dir / filename), root_real):
                    _LOGGER.debug("Skipping %s: links outside the repository", rel_path)
                    continue
                yield current_dir / filename, rel_path

    def _seed(self, path: Path, rel_path: str, repository_id: UUID) -> Optional[CodeFile]:
        try:
            stat_result = path.stat()
        except OSError as exc:
            _LOGGER.warning("Skipping %s: %s", rel_path, exc)
            return None
        if not stat.S_ISREG(stat_result.st_mode):
            return None
        try:
            last_modified: Optional[datetime] = datetime.fromtimestamp(stat_result.st_mtime, UTC)
        except (OverflowError, OSError, ValueError):
            last_modified = None
        return CodeFile(
            id=uuid4(),
            repository_id=repository_id,
            path=rel_path,
            language=detect_language(extension_of(rel_path)),
            size=stat_result.st_size,
            last_modified=last_modified,
        )


def _is_under(real: str, root_real: str) -> bool:
    return real == root_real or real.startswith(root_real.rstrip(os.sep) + os.sep)


__all__ = ["IgnoreRule", "RepoScanner", "build_ignore_rule", "parse_gitignore", "should_ignore"]
