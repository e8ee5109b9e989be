"""Configuration loading for codehealth (.codehealth.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .languages import SUPPORTED_LANGUAGES

CONFIG_FILENAME = ".codehealth.yml"
STORAGE_ROOT_ENV = "CODEHEALTH_STORAGE_ROOT"
STORE_DIRNAME = ".codehealth"

DEFAULT_EXCLUDED_DIRS = (
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    STORE_DIRNAME,
)


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class AnalyzerSettings:
    """Discovery filters and per-file analysis limits."""

    languages: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)
    excluded_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDED_DIRS))
    respect_gitignore: bool = True
    max_file_bytes: Optional[int] = None
    workers: int = 1
    encoding: str = "utf-8"


@dataclass
class DocumentationSettings:
    """Per-language batch sizes consumed by the documentation collaborator."""

    batch_sizes: Dict[str, int] = field(default_factory=dict)
    default_batch_size: int = 10

    def batch_size_for(self, language: str) -> int:
        return self.batch_sizes.get(language, self.default_batch_size)


@dataclass
class LoggingSettings:
    verbose: bool = False
    log_file: Optional[Path] = None


@dataclass
class CodeHealthConfig:
    """Represents the settings defined in .codehealth.yml."""

    root: Path
    storage_root: Path
    analyzers: AnalyzerSettings = field(default_factory=AnalyzerSettings)
    documentation: DocumentationSettings = field(default_factory=DocumentationSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def store_root(self) -> Path:
        """Directory holding the JSON store documents."""
        return self.root / STORE_DIRNAME


def default_config(root: Path | None = None) -> CodeHealthConfig:
    base = (root or Path.cwd()).resolve()
    return CodeHealthConfig(root=base, storage_root=_storage_root_from_env(base / "repositories"))


def load_config(config_path: Path) -> CodeHealthConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return default_config(root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    storage_value = _as_str(data.get("storage_root"))
    storage_root = root / storage_value if storage_value else root / "repositories"
    storage_root = _storage_root_from_env(storage_root)

    analyzer_data = _as_dict(data.get("analyzers"))
    analyzers = AnalyzerSettings()
    if analyzer_data:
        analyzers.languages = _as_language_list(analyzer_data.get("languages"))
        analyzers.exclude_paths = _as_str_list(analyzer_data.get("exclude_paths"))
        if "excluded_dirs" in analyzer_data:
            analyzers.excluded_dirs = _as_str_list(analyzer_data.get("excluded_dirs"))
        respect = _as_bool(analyzer_data.get("respect_gitignore"))
        if respect is not None:
            analyzers.respect_gitignore = respect
        max_bytes = _as_int(analyzer_data.get("max_file_bytes"))
        if max_bytes is not None and max_bytes > 0:
            analyzers.max_file_bytes = max_bytes
        workers = _as_int(analyzer_data.get("workers"))
        if workers is not None:
            analyzers.workers = max(1, workers)
        encoding = _as_str(analyzer_data.get("encoding"))
        if encoding:
            analyzers.encoding = encoding

    documentation = DocumentationSettings()
    documentation_data = _as_dict(data.get("documentation"))
    if documentation_data:
        batch_sizes = _as_dict(documentation_data.get("batch_sizes"))
        documentation.batch_sizes = {
            str(language): size
            for language, size in ((k, _as_int(v)) for k, v in batch_sizes.items())
            if size is not None and size > 0
        }
        default_batch = _as_int(documentation_data.get("default_batch_size"))
        if default_batch is not None and default_batch > 0:
            documentation.default_batch_size = default_batch

    logging_settings = LoggingSettings()
    logging_data = _as_dict(data.get("logging"))
    if logging_data:
        logging_settings.verbose = _as_bool(logging_data.get("verbose")) or False
        log_file = _as_str(logging_data.get("file"))
        logging_settings.log_file = root / log_file if log_file else None

    return CodeHealthConfig(
        root=root,
        storage_root=storage_root,
        analyzers=analyzers,
        documentation=documentation,
        logging=logging_settings,
    )


def _storage_root_from_env(default: Path) -> Path:
    override = os.environ.get(STORAGE_ROOT_ENV)
    if override:
        return Path(override).expanduser().resolve()
    return default


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


def _as_language_list(value: Any) -> List[str]:
    known: Mapping[str, str] = {language.lower(): language for language in SUPPORTED_LANGUAGES}
    languages: List[str] = []
    for item in _as_str_list(value):
        canonical = known.get(item.strip().lower())
        if canonical is None:
            raise ConfigError(f"Unsupported language in analyzers.languages: {item}")
        if canonical not in languages:
            languages.append(canonical)
    return languages


__all__ = [
    "AnalyzerSettings",
    "CONFIG_FILENAME",
    "CodeHealthConfig",
    "ConfigError",
    "DEFAULT_EXCLUDED_DIRS",
    "DocumentationSettings",
    "LoggingSettings",
    "STORAGE_ROOT_ENV",
    "STORE_DIRNAME",
    "default_config",
    "load_config",
]
