"""Tests for codehealth.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from codehealth.config import (
    DEFAULT_EXCLUDED_DIRS,
    STORAGE_ROOT_ENV,
    CodeHealthConfig,
    ConfigError,
    load_config,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, CodeHealthConfig)
    assert config.root == tmp_path.resolve()
    assert config.storage_root == tmp_path.resolve() / "repositories"
    assert config.store_root == tmp_path.resolve() / ".codehealth"
    assert config.analyzers.languages == []
    assert config.analyzers.excluded_dirs == list(DEFAULT_EXCLUDED_DIRS)
    assert config.analyzers.respect_gitignore is True
    assert config.analyzers.max_file_bytes is None
    assert config.analyzers.workers == 1
    assert config.documentation.batch_size_for("Kotlin") == 10
    assert config.logging.verbose is False


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".codehealth.yml"
    config_file.write_text(
        """
storage_root: "data/repos"
analyzers:
  languages: [kotlin, TypeScript]
  exclude_paths:
    - "generated/"
  excluded_dirs: [".git", "build"]
  respect_gitignore: "no"
  max_file_bytes: 65536
  workers: 4
  encoding: latin-1
documentation:
  batch_sizes:
    Kotlin: 5
    Java: "not a number"
  default_batch_size: 20
logging:
  verbose: true
  file: logs/codehealth.log
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.storage_root == tmp_path.resolve() / "data" / "repos"
    assert config.analyzers.languages == ["Kotlin", "TypeScript"]
    assert config.analyzers.exclude_paths == ["generated/"]
    assert config.analyzers.excluded_dirs == [".git", "build"]
    assert config.analyzers.respect_gitignore is False
    assert config.analyzers.max_file_bytes == 65536
    assert config.analyzers.workers == 4
    assert config.analyzers.encoding == "latin-1"
    assert config.documentation.batch_size_for("Kotlin") == 5
    assert config.documentation.batch_size_for("Java") == 20
    assert config.logging.verbose is True
    assert config.logging.log_file == tmp_path.resolve() / "logs" / "codehealth.log"


def test_workers_are_at_least_one(tmp_path: Path) -> None:
    (tmp_path / ".codehealth.yml").write_text("analyzers:\n  workers: 0\n", encoding="utf-8")

    assert load_config(tmp_path).analyzers.workers == 1


def test_environment_overrides_storage_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    override = tmp_path / "elsewhere"
    monkeypatch.setenv(STORAGE_ROOT_ENV, str(override))

    assert load_config(tmp_path).storage_root == override.resolve()


def test_invalid_yaml_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".codehealth.yml").write_text("analyzers: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_non_mapping_root_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".codehealth.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_unknown_language_raises_config_error(tmp_path: Path) -> None:
    (tmp_path / ".codehealth.yml").write_text("analyzers:\n  languages: [cobol]\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="cobol"):
        load_config(tmp_path)


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    (tmp_path / ".codehealth.yml").write_text("\n", encoding="utf-8")

    config = load_config(tmp_path)

    assert config.analyzers.languages == []
    assert config.storage_root == tmp_path.resolve() / "repositories"
