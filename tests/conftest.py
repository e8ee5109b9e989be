from __future__ import annotations

from pathlib import Path

import pytest

from codehealth.config import STORAGE_ROOT_ENV
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture(autouse=True)
def _isolate_storage_root(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(STORAGE_ROOT_ENV, raising=False)


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)
