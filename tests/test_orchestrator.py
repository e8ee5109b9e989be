"""Tests for the analysis orchestrator."""

from __future__ import annotations

from pathlib import Path
from typing import List
from uuid import UUID, uuid4

import pytest

from codehealth.analyzers import ANALYZERS, FileAnalysisResult, SourceAnalyzer
from codehealth.config import CodeHealthConfig, default_config
from codehealth.errors import AnalysisCancelled, AnalysisError, AnalysisRunNotFound, RepositoryNotFound, StorageError
from codehealth.models import AnalysisStatus, CodeFile, DependencyType, Repository, RepositoryStatus
from codehealth.orchestrator import AnalysisOrchestrator, CancellationToken
from codehealth.stores import InMemoryStore
from tests._fixtures.doubles import ExplodingProgressSink, FailingWriteStore, RecordingProgressSink
from tests._fixtures.repo_builder import RepoBuilder

SAMPLE_FILES = {
    "src/App.kt": """
        import kotlin.collections.List

        class App : Base() {
            fun run(items: List<String>) {
                if (items.isEmpty()) {
                    println("empty")
                }
            }
        }
    """,
    "src/Service.java": """
        import java.util.List;

        public class Service {
            void go() {
                for (int i = 0; i < 3; i++) {
                    helper();
                }
            }
        }
    """,
    "web/index.ts": """
        import { api } from './api';

        export function load(): void {
            api.fetch();
        }
    """,
    "tools/script.py": """
        import os

        print(os.getcwd())
    """,
}


@pytest.fixture
def config(tmp_path: Path) -> CodeHealthConfig:
    return default_config(tmp_path)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


def _register(store: InMemoryStore, root: Path, local_path: str | None = None) -> Repository:
    repository = Repository(id=uuid4(), name=root.name, local_path=local_path or str(root))
    return store.save_repository(repository)


def test_analyze_repository_persists_results(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    sink = RecordingProgressSink()
    orchestrator = AnalysisOrchestrator(store, config=config, progress=sink)

    run = orchestrator.analyze_repository(repository.id)

    assert run.status is AnalysisStatus.COMPLETED
    assert run.completed_at is not None
    assert run.error is None
    assert run.metrics.total_files == 4
    assert run.metrics.language_distribution == {"Java": 1, "Kotlin": 1, "Python": 1, "TypeScript": 1}
    assert run.metrics.dependency_count == len(store.get_dependencies(repository.id))
    assert run.metrics.total_lines_of_code == sum(f.lines_of_code for f in store.get_code_files(repository.id))

    files = {code_file.path: code_file for code_file in store.get_code_files(repository.id)}
    assert files["src/App.kt"].complexity == 2.0
    assert files["src/Service.java"].complexity == 2.0
    assert files["web/index.ts"].complexity == 1.0

    app_edges = {
        (dependency.target, dependency.type)
        for dependency in store.get_dependencies(repository.id)
        if dependency.source_file_id == files["src/App.kt"].id
    }
    assert ("kotlin.collections.List", DependencyType.IMPORT) in app_edges
    assert ("Base()", DependencyType.INHERITANCE) in app_edges
    assert ("println", DependencyType.FUNCTION_CALL) in app_edges

    assert sink.kinds[0] == "started"
    assert sink.kinds[-1] == "completed"
    assert sink.percents == sorted(sink.percents)
    assert {10, 60, 80, 90} <= set(sink.percents)
    assert max(sink.percents) == 90
    assert store.get_latest_analysis_run(repository.id) == run


def test_broken_files_degrade_to_baseline(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    files = {f"src/Good{index}.kt": f"import kotlin.io.println\n\nclass Good{index}\n" for index in range(97)}
    files.update({f"src/Broken{index}.kt": "class Broken {\n" for index in range(3)})
    repo_builder.write(files)
    repository = _register(store, repo_builder.path())

    run = AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)

    assert run.status is AnalysisStatus.COMPLETED
    assert run.metrics.total_files == 100
    assert run.metrics.dependency_count == 97
    broken = [f for f in store.get_code_files(repository.id) if f.path.startswith("src/Broken")]
    assert len(broken) == 3
    broken_ids = {code_file.id for code_file in broken}
    assert all(code_file.complexity == 1.0 for code_file in broken)
    assert all(code_file.lines_of_code == 1 for code_file in broken)
    assert not [d for d in store.get_dependencies(repository.id) if d.source_file_id in broken_ids]


def test_reanalysis_replaces_previous_results(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    orchestrator = AnalysisOrchestrator(store, config=config)

    first = orchestrator.analyze_repository(repository.id)
    second = orchestrator.analyze_repository(repository.id)

    assert first.id != second.id
    assert len(store.get_code_files(repository.id)) == 4
    assert len(store.get_dependencies(repository.id)) == first.metrics.dependency_count
    assert second.metrics == first.metrics
    assert store.get_latest_analysis_run(repository.id).id == second.id


def test_parallel_workers_match_sequential_results(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    sequential = AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)
    sequential_files = [(f.path, f.lines_of_code, f.complexity) for f in store.get_code_files(repository.id)]

    config.analyzers.workers = 4
    parallel = AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)
    parallel_files = [(f.path, f.lines_of_code, f.complexity) for f in store.get_code_files(repository.id)]

    assert parallel.metrics == sequential.metrics
    assert parallel_files == sequential_files


def test_cancellation_marks_run_failed(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    sink = RecordingProgressSink()
    token = CancellationToken()
    token.cancel()

    with pytest.raises(AnalysisError) as excinfo:
        AnalysisOrchestrator(store, config=config, progress=sink).analyze_repository(repository.id, cancel_token=token)

    assert isinstance(excinfo.value.cause, AnalysisCancelled)
    run = store.get_latest_analysis_run(repository.id)
    assert run is not None
    assert run.status is AnalysisStatus.FAILED
    assert run.completed_at is not None
    assert "cancelled" in (run.error or "")
    assert sink.kinds == ["started", "error"]
    assert store.get_code_files(repository.id) == []


def test_unknown_repository_records_no_run(store: InMemoryStore, config: CodeHealthConfig) -> None:
    repository_id = uuid4()

    with pytest.raises(RepositoryNotFound):
        AnalysisOrchestrator(store, config=config).analyze_repository(repository_id)

    assert store.get_latest_analysis_run(repository_id) is None


def test_missing_directory_fails_the_run(tmp_path: Path, store: InMemoryStore, config: CodeHealthConfig) -> None:
    repository = _register(store, tmp_path / "gone")
    orchestrator = AnalysisOrchestrator(store, config=config)

    with pytest.raises(AnalysisError):
        orchestrator.analyze_repository(repository.id)

    run = store.get_latest_analysis_run(repository.id)
    assert run is not None
    assert run.status is AnalysisStatus.FAILED
    assert run.error
    assert orchestrator.get_metrics(repository.id).total_files == 0


def test_failing_progress_sink_does_not_break_analysis(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())

    run = AnalysisOrchestrator(store, config=config, progress=ExplodingProgressSink()).analyze_repository(repository.id)

    assert run.status is AnalysisStatus.COMPLETED


def test_relative_local_path_resolves_against_storage_root(store: InMemoryStore, config: CodeHealthConfig) -> None:
    target = config.storage_root / "sample_1700000000000"
    target.mkdir(parents=True)
    (target / "Main.kt").write_text("fun main() {\n    println(\"hi\")\n}\n", encoding="utf-8")
    repository = _register(store, target, local_path="sample_1700000000000")

    run = AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)

    assert run.metrics.total_files == 1
    assert run.metrics.total_lines_of_code == 3


def test_oversize_files_are_not_parsed(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write({"Big.kt": "fun big() {\n" + "    if (a) println(a)\n" * 50 + "}\n", "Small.kt": "class S\n"})
    repository = _register(store, repo_builder.path())
    config.analyzers.max_file_bytes = 64

    AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)

    files = {f.path: f for f in store.get_code_files(repository.id)}
    assert files["Big.kt"].lines_of_code == 0
    assert files["Big.kt"].complexity == 1.0
    assert files["Small.kt"].lines_of_code == 1


class _RaisingAnalyzer(SourceAnalyzer):
    language = "Kotlin"

    def analyze(self, content: str, seed: CodeFile) -> FileAnalysisResult:
        raise RuntimeError("analyzer bug")


def test_analyzer_exceptions_degrade_to_baseline(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    analyzers = dict(ANALYZERS)
    analyzers["Kotlin"] = _RaisingAnalyzer()

    run = AnalysisOrchestrator(store, config=config, analyzers=analyzers).analyze_repository(repository.id)

    assert run.status is AnalysisStatus.COMPLETED
    kotlin = next(f for f in store.get_code_files(repository.id) if f.language == "Kotlin")
    assert kotlin.complexity == 1.0
    assert kotlin.lines_of_code == 8
    assert not [d for d in store.get_dependencies(repository.id) if d.source_file_id == kotlin.id]


def test_queries_require_known_identifiers(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    orchestrator = AnalysisOrchestrator(store, config=config)

    with pytest.raises(AnalysisRunNotFound):
        orchestrator.get_metrics(repository.id)
    assert orchestrator.get_latest_run(repository.id) is None
    with pytest.raises(AnalysisRunNotFound):
        orchestrator.get_analysis_run(uuid4())
    with pytest.raises(RepositoryNotFound):
        orchestrator.get_dependency_graph(uuid4())
    with pytest.raises(RepositoryNotFound):
        orchestrator.get_metrics(uuid4())

    run = orchestrator.analyze_repository(repository.id)

    assert orchestrator.get_analysis_run(run.id) == run
    assert orchestrator.get_latest_run(repository.id) == run
    assert orchestrator.get_metrics(repository.id) == run.metrics
    graph = orchestrator.get_dependency_graph(repository.id)
    assert len(graph.nodes) == 4
    assert {node.label for node in graph.nodes} == {"App.kt", "Service.java", "index.ts", "script.py"}
    assert len(graph.links) == run.metrics.dependency_count


def test_storage_write_failure_fails_the_run(repo_builder: RepoBuilder, config: CodeHealthConfig) -> None:
    repo_builder.write(SAMPLE_FILES)
    store = FailingWriteStore()
    repository = _register(store, repo_builder.path())
    sink = RecordingProgressSink()

    with pytest.raises(AnalysisError) as excinfo:
        AnalysisOrchestrator(store, config=config, progress=sink).analyze_repository(repository.id)

    assert isinstance(excinfo.value.cause, StorageError)
    run = store.get_latest_analysis_run(repository.id)
    assert run is not None
    assert run.status is AnalysisStatus.FAILED
    assert run.completed_at is not None
    assert "disk full" in (run.error or "")
    assert sink.kinds[0] == "started"
    assert sink.kinds[-1] == "error"
    assert "completed" not in sink.kinds
    assert sink.errors and "disk full" in sink.errors[0]
    assert store.get_repository(repository.id).status is RepositoryStatus.ERROR


def test_repository_status_follows_the_run(
    repo_builder: RepoBuilder, store: InMemoryStore, config: CodeHealthConfig
) -> None:
    repo_builder.write(SAMPLE_FILES)
    repository = _register(store, repo_builder.path())
    seen: List[RepositoryStatus] = []

    class _StatusSink(RecordingProgressSink):
        def progress(self, repository_id: UUID, message: str, percent: int) -> None:
            seen.append(store.get_repository(repository_id).status)

    AnalysisOrchestrator(store, config=config, progress=_StatusSink()).analyze_repository(repository.id)

    assert seen and set(seen) == {RepositoryStatus.ANALYZING}
    analyzed = store.get_repository(repository.id)
    assert analyzed.status is RepositoryStatus.READY
    assert analyzed.last_analyzed_at is not None
    assert analyzed.updated_at == analyzed.last_analyzed_at


def test_failed_run_marks_repository_error(tmp_path: Path, store: InMemoryStore, config: CodeHealthConfig) -> None:
    repository = _register(store, tmp_path / "gone")

    with pytest.raises(AnalysisError):
        AnalysisOrchestrator(store, config=config).analyze_repository(repository.id)

    failed = store.get_repository(repository.id)
    assert failed.status is RepositoryStatus.ERROR
    assert failed.last_analyzed_at is None
