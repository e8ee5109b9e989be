"""Pipeline orchestration for repository analysis runs."""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence
from uuid import UUID

from .analyzers import ANALYZERS, FileAnalysis, ParseFailure, SourceAnalyzer, baseline_analysis, count_lines_of_code
from .config import CodeHealthConfig, default_config
from .errors import (
    AnalysisCancelled,
    AnalysisError,
    AnalysisRunNotFound,
    RepositoryNotFound,
)
from .graph import assemble_graph, build_dependencies
from .logging import get_logger
from .metrics import compute_metrics
from .models import (
    AnalysisRun,
    AnalysisStatus,
    CodeFile,
    CodeMetrics,
    DependencyGraph,
    Repository,
    RepositoryStatus,
)
from .progress import NullProgressSink, ProgressSink, SafeProgressSink
from .repo_scanner import RepoScanner
from .stores import AnalysisStore

DISCOVERED_PERCENT = 10
ANALYZED_PERCENT = 60
GRAPH_PERCENT = 80
METRICS_PERCENT = 90


class CancellationToken:
    """Cooperative cancellation flag checked between pipeline stages."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise AnalysisCancelled(f"Analysis cancelled before {stage}")


class AnalysisOrchestrator:
    """Runs discovery, per-file analysis, graph assembly, metrics and persistence."""

    def __init__(
        self,
        store: AnalysisStore,
        *,
        config: CodeHealthConfig | None = None,
        scanner: RepoScanner | None = None,
        progress: ProgressSink | None = None,
        analyzers: Mapping[str, SourceAnalyzer] | None = None,
    ) -> None:
        self.store = store
        self.config = config or default_config()
        self.scanner = scanner or RepoScanner(self.config.analyzers)
        self.progress = SafeProgressSink(progress or NullProgressSink())
        self.analyzers = analyzers if analyzers is not None else ANALYZERS
        self.logger = get_logger("orchestrator")

    def analyze_repository(
        self, repository_id: UUID, *, cancel_token: CancellationToken | None = None
    ) -> AnalysisRun:
        """Analyze the repository and persist its files, dependencies and metrics.

        Raises ``RepositoryNotFound`` before any run is recorded when the id is
        unknown, and ``AnalysisError`` once the run has been marked FAILED.
        """
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise RepositoryNotFound(f"Repository not found: {repository_id}")
        token = cancel_token or CancellationToken()

        run = self.store.save_analysis_run(AnalysisRun.start(repository_id))
        self.logger.info("Starting analysis run %s for %s", run.id, repository.name)
        self.progress.started(repository_id, run.id)

        try:
            repository = self._set_status(repository, RepositoryStatus.ANALYZING)
            token.raise_if_cancelled("discovery")
            root = self._resolve_root(repository)
            seeds = self.scanner.discover(root, repository_id)
            self.logger.debug("Scanner discovered %d files", len(seeds))
            self.progress.progress(repository_id, f"Discovered {len(seeds)} source files", DISCOVERED_PERCENT)

            token.raise_if_cancelled("file analysis")
            results = self._analyze_files(repository_id, root, seeds, token)
            files = [result.file for result in results]
            self.progress.progress(repository_id, f"Analyzed {len(files)} files", ANALYZED_PERCENT)

            token.raise_if_cancelled("graph assembly")
            dependencies = build_dependencies(results, repository_id)
            graph = assemble_graph(files, dependencies)
            self.progress.progress(
                repository_id,
                f"Built dependency graph with {len(graph.nodes)} nodes and {len(graph.links)} links",
                GRAPH_PERCENT,
            )

            token.raise_if_cancelled("metrics")
            metrics = compute_metrics(files, dependencies)
            self.progress.progress(repository_id, "Computed codebase metrics", METRICS_PERCENT)

            token.raise_if_cancelled("persistence")
            self.store.replace_code_files(repository_id, files)
            self.store.replace_dependencies(repository_id, dependencies)
            self._set_status(repository, RepositoryStatus.READY, analyzed=True)
            run = self.store.save_analysis_run(run.complete(metrics))
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            self.logger.error("Analysis run %s failed: %s", run.id, message)
            self._record_failure(run, repository, message)
            self.progress.error(repository_id, message)
            raise AnalysisError(f"Analysis failed for repository {repository_id}: {message}", cause=exc) from exc

        self.logger.info(
            "Analysis run %s completed: %d files, %d dependencies",
            run.id,
            metrics.total_files,
            metrics.dependency_count,
        )
        self.progress.completed(repository_id, run.id)
        return run

    def get_repository(self, repository_id: UUID) -> Repository:
        return self._require_repository(repository_id)

    def get_dependency_graph(self, repository_id: UUID) -> DependencyGraph:
        self._require_repository(repository_id)
        return assemble_graph(self.store.get_code_files(repository_id), self.store.get_dependencies(repository_id))

    def get_metrics(self, repository_id: UUID) -> CodeMetrics:
        """Metrics of the latest completed run.

        When the latest run did not complete, the metrics are recomputed from
        the persisted state left by the last successful run.
        """
        self._require_repository(repository_id)
        run = self.store.get_latest_analysis_run(repository_id)
        if run is None:
            raise AnalysisRunNotFound(f"No analysis run for repository {repository_id}")
        if run.status is AnalysisStatus.COMPLETED:
            return run.metrics
        return compute_metrics(self.store.get_code_files(repository_id), self.store.get_dependencies(repository_id))

    def get_analysis_run(self, run_id: UUID) -> AnalysisRun:
        run = self.store.get_analysis_run(run_id)
        if run is None:
            raise AnalysisRunNotFound(f"Analysis run not found: {run_id}")
        return run

    def get_latest_run(self, repository_id: UUID) -> Optional[AnalysisRun]:
        self._require_repository(repository_id)
        return self.store.get_latest_analysis_run(repository_id)

    # ------------------------------------------------------------------
    # Internal helpers

    def _require_repository(self, repository_id: UUID) -> Repository:
        repository = self.store.get_repository(repository_id)
        if repository is None:
            raise RepositoryNotFound(f"Repository not found: {repository_id}")
        return repository

    def _resolve_root(self, repository: Repository) -> Path:
        path = Path(repository.local_path).expanduser()
        if not path.is_absolute():
            path = self.config.storage_root / path
        return path

    def _set_status(self, repository: Repository, status: RepositoryStatus, *, analyzed: bool = False) -> Repository:
        return self.store.save_repository(repository.with_status(status, analyzed=analyzed))

    def _record_failure(self, run: AnalysisRun, repository: Repository, message: str) -> None:
        try:
            self.store.save_analysis_run(run.fail(message))
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Could not record failure of run %s: %s", run.id, exc)
        try:
            self._set_status(repository, RepositoryStatus.ERROR)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Could not mark repository %s as failed: %s", repository.id, exc)

    def _analyze_files(
        self,
        repository_id: UUID,
        root: Path,
        seeds: Sequence[CodeFile],
        token: CancellationToken,
    ) -> List[FileAnalysis]:
        total = len(seeds)
        if not total:
            return []
        workers = max(1, self.config.analyzers.workers)
        results: Dict[int, FileAnalysis] = {}

        if workers == 1:
            for index, seed in enumerate(seeds):
                token.raise_if_cancelled("file analysis")
                results[index] = self._analyze_file(root, seed)
                self._report_file_progress(repository_id, len(results), total)
        else:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="codehealth-analyze") as executor:
                futures: Dict[Future[FileAnalysis], int] = {
                    executor.submit(self._analyze_file, root, seed): index for index, seed in enumerate(seeds)
                }
                for future in as_completed(futures):
                    if token.cancelled:
                        for pending in futures:
                            pending.cancel()
                        token.raise_if_cancelled("file analysis")
                    results[futures[future]] = future.result()
                    self._report_file_progress(repository_id, len(results), total)

        return [results[index] for index in range(total)]

    def _report_file_progress(self, repository_id: UUID, done: int, total: int) -> None:
        span = ANALYZED_PERCENT - DISCOVERED_PERCENT
        percent = DISCOVERED_PERCENT + (span * done) // total
        self.progress.progress(repository_id, f"Analyzed {done}/{total} files", percent)

    def _analyze_file(self, root: Path, seed: CodeFile) -> FileAnalysis:
        """Analyze one file; every fault degrades to the baseline result."""
        settings = self.config.analyzers
        if settings.max_file_bytes is not None and seed.size > settings.max_file_bytes:
            self.logger.warning(
                "Skipping analysis of %s: %d bytes exceeds limit of %d", seed.path, seed.size, settings.max_file_bytes
            )
            return baseline_analysis(seed)

        try:
            content = (root / seed.path).read_bytes().decode(settings.encoding, errors="replace")
        except (OSError, LookupError) as exc:
            self.logger.warning("Could not read %s: %s", seed.path, exc)
            return baseline_analysis(seed)

        analyzer = self.analyzers.get(seed.language)
        if analyzer is None:
            self.logger.debug("No analyzer for %s (%s)", seed.path, seed.language)
            return baseline_analysis(seed, count_lines_of_code(content))

        try:
            result = analyzer.analyze(content, seed)
        except Exception as exc:  # noqa: BLE001
            self.logger.warning("Analyzer %s failed on %s: %s", type(analyzer).__name__, seed.path, exc)
            return baseline_analysis(seed, analyzer.count_lines(content))

        if isinstance(result, ParseFailure):
            self.logger.warning("Could not parse %s: %s", seed.path, result.reason)
            return baseline_analysis(seed, result.lines_of_code)
        return result


__all__ = ["AnalysisOrchestrator", "CancellationToken"]
