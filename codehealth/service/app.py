"""FastAPI application exposing analysis runs and their read projections."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config import load_config
from ..errors import CodeHealthError, NotFoundError
from ..logging import get_logger
from ..orchestrator import AnalysisOrchestrator
from ..progress import LoggingProgressSink
from ..stores import JsonStore

_LOGGER = get_logger("service")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HealthResponse(BaseModel):
    status: str


class RepositoryResponse(_CamelModel):
    id: UUID
    name: str
    url: Optional[str] = None
    local_path: str = Field(alias="localPath")
    status: str
    created_at: str = Field(alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    last_analyzed_at: Optional[str] = Field(default=None, alias="lastAnalyzedAt")


class MetricsResponse(_CamelModel):
    total_files: int = Field(alias="totalFiles")
    total_lines_of_code: int = Field(alias="totalLinesOfCode")
    average_complexity: float = Field(alias="averageComplexity")
    language_distribution: Dict[str, int] = Field(alias="languageDistribution")
    dependency_count: int = Field(alias="dependencyCount")
    max_dependencies_per_file: int = Field(alias="maxDependenciesPerFile")


class AnalysisRunResponse(_CamelModel):
    id: UUID
    repository_id: UUID = Field(alias="repositoryId")
    status: str
    started_at: str = Field(alias="startedAt")
    completed_at: Optional[str] = Field(default=None, alias="completedAt")
    error: Optional[str] = None
    metrics: MetricsResponse


class GraphNodeResponse(BaseModel):
    id: str
    label: str
    type: str
    language: str
    size: int
    metrics: Dict[str, Any]


class GraphLinkResponse(BaseModel):
    source: str
    target: str
    type: str


class DependencyGraphResponse(BaseModel):
    nodes: List[GraphNodeResponse]
    links: List[GraphLinkResponse]


def _default_orchestrator() -> AnalysisOrchestrator:
    config = load_config(Path.cwd())
    return AnalysisOrchestrator(
        JsonStore(config.store_root),
        config=config,
        progress=LoggingProgressSink(),
    )


def create_app(
    orchestrator_factory: Callable[[], AnalysisOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing codehealth operations."""

    app = FastAPI(title="Codehealth Service", version="1.0.0")

    async def get_orchestrator() -> AnalysisOrchestrator:
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/repositories/{repository_id}", response_model=RepositoryResponse)
    async def repository(
        repository_id: UUID,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> RepositoryResponse:
        loop = asyncio.get_running_loop()
        found = await loop.run_in_executor(None, orchestrator.get_repository, repository_id)
        return RepositoryResponse.model_validate(found.to_dict())

    @app.post("/repositories/{repository_id}/analysis", response_model=AnalysisRunResponse)
    async def analyze_repository(
        repository_id: UUID,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> AnalysisRunResponse:
        loop = asyncio.get_running_loop()
        run = await loop.run_in_executor(None, orchestrator.analyze_repository, repository_id)
        return AnalysisRunResponse.model_validate(run.to_dict())

    @app.get("/repositories/{repository_id}/dependency-graph", response_model=DependencyGraphResponse)
    async def dependency_graph(
        repository_id: UUID,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> DependencyGraphResponse:
        loop = asyncio.get_running_loop()
        graph = await loop.run_in_executor(None, orchestrator.get_dependency_graph, repository_id)
        return DependencyGraphResponse.model_validate(graph.to_dict())

    @app.get("/repositories/{repository_id}/metrics", response_model=MetricsResponse)
    async def metrics(
        repository_id: UUID,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> MetricsResponse:
        loop = asyncio.get_running_loop()
        snapshot = await loop.run_in_executor(None, orchestrator.get_metrics, repository_id)
        return MetricsResponse.model_validate(snapshot.to_dict())

    @app.get("/analysis-runs/{run_id}", response_model=AnalysisRunResponse)
    async def analysis_run(
        run_id: UUID,
        orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    ) -> AnalysisRunResponse:
        loop = asyncio.get_running_loop()
        run = await loop.run_in_executor(None, orchestrator.get_analysis_run, run_id)
        return AnalysisRunResponse.model_validate(run.to_dict())

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_: Any, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(CodeHealthError)
    async def codehealth_error_handler(_: Any, exc: CodeHealthError) -> JSONResponse:
        _LOGGER.error("Request failed: %s", exc)
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    return app


def run_service(host: str = "0.0.0.0", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)


__all__ = ["create_app", "run_service"]
