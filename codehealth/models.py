"""Core data models shared across codehealth components."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
from uuid import UUID, uuid4


class DependencyType(Enum):
    """Kinds of directed edges extracted from a source file."""

    IMPORT = "IMPORT"
    INHERITANCE = "INHERITANCE"
    IMPLEMENTATION = "IMPLEMENTATION"
    FUNCTION_CALL = "FUNCTION_CALL"
    VARIABLE_REFERENCE = "VARIABLE_REFERENCE"


class AnalysisStatus(Enum):
    """Lifecycle states of an analysis run."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


class RepositoryStatus(Enum):
    """Lifecycle states of a registered repository."""

    PENDING = "PENDING"
    CLONING = "CLONING"
    ANALYZING = "ANALYZING"
    READY = "READY"
    ERROR = "ERROR"


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class Repository:
    """A registered repository.

    ``local_path`` is absolute for directories registered in place and relative
    to the storage root for copies the ingestor extracted or cloned itself.
    """

    id: UUID
    name: str
    local_path: str
    created_at: datetime = field(default_factory=utcnow)
    url: Optional[str] = None
    status: RepositoryStatus = RepositoryStatus.PENDING
    updated_at: Optional[datetime] = None
    last_analyzed_at: Optional[datetime] = None

    @property
    def is_managed_copy(self) -> bool:
        """True when the sources were extracted or cloned under the storage root."""
        return not Path(self.local_path).is_absolute()

    def with_status(self, status: RepositoryStatus, *, analyzed: bool = False) -> "Repository":
        now = utcnow()
        return replace(
            self,
            status=status,
            updated_at=now,
            last_analyzed_at=now if analyzed else self.last_analyzed_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "url": self.url,
            "localPath": self.local_path,
            "status": self.status.value,
            "createdAt": _format_datetime(self.created_at),
            "updatedAt": _format_datetime(self.updated_at),
            "lastAnalyzedAt": _format_datetime(self.last_analyzed_at),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Repository":
        url = payload.get("url")
        return cls(
            id=UUID(str(payload["id"])),
            name=str(payload["name"]),
            local_path=str(payload["localPath"]),
            created_at=_parse_datetime(payload.get("createdAt")) or utcnow(),
            url=str(url) if url else None,
            status=RepositoryStatus(payload.get("status") or RepositoryStatus.READY.value),
            updated_at=_parse_datetime(payload.get("updatedAt")),
            last_analyzed_at=_parse_datetime(payload.get("lastAnalyzedAt")),
        )


@dataclass
class CodeFile:
    """One discovered source file and its analysis figures."""

    id: UUID
    repository_id: UUID
    path: str
    language: str
    size: int
    lines_of_code: int = 0
    complexity: float = 0.0
    last_modified: Optional[datetime] = None

    def with_analysis(self, lines_of_code: int, complexity: float) -> "CodeFile":
        """Return a copy carrying the analysis figures; the seed stays untouched."""
        return replace(self, lines_of_code=lines_of_code, complexity=complexity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "repositoryId": str(self.repository_id),
            "path": self.path,
            "language": self.language,
            "size": self.size,
            "linesOfCode": self.lines_of_code,
            "complexity": self.complexity,
            "lastModified": _format_datetime(self.last_modified),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CodeFile":
        return cls(
            id=UUID(str(payload["id"])),
            repository_id=UUID(str(payload["repositoryId"])),
            path=str(payload["path"]),
            language=str(payload["language"]),
            size=int(payload["size"]),
            lines_of_code=int(payload.get("linesOfCode", 0)),
            complexity=float(payload.get("complexity", 0.0)),
            last_modified=_parse_datetime(payload.get("lastModified")),
        )


@dataclass(frozen=True)
class FileDependency:
    """Edge extracted from a single file before identifiers are assigned."""

    target: str
    type: DependencyType


@dataclass
class Dependency:
    """Directed edge from a source file to a textual target."""

    id: UUID
    repository_id: UUID
    source_file_id: Optional[UUID]
    target: str
    type: DependencyType

    def __post_init__(self) -> None:
        if not self.target or not self.target.strip():
            raise ValueError("Dependency target must not be blank")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "repositoryId": str(self.repository_id),
            "sourceFileId": str(self.source_file_id) if self.source_file_id else None,
            "target": self.target,
            "type": self.type.name,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Dependency":
        source = payload.get("sourceFileId")
        return cls(
            id=UUID(str(payload["id"])),
            repository_id=UUID(str(payload["repositoryId"])),
            source_file_id=UUID(str(source)) if source else None,
            target=str(payload["target"]),
            type=DependencyType[str(payload["type"])],
        )


@dataclass
class CodeMetrics:
    """Codebase-wide rollup recomputed on every run."""

    total_files: int = 0
    total_lines_of_code: int = 0
    average_complexity: float = 0.0
    language_distribution: Dict[str, int] = field(default_factory=dict)
    dependency_count: int = 0
    max_dependencies_per_file: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalFiles": self.total_files,
            "totalLinesOfCode": self.total_lines_of_code,
            "averageComplexity": self.average_complexity,
            "languageDistribution": dict(self.language_distribution),
            "dependencyCount": self.dependency_count,
            "maxDependenciesPerFile": self.max_dependencies_per_file,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any] | None) -> "CodeMetrics":
        if not payload:
            return cls()
        distribution = payload.get("languageDistribution") or {}
        return cls(
            total_files=int(payload.get("totalFiles", 0)),
            total_lines_of_code=int(payload.get("totalLinesOfCode", 0)),
            average_complexity=float(payload.get("averageComplexity", 0.0)),
            language_distribution={str(k): int(v) for k, v in distribution.items()},
            dependency_count=int(payload.get("dependencyCount", 0)),
            max_dependencies_per_file=int(payload.get("maxDependenciesPerFile", 0)),
        )


@dataclass
class AnalysisRun:
    """One execution of the analysis pipeline over a repository."""

    id: UUID
    repository_id: UUID
    started_at: datetime
    status: AnalysisStatus = AnalysisStatus.PENDING
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    metrics: CodeMetrics = field(default_factory=CodeMetrics)

    @classmethod
    def start(cls, repository_id: UUID) -> "AnalysisRun":
        """Create a run that is already IN_PROGRESS."""
        return cls(
            id=uuid4(),
            repository_id=repository_id,
            started_at=utcnow(),
            status=AnalysisStatus.IN_PROGRESS,
        )

    def complete(self, metrics: CodeMetrics) -> "AnalysisRun":
        self._require_running()
        return replace(
            self,
            status=AnalysisStatus.COMPLETED,
            completed_at=utcnow(),
            metrics=metrics,
            error=None,
        )

    def fail(self, message: str) -> "AnalysisRun":
        self._require_running()
        return replace(
            self,
            status=AnalysisStatus.FAILED,
            completed_at=utcnow(),
            error=message or "Unknown error",
        )

    def _require_running(self) -> None:
        if self.status.is_terminal:
            raise ValueError(f"Analysis run {self.id} already finished with {self.status.name}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": str(self.id),
            "repositoryId": str(self.repository_id),
            "startedAt": _format_datetime(self.started_at),
            "completedAt": _format_datetime(self.completed_at),
            "status": self.status.name,
            "error": self.error,
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "AnalysisRun":
        return cls(
            id=UUID(str(payload["id"])),
            repository_id=UUID(str(payload["repositoryId"])),
            started_at=_parse_datetime(payload.get("startedAt")) or utcnow(),
            status=AnalysisStatus[str(payload.get("status", "PENDING"))],
            completed_at=_parse_datetime(payload.get("completedAt")),
            error=payload.get("error"),
            metrics=CodeMetrics.from_dict(payload.get("metrics")),
        )


@dataclass
class GraphNode:
    id: str
    label: str
    language: str
    size: int
    metrics: Dict[str, Any]
    type: str = "file"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type,
            "language": self.language,
            "size": self.size,
            "metrics": dict(self.metrics),
        }


@dataclass
class GraphLink:
    source: str
    target: str
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"source": self.source, "target": self.target, "type": self.type}


@dataclass
class DependencyGraph:
    """Read projection consumed by the dependency visualisation."""

    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "links": [link.to_dict() for link in self.links],
        }


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat().replace("+00:00", "Z")


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
