"""Exception taxonomy shared by the analysis pipeline and its collaborators."""

from __future__ import annotations


class CodeHealthError(Exception):
    """Base class for all codehealth errors."""


class AnalysisError(CodeHealthError):
    """Pipeline-level failure; the analysis run has been marked FAILED."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RepositoryNotFoundOnDisk(CodeHealthError):
    """The repository root is missing or is not a directory."""


class StorageError(CodeHealthError):
    """The persistence layer failed to read or write analysis state."""


class AnalysisCancelled(CodeHealthError):
    """The caller cancelled the run between two pipeline stages."""


class NotFoundError(CodeHealthError):
    """Lookup of an unknown identifier."""


class RepositoryNotFound(NotFoundError):
    """No repository is registered under the requested identifier."""


class AnalysisRunNotFound(NotFoundError):
    """No analysis run matches the requested identifier or repository."""


class RepositoryValidationError(CodeHealthError):
    """An ingested repository cannot be analyzed (e.g. no supported files)."""


class RepositoryIngestionError(CodeHealthError):
    """Cloning or extracting a repository failed; the repository is marked ERROR."""


class ArchiveSecurityError(CodeHealthError):
    """An archive entry would be extracted outside the extraction root."""


__all__ = [
    "AnalysisCancelled",
    "AnalysisError",
    "AnalysisRunNotFound",
    "ArchiveSecurityError",
    "CodeHealthError",
    "NotFoundError",
    "RepositoryIngestionError",
    "RepositoryNotFound",
    "RepositoryNotFoundOnDisk",
    "RepositoryValidationError",
    "StorageError",
]
