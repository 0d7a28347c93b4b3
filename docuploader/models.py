"""
Models for docuploader module.

Immutable dataclasses following Single Responsibility Principle.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union
import os


DEFAULT_BASE_URL = "https://claude.ai"


@dataclass(frozen=True)
class AuthContext:
    """Identity and headers derived from a copy-pasted request."""
    organization_id: str
    project_id: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        # Read-only view so the worker can never mutate a shared snapshot
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def docs_path(self) -> str:
        return f"/api/organizations/{self.organization_id}/projects/{self.project_id}/docs"

    def doc_path(self, uuid: str) -> str:
        return f"{self.docs_path}/{uuid}"


@dataclass(frozen=True)
class FileRecord:
    """A candidate local file discovered by the walk."""
    path: Path
    name: str

    @classmethod
    def from_path(cls, path: Path) -> "FileRecord":
        path = Path(path)
        return cls(path=path, name=path.name)


class OutcomeKind(Enum):
    """Per-file outcome status."""
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class UploadOutcome:
    """Immutable result of uploading or deleting one file."""
    name: str
    kind: OutcomeKind
    reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is not OutcomeKind.PROCESSING

    @classmethod
    def processing(cls, name: str):
        return cls(name=name, kind=OutcomeKind.PROCESSING)

    @classmethod
    def success(cls, name: str):
        return cls(name=name, kind=OutcomeKind.SUCCESS)

    @classmethod
    def error(cls, name: str, reason: str):
        return cls(name=name, kind=OutcomeKind.ERROR, reason=reason)

    @classmethod
    def skipped(cls, name: str, reason: str):
        return cls(name=name, kind=OutcomeKind.SKIPPED, reason=reason)


class Phase(Enum):
    """Phase of a run."""
    UPLOADING = "uploading"
    DELETING = "deleting"


@dataclass(frozen=True)
class PhaseStarted:
    """Emitted by the worker when a follow-up phase begins."""
    phase: Phase
    total: int


RunEvent = Union[UploadOutcome, PhaseStarted]


@dataclass(frozen=True)
class UploadedRecord:
    """A file successfully uploaded, with its remote identity."""
    name: str
    remote_id: str


# Progress state variants

@dataclass(frozen=True)
class NotStarted:
    pass


@dataclass(frozen=True)
class Uploading:
    total: int
    current: int = 0
    ok: int = 0
    err: int = 0
    skipped: int = 0


@dataclass(frozen=True)
class Deleting:
    total: int
    current: int = 0
    ok: int = 0
    err: int = 0
    then_upload: bool = False


@dataclass(frozen=True)
class Completed:
    total: int
    ok: int = 0
    err: int = 0
    skipped: int = 0

    @property
    def has_failures(self) -> bool:
        return self.err > 0


ProgressState = Union[NotStarted, Uploading, Deleting, Completed]


@dataclass(frozen=True)
class UploadConfig:
    """Immutable configuration for upload operations."""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 60.0
    probe_length: int = 100
    keep_file_name: str = ".claudekeep"

    @classmethod
    def from_env(cls) -> "UploadConfig":
        """Build a config from DOCUPLOADER_* environment variables."""
        base_url = os.getenv("DOCUPLOADER_BASE_URL") or DEFAULT_BASE_URL
        timeout = os.getenv("DOCUPLOADER_TIMEOUT")
        return cls(
            base_url=base_url.rstrip("/"),
            timeout=float(timeout) if timeout else cls.timeout,
        )
