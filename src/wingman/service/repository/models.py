"""Data models for knowledge repositories and their files."""

import base64
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RepositoryNotFoundError(KeyError):
    """Raised when a repository id is not registered."""


class FileStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class Segment:
    """An embedded chunk of a file's text."""

    text: str
    vector: list[float]


@dataclass
class RepositoryFile:
    """An uploaded file and its ingestion state.

    Attributes:
        id: Unique file id
        name: Original file name
        content: Raw file bytes
        status: Lifecycle state (pending -> processing -> completed | error)
        progress: Ingestion progress, 0-100, never decreasing while processing
        text: Extracted plain text
        segments: Embedded chunks in document order, set on completion
        error: Failure message when status is error
        uploaded_at: Upload timestamp
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    content: bytes = b""
    status: FileStatus = FileStatus.PENDING
    progress: int = 0
    text: str | None = None
    segments: list[Segment] | None = None
    error: str | None = None
    uploaded_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "content": base64.b64encode(self.content).decode("ascii"),
            "status": self.status.value,
            "progress": self.progress,
            "text": self.text,
            "segments": (
                [{"text": s.text, "vector": s.vector} for s in self.segments]
                if self.segments is not None
                else None
            ),
            "error": self.error,
            "uploaded_at": self.uploaded_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepositoryFile":
        segments = data.get("segments")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            content=base64.b64decode(data.get("content") or ""),
            status=FileStatus(data.get("status", FileStatus.PENDING.value)),
            progress=int(data.get("progress", 0)),
            text=data.get("text"),
            segments=(
                [Segment(text=s["text"], vector=list(s["vector"])) for s in segments]
                if segments is not None
                else None
            ),
            error=data.get("error"),
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
        )


@dataclass
class Repository:
    """A named collection of files sharing one embedding model."""

    name: str
    embedder: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    instructions: str | None = None
    files: list[RepositoryFile] = field(default_factory=list)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def find_file(self, file_id: str) -> RepositoryFile | None:
        return next((f for f in self.files if f.id == file_id), None)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "embedder": self.embedder,
            "instructions": self.instructions,
            "files": [f.to_dict() for f in self.files],
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Repository":
        return cls(
            id=data["id"],
            name=data["name"],
            embedder=data.get("embedder", ""),
            instructions=data.get("instructions"),
            files=[RepositoryFile.from_dict(f) for f in data.get("files", [])],
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
