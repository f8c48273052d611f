"""Data models for the in-memory vector store."""

from dataclasses import asdict, dataclass, field
from typing import Any


class VectorDimensionError(ValueError):
    """Raised when two vectors of different lengths are compared or mixed."""


class VectorStoreImportError(ValueError):
    """Raised when serialized store data cannot be loaded."""


@dataclass
class Document:
    """A searchable unit of text with its embedding.

    Attributes:
        id: Unique id within a domain. Chunks use "{repository}:{file}:{index}".
        source: Human-readable origin, usually the file name
        vector: Embedding of the text
        text: The text content
    """

    id: str
    source: str
    vector: list[float] = field(default_factory=list)
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        return cls(
            id=data["id"],
            source=data.get("source", ""),
            vector=[float(x) for x in data.get("vector", [])],
            text=data.get("text", ""),
        )


@dataclass
class QueryResult:
    """A document paired with its similarity to the query vector."""

    document: Document
    similarity: float
