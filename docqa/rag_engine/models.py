"""
Core Data Types for Retrieval

Value objects passed between the chunk store, the retrieval pipeline and the
API layer.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

MetadataValue = Union[str, int, float]


@dataclass(frozen=True)
class Chunk:
    """A piece of ingested text with the metadata of the document it came from."""

    text: str
    metadata: Mapping[str, MetadataValue] = field(default_factory=dict)
    source_id: str = ""

    def __post_init__(self):
        if not isinstance(self.text, str) or not self.text.strip():
            raise ValueError("Chunk text must be a non-empty string")
        # Copy so later mutation of the caller's dict cannot leak in
        object.__setattr__(self, "metadata", dict(self.metadata))

    def preview(self, length: int = 200) -> str:
        """Return the leading characters of the chunk followed by an ellipsis."""
        return self.text[:length] + "..."

    def to_source(self, preview_length: int = 200) -> Dict[str, Any]:
        """Source attribution entry: the chunk metadata plus a text preview."""
        return {**self.metadata, "preview": self.preview(preview_length)}


@dataclass(frozen=True)
class ScoredChunk:
    """A chunk returned by similarity search with its similarity in [0, 1]."""

    chunk: Chunk
    score: float

    @property
    def distance(self) -> float:
        return 1.0 - self.score


@dataclass
class AnswerResult:
    """Outcome of a single answer request."""

    answer: str
    sources: List[Dict[str, Any]]
    model_used: str
    context_found: bool
    chunks_used: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "answer": self.answer,
            "sources": self.sources,
            "model": self.model_used,
            "context_found": self.context_found,
            "chunks_used": self.chunks_used,
        }
