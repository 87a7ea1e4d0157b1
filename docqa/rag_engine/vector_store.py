"""
In-Memory Vector Store

Chunk store backed by a NumPy matrix and a scikit-learn nearest-neighbour
index with cosine distance. Lives for the lifetime of the process and is shared
by all request threads.
"""

import threading
from typing import Dict, List, Any, Optional, Sequence

import numpy as np
import structlog
from sklearn.neighbors import NearestNeighbors

from .embeddings import EmbeddingProvider
from .exceptions import StoreUnavailable
from .models import Chunk, ScoredChunk

logger = structlog.get_logger(__name__)


class InMemoryVectorStore:
    """Thread-safe in-memory chunk store with cosine similarity search."""

    def __init__(self, embedding_provider: EmbeddingProvider):
        self.embedding_provider = embedding_provider
        self.chunks: List[Chunk] = []
        self.vectors: Optional[np.ndarray] = None
        self.nn: Optional[NearestNeighbors] = None
        self._lock = threading.RLock()
        self._initialized = True

        logger.info("InMemoryVectorStore initialized",
                    embedding_provider=embedding_provider.name)

    @property
    def is_available(self) -> bool:
        return self._initialized

    def _ensure_initialized(self):
        if not self._initialized:
            raise StoreUnavailable("Vector store not initialized")

    def add_chunks(self, chunks: Sequence[Chunk]) -> int:
        """
        Embed and store a batch of chunks.

        The batch becomes visible to readers all at once.

        Args:
            chunks: Chunks to store

        Returns:
            Number of chunks stored
        """
        self._ensure_initialized()
        chunks = list(chunks)
        if not chunks:
            return 0

        try:
            vectors = self.embedding_provider.embed_documents([chunk.text for chunk in chunks])
        except Exception as e:
            raise StoreUnavailable("Failed to embed chunks", {"reason": str(e)}) from e

        vectors = np.asarray(vectors, dtype=float)
        if vectors.ndim != 2 or vectors.shape[0] != len(chunks):
            raise StoreUnavailable("Embedding provider returned an invalid matrix",
                                   {"shape": list(vectors.shape), "expected_rows": len(chunks)})

        with self._lock:
            self._ensure_initialized()
            if self.vectors is not None and vectors.shape[1] != self.vectors.shape[1]:
                raise StoreUnavailable("Embedding dimension changed",
                                       {"stored": self.vectors.shape[1], "received": vectors.shape[1]})

            self.chunks = self.chunks + chunks
            self.vectors = vectors if self.vectors is None else np.vstack((self.vectors, vectors))
            self._reindex()
            total = len(self.chunks)

        logger.info("Chunks added to vector store",
                    count=len(chunks),
                    total_chunks=total)
        return len(chunks)

    def _reindex(self):
        if self.vectors is None or len(self.vectors) == 0:
            self.nn = None
            return
        self.nn = NearestNeighbors(metric="cosine")
        self.nn.fit(self.vectors)

    def similarity_search(self, query: str, k: int = 5) -> List[ScoredChunk]:
        """
        Find the chunks most similar to a query.

        Args:
            query: Query text
            k: Maximum number of results

        Returns:
            Up to ``k`` scored chunks ordered by descending similarity
        """
        self._ensure_initialized()

        with self._lock:
            nn, chunks = self.nn, self.chunks

        if nn is None or not chunks:
            logger.info("Similarity search on empty store", k=k)
            return []

        try:
            query_vector = np.asarray(self.embedding_provider.embed_query(query), dtype=float)
        except Exception as e:
            raise StoreUnavailable("Failed to embed query", {"reason": str(e)}) from e

        n = min(k, len(chunks))
        distances, indices = nn.kneighbors(query_vector.reshape(1, -1), n_neighbors=n)

        results = []
        for dist, idx in zip(distances[0], indices[0]):
            # Cosine similarity lies in [-1, 1]; clamp so 1 - score is a distance in [0, 1]
            score = min(1.0, max(0.0, 1.0 - float(dist)))
            results.append(ScoredChunk(chunk=chunks[int(idx)], score=score))
        results.sort(key=lambda r: r.score, reverse=True)

        logger.info("Similarity search completed",
                    query_results=len(results),
                    top_score=results[0].score if results else 0)
        return results

    def clear(self):
        """Remove every chunk from the store."""
        self._ensure_initialized()
        with self._lock:
            self.chunks = []
            self.vectors = None
            self.nn = None
        logger.warning("All chunks cleared from vector store")

    def size(self) -> int:
        self._ensure_initialized()
        with self._lock:
            return len(self.chunks)

    def get_stats(self) -> Dict[str, Any]:
        """Get vector store statistics."""
        self._ensure_initialized()
        with self._lock:
            total = len(self.chunks)
            dimension = int(self.vectors.shape[1]) if self.vectors is not None else None
            sources = {}
            for chunk in self.chunks:
                label = chunk.metadata.get("source", "unknown")
                sources[label] = sources.get(label, 0) + 1
        return {
            "total_chunks": total,
            "vector_store_type": "memory",
            "dimension": dimension,
            "sources": sources,
        }

    def close(self):
        """Release stored data; the store rejects further use."""
        with self._lock:
            self.chunks = []
            self.vectors = None
            self.nn = None
            self._initialized = False
        logger.info("InMemoryVectorStore closed")
