"""
Embedding Providers

Two interchangeable ways of turning text into vectors: the OpenAI embeddings
API, and a deterministic stub for running without credentials. The provider is
chosen from configuration at startup.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
import structlog
from openai import OpenAI

from .config import EmbeddingConfig
from .exceptions import ConfigurationError

logger = structlog.get_logger(__name__)


class EmbeddingProvider(ABC):
    """Turns text into fixed-size vectors."""

    name: str = "base"

    @property
    @abstractmethod
    def dimension(self) -> int:
        ...

    @abstractmethod
    def embed_documents(self, texts: List[str]) -> np.ndarray:
        """Embed a batch of texts into a (len(texts), dimension) matrix."""

    def embed_query(self, text: str) -> np.ndarray:
        """Embed a single query string."""
        return self.embed_documents([text])[0]


class DeterministicStubProvider(EmbeddingProvider):
    """Deterministic, lightweight embedder for demos and tests.

    Uses a normal generator seeded from a SHA-256 digest of the text, so the
    same text maps to the same unit vector in every process. Carries no
    semantic information.
    """

    name = "stub"

    def __init__(self, dimension: int = 384):
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed_documents(self, texts: List[str]) -> np.ndarray:
        vectors: List[np.ndarray] = []
        for text in texts:
            seed = int.from_bytes(hashlib.sha256(text.encode("utf-8")).digest()[:8], "big")
            rng = np.random.default_rng(seed)
            vector = rng.standard_normal(self._dimension)
            vectors.append(vector / np.linalg.norm(vector))
        return np.vstack(vectors) if vectors else np.zeros((0, self._dimension))


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings from the OpenAI embeddings API (or a compatible server)."""

    name = "openai"

    def __init__(self, api_key: str, model: str = "text-embedding-3-small",
                 base_url: Optional[str] = None, client: Optional[OpenAI] = None,
                 batch_size: int = 100):
        self.model = model
        self.batch_size = batch_size
        self.client = client or OpenAI(api_key=api_key, base_url=base_url)
        self._dimension = None

    @property
    def dimension(self) -> int:
        if self._dimension is None:
            self._dimension = len(self.embed_query("dimension probe"))
        return self._dimension

    def embed_documents(self, texts: List[str]) -> np.ndarray:
        # The API caps the number of inputs per request
        batches = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]
            try:
                response = self.client.embeddings.create(model=self.model, input=batch)
            except Exception as e:
                logger.error("Embedding generation failed",
                             text_count=len(texts),
                             batch_start=i,
                             error=str(e))
                raise
            batches.append(np.array([data.embedding for data in response.data], dtype=float))

        if not batches:
            return np.zeros((0, self._dimension or 0))

        embeddings = np.vstack(batches)
        if self._dimension is None:
            self._dimension = embeddings.shape[1]

        logger.debug("Embeddings generated",
                     text_count=len(texts),
                     batches=len(batches),
                     embedding_dimension=self._dimension)
        return embeddings


def build_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """Instantiate the provider named by ``config.provider``."""
    if config.provider == "stub":
        provider = DeterministicStubProvider(dimension=config.dimension)
    elif config.provider == "openai":
        if not config.api_key:
            raise ConfigurationError("EMBEDDING_PROVIDER=openai requires an API key",
                                     {"setting": "EMBEDDING_API_KEY"})
        provider = OpenAIEmbeddingProvider(api_key=config.api_key,
                                           model=config.model,
                                           base_url=config.base_url,
                                           batch_size=config.batch_size)
    else:
        raise ConfigurationError(f"Unknown embedding provider: {config.provider}",
                                 {"allowed": ["openai", "stub"]})

    logger.info("Embedding provider selected", provider=provider.name)
    return provider
