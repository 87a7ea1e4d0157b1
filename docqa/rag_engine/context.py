"""
Application Context

Builds the embedding provider, vector store, language model, pipeline and
document processor from configuration and tears them down again. Request
handlers receive this object instead of reaching for module globals.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from .config import Config
from .document_processor import DocumentProcessor
from .embeddings import EmbeddingProvider, build_embedding_provider
from .language_model import LanguageModel, build_language_model
from .rag_engine import RetrievalAnswerPipeline
from .vector_store import InMemoryVectorStore

logger = structlog.get_logger(__name__)


@dataclass
class AppContext:
    """Explicitly constructed collaborators shared by request handlers."""

    config: Config
    embeddings: EmbeddingProvider
    store: InMemoryVectorStore
    language_model: LanguageModel
    pipeline: RetrievalAnswerPipeline
    document_processor: DocumentProcessor

    @classmethod
    def create(cls, config: Config,
               language_model: Optional[LanguageModel] = None,
               embeddings: Optional[EmbeddingProvider] = None) -> "AppContext":
        """Initialize every component; explicit arguments override the configured ones."""
        embeddings = embeddings or build_embedding_provider(config.embedding)
        store = InMemoryVectorStore(embeddings)
        language_model = language_model or build_language_model(config.llm)
        pipeline = RetrievalAnswerPipeline(store, language_model, config.retrieval)
        document_processor = DocumentProcessor(config.retrieval,
                                               website_timeout=config.flask.website_timeout)

        logger.info("Application context created",
                    embedding_provider=embeddings.name,
                    model=language_model.model_name)

        return cls(config=config,
                   embeddings=embeddings,
                   store=store,
                   language_model=language_model,
                   pipeline=pipeline,
                   document_processor=document_processor)

    def close(self):
        """Tear down the store and the HTTP session."""
        self.store.close()
        self.document_processor.session.close()
        logger.info("Application context closed")
