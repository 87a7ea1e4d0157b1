"""
Retrieval and Answer Pipeline

Retrieves candidate chunks for a question, drops the ones that do not share a
significant word with it, builds a source-labelled prompt and asks the language
model. When the model cannot answer, a narrower retrieval produces an extractive
answer instead.
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import structlog

from .config import RetrievalConfig
from .exceptions import EmptyInput, InvalidInput, ModelError, ModelUnavailable, StoreUnavailable
from .language_model import LanguageModel
from .models import AnswerResult, Chunk, ScoredChunk
from .vector_store import InMemoryVectorStore
from ..utils.helpers import significant_tokens, source_label

logger = structlog.get_logger(__name__)

NO_CONTEXT_ANSWER = ("I couldn't find relevant information in the knowledge base to answer your question. "
                     "Please try rephrasing your question or add more relevant documents to the system.")

CONTEXT_SEPARATOR = "\n---\n\n"
FALLBACK_SEPARATOR = "\n\n---\n\n"

PROMPT_TEMPLATE = """You are an expert AI assistant with access to relevant documentation. Provide a comprehensive, accurate, and helpful answer based on the context below.

Context Information:
{context}

User Question: {question}

Instructions:
- Answer from the context above and include the relevant details
- If the context only partly covers the question, say explicitly what you can determine and what is missing
- Be conversational and helpful
- Structure your response logically with examples when appropriate

Answer:"""


class RetrievalAnswerPipeline:
    """Question answering over the chunk store with an extractive fallback."""

    def __init__(self,
                 store: InMemoryVectorStore,
                 language_model: Optional[LanguageModel] = None,
                 config: Optional[RetrievalConfig] = None):
        self.store = store
        self.language_model = language_model
        self.config = config or RetrievalConfig()

        logger.info("RetrievalAnswerPipeline initialized",
                    model=self.model_name,
                    min_token_length=self.config.min_token_length,
                    min_chunk_length=self.config.min_chunk_length)

    @property
    def model_name(self) -> str:
        return self.language_model.model_name if self.language_model else "none"

    def answer(self, question: str, k: Optional[int] = None) -> AnswerResult:
        """
        Answer a question from the indexed chunks.

        Args:
            question: Question text, must not be blank
            k: Retrieval fan-out (default from config, normally 8)

        Returns:
            AnswerResult from the model, from the fallback path, or the
            "no relevant information" result when nothing survives filtering

        Raises:
            InvalidInput: blank question or non-positive ``k``
            StoreUnavailable: the store cannot be searched
            ModelError: the model failed and the fallback retrieval failed too
        """
        start_time = time.time()
        question = self._validate_question(question)
        k = self._validate_k(self.config.answer_top_k if k is None else k)

        candidates = self.store.similarity_search(question, k)
        relevant = self.filter_relevant(question, [result.chunk for result in candidates])

        if not relevant:
            logger.info("No relevant context found",
                        retrieved_chunks=len(candidates),
                        question_length=len(question))
            return self._no_context_result("none")

        prompt = self.build_prompt(question, relevant)

        try:
            answer_text = self._complete(prompt)
        except ModelError as e:
            return self._fallback(question, k, e)

        processing_time = time.time() - start_time
        logger.info("Answer generated",
                    model=self.model_name,
                    retrieved_chunks=len(candidates),
                    chunks_used=len(relevant),
                    processing_time=round(processing_time, 2))

        return AnswerResult(
            answer=answer_text,
            sources=[chunk.to_source(self.config.preview_length) for chunk in relevant],
            model_used=self.model_name,
            context_found=True,
            chunks_used=len(relevant)
        )

    def search(self, question: str, k: Optional[int] = None) -> List[ScoredChunk]:
        """
        Raw similarity search with no relevance filtering.

        Args:
            question: Query text, must not be blank
            k: Number of results (default from config, normally 5)

        Returns:
            Scored chunks ordered by descending similarity
        """
        question = self._validate_question(question)
        k = self._validate_k(self.config.search_top_k if k is None else k)
        return self.store.similarity_search(question, k)

    def ingest_chunks(self, chunks: Sequence[Chunk]) -> int:
        """
        Store chunks without any quality filtering.

        Args:
            chunks: Chunks produced by the document processor

        Returns:
            Number of chunks stored
        """
        if not chunks:
            raise EmptyInput("No chunks supplied for ingestion")
        count = self.store.add_chunks(chunks)
        logger.info("Chunks ingested", count=count)
        return count

    def reset(self):
        """Remove every chunk from the store."""
        self.store.clear()

    def filter_relevant(self, question: str, chunks: Sequence[Chunk]) -> List[Chunk]:
        """Keep chunks that are long enough and share a significant word with the question."""
        tokens = significant_tokens(question, self.config.min_token_length)
        relevant = []
        for chunk in chunks:
            content = chunk.text.lower()
            if (any(token in content for token in tokens)
                    and len(chunk.text.strip()) > self.config.min_chunk_length):
                relevant.append(chunk)
        return relevant

    def build_prompt(self, question: str, chunks: Sequence[Chunk]) -> str:
        """Render source-labelled context blocks into the answer prompt."""
        blocks = [
            f"[Source {index}: {source_label(chunk.metadata)}]\n{chunk.text}\n"
            for index, chunk in enumerate(chunks, start=1)
        ]
        return PROMPT_TEMPLATE.format(context=CONTEXT_SEPARATOR.join(blocks), question=question)

    def get_system_stats(self) -> Dict[str, Any]:
        """Get pipeline and store statistics."""
        return {
            "vector_store": self.store.get_stats(),
            "embedding_provider": self.store.embedding_provider.name,
            "model": self.model_name,
            "retrieval": self.config.model_dump()
        }

    def _complete(self, prompt: str) -> str:
        if self.language_model is None:
            raise ModelUnavailable("Language model not configured")
        try:
            return self.language_model.complete(prompt)
        except ModelError:
            raise
        except Exception as e:
            raise ModelUnavailable(f"Language model call failed: {e}") from e

    def _fallback(self, question: str, k: int, failure: ModelError) -> AnswerResult:
        logger.warning("Language model failed, using fallback answer",
                       error=str(failure),
                       error_type=type(failure).__name__)
        try:
            results = self.store.similarity_search(question, min(self.config.fallback_top_k, k))
        except StoreUnavailable as e:
            logger.error("Fallback retrieval failed", error=str(e))
            raise failure from e

        if not results:
            return self._no_context_result("fallback")

        chunks = [result.chunk for result in results]
        excerpt_length = self.config.fallback_excerpt_length
        return AnswerResult(
            answer=FALLBACK_SEPARATOR.join(chunk.text[:excerpt_length] for chunk in chunks),
            sources=[chunk.to_source(self.config.preview_length) for chunk in chunks],
            model_used="fallback-enhanced",
            context_found=True,
            chunks_used=len(chunks)
        )

    def _no_context_result(self, model_used: str) -> AnswerResult:
        return AnswerResult(
            answer=NO_CONTEXT_ANSWER,
            sources=[],
            model_used=model_used,
            context_found=False,
            chunks_used=0
        )

    @staticmethod
    def _validate_question(question: str) -> str:
        if not isinstance(question, str) or not question.strip():
            raise InvalidInput("No question provided", field="question")
        try:
            question.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidInput("Question is not valid UTF-8 text", field="question",
                               details={"position": e.start}) from e
        return question.strip()

    @staticmethod
    def _validate_k(k: int) -> int:
        if isinstance(k, bool) or not isinstance(k, int) or k < 1:
            raise InvalidInput("k must be a positive integer", field="k", details={"value": k})
        return k
