"""
Shared test fixtures.

Provides fake language models, a scripted chunk store, a stub-embedding vector
store and a Flask test client wired to an explicit application context.
"""

from typing import List, Optional

import pytest

from docqa.api import create_app
from docqa.rag_engine import AppContext, Chunk, InMemoryVectorStore, RetrievalAnswerPipeline, ScoredChunk
from docqa.rag_engine.config import Config, EmbeddingConfig, FlaskConfig, LLMConfig, RetrievalConfig
from docqa.rag_engine.embeddings import DeterministicStubProvider
from docqa.rag_engine.exceptions import ModelUnavailable, StoreUnavailable
from docqa.rag_engine.language_model import LanguageModel

REFUND_TEXT = "Our refund policy allows returns within 30 days of purchase for any reason."


class FakeLanguageModel(LanguageModel):
    """Returns a canned answer and records every prompt."""

    model_name = "fake-model"

    def __init__(self, answer: str = "Returns are accepted within 30 days."):
        self.answer = answer
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer


class FailingLanguageModel(LanguageModel):
    """Always fails with the configured error."""

    model_name = "failing-model"

    def __init__(self, error: Optional[Exception] = None):
        self.error = error or ModelUnavailable("model down")
        self.calls = 0

    def complete(self, prompt: str) -> str:
        self.calls += 1
        raise self.error


class ScriptedChunkStore:
    """Chunk store returning a fixed ranking; can fail on chosen search calls."""

    def __init__(self, results: Optional[List[ScoredChunk]] = None, fail_on_calls=()):
        self.results = results or []
        self.fail_on_calls = set(fail_on_calls)
        self.search_calls = []
        self.added: List[Chunk] = []
        self.cleared = 0

    def similarity_search(self, query: str, k: int = 5) -> List[ScoredChunk]:
        self.search_calls.append((query, k))
        if len(self.search_calls) in self.fail_on_calls:
            raise StoreUnavailable("Vector store not initialized")
        return self.results[:k]

    def add_chunks(self, chunks) -> int:
        self.added.extend(chunks)
        return len(chunks)

    def clear(self):
        self.cleared += 1
        self.results = []

    def size(self) -> int:
        return len(self.added)


def scored(text: str, score: float = 0.9, **metadata) -> ScoredChunk:
    return ScoredChunk(chunk=Chunk(text=text, metadata=metadata, source_id=metadata.get("filename", "")),
                       score=score)


@pytest.fixture
def retrieval_config() -> RetrievalConfig:
    return RetrievalConfig()


@pytest.fixture
def stub_store() -> InMemoryVectorStore:
    return InMemoryVectorStore(DeterministicStubProvider(dimension=32))


@pytest.fixture
def fake_model() -> FakeLanguageModel:
    return FakeLanguageModel()


@pytest.fixture
def pipeline(stub_store, fake_model, retrieval_config) -> RetrievalAnswerPipeline:
    return RetrievalAnswerPipeline(stub_store, fake_model, retrieval_config)


@pytest.fixture
def test_config() -> Config:
    return Config(
        llm=LLMConfig(api_key=""),
        embedding=EmbeddingConfig(provider="stub", dimension=32),
        retrieval=RetrievalConfig(),
        flask=FlaskConfig(max_upload_mb=1)
    )


@pytest.fixture
def app_context(test_config, fake_model):
    context = AppContext.create(test_config, language_model=fake_model)
    yield context
    context.close()


@pytest.fixture
def client(app_context):
    app = create_app(context=app_context, testing=True)
    with app.test_client() as client:
        yield client
