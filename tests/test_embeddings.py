"""
Tests for Embedding Providers and Language Model Clients
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import numpy as np
import openai
import pytest

from docqa.rag_engine.config import EmbeddingConfig, LLMConfig
from docqa.rag_engine.embeddings import (
    DeterministicStubProvider, OpenAIEmbeddingProvider, build_embedding_provider
)
from docqa.rag_engine.exceptions import ConfigurationError, ModelTimeout, ModelUnavailable
from docqa.rag_engine.language_model import (
    OpenAIChatModel, UnconfiguredLanguageModel, build_language_model
)

CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"


def chat_response(content):
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestDeterministicStubProvider:
    def test_same_text_same_vector(self):
        first = DeterministicStubProvider(dimension=16)
        second = DeterministicStubProvider(dimension=16)

        np.testing.assert_allclose(first.embed_query("refund policy"), second.embed_query("refund policy"))

    def test_vectors_are_unit_length(self):
        vectors = DeterministicStubProvider(dimension=16).embed_documents(["a", "b", "c"])

        assert vectors.shape == (3, 16)
        np.testing.assert_allclose(np.linalg.norm(vectors, axis=1), np.ones(3))

    def test_different_texts_differ(self):
        provider = DeterministicStubProvider(dimension=16)

        assert not np.allclose(provider.embed_query("refund"), provider.embed_query("shipping"))

    def test_empty_batch(self):
        assert DeterministicStubProvider(dimension=8).embed_documents([]).shape == (0, 8)


class TestOpenAIEmbeddingProvider:
    def test_embeds_through_client(self):
        client = MagicMock()
        client.embeddings.create.return_value = SimpleNamespace(
            data=[SimpleNamespace(embedding=[0.1, 0.2, 0.3]), SimpleNamespace(embedding=[0.3, 0.2, 0.1])]
        )
        provider = OpenAIEmbeddingProvider(api_key="sk-test", model="text-embedding-3-small", client=client)

        vectors = provider.embed_documents(["one", "two"])

        client.embeddings.create.assert_called_once_with(model="text-embedding-3-small", input=["one", "two"])
        assert vectors.shape == (2, 3)
        assert provider.dimension == 3

    def test_large_input_is_split_into_batches(self):
        client = MagicMock()
        client.embeddings.create.side_effect = lambda model, input: SimpleNamespace(
            data=[SimpleNamespace(embedding=[float(text), 1.0]) for text in input]
        )
        provider = OpenAIEmbeddingProvider(api_key="sk-test", client=client, batch_size=2)
        texts = [str(i) for i in range(5)]

        vectors = provider.embed_documents(texts)

        batches = [call.kwargs["input"] for call in client.embeddings.create.call_args_list]
        assert batches == [["0", "1"], ["2", "3"], ["4"]]
        assert vectors.shape == (5, 2)
        np.testing.assert_allclose(vectors[:, 0], [0.0, 1.0, 2.0, 3.0, 4.0])

    def test_batch_size_comes_from_config(self):
        provider = build_embedding_provider(EmbeddingConfig(provider="openai", api_key="sk-test", batch_size=16))

        assert provider.batch_size == 16

    def test_client_errors_propagate(self):
        client = MagicMock()
        client.embeddings.create.side_effect = RuntimeError("quota exceeded")
        provider = OpenAIEmbeddingProvider(api_key="sk-test", client=client)

        with pytest.raises(RuntimeError):
            provider.embed_documents(["one"])


class TestBuildEmbeddingProvider:
    def test_stub_selected_by_config(self):
        provider = build_embedding_provider(EmbeddingConfig(provider="stub", dimension=12))

        assert isinstance(provider, DeterministicStubProvider)
        assert provider.dimension == 12

    def test_provider_name_is_case_insensitive(self):
        assert build_embedding_provider(EmbeddingConfig(provider=" STUB ")).name == "stub"

    def test_openai_requires_api_key(self):
        with pytest.raises(ConfigurationError):
            build_embedding_provider(EmbeddingConfig(provider="openai", api_key=""))

    def test_openai_selected_by_config(self):
        provider = build_embedding_provider(EmbeddingConfig(provider="openai", api_key="sk-test"))

        assert isinstance(provider, OpenAIEmbeddingProvider)

    def test_unknown_provider(self):
        with pytest.raises(ConfigurationError):
            build_embedding_provider(EmbeddingConfig(provider="fake"))


class TestOpenAIChatModel:
    @pytest.fixture
    def llm_config(self):
        return LLMConfig(api_key="gsk-test", model="test-model", timeout=5.0)

    def test_returns_message_content(self, llm_config):
        client = MagicMock()
        client.chat.completions.create.return_value = chat_response("  Thirty days.  ")
        model = OpenAIChatModel(llm_config, client=client)

        assert model.complete("prompt") == "Thirty days."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"][1] == {"role": "user", "content": "prompt"}

    def test_timeout_maps_to_model_timeout(self, llm_config):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APITimeoutError(
            request=httpx.Request("POST", CHAT_URL)
        )

        with pytest.raises(ModelTimeout):
            OpenAIChatModel(llm_config, client=client).complete("prompt")

    def test_api_error_maps_to_model_unavailable(self, llm_config):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.APIConnectionError(
            request=httpx.Request("POST", CHAT_URL)
        )

        with pytest.raises(ModelUnavailable):
            OpenAIChatModel(llm_config, client=client).complete("prompt")

    def test_empty_content_is_unavailable(self, llm_config):
        client = MagicMock()
        client.chat.completions.create.return_value = chat_response(None)

        with pytest.raises(ModelUnavailable):
            OpenAIChatModel(llm_config, client=client).complete("prompt")


class TestBuildLanguageModel:
    def test_missing_key_gives_unconfigured_model(self):
        model = build_language_model(LLMConfig(api_key="", model="test-model"))

        assert isinstance(model, UnconfiguredLanguageModel)
        assert model.model_name == "test-model"
        with pytest.raises(ModelUnavailable):
            model.complete("prompt")

    def test_key_gives_chat_model(self):
        model = build_language_model(LLMConfig(api_key="gsk-test"))

        assert isinstance(model, OpenAIChatModel)

    def test_placeholder_key_is_rejected(self):
        with pytest.raises(ValueError):
            LLMConfig(api_key="your-groq-api-key-here")
