"""
Configuration Management for the DocQA Backend

Handles environment variables, settings validation, and configuration defaults
for the language model, embeddings, retrieval policy and the Flask server.
"""

from typing import List, Optional
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

PLACEHOLDER_KEYS = {"your-groq-api-key-here", "sk-your-openai-api-key-here"}


class LLMConfig(BaseSettings):
    """OpenAI-compatible chat model settings (Groq by default)."""

    api_key: str = Field(default="", validation_alias=AliasChoices("LLM_API_KEY", "GROQ_API_KEY"))
    base_url: str = "https://api.groq.com/openai/v1"
    model: str = "llama-3.3-70b-versatile"
    temperature: float = 0.2
    max_tokens: int = 2000
    top_p: float = 0.9
    timeout: float = 60.0

    model_config = SettingsConfigDict(env_prefix="LLM_", env_file=".env", env_file_encoding="utf-8",
                                      extra="ignore", populate_by_name=True)

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        if v in PLACEHOLDER_KEYS:
            raise ValueError("LLM API key placeholder must be replaced with real key")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("LLM timeout must be positive")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


class EmbeddingConfig(BaseSettings):
    """Embedding provider selection and settings."""

    provider: str = "stub"
    api_key: str = Field(default="", validation_alias=AliasChoices("EMBEDDING_API_KEY", "OPENAI_API_KEY"))
    base_url: Optional[str] = None
    model: str = "text-embedding-3-small"
    dimension: int = 384
    batch_size: int = Field(default=100, ge=1)

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_", env_file=".env", env_file_encoding="utf-8",
                                      extra="ignore", populate_by_name=True)

    @field_validator("provider")
    @classmethod
    def normalize_provider(cls, v):
        return v.strip().lower()

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        if v in PLACEHOLDER_KEYS:
            raise ValueError("Embedding API key placeholder must be replaced with real key")
        return v

    @field_validator("dimension")
    @classmethod
    def validate_dimension(cls, v):
        if v < 1:
            raise ValueError("Embedding dimension must be positive")
        return v


class RetrievalConfig(BaseSettings):
    """Retrieval, relevance filter and chunking settings."""

    answer_top_k: int = Field(default=8, ge=1)
    search_top_k: int = Field(default=5, ge=1)
    fallback_top_k: int = Field(default=3, ge=1)
    min_token_length: int = Field(default=3, ge=0)
    min_chunk_length: int = Field(default=50, ge=0)
    preview_length: int = Field(default=200, ge=1)
    fallback_excerpt_length: int = Field(default=300, ge=1)
    chunk_size: int = Field(default=1500, ge=1)
    chunk_overlap: int = Field(default=300, ge=0)

    model_config = SettingsConfigDict(env_prefix="RETRIEVAL_", env_file=".env", env_file_encoding="utf-8",
                                      extra="ignore")

    @model_validator(mode='after')
    def validate_chunk_overlap(self):
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("Chunk overlap must be smaller than chunk size")
        return self


class FlaskConfig(BaseSettings):
    """Flask application configuration settings."""

    env: str = "development"
    debug: bool = False
    secret_key: str = "dev-secret-key"
    host: str = "0.0.0.0"
    port: int = 5000
    max_upload_mb: int = Field(default=50, ge=1)
    cors_origins: List[str] = ["*"]
    website_timeout: float = 30.0

    model_config = SettingsConfigDict(env_prefix="FLASK_", env_file=".env", env_file_encoding="utf-8",
                                      extra="ignore")


class Config:
    """Main configuration class that combines all settings."""

    def __init__(self,
                 llm: Optional[LLMConfig] = None,
                 embedding: Optional[EmbeddingConfig] = None,
                 retrieval: Optional[RetrievalConfig] = None,
                 flask: Optional[FlaskConfig] = None):
        load_dotenv()

        self.llm = llm or LLMConfig()
        self.embedding = embedding or EmbeddingConfig()
        self.retrieval = retrieval or RetrievalConfig()
        self.flask = flask or FlaskConfig()

    def public_settings(self) -> dict:
        """Non-sensitive settings for the stats endpoint."""
        return {
            "llm": {
                "model": self.llm.model,
                "base_url": self.llm.base_url,
                "temperature": self.llm.temperature,
                "max_tokens": self.llm.max_tokens,
                "configured": self.llm.is_configured,
            },
            "embedding": {
                "provider": self.embedding.provider,
                "model": self.embedding.model,
            },
            "retrieval": self.retrieval.model_dump(),
        }


_config = None


def get_config() -> Config:
    """Get the lazily built process configuration."""
    global _config
    if _config is None:
        _config = Config()
    return _config
