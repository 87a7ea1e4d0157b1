"""
Data Models for API Requests and Responses

Pydantic models for request/response validation and serialization
in the DocQA API.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator


class QuestionRequest(BaseModel):
    """Shared validation for question-bearing requests."""

    question: str = Field(..., description="User question")
    k: Optional[int] = Field(default=None, ge=1, le=50, description="Number of chunks to retrieve")

    @field_validator("question")
    @classmethod
    def validate_question(cls, v):
        if not v.strip():
            raise ValueError("Question cannot be empty or only whitespace")
        return v.strip()


class QueryRequest(QuestionRequest):
    """Model for raw similarity search requests."""


class AnswerRequest(QuestionRequest):
    """Model for answer generation requests."""


class TextIngestRequest(BaseModel):
    """Model for raw text ingestion."""

    text: str = Field(..., min_length=1, description="Text content to ingest")
    title: str = Field(default="Manual input", min_length=1, description="Label for the text")

    @field_validator("text")
    @classmethod
    def validate_text(cls, v):
        if not v.strip():
            raise ValueError("Text cannot be empty or only whitespace")
        return v


class WebsiteIngestRequest(BaseModel):
    """Model for website ingestion."""

    url: str = Field(..., min_length=1, description="Absolute http(s) URL")


class SearchResult(BaseModel):
    """Model for a single similarity search hit."""

    id: str = Field(..., description="Result identifier")
    content: str = Field(..., description="Chunk text")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Chunk metadata")
    score: float = Field(..., ge=0.0, le=1.0, description="Similarity score")
    distance: float = Field(..., ge=0.0, le=1.0, description="1 - score")


class QueryResponse(BaseModel):
    """Model for similarity search responses."""

    question: str
    results: List[SearchResult] = Field(default_factory=list)
    total_results: int


class AnswerResponse(BaseModel):
    """Model for generated answers."""

    answer: str
    sources: List[Dict[str, Any]] = Field(default_factory=list)
    model: str
    context_found: bool
    chunks_used: int


class IngestionResponse(BaseModel):
    """Model for ingestion responses."""

    message: str
    chunks: int
    filename: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    hostname: Optional[str] = None


class HealthResponse(BaseModel):
    """Model for system health check response."""

    status: str = Field(..., description="System status")
    timestamp: int = Field(..., description="Check timestamp")
    version: str = Field(default="1.0.0", description="API version")
    uptime: Optional[float] = Field(default=None, description="System uptime in seconds")
    features: Dict[str, bool] = Field(default_factory=dict, description="Component availability")


class StatsResponse(BaseModel):
    """Model for collection statistics."""

    total_chunks: int
    vector_store_type: str
    embedding_provider: str
    model: str
    sources: Dict[str, int] = Field(default_factory=dict)
    configuration: Dict[str, Any] = Field(default_factory=dict)
