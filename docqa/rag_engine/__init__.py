"""
RAG Engine Module

Core components for document processing, vector storage, and the
retrieval-and-answer pipeline with its extractive fallback.
"""

from .context import AppContext
from .document_processor import DocumentProcessor
from .models import AnswerResult, Chunk, ScoredChunk
from .rag_engine import RetrievalAnswerPipeline
from .vector_store import InMemoryVectorStore

__all__ = ["AppContext", "AnswerResult", "Chunk", "DocumentProcessor", "InMemoryVectorStore",
           "RetrievalAnswerPipeline", "ScoredChunk"]
