"""
API Routes for the DocQA Backend

Flask routes for document ingestion, similarity search, answer generation and
collection management.
"""

import time
from typing import Type, TypeVar

from flask import Blueprint, current_app, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from pydantic import BaseModel
import structlog

from .models import (
    AnswerRequest, AnswerResponse, HealthResponse, IngestionResponse, QueryRequest,
    QueryResponse, SearchResult, StatsResponse, TextIngestRequest, WebsiteIngestRequest
)
from ..rag_engine.context import AppContext
from ..rag_engine.exceptions import InvalidInput
from ..rag_engine.language_model import UnconfiguredLanguageModel

logger = structlog.get_logger(__name__)

api_bp = Blueprint('api', __name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["1000 per hour", "100 per minute"],
    storage_uri="memory://",
    headers_enabled=True
)

RequestModel = TypeVar("RequestModel", bound=BaseModel)


def get_context() -> AppContext:
    """Application context attached by the app factory."""
    return current_app.extensions["docqa"]


def parse_json(model: Type[RequestModel]) -> RequestModel:
    """Validate the JSON request body against ``model``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return model.model_validate(data)


@api_bp.route('/health', methods=['GET'])
def health_check():
    """Health check with component availability."""
    context = get_context()
    features = {
        "vector_store": context.store.is_available,
        "embeddings": context.embeddings is not None,
        "llm": not isinstance(context.language_model, UnconfiguredLanguageModel),
        "stub_embeddings": context.embeddings.name == "stub",
    }
    response = HealthResponse(
        status="healthy" if features["llm"] and features["vector_store"] else "degraded",
        timestamp=int(time.time()),
        uptime=round(time.time() - current_app.config["START_TIME"], 2),
        features=features
    )
    return jsonify(response.model_dump()), 200


@api_bp.route('/upload', methods=['POST'])
@limiter.limit("10 per minute")
def upload_file():
    """Upload and index a PDF, TXT or CSV file sent as multipart field ``file``."""
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        raise InvalidInput("No file uploaded. Please ensure a file is selected and the field name is 'file'.",
                           field="file")

    context = get_context()
    chunks = context.document_processor.process_upload(upload.read(), upload.filename, upload.mimetype)
    count = context.pipeline.ingest_chunks(chunks)

    response = IngestionResponse(
        message="File processed & stored successfully",
        chunks=count,
        filename=upload.filename
    )
    return jsonify(response.model_dump(exclude_none=True)), 200


@api_bp.route('/add-text', methods=['POST'])
@limiter.limit("20 per minute")
def add_text():
    """Index raw text content."""
    text_request = parse_json(TextIngestRequest)

    context = get_context()
    chunks = context.document_processor.process_text(text_request.text, text_request.title)
    count = context.pipeline.ingest_chunks(chunks)

    response = IngestionResponse(
        message="Text processed & stored successfully",
        chunks=count,
        title=text_request.title
    )
    return jsonify(response.model_dump(exclude_none=True)), 200


@api_bp.route('/add-website', methods=['POST'])
@limiter.limit("10 per minute")
def add_website():
    """Fetch a web page and index its text."""
    website_request = parse_json(WebsiteIngestRequest)

    context = get_context()
    chunks = context.document_processor.process_website(website_request.url)
    count = context.pipeline.ingest_chunks(chunks)

    response = IngestionResponse(
        message="Website content processed & stored successfully",
        chunks=count,
        url=website_request.url,
        hostname=chunks[0].metadata.get("hostname")
    )
    return jsonify(response.model_dump(exclude_none=True)), 200


@api_bp.route('/query', methods=['POST'])
@limiter.limit("30 per minute")
def query_documents():
    """Raw similarity search; scores are also reported as distances."""
    query_request = parse_json(QueryRequest)

    results = get_context().pipeline.search(query_request.question, query_request.k)

    response = QueryResponse(
        question=query_request.question,
        results=[
            SearchResult(
                id=f"result-{index}",
                content=result.chunk.text,
                metadata=dict(result.chunk.metadata),
                score=result.score,
                distance=result.distance
            )
            for index, result in enumerate(results)
        ],
        total_results=len(results)
    )
    return jsonify(response.model_dump()), 200


@api_bp.route('/generate-answer', methods=['POST'])
@limiter.limit("30 per minute")
def generate_answer():
    """Answer a question from the indexed documents."""
    answer_request = parse_json(AnswerRequest)
    start_time = time.time()

    result = get_context().pipeline.answer(answer_request.question, answer_request.k)

    logger.info("Answer request completed",
                model=result.model_used,
                context_found=result.context_found,
                chunks_used=result.chunks_used,
                processing_time=round(time.time() - start_time, 2))

    response = AnswerResponse(**result.to_dict())
    return jsonify(response.model_dump()), 200


@api_bp.route('/stats', methods=['GET'])
def get_stats():
    """Collection statistics and public configuration."""
    context = get_context()
    stats = context.pipeline.get_system_stats()
    store_stats = stats["vector_store"]

    response = StatsResponse(
        total_chunks=store_stats["total_chunks"],
        vector_store_type=store_stats["vector_store_type"],
        embedding_provider=stats["embedding_provider"],
        model=stats["model"],
        sources=store_stats["sources"],
        configuration=context.config.public_settings()
    )
    return jsonify(response.model_dump()), 200


@api_bp.route('/clear', methods=['DELETE'])
def clear_collection():
    """Remove every indexed chunk."""
    get_context().pipeline.reset()
    return jsonify({"message": "Memory vector store cleared successfully"}), 200
