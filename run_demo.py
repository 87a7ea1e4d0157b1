#!/usr/bin/env python3
"""
Demo Startup Script for the DocQA Backend

Checks configuration, optionally preloads a directory of documents into the
in-memory store, and starts the API server.
"""

import argparse
import sys
from pathlib import Path

import structlog

from docqa.api.app import create_app
from docqa.rag_engine import AppContext
from docqa.rag_engine.config import get_config
from docqa.rag_engine.exceptions import DocQAError

logger = structlog.get_logger(__name__)

PRELOAD_EXTENSIONS = {".pdf", ".txt", ".csv"}


def print_banner():
    """Print startup banner."""
    print("""
    =============================================================
                     DocQA RAG Backend - Demo
      Upload documents, search them, and ask questions
    =============================================================
    """)


def check_environment(context: AppContext) -> bool:
    """Report which components are configured."""
    config = context.config
    print("Checking environment configuration...")

    llm_ready = config.llm.is_configured
    print(f"  {'[OK]' if llm_ready else '[--]'} Language model: {config.llm.model}"
          f"{'' if llm_ready else ' (no API key, answers use the extractive fallback)'}")
    print(f"  [OK] Embedding provider: {context.embeddings.name}")
    if context.embeddings.name == "stub":
        print("       Stub embeddings carry no meaning; set EMBEDDING_PROVIDER=openai for semantic search")
    return llm_ready


def preload_directory(context: AppContext, directory: Path) -> int:
    """Ingest every PDF, TXT and CSV file below ``directory``."""
    print(f"Loading documents from {directory}...")
    if not directory.is_dir():
        print(f"  [ERROR] Directory not found: {directory.absolute()}")
        return 0

    total = 0
    for path in sorted(directory.rglob("*")):
        if not path.is_file() or path.suffix.lower() not in PRELOAD_EXTENSIONS:
            continue
        try:
            chunks = context.document_processor.process_upload(path.read_bytes(), path.name)
            total += context.pipeline.ingest_chunks(chunks)
            print(f"  [OK] {path.name}: {len(chunks)} chunks")
        except DocQAError as e:
            logger.warning("Failed to preload file", file=str(path), error=str(e))
            print(f"  [WARN] {path.name}: {e.message}")

    print(f"  Loaded {total} chunks")
    return total


def print_usage_info(host: str, port: int):
    """Print usage information and next steps."""
    print(f"""
API available at http://{host}:{port}

  POST   /upload            Upload a PDF, TXT or CSV file (field "file")
  POST   /add-text          {{"text": "...", "title": "..."}}
  POST   /add-website       {{"url": "https://..."}}
  POST   /query             {{"question": "...", "k": 5}}
  POST   /generate-answer   {{"question": "...", "k": 8}}
  GET    /stats             Collection statistics
  DELETE /clear             Remove all documents
  GET    /health            Health check

Press Ctrl+C to stop.
""")


def main(argv=None):
    """Main demo startup sequence."""
    parser = argparse.ArgumentParser(description="Run the DocQA demo server")
    parser.add_argument("--documents", type=Path, help="Directory of documents to preload")
    args = parser.parse_args(argv)

    print_banner()

    config = get_config()
    try:
        context = AppContext.create(config)
    except DocQAError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)

    check_environment(context)
    if args.documents:
        preload_directory(context, args.documents)

    app = create_app(context=context)
    print_usage_info(config.flask.host, config.flask.port)

    try:
        app.run(host=config.flask.host, port=config.flask.port, debug=config.flask.debug, threaded=True)
    except KeyboardInterrupt:
        print("\nShutting down DocQA backend...")
    finally:
        context.close()


if __name__ == "__main__":
    main()
