"""
Document Processing Pipeline

Loads uploaded files, raw text and web pages, and splits them into chunks with
metadata ready for the vector store.
"""

import csv
import io
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests
import structlog
from bs4 import BeautifulSoup
from langchain_text_splitters import RecursiveCharacterTextSplitter
from pypdf import PdfReader

from .config import RetrievalConfig
from .exceptions import DocumentLoadError, EmptyInput, InvalidInput, UnsupportedFileType
from .models import Chunk

logger = structlog.get_logger(__name__)

SEPARATORS = ["\n\n", "\n", ". ", "! ", "? ", " ", ""]

MIMETYPE_KINDS = {
    "application/pdf": "pdf",
    "text/plain": "text",
    "text/csv": "csv",
    "application/csv": "csv",
}
EXTENSION_KINDS = {
    ".pdf": "pdf",
    ".txt": "text",
    ".csv": "csv",
}

# (text, metadata) pairs before splitting
RawDocument = Tuple[str, Dict[str, Any]]


class DocumentProcessor:
    """Process documents for ingestion with chunking and metadata extraction."""

    def __init__(self, config: Optional[RetrievalConfig] = None,
                 session: Optional[requests.Session] = None,
                 website_timeout: float = 30.0):
        config = config or RetrievalConfig()
        self.text_splitter = RecursiveCharacterTextSplitter(
            chunk_size=config.chunk_size,
            chunk_overlap=config.chunk_overlap,
            separators=SEPARATORS
        )
        self.session = session or requests.Session()
        self.website_timeout = website_timeout

        logger.info("DocumentProcessor initialized",
                    chunk_size=config.chunk_size,
                    chunk_overlap=config.chunk_overlap)

    def process_upload(self, data: bytes, filename: str, mimetype: Optional[str] = None) -> List[Chunk]:
        """
        Load an uploaded PDF, text or CSV file and split it into chunks.

        Args:
            data: Raw file content
            filename: Original file name, used for type detection and labels
            mimetype: Content type reported by the client

        Returns:
            Chunks with file metadata
        """
        kind = self._detect_kind(filename, mimetype)
        base_metadata = {
            "source": "file",
            "filename": filename,
            "upload_time": self._get_timestamp()
        }

        if kind == "pdf":
            documents = self._load_pdf(data, base_metadata)
        elif kind == "csv":
            documents = self._load_csv(data, base_metadata)
        else:
            documents = [(self._decode(data), base_metadata)]

        chunks = self._split(documents, source_id=filename)
        logger.info("File processed successfully",
                    filename=filename,
                    kind=kind,
                    documents=len(documents),
                    chunks_created=len(chunks))
        return chunks

    def process_text(self, text: str, title: str = "Manual input") -> List[Chunk]:
        """
        Split raw text content into chunks.

        Args:
            text: Raw text content to process
            title: Name identifier for the text

        Returns:
            Chunks with text metadata
        """
        metadata = {
            "source": "text",
            "title": title,
            "upload_time": self._get_timestamp()
        }
        chunks = self._split([(text, metadata)], source_id=title)
        logger.info("Text content processed successfully",
                    title=title,
                    chunks_created=len(chunks))
        return chunks

    def process_website(self, url: str) -> List[Chunk]:
        """
        Fetch a web page and split its body text into chunks.

        Args:
            url: Absolute http(s) URL

        Returns:
            Chunks with url and hostname metadata
        """
        hostname = self.validate_url(url)

        try:
            response = self.session.get(url, timeout=self.website_timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error("Failed to fetch website", url=url, error=str(e))
            raise DocumentLoadError(f"Failed to fetch website: {e}", {"url": url}) from e

        soup = BeautifulSoup(response.text, "html.parser")
        for element in soup(["script", "style", "noscript"]):
            element.decompose()
        body = soup.body or soup
        text = body.get_text(separator="\n", strip=True)

        metadata = {
            "source": "website",
            "url": url,
            "hostname": hostname,
            "upload_time": self._get_timestamp()
        }
        if soup.title and soup.title.string:
            metadata["title"] = soup.title.string.strip()

        chunks = self._split([(text, metadata)], source_id=url)
        logger.info("Website processed successfully",
                    url=url,
                    chunks_created=len(chunks))
        return chunks

    @staticmethod
    def validate_url(url: str) -> str:
        """Check that ``url`` is an absolute http(s) URL and return its hostname."""
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise InvalidInput("Invalid URL format", field="url", details={"url": url})
        return parsed.hostname

    def _split(self, documents: List[RawDocument], source_id: str) -> List[Chunk]:
        pieces = []
        for text, metadata in documents:
            for piece in self.text_splitter.split_text(text):
                if piece.strip():
                    pieces.append((piece.strip(), metadata))

        if not pieces:
            raise EmptyInput("No content found in document", {"source_id": source_id})

        return [
            Chunk(
                text=piece,
                metadata={**metadata, "chunk_index": i, "total_chunks": len(pieces)},
                source_id=source_id
            )
            for i, (piece, metadata) in enumerate(pieces)
        ]

    def _load_pdf(self, data: bytes, base_metadata: Dict[str, Any]) -> List[RawDocument]:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
        except Exception as e:
            raise InvalidInput(f"Could not read PDF: {e}", field="file") from e

        return [
            (text, {**base_metadata, "page": number, "total_pages": len(pages)})
            for number, text in enumerate(pages, start=1)
            if text.strip()
        ]

    def _load_csv(self, data: bytes, base_metadata: Dict[str, Any]) -> List[RawDocument]:
        reader = csv.DictReader(io.StringIO(self._decode(data)))
        documents = []
        for row_number, row in enumerate(reader):
            lines = [f"{(column or '').strip()}: {(value or '').strip()}"
                     for column, value in row.items() if column is not None]
            documents.append(("\n".join(lines), {**base_metadata, "row": row_number}))
        return documents

    @staticmethod
    def _decode(data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    @staticmethod
    def _detect_kind(filename: str, mimetype: Optional[str]) -> str:
        if mimetype in MIMETYPE_KINDS:
            return MIMETYPE_KINDS[mimetype]
        kind = EXTENSION_KINDS.get(Path(filename or "").suffix.lower())
        if kind is None:
            raise UnsupportedFileType(
                "Unsupported file type. Only PDF, TXT, and CSV files are allowed.",
                field="file",
                details={"filename": filename, "mimetype": mimetype}
            )
        return kind

    @staticmethod
    def _get_timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()
