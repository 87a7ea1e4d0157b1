"""
Tests for Document Loading and Chunking
"""

from unittest.mock import MagicMock

import pytest
import requests

from docqa.rag_engine import DocumentProcessor
from docqa.rag_engine.config import RetrievalConfig
from docqa.rag_engine.exceptions import (
    DocumentLoadError, EmptyInput, InvalidInput, UnsupportedFileType
)

from .conftest import REFUND_TEXT

PAGE_HTML = """
<html>
  <head><title> Store Policies </title><style>body { color: red; }</style></head>
  <body>
    <script>console.log("tracking");</script>
    <h1>Returns</h1>
    <p>Returns are accepted within 30 days of delivery with the original receipt.</p>
  </body>
</html>
"""


@pytest.fixture
def processor():
    return DocumentProcessor(RetrievalConfig(chunk_size=200, chunk_overlap=20))


class TestTextAndFiles:
    def test_process_text_metadata(self, processor):
        chunks = processor.process_text(REFUND_TEXT, title="Policy notes")

        assert len(chunks) == 1
        metadata = chunks[0].metadata
        assert metadata["source"] == "text"
        assert metadata["title"] == "Policy notes"
        assert metadata["chunk_index"] == 0
        assert metadata["total_chunks"] == 1
        assert "upload_time" in metadata
        assert chunks[0].source_id == "Policy notes"

    def test_long_text_is_split(self, processor):
        text = " ".join(f"Sentence number {i} talks about returns." for i in range(40))

        chunks = processor.process_text(text)

        assert len(chunks) > 1
        assert all(len(chunk.text) <= 200 for chunk in chunks)
        assert [chunk.metadata["chunk_index"] for chunk in chunks] == list(range(len(chunks)))
        assert {chunk.metadata["total_chunks"] for chunk in chunks} == {len(chunks)}

    def test_blank_text_is_empty_input(self, processor):
        with pytest.raises(EmptyInput):
            processor.process_text("   \n  ")

    def test_text_upload(self, processor):
        chunks = processor.process_upload(REFUND_TEXT.encode("utf-8"), "notes.txt", "text/plain")

        assert chunks[0].text == REFUND_TEXT.strip()
        assert chunks[0].metadata["source"] == "file"
        assert chunks[0].metadata["filename"] == "notes.txt"

    def test_kind_detected_from_extension(self, processor):
        chunks = processor.process_upload(b"plain words in a file", "NOTES.TXT", "application/octet-stream")

        assert chunks[0].text == "plain words in a file"

    def test_csv_rows_become_documents(self, processor):
        data = b"product,window\nshoes,30 days\nelectronics,14 days\n"

        chunks = processor.process_upload(data, "returns.csv", "text/csv")

        assert [chunk.text for chunk in chunks] == ["product: shoes\nwindow: 30 days",
                                                     "product: electronics\nwindow: 14 days"]
        assert [chunk.metadata["row"] for chunk in chunks] == [0, 1]

    def test_header_only_csv_is_empty_input(self, processor):
        with pytest.raises(EmptyInput):
            processor.process_upload(b"product,window\n", "returns.csv")

    def test_unsupported_file_type(self, processor):
        with pytest.raises(UnsupportedFileType) as exc_info:
            processor.process_upload(b"binary", "report.docx", "application/msword")

        assert exc_info.value.field == "file"

    def test_corrupt_pdf_is_invalid_input(self, processor):
        with pytest.raises(InvalidInput):
            processor.process_upload(b"this is not a pdf", "broken.pdf", "application/pdf")


class TestWebsite:
    @staticmethod
    def make_processor(response=None, error=None):
        session = MagicMock()
        if error is not None:
            session.get.side_effect = error
        else:
            session.get.return_value = response
        return DocumentProcessor(RetrievalConfig(chunk_size=200, chunk_overlap=20),
                                 session=session, website_timeout=5), session

    def test_page_text_and_metadata(self):
        response = MagicMock()
        response.text = PAGE_HTML
        processor, session = self.make_processor(response=response)

        chunks = processor.process_website("https://shop.example.com/policies")

        session.get.assert_called_once_with("https://shop.example.com/policies", timeout=5)
        text = "\n".join(chunk.text for chunk in chunks)
        assert "Returns are accepted within 30 days" in text
        assert "tracking" not in text
        assert "color: red" not in text
        metadata = chunks[0].metadata
        assert metadata["source"] == "website"
        assert metadata["hostname"] == "shop.example.com"
        assert metadata["title"] == "Store Policies"

    @pytest.mark.parametrize("url", ["", "not a url", "ftp://files.example.com/a", "https://"])
    def test_invalid_url(self, url):
        processor, session = self.make_processor()

        with pytest.raises(InvalidInput):
            processor.process_website(url)
        session.get.assert_not_called()

    def test_fetch_failure_is_document_load_error(self):
        processor, _ = self.make_processor(error=requests.ConnectionError("connection refused"))

        with pytest.raises(DocumentLoadError):
            processor.process_website("https://shop.example.com")

    def test_http_error_status_is_document_load_error(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("404 Client Error")
        processor, _ = self.make_processor(response=response)

        with pytest.raises(DocumentLoadError):
            processor.process_website("https://shop.example.com/missing")
