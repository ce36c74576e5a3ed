"""
Document Loader Unit Tests

Verifies text extraction per format: post collections, DOCX, PDF, CSV,
generic JSON and plain text, plus the failure modes.

No external services required, runs entirely offline.
"""

from __future__ import annotations

import io
import json

import fitz
import pytest
from docx import Document as DocxDocument

from docvault.core.errors import ProcessingError
from docvault.services.loader import DocumentLoader, normalize_extension

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def loader() -> DocumentLoader:
    return DocumentLoader()


@pytest.fixture
def sample_docx() -> bytes:
    doc = DocxDocument()
    doc.add_paragraph("First paragraph.")
    doc.add_paragraph("")
    doc.add_paragraph("Second paragraph.")
    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()


@pytest.fixture
def sample_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Hello DocVault")
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# Post collections
# ---------------------------------------------------------------------------


class TestPostCollections:
    """Tweet-shaped JSON becomes pre-chunked cleaned posts."""

    @pytest.mark.asyncio
    async def test_posts_are_cleaned_and_empty_ones_dropped(
        self, loader: DocumentLoader
    ) -> None:
        blob = json.dumps([{"text": "  "}, {"text": "hello @a https://t.co"}]).encode()
        loaded = await loader.load(blob, "json")

        assert loaded.prechunked is True
        assert loaded.segments == ["hello"]

    @pytest.mark.asyncio
    async def test_generic_json_is_flattened(self, loader: DocumentLoader) -> None:
        blob = json.dumps({"title": "Report", "sections": [{"body": "Intro"}, 3]}).encode()
        loaded = await loader.load(blob, "json")

        assert loaded.prechunked is False
        assert loaded.segments == ["Report Intro"]

    @pytest.mark.asyncio
    async def test_malformed_json_is_an_error(self, loader: DocumentLoader) -> None:
        with pytest.raises(ProcessingError, match="Invalid JSON"):
            await loader.load(b"{not json", "json")


# ---------------------------------------------------------------------------
# Containers
# ---------------------------------------------------------------------------


class TestContainers:
    """DOCX and PDF extraction."""

    @pytest.mark.asyncio
    async def test_docx_paragraphs(self, loader: DocumentLoader, sample_docx: bytes) -> None:
        loaded = await loader.load(sample_docx, "docx")
        assert loaded.segments == ["First paragraph.\n\nSecond paragraph."]
        assert loaded.file_type == "docx"

    @pytest.mark.asyncio
    async def test_malformed_docx(self, loader: DocumentLoader) -> None:
        with pytest.raises(ProcessingError, match="DOCX"):
            await loader.load(b"definitely not a zip", "docx")

    @pytest.mark.asyncio
    async def test_pdf_text(self, loader: DocumentLoader, sample_pdf: bytes) -> None:
        loaded = await loader.load(sample_pdf, ".PDF")
        assert "Hello DocVault" in loaded.segments[0]
        assert loaded.file_type == "pdf"


# ---------------------------------------------------------------------------
# Text formats
# ---------------------------------------------------------------------------


class TestTextFormats:
    """CSV, Markdown and plain text."""

    @pytest.mark.asyncio
    async def test_csv_rows(self, loader: DocumentLoader) -> None:
        blob = b"name,role\nAda,engineer\nGrace,admiral\n"
        loaded = await loader.load(blob, "csv")
        assert loaded.segments == [
            "name: Ada\nrole: engineer\n\nname: Grace\nrole: admiral"
        ]

    @pytest.mark.asyncio
    async def test_markdown_passthrough(self, loader: DocumentLoader) -> None:
        loaded = await loader.load("# Title\n\nBody ✓".encode(), "md")
        assert loaded.segments == ["# Title\n\nBody ✓"]

    @pytest.mark.asyncio
    async def test_invalid_utf8(self, loader: DocumentLoader) -> None:
        with pytest.raises(ProcessingError, match="UTF-8"):
            await loader.load(b"\xff\xfe\xfa", "txt")

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, loader: DocumentLoader) -> None:
        with pytest.raises(ProcessingError, match="Unsupported file type"):
            await loader.load(b"MZ...", "exe")


def test_normalize_extension() -> None:
    assert normalize_extension(".PDF") == "pdf"
    assert normalize_extension(" docx ") == "docx"
