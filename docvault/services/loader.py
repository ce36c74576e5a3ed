"""
Document Loader

Extracts plain text from a stored document, branching on its format.

Supported formats:
    - JSON (.json): social-media post collections become one cleaned
      segment per post; any other JSON is flattened to its string values.
    - DOCX (.docx): paragraph text via python-docx.
    - PDF (.pdf): page text via PyMuPDF (fitz).
    - CSV (.csv): one ``column: value`` block per row.
    - Markdown / plain text (.md, .txt): UTF-8 decoding.
"""

from __future__ import annotations

import asyncio
import csv
import io
import json
import logging
import zipfile
from typing import Any, Final

import fitz  # PyMuPDF
from docx import Document as DocxDocument
from docx.opc.exceptions import PackageNotFoundError

from docvault.core.errors import ProcessingError
from docvault.models.schemas import LoadedDocument
from docvault.services.text_processing import format_posts, is_tweet_shaped

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS: Final[frozenset[str]] = frozenset(
    {"csv", "docx", "json", "md", "pdf", "txt"}
)


def normalize_extension(extension: str) -> str:
    """``".PDF"`` -> ``"pdf"``."""
    return extension.strip().lstrip(".").lower()


class DocumentLoader:
    """
    Async text extractor for stored documents.

    Blocking parsing (PDF, DOCX) is offloaded to a thread pool via
    ``asyncio.to_thread``.

    Usage::

        loader = DocumentLoader()
        loaded = await loader.load(raw_bytes, "pdf")
        if loaded.prechunked:
            ...  # one chunk per segment
    """

    async def load(self, blob: bytes, extension: str) -> LoadedDocument:
        """
        Extract text segments from ``blob``.

        Raises:
            ProcessingError: Unsupported extension, or a container that
                cannot be parsed.
        """
        file_type = normalize_extension(extension)
        if file_type not in SUPPORTED_EXTENSIONS:
            raise ProcessingError(
                f"Unsupported file type: '{file_type}'. "
                f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}"
            )

        if is_tweet_shaped(blob):
            posts = format_posts(blob)
            logger.info("Detected post collection: %d non-empty posts", len(posts))
            return LoadedDocument(segments=posts, prechunked=True, file_type=file_type)

        if file_type == "docx":
            text = await asyncio.to_thread(self._extract_docx, blob)
        elif file_type == "pdf":
            text = await asyncio.to_thread(self._extract_pdf, blob)
        elif file_type == "json":
            text = self._extract_json(blob)
        elif file_type == "csv":
            text = self._extract_csv(blob)
        else:
            text = self._decode(blob)

        logger.info("Loaded %s document (%d chars)", file_type, len(text))
        return LoadedDocument(segments=[text], file_type=file_type)

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(blob: bytes) -> str:
        try:
            return blob.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ProcessingError(f"File is not valid UTF-8 text: {exc}") from exc

    @staticmethod
    def _extract_docx(blob: bytes) -> str:
        """
        Paragraph text of a DOCX container, blank-line separated.

        Synchronous; always call via ``asyncio.to_thread``.
        """
        try:
            document = DocxDocument(io.BytesIO(blob))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
            raise ProcessingError(f"Could not read DOCX file: {exc}") from exc
        return "\n\n".join(p.text for p in document.paragraphs if p.text.strip())

    @staticmethod
    def _extract_pdf(blob: bytes) -> str:
        """
        Page text of a PDF.

        Synchronous; always call via ``asyncio.to_thread``.
        """
        try:
            doc = fitz.open(stream=blob, filetype="pdf")
        except (RuntimeError, ValueError) as exc:
            raise ProcessingError(f"Could not read PDF file: {exc}") from exc
        try:
            return "\n".join(page.get_text() for page in doc)
        finally:
            doc.close()

    def _extract_json(self, blob: bytes) -> str:
        """All string values of a JSON document, space-joined in document order."""
        try:
            data = json.loads(blob)
        except ValueError as exc:
            raise ProcessingError(f"Invalid JSON: {exc}") from exc
        return " ".join(_json_strings(data))

    def _extract_csv(self, blob: bytes) -> str:
        reader = csv.DictReader(io.StringIO(self._decode(blob)))
        rows = [
            "\n".join(f"{key}: {value}" for key, value in row.items() if key is not None)
            for row in reader
        ]
        return "\n\n".join(rows)


def _json_strings(node: Any) -> list[str]:
    if isinstance(node, str):
        return [node]
    if isinstance(node, dict):
        return [s for value in node.values() for s in _json_strings(value)]
    if isinstance(node, list):
        return [s for item in node for s in _json_strings(item)]
    return []
