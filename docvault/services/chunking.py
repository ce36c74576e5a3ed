"""
Chunking Service

Splits normalized document text into token-bounded chunks suitable for
embedding and retrieval. Uses LangChain's RecursiveCharacterTextSplitter
for boundary detection, measuring length with the tiktoken encoding the
downstream language model uses, so chunk sizes reflect model-visible cost
rather than character count.

Defaults (process-wide, see ``Settings``):
    - chunk_size=4000 tokens
    - chunk_overlap=200 tokens
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import lru_cache

import tiktoken
from langchain_text_splitters import RecursiveCharacterTextSplitter

from docvault.core.config import settings
from docvault.models.schemas import FileItemChunk

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _get_encoding(name: str) -> tiktoken.Encoding:
    return tiktoken.get_encoding(name)


class TokenCounter:
    """Counts, cuts and rejoins text in tokenizer tokens."""

    def __init__(self, encoding_name: str | None = None) -> None:
        self._encoding_name = encoding_name or settings.TOKENIZER_ENCODING

    @property
    def encoding(self) -> tiktoken.Encoding:
        return _get_encoding(self._encoding_name)

    def encode(self, text: str) -> list[int]:
        return self.encoding.encode(text, disallowed_special=())

    def decode(self, tokens: list[int]) -> str:
        return self.encoding.decode(tokens)

    def count(self, text: str) -> int:
        return len(self.encode(text))


class TextChunker:
    """
    Splits text into overlapping chunks bounded by a token budget.

    Separators prefer paragraph > line > sentence > word boundaries before
    falling back to hard character cuts. Any merged piece that still
    exceeds the budget is cut on token windows, so every chunk satisfies
    ``tokens <= chunk_size``.

    Usage::

        chunker = TextChunker()
        chunks = chunker.split(text)
        # Each chunk has: content, tokens

    Args:
        chunk_size: Maximum tokens per chunk.
        chunk_overlap: Tokens shared between consecutive chunks.
        counter: Token counter (defaults to the configured encoding).
    """

    def __init__(
        self,
        chunk_size: int | None = None,
        chunk_overlap: int | None = None,
        counter: TokenCounter | None = None,
    ) -> None:
        chunk_size = chunk_size if chunk_size is not None else settings.CHUNK_SIZE
        chunk_overlap = (
            chunk_overlap if chunk_overlap is not None else settings.CHUNK_OVERLAP
        )
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be less than "
                f"chunk_size ({chunk_size})"
            )

        self._counter = counter or TokenCounter()
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=self._counter.count,
            separators=["\n\n", "\n", ". ", " ", ""],
        )
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap

    @property
    def chunk_size(self) -> int:
        """Maximum tokens per chunk."""
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        """Tokens shared between consecutive chunks."""
        return self._chunk_overlap

    @property
    def counter(self) -> TokenCounter:
        return self._counter

    def split(self, text: str) -> list[FileItemChunk]:
        """
        Split text into chunks with token counts.

        Returns:
            Chunks in document order; empty if ``text`` has no content.
        """
        chunks: list[FileItemChunk] = []
        for piece in self._splitter.split_text(text):
            for content in self._enforce_budget(piece):
                if content.strip():
                    chunks.append(
                        FileItemChunk(content=content, tokens=self._counter.count(content))
                    )

        logger.info(
            "Split %d chars into %d chunks (size=%d, overlap=%d)",
            len(text),
            len(chunks),
            self._chunk_size,
            self._chunk_overlap,
        )
        return chunks

    def from_segments(self, segments: Iterable[str]) -> list[FileItemChunk]:
        """One chunk per pre-split segment, regardless of size."""
        return [
            FileItemChunk(content=segment, tokens=self._counter.count(segment))
            for segment in segments
            if segment.strip()
        ]

    def _enforce_budget(self, piece: str) -> list[str]:
        """Cut ``piece`` on overlapping token windows if it is over budget."""
        tokens = self._counter.encode(piece)
        if len(tokens) <= self._chunk_size:
            return [piece]

        step = self._chunk_size - self._chunk_overlap
        windows: list[str] = []
        for start in range(0, len(tokens), step):
            window = tokens[start : start + self._chunk_size]
            text = self._counter.decode(window)
            # Re-encoding a decoded slice can merge differently; trim until it fits
            while self._counter.count(text) > self._chunk_size and window:
                window = window[:-1]
                text = self._counter.decode(window)
            windows.append(text)
            if start + self._chunk_size >= len(tokens):
                break
        return windows
