"""Filename sanitization tests."""

from __future__ import annotations

import pytest

from docvault.services.filenames import (
    MAX_FILENAME_LENGTH,
    file_extension,
    sanitize_filename,
)


def test_invalid_characters_replaced_and_lowercased() -> None:
    assert sanitize_filename("Q3 Report (final).PDF") == "q3_report__final_.pdf"


def test_short_name_kept() -> None:
    assert sanitize_filename("notes.md") == "notes.md"


def test_long_name_truncated_keeping_extension() -> None:
    name = "a" * 150 + ".docx"
    result = sanitize_filename(name, "upload.docx")

    assert len(result) == MAX_FILENAME_LENGTH
    assert result.endswith(".docx")
    assert result == "a" * (MAX_FILENAME_LENGTH - len(".docx")) + ".docx"


def test_extension_comes_from_uploaded_file() -> None:
    result = sanitize_filename("b" * 120, "scan.pdf")
    assert result.endswith(".pdf")
    assert len(result) == MAX_FILENAME_LENGTH


def test_long_name_without_extension() -> None:
    assert sanitize_filename("c" * 130, "noext") == "c" * MAX_FILENAME_LENGTH


def test_absurd_extension_rejected() -> None:
    with pytest.raises(ValueError, match="too long"):
        sanitize_filename("d" * 120, "x." + "e" * 100)


@pytest.mark.parametrize(
    ("filename", "expected"),
    [("report.PDF", "pdf"), ("archive.tar.gz", "gz"), ("README", "")],
)
def test_file_extension(filename: str, expected: str) -> None:
    assert file_extension(filename) == expected


def test_display_name_without_extension_gets_upload_extension() -> None:
    assert sanitize_filename("My Report", "report.txt") == "my_report.txt"


def test_display_name_extension_replaced_by_upload_extension() -> None:
    assert sanitize_filename("summary.pdf", "export.CSV") == "summary.csv"
