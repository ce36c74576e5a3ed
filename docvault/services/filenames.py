"""Display-name sanitization for uploaded documents."""

from __future__ import annotations

import re
from typing import Final

MAX_FILENAME_LENGTH: Final[int] = 100

_INVALID_CHARS = re.compile(r"[^a-z0-9.]", re.IGNORECASE)


def _clean(value: str) -> str:
    return _INVALID_CHARS.sub("_", value).lower()


def file_extension(filename: str) -> str:
    """Extension after the last dot, sanitized; ``""`` when there is none."""
    if "." not in filename:
        return ""
    return _clean(filename.rsplit(".", 1)[1])


def sanitize_filename(name: str, original_filename: str | None = None) -> str:
    """
    Constrain a display name to ``[a-z0-9._]`` and 100 characters.

    Characters outside letters, digits and ``.`` become ``_`` and the
    result is lower-cased. The name is always rebuilt as
    ``base + "." + extension``: the display name's own extension is
    dropped and the extension of ``original_filename`` (the uploaded
    file's own name) appended, cutting the base when the whole would
    exceed the limit.

    Raises:
        ValueError: The extension alone leaves no room for a base name.
    """
    cleaned = _clean(name)
    extension = file_extension(original_filename if original_filename is not None else name)
    if not extension:
        return cleaned[:MAX_FILENAME_LENGTH]

    max_base = MAX_FILENAME_LENGTH - len(extension) - 1
    if max_base < 1:
        raise ValueError(f"File extension '.{extension}' is too long")

    base = cleaned.rsplit(".", 1)[0] if "." in cleaned else cleaned
    return f"{base[:max_base]}.{extension}"
