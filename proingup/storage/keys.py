"""
Helpers to generate standardized storage keys for uploaded media.

Why:
    Keep object paths consistent and tenant-scoped, and provide simple,
    testable sanitization that avoids path traversal and exotic characters
    while keeping the original filename human-readable in job metadata.

Conventions:
    - Media uploads: jobs/{user}/{job}/original.{ext}

Security:
    - Filenames are reduced to their last path component; characters outside
      [A-Za-z0-9._-] are replaced by "_".
    - Extensions are lowercased, alphanumeric only, at most 10 characters;
      otherwise derived from the content type, falling back to "bin".
"""
from __future__ import annotations

import mimetypes
import re
import unicodedata

_FILENAME_RE = re.compile(r"[^A-Za-z0-9._-]+")
_SEGMENT_RE = re.compile(r"[^A-Za-z0-9_-]+")
_EXT_RE = re.compile(r"^[a-z0-9]{1,10}$")

DEFAULT_EXTENSION = "bin"
MAX_FILENAME_LENGTH = 255


def _to_ascii(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value or "")
    return normalized.encode("ascii", "ignore").decode("ascii")


def _sanitize_segment(value: str, *, fallback: str) -> str:
    sanitized = _SEGMENT_RE.sub("-", _to_ascii(str(value))).strip("-_")
    return sanitized or fallback


def sanitize_filename(name: str) -> str:
    """Return the last path component of `name` restricted to a safe charset.

    Both "/" and "\\" count as separators so that Windows-style paths cannot
    smuggle directories into the stored name. Leading dots are dropped to
    avoid hidden files and "..".
    """
    base = re.split(r"[\\/]", name or "")[-1]
    sanitized = _FILENAME_RE.sub("_", _to_ascii(base)).lstrip(".")
    sanitized = sanitized[:MAX_FILENAME_LENGTH]
    return sanitized or "file"


def extension_for(filename: str, content_type: str | None = None) -> str:
    """Pick the object extension for an upload (without leading dot)."""
    if "." in filename:
        ext = filename.rsplit(".", 1)[-1].lower()
        if _EXT_RE.match(ext):
            return ext
    if content_type:
        mime = content_type.split(";", 1)[0].strip().lower()
        guessed = mimetypes.guess_extension(mime) or ""
        guessed = guessed.lstrip(".")
        if _EXT_RE.match(guessed):
            return guessed
    return DEFAULT_EXTENSION


def make_job_key(*, user_id: str, job_id: str, ext: str) -> str:
    """Build the storage key for an upload job's original object.

    Returns: jobs/{user}/{job}/original.{ext}
    """
    u = _sanitize_segment(user_id, fallback="user")
    j = _sanitize_segment(job_id, fallback="job")
    ext_norm = ext.lower() if _EXT_RE.match((ext or "").lower()) else DEFAULT_EXTENSION
    return f"jobs/{u}/{j}/original.{ext_norm}"


__all__ = ["DEFAULT_EXTENSION", "extension_for", "make_job_key", "sanitize_filename"]
