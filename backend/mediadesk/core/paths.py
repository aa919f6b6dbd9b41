"""Folder path codec — `/`-delimited folder strings <-> segment lists."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

DEFAULT_FOLDER = "default"

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
_RESERVED_SEGMENTS = {".", ".."}


class InvalidFolderName(ValueError):
    """User-entered folder name that yields no usable path segments."""


def parse(folder: str | None) -> list[str]:
    """Split a folder attribute into non-empty segments.

    Empty or missing folders fall back to the ``default`` folder.
    """
    segments = [part for part in (folder or "").split("/") if part]
    return segments or [DEFAULT_FOLDER]


def join(segments: Iterable[str]) -> str:
    """Inverse of :func:`parse`; an empty sequence is the root (``""``)."""
    return "/".join(segments)


def parent(segments: Sequence[str]) -> tuple[str, ...]:
    return tuple(segments[:-1])


def parse_folder_name(name: str) -> list[str]:
    """Validate a folder name typed by a user (``/`` creates subfolders)."""
    segments = [part.strip() for part in (name or "").split("/")]
    segments = [part for part in segments if part]
    if not segments:
        raise InvalidFolderName("Folder name must not be empty")
    bad = [part for part in segments if part in _RESERVED_SEGMENTS]
    if bad:
        raise InvalidFolderName(f"Invalid folder segment: {bad[0]!r}")
    return segments


def object_id_from_url(url: str | None) -> str | None:
    """Derive the asset store object id from a CDN URL.

    ``https://cdn/x/image/upload/v123/shop/banner.png`` -> ``shop/banner``.
    The segment right after ``upload`` is a version/transformation and is
    skipped. Returns None when the URL has no ``upload`` segment or nothing
    follows the version.
    """
    if not url:
        return None
    parts = url.split("/")
    try:
        upload_idx = parts.index("upload")
    except ValueError:
        return None
    id_parts = parts[upload_idx + 2:]
    if not id_parts:
        return None
    filename = id_parts.pop()
    return "/".join([*id_parts, _EXTENSION_RE.sub("", filename)])
