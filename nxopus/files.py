"""Reading and writing whole files in memory."""

from __future__ import annotations

import os

from .common import NxOpusError


def resolve_path(path: str | os.PathLike[str], base_path: str = "") -> str:
    """Prefix a relative ``path`` with ``base_path``; absolute paths are kept."""
    text = os.fspath(path)
    if text.startswith("/"):
        return text
    return f"{base_path}{text}"


def read_file(path: str | os.PathLike[str], base_path: str = "") -> bytes:
    """Return the whole contents of a file."""
    full = resolve_path(path, base_path)
    try:
        with open(full, "rb") as handle:
            return handle.read()
    except OSError as exc:
        raise NxOpusError(f"could not read file (path : {full}): {exc}") from exc


def write_file(data: bytes, path: str | os.PathLike[str], base_path: str = "") -> None:
    """Write ``data`` to a file, replacing any existing contents."""
    if data is None:
        raise NxOpusError("no data to write")
    full = resolve_path(path, base_path)
    try:
        with open(full, "wb") as handle:
            handle.write(bytes(data))
    except OSError as exc:
        raise NxOpusError(f"could not write file (path : {full}): {exc}") from exc