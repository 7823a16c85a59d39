"""File handler module: encoding-aware JSON read, atomic JSON write, folder moves.

Provides the file I/O infrastructure shared by the local store and the sync
state store.  Every OS-level failure is re-raised as ``LocalStoreError``
so the engine treats it as fatal.
"""

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from charset_normalizer import from_bytes

from ariadne_sync.errors import LocalStoreError

logger = logging.getLogger(__name__)

# =============================================================================
# Read
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # Normalize ascii to utf-8 (ascii is a strict subset of utf-8)
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_json(path: Path, default: Any = None) -> Any:
    """Load a JSON document, returning *default* when the file is missing.

    Raises:
        LocalStoreError: If the file exists but cannot be read or parsed.
    """
    if not path.exists():
        return default
    try:
        try:
            content = path.read_text(encoding="utf-8-sig")
        except UnicodeDecodeError:
            # Hand-edited files are not always UTF-8.
            content, _ = read_file_with_encoding(path)
    except OSError as exc:
        raise LocalStoreError(f"Cannot read {path}: {exc}") from exc
    if not content.strip():
        return default
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise LocalStoreError(f"{path} is not valid JSON: {exc}") from exc


# =============================================================================
# Write
# =============================================================================


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialise *data* as indented JSON and atomically replace *path*.

    Writes to a temporary file in the same directory then calls
    ``os.replace()`` so readers never see partial data.  Creates the parent
    directory if it does not exist.

    Raises:
        LocalStoreError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), suffix=".tmp"
        )
    except OSError as exc:
        raise LocalStoreError(f"Cannot write {path}: {exc}") from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2, ensure_ascii=False)
            fh.write("\n")
        os.replace(tmp_path, path)
    except BaseException as exc:
        # Clean up temp file on any failure.
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        if isinstance(exc, OSError):
            raise LocalStoreError(f"Cannot write {path}: {exc}") from exc
        raise


# =============================================================================
# Folder relocation
# =============================================================================


def relocate_folder(root: Path, source: str, destination: str) -> bool:
    """Move an artifact folder, both paths relative to *root*.

    Missing sources are ignored and identical paths are left alone.
    Parent directories of *destination* are created as needed.

    Returns:
        ``True`` if a folder was moved.

    Raises:
        LocalStoreError: If the move fails.
    """
    src = root / source
    dst = root / destination
    if not src.exists():
        logger.debug("No folder to move at %s", src)
        return False
    if src.resolve() == dst.resolve():
        return False
    try:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(src), str(dst))
    except OSError as exc:
        raise LocalStoreError(
            f"Cannot move folder {source} -> {destination}: {exc}"
        ) from exc
    logger.info("Moved folder: %s -> %s", source, destination)
    return True
