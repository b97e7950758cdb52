"""Wrappers for text file I/O with consistent encoding (UTF-8)."""

from __future__ import annotations

import os
import tempfile
from io import TextIOWrapper
from pathlib import Path
from typing import Any

PathLike = Path | str


def read_text(path: PathLike, errors: str = "strict") -> str:
    """Read path as UTF-8 text, keeping line endings exactly as stored."""
    with open_text(path, "r", errors=errors, newline="") as fh:
        return fh.read()


def write_text_atomic(path: PathLike, text: str) -> None:
    """Write text to a sibling temp file, then rename it over *path*.

    Readers see either the old or the new content, never a partial file.
    """
    p = path if isinstance(path, Path) else Path(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as fh:
            fh.write(text)
        if p.exists():
            os.chmod(tmp, p.stat().st_mode & 0o777)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def open_text(
    path: PathLike,
    mode: str = "r",
    *,
    encoding: str = "utf-8",
    errors: str = "strict",
    **kwargs: Any,
) -> TextIOWrapper:
    """Open path for text I/O with UTF-8 by default."""
    p = path if isinstance(path, Path) else Path(path)
    return open(p, mode, encoding=encoding, errors=errors, **kwargs)
