"""
Atomic file-write utilities.

Table bundles consist of several files; a bundle interrupted mid-write
must never leave a truncated CSV that a later ``read_table`` accepts. Each
file is written to a temporary sibling and moved into place with
``os.replace()`` (POSIX rename guarantee).
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any, Callable, IO

import pandas as pd

__all__ = ['atomic_write', 'atomic_write_json', 'atomic_write_csv']


def atomic_write(path: str | os.PathLike, write: Callable[[IO[str]], None]) -> None:
    """Call ``write(handle)`` on a temp file next to *path*, then rename it over *path*.

    Readers see either the old file or the complete new one. The temp file
    is removed if *write* raises.
    """
    path = os.fspath(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False, newline=""
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically.

    Parameters
    ----------
    path:
        Destination file path.
    data:
        JSON-serializable object.
    indent:
        JSON indentation (default 2).
    """
    atomic_write(path, lambda handle: json.dump(data, handle, indent=indent))


def atomic_write_csv(path: str | os.PathLike, frame: pd.DataFrame, *, index: bool = True) -> None:
    """Write a DataFrame as CSV atomically."""
    atomic_write(path, lambda handle: frame.to_csv(handle, index=index))
