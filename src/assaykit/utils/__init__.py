"""Utility modules for assaykit."""

from assaykit.utils.fileio import (
    atomic_write,
    atomic_write_json,
    atomic_write_csv,
)

__all__ = [
    # Atomic file-write utilities
    'atomic_write',
    'atomic_write_json',
    'atomic_write_csv',
]
