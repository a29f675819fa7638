"""
Exception hierarchy for coordinated assay containers.

Every error raised by the library derives from AssayKitError so callers can
catch library failures in one place (the CLI does exactly that). The more
specific classes also inherit from the matching builtin where one exists,
so code written against plain ``IndexError``/``KeyError`` keeps working.

Errors are raised synchronously at the call that detects the problem and
no operation leaves a partially modified object behind: tables, indexes
and collections are only ever replaced, never edited.
"""

from __future__ import annotations

__all__ = [
    'AssayKitError',
    'ConfigurationError',
    'AlignmentError',
    'SelectorError',
    'DuplicateNameError',
    'UnknownExperimentError',
]


class AssayKitError(Exception):
    """Base class for all assaykit errors."""
    pass


class ConfigurationError(AssayKitError):
    """Raised for malformed intervals, regions or missing coordinate columns."""
    pass


class AlignmentError(AssayKitError):
    """Raised when assay dimensions and metadata disagree, or ids are not unique."""
    pass


class SelectorError(AssayKitError, IndexError):
    """Raised when a subset references an id or position that does not exist."""
    pass


class DuplicateNameError(AssayKitError):
    """Raised when an experiment name is registered twice."""
    pass


class UnknownExperimentError(AssayKitError, KeyError):
    """Raised when an unregistered experiment name is queried."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return Exception.__str__(self)
