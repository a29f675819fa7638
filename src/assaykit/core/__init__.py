"""
Core data structures for coordinated assay containers.

This module provides the foundational types that all other modules build upon:

1. CoordinatedTable: Assay matrix bound to feature and sample metadata
2. IntervalIndex: Immutable half-open overlap index over genomic intervals
3. SampleRecords: Ragged per-sample records (mutations, variant calls)
4. MultiExperimentCollection: Several experiments over one sample cohort

Design Philosophy:
    - Immutability: All operations return new instances (functional style)
    - Closure: Subsetting a table yields a table; filters compose
    - Explicit collaborators: No ambient annotation or genome state

Examples:
    >>> from assaykit.core import CoordinatedTable, MultiExperimentCollection
    >>>
    >>> table = CoordinatedTable(assay, row_meta, col_meta)
    >>> chr1_genes = table.filter_rows_by_overlap('chr1', 1_000_000, 2_000_000)
    >>>
    >>> collection = MultiExperimentCollection(cohort=patients)
    >>> collection.register('rna', table)
"""

from assaykit.core.errors import (
    AssayKitError,
    ConfigurationError,
    AlignmentError,
    SelectorError,
    DuplicateNameError,
    UnknownExperimentError,
)
from assaykit.core.intervals import IntervalIndex, IntervalRecord, Strand, parse_region
from assaykit.core.table import CoordinatedTable
from assaykit.core.records import SampleRecords
from assaykit.core.multi import MultiExperimentCollection

__all__ = [
    'AssayKitError',
    'ConfigurationError',
    'AlignmentError',
    'SelectorError',
    'DuplicateNameError',
    'UnknownExperimentError',
    'IntervalIndex',
    'IntervalRecord',
    'Strand',
    'parse_region',
    'CoordinatedTable',
    'SampleRecords',
    'MultiExperimentCollection',
]
