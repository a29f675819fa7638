"""
assaykit - Coordinated assay containers for biomedical data science

Binds assay matrices to feature and sample metadata, keeps them aligned
through subsetting and genomic-range filtering, and tracks which samples
of a cohort have data in which experiment.
"""

__version__ = "0.1.0"

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
from assaykit.annotation import CoordinateProvider, FrameCoordinateProvider, annotate_coordinates

__all__ = [
    "AssayKitError",
    "ConfigurationError",
    "AlignmentError",
    "SelectorError",
    "DuplicateNameError",
    "UnknownExperimentError",
    "IntervalIndex",
    "IntervalRecord",
    "Strand",
    "parse_region",
    "CoordinatedTable",
    "SampleRecords",
    "MultiExperimentCollection",
    "CoordinateProvider",
    "FrameCoordinateProvider",
    "annotate_coordinates",
]
