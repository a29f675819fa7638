"""
Explicit coordinate-annotation collaborators.

Expression data usually arrives with bare feature ids (Ensembl genes,
probe ids); genomic positions live in a separate annotation resource
(a TxDb/EnsDb export, a GTF-derived table, a platform annotation file).
Instead of consulting an ambient global database, every coordinate lookup
takes a provider object, so the annotation source is visible at the call
site and swappable in tests.

Design Principles:
    - Abstract interface: new annotation sources implement two methods
    - Fail gracefully: unknown ids resolve to None/missing, never crash
    - No global state: providers are passed explicitly

Examples:
    >>> genes = pd.DataFrame({
    ...     'chromosome': ['chr17', 'chr12'],
    ...     'start': [7661778, 25205245],
    ...     'end': [7687538, 25250936],
    ...     'strand': ['-', '-'],
    ... }, index=['ENSG00000141510', 'ENSG00000133703'])
    >>> provider = FrameCoordinateProvider(genes)
    >>> located = annotate_coordinates(table, provider)
    >>> located.filter_rows_by_overlap('chr17', 7_600_000, 7_700_000)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from assaykit.core.errors import ConfigurationError
from assaykit.core.intervals import (
    CHROMOSOME_COLUMN,
    END_COLUMN,
    START_COLUMN,
    STRAND_COLUMN,
    IntervalRecord,
    Strand,
)
from assaykit.core.table import CoordinatedTable

logger = logging.getLogger(__name__)

__all__ = [
    'CoordinateProvider',
    'FrameCoordinateProvider',
    'annotate_coordinates',
]

_COORDINATE_COLUMNS = [CHROMOSOME_COLUMN, START_COLUMN, END_COLUMN, STRAND_COLUMN]


class CoordinateProvider(ABC):
    """
    Abstract interface for feature -> genomic coordinate lookups.

    Key Methods:
        get_coordinates(feature_id): interval of one feature, or None
        lookup(feature_ids): batch form returning a coordinate DataFrame
    """

    @abstractmethod
    def get_coordinates(self, feature_id: str) -> Optional[IntervalRecord]:
        """
        Coordinates of a single feature.

        Returns:
            IntervalRecord, or None if the feature is unknown
        """
        pass

    def lookup(self, feature_ids: Iterable[str]) -> pd.DataFrame:
        """
        Coordinates for many features.

        Returns:
            DataFrame indexed by the requested ids (order kept) with
            chromosome/start/end/strand columns; unknown ids are missing.
            Subclasses with vectorised sources should override this.
        """
        ids = [str(f) for f in feature_ids]
        rows = []
        for feature_id in ids:
            record = self.get_coordinates(feature_id)
            if record is None:
                rows.append((None, np.nan, np.nan, Strand.UNKNOWN.value))
            else:
                rows.append((record.chromosome, record.start, record.end, record.strand.value))
        return pd.DataFrame(rows, index=pd.Index(ids, dtype=object), columns=_COORDINATE_COLUMNS)


class FrameCoordinateProvider(CoordinateProvider):
    """
    Provider backed by an in-memory annotation table.

    Args:
        frame: DataFrame indexed by feature id (or with an ``id_column``)
            holding chromosome/start/end and optionally strand
        id_column: Column with feature ids, if not the index

    Raises:
        ConfigurationError: If coordinate columns are missing, any start >
            end, or feature ids repeat
    """

    def __init__(self, frame: pd.DataFrame, id_column: Optional[str] = None):
        table = frame.set_index(id_column) if id_column else frame.copy()
        missing = [c for c in (CHROMOSOME_COLUMN, START_COLUMN, END_COLUMN) if c not in table.columns]
        if missing:
            raise ConfigurationError(f"Annotation table lacks column(s) {missing}")

        table.index = pd.Index([str(i) for i in table.index], dtype=object)
        if table.index.has_duplicates:
            dupes = list(table.index[table.index.duplicated()][:5])
            raise ConfigurationError(f"Annotation table has duplicate feature ids: {dupes}")

        if STRAND_COLUMN not in table.columns:
            table[STRAND_COLUMN] = Strand.UNKNOWN.value
        table[STRAND_COLUMN] = [Strand.parse(s).value for s in table[STRAND_COLUMN]]

        bad = table[START_COLUMN] > table[END_COLUMN]
        if bad.any():
            raise ConfigurationError(
                f"{int(bad.sum())} annotation interval(s) have start > end, "
                f"e.g. {table.index[bad.to_numpy()][0]}"
            )

        self._table = table[_COORDINATE_COLUMNS]

    def get_coordinates(self, feature_id: str) -> Optional[IntervalRecord]:
        if feature_id not in self._table.index:
            return None
        row = self._table.loc[feature_id]
        return IntervalRecord(row[CHROMOSOME_COLUMN], row[START_COLUMN], row[END_COLUMN], row[STRAND_COLUMN])

    def lookup(self, feature_ids: Iterable[str]) -> pd.DataFrame:
        ids = pd.Index([str(f) for f in feature_ids], dtype=object)
        result = self._table.reindex(ids)
        result[STRAND_COLUMN] = result[STRAND_COLUMN].fillna(Strand.UNKNOWN.value)
        return result

    def __len__(self) -> int:
        return len(self._table)


def annotate_coordinates(table: CoordinatedTable, provider: CoordinateProvider) -> CoordinatedTable:
    """
    Add chromosome/start/end/strand row metadata from a provider.

    Features the provider cannot resolve keep missing coordinates and are
    ignored by overlap queries.

    Raises:
        ValueError: If the table already carries any coordinate column
    """
    coords = provider.lookup(table.feature_ids)
    resolved = int(coords[CHROMOSOME_COLUMN].notna().sum())
    if table.n_features:
        logger.info(
            f"Resolved coordinates for {resolved}/{table.n_features} features "
            f"({100 * resolved / table.n_features:.1f}%)"
        )
    if resolved < table.n_features:
        unresolved = table.feature_ids[coords[CHROMOSOME_COLUMN].isna().to_numpy()]
        logger.debug(f"Unresolved features (first 5): {list(unresolved[:5])}")

    return table.with_row_metadata(**{
        column: coords[column].to_numpy() for column in _COORDINATE_COLUMNS
    })
