"""
Core data structure binding an assay matrix to feature and sample metadata.

CoordinatedTable unifies numerical measurements (counts/intensities) with
row annotations (gene ids, genomic coordinates) and column annotations
(sample phenotypes, batches), and keeps all three aligned through every
subsetting operation.

Biological Context:
    Expression containers are the fundamental data structure in genomics:
    - Rows = features (genes, probes, exons, variants)
    - Columns = samples (patients, cell lines, time points)
    - Values = measurements (counts, intensities, abundances)

    Filtering one of the three pieces without the others silently
    mislabels data. Here any selector applied to a table yields another
    valid table of the same kind, so filters compose without
    special-casing (the "endomorphism under subsetting" contract).

Engineering Design:
    - Immutable: Operations return new instances (functional style)
    - Type-safe: NumPy array for the assay, Pandas for metadata
    - Read-only exposure: the assay is handed out as a view of a
      non-writeable array, metadata frames as copies
    - Validated: Constructor checks shape consistency and id uniqueness

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from assaykit.core.table import CoordinatedTable
    >>>
    >>> table = CoordinatedTable(
    ...     assay=np.array([[10, 20], [30, 40]]),
    ...     row_meta=pd.DataFrame({
    ...         'chromosome': ['chr1', 'chr2'],
    ...         'start': [100, 500],
    ...         'end': [200, 900],
    ...     }, index=['ENSG001', 'ENSG002']),
    ...     col_meta=pd.DataFrame({'phenotype': ['CTRL', 'CASE']},
    ...                           index=['S1', 'S2']),
    ... )
    >>>
    >>> # Reorder samples, keep one gene
    >>> small = table.subset(['ENSG002'], ['S2', 'S1'])
    >>>
    >>> # Genes overlapping chr1:150-160
    >>> hits = table.filter_rows_by_overlap('chr1', 150, 160)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from assaykit.core.errors import AlignmentError, ConfigurationError, SelectorError
from assaykit.core.intervals import (
    CHROMOSOME_COLUMN,
    END_COLUMN,
    START_COLUMN,
    STRAND_COLUMN,
    IntervalIndex,
    IntervalRecord,
)

logger = logging.getLogger(__name__)

__all__ = ['CoordinatedTable', 'FEATURE_ID', 'SAMPLE_ID']

FEATURE_ID = "feature_id"
SAMPLE_ID = "sample_id"


def _as_metadata(meta: Any, id_field: str, axis: str) -> pd.DataFrame:
    """
    Normalize metadata into a DataFrame indexed by string ids.

    Accepts a DataFrame (ids from ``id_field`` column, else the index), a
    sequence of dict records carrying ``id_field``, or a sequence of ids.
    """
    if isinstance(meta, pd.DataFrame):
        frame = meta.copy()
        if id_field in frame.columns:
            frame = frame.set_index(id_field)
    elif isinstance(meta, pd.Index):
        frame = pd.DataFrame(index=meta.copy())
    else:
        items = list(meta)
        if items and all(isinstance(item, Mapping) for item in items):
            missing = [i for i, item in enumerate(items) if id_field not in item]
            if missing:
                raise AlignmentError(
                    f"{axis} records at positions {missing[:5]} lack '{id_field}'"
                )
            frame = pd.DataFrame(items).set_index(id_field)
        else:
            frame = pd.DataFrame(index=pd.Index(items))

    if frame.index.hasnans:
        raise AlignmentError(f"{axis} metadata contains missing ids")
    frame.index = pd.Index([str(i) for i in frame.index], dtype=object, name=id_field)
    return frame


def _resolve_selector(selector: Any, ids: pd.Index, axis: str) -> np.ndarray:
    """
    Turn a row/column selector into an array of positions.

    Selector forms:
        None            every position, in order
        bool mask       positions where True (length must match the axis)
        str / int       a single id or position
        sequence        ids (str) and/or positions (int); order and
                        duplicates are kept

    Raises:
        SelectorError: Unknown id, position out of range, or bad mask
    """
    n = len(ids)
    if selector is None:
        return np.arange(n, dtype=np.intp)

    if isinstance(selector, slice):
        return np.arange(n, dtype=np.intp)[selector]

    if isinstance(selector, (str, int, np.integer)) and not isinstance(selector, (bool, np.bool_)):
        selector = [selector]

    if isinstance(selector, (pd.Series, pd.Index)):
        selector = selector.to_numpy()
    if isinstance(selector, np.ndarray):
        is_mask = selector.dtype == bool
        values = selector.tolist()
    else:
        values = list(selector)
        is_mask = bool(values) and all(isinstance(v, (bool, np.bool_)) for v in values)

    if is_mask:
        if len(values) != n:
            raise SelectorError(
                f"{axis} mask length ({len(values)}) must match n_{axis}s ({n})"
            )
        return np.flatnonzero(np.asarray(values, dtype=bool)).astype(np.intp)

    positions = np.empty(len(values), dtype=np.intp)
    unknown: list[Any] = []
    for k, value in enumerate(values):
        if isinstance(value, (bool, np.bool_)):
            raise SelectorError(f"{axis} selector mixes booleans with ids/positions")
        if isinstance(value, (int, np.integer)):
            if not 0 <= value < n:
                raise SelectorError(f"{axis} position {value} out of range for {n} {axis}s")
            positions[k] = value
        else:
            loc = ids.get_indexer([str(value)])[0]
            if loc < 0:
                unknown.append(value)
            positions[k] = loc

    if unknown:
        shown = ", ".join(repr(u) for u in unknown[:5])
        more = f" (+{len(unknown) - 5} more)" if len(unknown) > 5 else ""
        raise SelectorError(f"Unknown {axis} id(s): {shown}{more}")
    return positions


class CoordinatedTable:
    """
    Immutable container for an assay matrix plus feature and sample metadata.

    Attributes:
        assay: Numerical matrix (features x samples), read-only
        row_meta: Feature annotations, indexed by feature_id
        col_meta: Sample annotations, indexed by sample_id

    Shape Invariants:
        - assay.shape[0] == len(row_meta)
        - assay.shape[1] == len(col_meta)
        - row_meta.index and col_meta.index are unique

    Design Principles:
        1. Immutability: All operations return new instances
        2. Validation: Constructor ensures consistency
        3. Closure: subset(subset(T, a), b) is again a valid table and
           equals a single combined subset
    """

    def __init__(
        self,
        assay: Any,
        row_meta: Any,
        col_meta: Any,
    ):
        """
        Initialize CoordinatedTable with validation.

        Args:
            assay: 2D numeric array-like (features x samples). Copied.
            row_meta: Feature metadata: DataFrame (ids from a 'feature_id'
                column or the index), sequence of dict records with
                'feature_id', or a sequence of ids
            col_meta: Sample metadata, same forms keyed by 'sample_id'

        Raises:
            AlignmentError: If counts disagree or ids are duplicated
            TypeError: If the assay is not numeric
        """
        data = np.array(assay, copy=True)
        if data.ndim != 2:
            raise AlignmentError(f"assay must be 2D, got shape {data.shape}")
        if data.dtype.kind not in 'biufc':
            raise TypeError(f"assay must be numeric, got dtype {data.dtype}")

        row_frame = _as_metadata(row_meta, FEATURE_ID, 'feature')
        col_frame = _as_metadata(col_meta, SAMPLE_ID, 'sample')

        n_features, n_samples = data.shape
        if len(row_frame) != n_features:
            raise AlignmentError(
                f"row metadata length ({len(row_frame)}) must match assay rows ({n_features})"
            )
        if len(col_frame) != n_samples:
            raise AlignmentError(
                f"column metadata length ({len(col_frame)}) must match assay columns ({n_samples})"
            )

        for frame, axis in ((row_frame, 'feature'), (col_frame, 'sample')):
            dupes = frame.index[frame.index.duplicated()].unique()
            if len(dupes):
                raise AlignmentError(
                    f"Duplicate {axis} ids: {list(dupes[:5])}"
                    + (f" (+{len(dupes) - 5} more)" if len(dupes) > 5 else "")
                )

        data.setflags(write=False)
        self._assay = data
        self._row_meta = row_frame
        self._col_meta = col_frame
        self._interval_index: IntervalIndex | None = None

    @classmethod
    def _trusted(cls, assay: np.ndarray, row_meta: pd.DataFrame, col_meta: pd.DataFrame) -> CoordinatedTable:
        """Build from already-validated pieces (used by subsetting)."""
        table = cls.__new__(cls)
        assay.setflags(write=False)
        table._assay = assay
        table._row_meta = row_meta
        table._col_meta = col_meta
        table._interval_index = None
        return table

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def assay(self) -> np.ndarray:
        """Assay matrix (features x samples) as a read-only view."""
        return self._assay.view()

    @property
    def row_meta(self) -> pd.DataFrame:
        """Feature metadata (copy), indexed by feature_id."""
        return self._row_meta.copy()

    @property
    def col_meta(self) -> pd.DataFrame:
        """Sample metadata (copy), indexed by sample_id."""
        return self._col_meta.copy()

    def get_assay(self) -> np.ndarray:
        return self.assay

    def get_row_meta(self) -> pd.DataFrame:
        return self.row_meta

    def get_col_meta(self) -> pd.DataFrame:
        return self.col_meta

    getAssay = get_assay
    getRowMeta = get_row_meta
    getColMeta = get_col_meta

    @property
    def feature_ids(self) -> pd.Index:
        """Row identifiers."""
        return self._row_meta.index

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers."""
        return self._col_meta.index

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_features, n_samples)."""
        return self._assay.shape

    @property
    def n_features(self) -> int:
        return self._assay.shape[0]

    @property
    def n_samples(self) -> int:
        return self._assay.shape[1]

    @property
    def has_coordinates(self) -> bool:
        """True if row metadata carries chromosome/start/end columns."""
        cols = self._row_meta.columns
        return all(c in cols for c in (CHROMOSOME_COLUMN, START_COLUMN, END_COLUMN))

    # ------------------------------------------------------------------
    # Subsetting
    # ------------------------------------------------------------------

    def subset(self, row_selector: Any = None, col_selector: Any = None) -> CoordinatedTable:
        """
        Subset rows and/or columns, keeping assay and metadata aligned.

        Args:
            row_selector: None (all rows), a boolean mask, a feature id or
                position, or a sequence of ids/positions. Sequences may
                reorder and repeat; the result follows their order.
            col_selector: Same forms for samples

        Returns:
            New CoordinatedTable; the source is unchanged

        Raises:
            SelectorError: If an id or position does not exist, or a mask
                has the wrong length

        Examples:
            >>> table.subset(['GENE_00003', 'GENE_00001'])   # reorder rows
            >>> table.subset(None, table.col_meta['phenotype'] == 'CASE')
            >>> table.subset([0, 0, 1], [2])                  # positions
        """
        rows = _resolve_selector(row_selector, self.feature_ids, 'feature')
        cols = _resolve_selector(col_selector, self.sample_ids, 'sample')

        row_meta = self._row_meta.iloc[rows]
        col_meta = self._col_meta.iloc[cols]
        if row_meta.index.has_duplicates or col_meta.index.has_duplicates:
            # repeated selection: keep ids unique so the result stays valid
            row_meta = self._dedupe_ids(row_meta)
            col_meta = self._dedupe_ids(col_meta)

        assay = self._assay[np.ix_(rows, cols)]
        logger.debug(f"subset {self.shape} -> {assay.shape}")
        return self._trusted(assay, row_meta, col_meta)

    @staticmethod
    def _dedupe_ids(frame: pd.DataFrame) -> pd.DataFrame:
        """Rename repeated ids to ``id.N``, skipping any label already taken."""
        if not frame.index.has_duplicates:
            return frame
        taken = set(frame.index)
        counters: dict[str, int] = {}
        emitted: set[str] = set()
        labels = []
        for label in frame.index:
            if label not in emitted:
                labels.append(label)
                emitted.add(label)
                continue
            count = counters.get(label, 0)
            while True:
                count += 1
                candidate = f"{label}.{count}"
                if candidate not in taken:
                    break
            counters[label] = count
            taken.add(candidate)
            emitted.add(candidate)
            labels.append(candidate)
        frame = frame.copy()
        frame.index = pd.Index(labels, dtype=object, name=frame.index.name)
        if frame.index.has_duplicates:
            raise AlignmentError("Could not make repeated ids unique")
        return frame

    def select_features(self, mask: np.ndarray | pd.Series) -> CoordinatedTable:
        """
        Subset features (rows) with a boolean mask.

        Examples:
            >>> variances = np.var(table.assay, axis=1)
            >>> variable = table.select_features(variances > np.percentile(variances, 90))
        """
        mask = np.asarray(mask.to_numpy() if isinstance(mask, pd.Series) else mask, dtype=bool)
        return self.subset(mask, None)

    def select_samples(self, mask: np.ndarray | pd.Series) -> CoordinatedTable:
        """
        Subset samples (columns) with a boolean mask.

        Examples:
            >>> cases = table.select_samples(table.col_meta['phenotype'] == 'CASE')
        """
        mask = np.asarray(mask.to_numpy() if isinstance(mask, pd.Series) else mask, dtype=bool)
        return self.subset(None, mask)

    def subset_samples(self, sample_ids: Iterable[str]) -> CoordinatedTable:
        """Column-only subset by sample ids."""
        return self.subset(None, list(sample_ids))

    # ------------------------------------------------------------------
    # Coordinate queries
    # ------------------------------------------------------------------

    def interval_index(self) -> IntervalIndex:
        """
        Overlap index over the row coordinates, built on first use.

        Raises:
            ConfigurationError: If coordinate columns are missing or malformed
        """
        if self._interval_index is None:
            if not self.has_coordinates:
                missing = [
                    c for c in (CHROMOSOME_COLUMN, START_COLUMN, END_COLUMN)
                    if c not in self._row_meta.columns
                ]
                raise ConfigurationError(
                    f"Row metadata lacks coordinate column(s) {missing}; "
                    "annotate features with coordinates first"
                )
            self._interval_index = IntervalIndex.from_frame(self._row_meta)
        return self._interval_index

    def filter_rows_by_overlap(self, chromosome: str, start: int, end: int) -> CoordinatedTable:
        """
        Keep features whose interval overlaps ``[start, end)`` on ``chromosome``.

        Rows keep their table order. Features without coordinates never
        match. No hits gives a zero-row table with all samples.

        Raises:
            ConfigurationError: If coordinates are missing/malformed or start > end
        """
        positions = self.interval_index().query_overlaps(chromosome, start, end)
        logger.debug(f"{chromosome}:{start}-{end} overlaps {len(positions)} features")
        return self.subset(positions, None)

    filterRowsByOverlap = filter_rows_by_overlap

    def filter_rows_by_regions(self, regions: Iterable[IntervalRecord | str]) -> CoordinatedTable:
        """
        Keep features overlapping any of several regions.

        Args:
            regions: IntervalRecords or region strings ('chr1:100-200')

        Returns:
            Table with matching rows in table order, each row at most once
        """
        positions = self.interval_index().query_regions(regions)
        return self.subset(positions, None)

    def interval_records(self) -> list[IntervalRecord | None]:
        """One IntervalRecord per row (None where coordinates are missing)."""
        if not self.has_coordinates:
            raise ConfigurationError("Row metadata lacks coordinate columns")
        strands = (
            self._row_meta[STRAND_COLUMN]
            if STRAND_COLUMN in self._row_meta.columns
            else pd.Series(None, index=self._row_meta.index, dtype=object)
        )
        records: list[IntervalRecord | None] = []
        for (chrom, start, end), strand in zip(
            self._row_meta[[CHROMOSOME_COLUMN, START_COLUMN, END_COLUMN]].itertuples(index=False),
            strands,
        ):
            if pd.isna(chrom) or pd.isna(start) or pd.isna(end):
                records.append(None)
            else:
                records.append(IntervalRecord(chrom, start, end, strand))
        return records

    # ------------------------------------------------------------------
    # Metadata growth
    # ------------------------------------------------------------------

    def with_row_metadata(self, **columns: Any) -> CoordinatedTable:
        """
        Return a new table with additional feature metadata columns.

        Values are scalars (broadcast) or sequences of length n_features.

        Raises:
            ValueError: If a column already exists
            AlignmentError: If a sequence has the wrong length
        """
        row_meta = self._add_columns(self._row_meta, columns, 'feature')
        return self._trusted(self._assay, row_meta, self._col_meta)

    def with_col_metadata(self, **columns: Any) -> CoordinatedTable:
        """Return a new table with additional sample metadata columns."""
        col_meta = self._add_columns(self._col_meta, columns, 'sample')
        return self._trusted(self._assay, self._row_meta, col_meta)

    @staticmethod
    def _add_columns(frame: pd.DataFrame, columns: dict[str, Any], axis: str) -> pd.DataFrame:
        existing = [name for name in columns if name in frame.columns]
        if existing:
            raise ValueError(f"{axis} metadata already has column(s) {existing}")

        result = frame.copy()
        for name, values in columns.items():
            if isinstance(values, pd.Series):
                values = values.to_numpy()
            if np.ndim(values) == 0:
                result[name] = values
                continue
            if len(values) != len(frame):
                raise AlignmentError(
                    f"Column '{name}' has {len(values)} values for {len(frame)} {axis}s"
                )
            result[name] = list(values) if not isinstance(values, np.ndarray) else values
        return result

    # ------------------------------------------------------------------
    # Comparison / export
    # ------------------------------------------------------------------

    def equals(self, other: CoordinatedTable) -> bool:
        """Content equality: assay values (NaN == NaN) and both metadata tables."""
        if not isinstance(other, CoordinatedTable):
            return False
        if self.shape != other.shape:
            return False
        return (
            self.to_frame().equals(other.to_frame())
            and self._row_meta.equals(other._row_meta)
            and self._col_meta.equals(other._col_meta)
        )

    def to_frame(self) -> pd.DataFrame:
        """Assay as a DataFrame labelled by feature and sample ids."""
        return pd.DataFrame(self._assay.copy(), index=self.feature_ids, columns=self.sample_ids)

    def __repr__(self) -> str:
        """String representation for debugging."""
        if self.n_features and self.n_samples:
            ids = (
                f"\n  Features: {self.feature_ids[0]}...{self.feature_ids[-1]}"
                f"\n  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}"
            )
        else:
            ids = ""
        return (
            f"CoordinatedTable({self.n_features} features × {self.n_samples} samples)"
            f"{ids}\n"
            f"  Row metadata columns: {list(self._row_meta.columns)}\n"
            f"  Column metadata columns: {list(self._col_meta.columns)}"
        )

    def __str__(self) -> str:
        return self.__repr__()
