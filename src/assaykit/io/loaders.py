"""
Loaders for coordinated tables and interval files.

Provides robust loading of assay matrices and their metadata from
delimited text into CoordinatedTable objects, and of BED files into
IntervalRecords.

Biological Context:
    Archive downloads (GEO series matrices, ArrayExpress processed data,
    exported cloud tables) typically come as three pieces:
    - an assay matrix: rows = features, columns = samples
    - feature annotations: one row per feature (symbol, coordinates, ...)
    - sample annotations: one row per sample (phenotype, batch, ...)

    The pieces are often written in different orders, so metadata is
    aligned to the assay by id rather than by position.

Engineering Design:
    - Delimiter from the file suffix (.tsv/.txt -> tab, otherwise comma)
    - Strict ids: duplicated assay ids are an AlignmentError, metadata
      missing an assay id is an AlignmentError
    - Lenient extras: metadata rows for ids absent from the assay are
      dropped with a UserWarning
    - Clear validation messages for non-numeric cells

Examples:
    >>> from pathlib import Path
    >>> from assaykit.io.loaders import load_table, read_table
    >>>
    >>> table = load_table(
    ...     Path("GSE12345_matrix.tsv"),
    ...     row_meta_path=Path("GSE12345_features.csv"),
    ...     col_meta_path=Path("GSE12345_samples.csv"),
    ... )
    >>> print(f"Loaded {table.n_features} features x {table.n_samples} samples")
    >>>
    >>> # Bundle written by write_table(table, Path("results/brca"))
    >>> table = read_table(Path("results/brca"))
"""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from assaykit.core.errors import AlignmentError
from assaykit.core.intervals import IntervalRecord, Strand
from assaykit.core.table import FEATURE_ID, SAMPLE_ID, CoordinatedTable

logger = logging.getLogger(__name__)

__all__ = ['load_table', 'read_table', 'load_bed_intervals', 'bundle_paths']

_TAB_SUFFIXES = {'.tsv', '.txt', '.tab'}


def bundle_paths(base: Path) -> dict[str, Path]:
    """File names of a table bundle with base path *base*."""
    base = Path(base)
    return {
        'assay': Path(str(base) + ".assay.csv"),
        'rows': Path(str(base) + ".rows.csv"),
        'cols': Path(str(base) + ".cols.csv"),
        'manifest': Path(str(base) + ".manifest.json"),
    }


def _delimiter_for(path: Path) -> str:
    return '\t' if path.suffix.lower() in _TAB_SUFFIXES else ','


def _read_frame(path: Path, what: str) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"{what} file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Path is not a file: {path}")

    try:
        # ids stay text: "007" and "1e3" must not become numbers
        df = pd.read_csv(path, sep=_delimiter_for(path), converters={0: str})
        df = df.set_index(df.columns[0])
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"{what} file is empty: {path}") from e
    except (pd.errors.ParserError, UnicodeDecodeError) as e:
        raise ValueError(f"Failed to read {what} file {path}: {e}") from e

    df.index = pd.Index([str(i) for i in df.index], dtype=object)
    df.columns = pd.Index([str(c) for c in df.columns], dtype=object)
    return df


def _numeric_values(df: pd.DataFrame) -> np.ndarray:
    """Convert to float, listing up to five offending cells on failure."""
    try:
        return df.to_numpy(dtype=float)
    except (TypeError, ValueError) as e:
        non_numeric = []
        for i, row in enumerate(df.itertuples(index=False)):
            for j, val in enumerate(row):
                try:
                    float(val)
                except (ValueError, TypeError):
                    non_numeric.append(f"row {i} ('{df.index[i]}'), col {j} ('{df.columns[j]}'): {val}")
                    if len(non_numeric) >= 5:
                        break
            if len(non_numeric) >= 5:
                break

        raise ValueError(
            "Assay contains non-numeric values:\n"
            + "\n".join(f"  - {x}" for x in non_numeric)
            + ("\n  ..." if len(non_numeric) >= 5 else "")
        ) from e


def _align_metadata(meta: pd.DataFrame, ids: pd.Index, axis: str, path: Path) -> pd.DataFrame:
    if meta.index.has_duplicates:
        dupes = list(meta.index[meta.index.duplicated()].unique()[:5])
        raise AlignmentError(f"Duplicate {axis} ids in {path}: {dupes}")

    missing = ids.difference(meta.index)
    if len(missing):
        raise AlignmentError(
            f"{len(missing)} {axis} id(s) of the assay have no row in {path}: "
            f"{list(missing[:5])}"
        )

    extra = meta.index.difference(ids)
    if len(extra):
        warnings.warn(
            f"Dropping {len(extra)} {axis} metadata row(s) absent from the assay "
            f"(e.g. {list(extra[:3])})",
            UserWarning,
        )
    return meta.loc[ids]


def load_table(
    assay_path: Path,
    row_meta_path: Optional[Path] = None,
    col_meta_path: Optional[Path] = None,
) -> CoordinatedTable:
    """
    Load an assay matrix and optional metadata tables into a CoordinatedTable.

    Expected assay format:
    - First column: feature ids (header may be empty)
    - Remaining columns: sample ids (headers) with numerical values

    Example:
    ```
    "","GSM1001","GSM1002"
    "ENSG00000141510",612,1056
    "ENSG00000133703",0,1
    ```

    Metadata files have the id in the first column and arbitrary further
    columns. They are reordered to match the assay.

    Args:
        assay_path: Assay matrix (.csv, or .tsv/.txt for tab-delimited)
        row_meta_path: Optional feature metadata file
        col_meta_path: Optional sample metadata file

    Returns:
        CoordinatedTable aligned to the assay's row and column order

    Raises:
        FileNotFoundError: If a path does not exist
        ValueError: If a file is empty, unreadable or holds non-numeric assay values
        AlignmentError: If assay ids repeat or metadata lacks assay ids
    """
    assay_path = Path(assay_path)
    df = _read_frame(assay_path, "Assay")

    for ids, axis in ((df.index, 'feature'), (df.columns, 'sample')):
        if ids.has_duplicates:
            dupes = list(ids[ids.duplicated()].unique()[:5])
            raise AlignmentError(f"Duplicate {axis} ids in {assay_path}: {dupes}")

    data = _numeric_values(df)

    if data.size and np.isnan(data).any():
        n_nan = int(np.isnan(data).sum())
        warnings.warn(
            f"Found {n_nan:,} NaN values ({100 * n_nan / data.size:.2f}% of assay).",
            UserWarning,
        )

    feature_ids = pd.Index(df.index, dtype=object, name=FEATURE_ID)
    sample_ids = pd.Index(df.columns, dtype=object, name=SAMPLE_ID)

    if row_meta_path is not None:
        row_meta = _align_metadata(_read_frame(Path(row_meta_path), "Row metadata"),
                                   feature_ids, 'feature', Path(row_meta_path))
    else:
        row_meta = pd.DataFrame(index=feature_ids)

    if col_meta_path is not None:
        col_meta = _align_metadata(_read_frame(Path(col_meta_path), "Column metadata"),
                                   sample_ids, 'sample', Path(col_meta_path))
    else:
        col_meta = pd.DataFrame(index=sample_ids)

    table = CoordinatedTable(data, row_meta, col_meta)
    logger.info(
        f"Loaded {table.n_features:,} features x {table.n_samples:,} samples from {assay_path}"
    )
    return table


def read_table(base: Path) -> CoordinatedTable:
    """
    Load a bundle written by :func:`assaykit.io.writers.write_table`.

    Missing ``.rows.csv`` / ``.cols.csv`` files mean empty metadata.
    """
    paths = bundle_paths(base)
    return load_table(
        paths['assay'],
        row_meta_path=paths['rows'] if paths['rows'].exists() else None,
        col_meta_path=paths['cols'] if paths['cols'].exists() else None,
    )


def load_bed_intervals(path: Path) -> list[IntervalRecord]:
    """
    Read intervals from a BED file.

    Columns: chrom, start, end[, name, score, strand]. BED is 0-based
    half-open, matching IntervalRecord. Blank, ``#``, ``track`` and
    ``browser`` lines are skipped.

    Raises:
        FileNotFoundError: If *path* does not exist
        ValueError: If a data line has fewer than three fields or
            non-integer coordinates
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"BED file not found: {path}")

    intervals = []
    with path.open() as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line or line.startswith(("#", "track", "browser")):
                continue
            parts = line.split("\t") if "\t" in line else line.split()
            if len(parts) < 3:
                raise ValueError(f"{path}:{line_no}: expected at least 3 fields, got {len(parts)}")
            try:
                start, end = int(parts[1]), int(parts[2])
            except ValueError as e:
                raise ValueError(f"{path}:{line_no}: non-integer coordinates") from e
            strand = Strand.parse(parts[5]) if len(parts) >= 6 else Strand.UNKNOWN
            intervals.append(IntervalRecord(parts[0], start, end, strand))

    logger.info(f"Read {len(intervals)} intervals from {path}")
    return intervals
