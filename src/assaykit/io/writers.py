"""
CSV writers for coordinated tables and presence summaries.

A table bundle with base path ``results/brca`` consists of:

    results/brca.assay.csv      assay matrix, feature ids x sample ids
    results/brca.rows.csv       feature metadata (first column feature_id)
    results/brca.cols.csv       sample metadata (first column sample_id)
    results/brca.manifest.json  shape and file names

Plain CSV keeps the bundle readable from R, spreadsheets and pandas alike;
no bespoke format is involved. Every file is written atomically.

Examples:
    >>> from pathlib import Path
    >>> from assaykit.io.writers import write_table
    >>> from assaykit.io.loaders import read_table
    >>>
    >>> write_table(table, Path("results/brca"))
    >>> assert read_table(Path("results/brca")).equals(table)
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

import pandas as pd

from assaykit import __version__
from assaykit.core.multi import MultiExperimentCollection
from assaykit.core.table import CoordinatedTable
from assaykit.io.loaders import bundle_paths
from assaykit.utils.fileio import atomic_write_csv, atomic_write_json

logger = logging.getLogger(__name__)

__all__ = ['write_table', 'write_presence_matrix']


def write_table(table: CoordinatedTable, base: Path) -> dict[str, Path]:
    """
    Write a CoordinatedTable as a CSV bundle.

    Args:
        table: Table to write
        base: Base path without extension; parent directories are created

    Returns:
        Mapping of bundle part ('assay', 'rows', 'cols', 'manifest') to path

    Raises:
        TypeError: If table is not a CoordinatedTable
        OSError: If a file cannot be written
    """
    if not isinstance(table, CoordinatedTable):
        raise TypeError(f"table must be CoordinatedTable, got {type(table)}")

    base = Path(base)
    if base.parent != Path('.') and not base.parent.exists():
        base.parent.mkdir(parents=True, exist_ok=True)

    paths = bundle_paths(base)
    atomic_write_csv(paths['assay'], table.to_frame())
    atomic_write_csv(paths['rows'], table.row_meta)
    atomic_write_csv(paths['cols'], table.col_meta)
    atomic_write_json(paths['manifest'], {
        'n_features': table.n_features,
        'n_samples': table.n_samples,
        'assay': paths['assay'].name,
        'rows': paths['rows'].name,
        'cols': paths['cols'].name,
        'row_columns': [str(c) for c in table.row_meta.columns],
        'col_columns': [str(c) for c in table.col_meta.columns],
        'written_at': datetime.now().isoformat(timespec='seconds'),
        'assaykit_version': __version__,
    })

    logger.info(
        f"Wrote {table.n_features} x {table.n_samples} table to {paths['assay'].parent}"
        f" ({base.name}.*)"
    )
    return paths


def write_presence_matrix(collection: MultiExperimentCollection, path: Path) -> Path:
    """
    Write the sample x experiment presence matrix as a 0/1 CSV.

    Returns:
        The written path
    """
    path = Path(path)
    if path.parent != Path('.') and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    presence: pd.DataFrame = collection.presence_matrix().astype(int)
    atomic_write_csv(path, presence)
    logger.info(f"Wrote presence matrix ({presence.shape[0]} samples x {presence.shape[1]} experiments) to {path}")
    return path
