"""
Ragged per-sample records (mutation calls, variant lists, peaks).

Not every experiment fits a dense features x samples matrix: a somatic
mutation table has a different number of entries per patient and no shared
feature axis. SampleRecords keeps such data as a long relation of
``(sample_id, feature_id, attributes...)`` rows plus the list of samples
the experiment covers, which may include samples with zero records.

It exposes the same sample-side protocol as CoordinatedTable
(``sample_ids`` and ``subset_samples``), so a MultiExperimentCollection
can hold both kinds side by side.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import pandas as pd

from assaykit.core.errors import AlignmentError, SelectorError
from assaykit.core.table import FEATURE_ID, SAMPLE_ID

logger = logging.getLogger(__name__)

__all__ = ['SampleRecords']


class SampleRecords:
    """
    Sparse relation of per-sample records.

    Attributes:
        records: Long-format DataFrame with 'sample_id' and 'feature_id'
            columns plus arbitrary attribute columns
        sample_ids: Samples covered by the experiment, in declared order

    Examples:
        >>> calls = SampleRecords(pd.DataFrame({
        ...     'sample_id': ['s1', 's1', 's3'],
        ...     'feature_id': ['TP53', 'KRAS', 'TP53'],
        ...     'variant': ['R175H', 'G12D', 'R248Q'],
        ... }), sample_ids=['s1', 's2', 's3'])
        >>> calls.counts_per_sample().to_dict()
        {'s1': 2, 's2': 0, 's3': 1}
    """

    def __init__(self, records: pd.DataFrame, sample_ids: Optional[Iterable[str]] = None):
        missing = [c for c in (SAMPLE_ID, FEATURE_ID) if c not in records.columns]
        if missing:
            raise AlignmentError(f"records lack required column(s) {missing}")

        frame = records.reset_index(drop=True).copy()
        frame[SAMPLE_ID] = frame[SAMPLE_ID].astype(str)
        frame[FEATURE_ID] = frame[FEATURE_ID].astype(str)

        if sample_ids is None:
            declared = pd.Index(pd.unique(frame[SAMPLE_ID]), dtype=object, name=SAMPLE_ID)
        else:
            declared = pd.Index([str(s) for s in sample_ids], dtype=object, name=SAMPLE_ID)
            if declared.has_duplicates:
                dupes = list(declared[declared.duplicated()].unique()[:5])
                raise AlignmentError(f"Duplicate sample ids: {dupes}")
            undeclared = sorted(set(frame[SAMPLE_ID]) - set(declared))
            if undeclared:
                raise AlignmentError(
                    f"{len(undeclared)} record sample id(s) not declared: {undeclared[:5]}"
                )

        self._records = frame
        self._sample_ids = declared

    @property
    def sample_ids(self) -> pd.Index:
        return self._sample_ids

    @property
    def n_samples(self) -> int:
        return len(self._sample_ids)

    @property
    def n_records(self) -> int:
        return len(self._records)

    @property
    def records(self) -> pd.DataFrame:
        """Copy of the long-format record table."""
        return self._records.copy()

    def records_for(self, sample_id: str) -> pd.DataFrame:
        """Records of one sample (empty frame for a covered sample without records)."""
        if sample_id not in self._sample_ids:
            raise SelectorError(f"Unknown sample id: {sample_id!r}")
        return self._records[self._records[SAMPLE_ID] == sample_id].copy()

    def counts_per_sample(self) -> pd.Series:
        """Number of records per declared sample, zeros included."""
        counts = self._records.groupby(SAMPLE_ID, sort=False).size()
        return counts.reindex(self._sample_ids, fill_value=0).astype(int)

    def subset_samples(self, sample_ids: Iterable[str]) -> SampleRecords:
        """
        Restrict to the given samples (in the given order).

        Raises:
            SelectorError: If a sample id is not covered
        """
        wanted = [str(s) for s in sample_ids]
        unknown = [s for s in wanted if s not in self._sample_ids]
        if unknown:
            raise SelectorError(f"Unknown sample id(s): {unknown[:5]}")

        keep = self._records[SAMPLE_ID].isin(wanted)
        return SampleRecords(self._records[keep], sample_ids=list(dict.fromkeys(wanted)))

    def __repr__(self) -> str:
        return f"SampleRecords({self.n_records} records over {self.n_samples} samples)"
