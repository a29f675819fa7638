"""
Multi-experiment aggregation over a shared sample cohort.

A study often measures the same patients with several assays (RNA-seq,
methylation arrays, proteomics, mutation calls) whose feature axes have
nothing in common. Joining them into one matrix is neither possible nor
useful; what matters is knowing which patient has data in which assay.

MultiExperimentCollection holds the experiments side by side and keeps a
sample map, a sparse relation with one row per (experiment, column) that
actually holds data:

    assay       experiment name
    primary     cohort-level sample id
    colname     the sample id used inside the experiment

Absence is implicit: a cohort sample without a row for experiment E has no
data in E. Presence summaries (the input to an UpSet diagram) are derived
from this relation.

Examples:
    >>> collection = MultiExperimentCollection(cohort=['s1', 's2', 's3'])
    >>> collection.register('rna', rna_table)          # samples s1, s2
    >>> collection.register('mutations', calls)        # sample s2
    >>> collection.samples_with({'rna', 'mutations'})
    {'s2'}
    >>> collection.presence_matrix()
                 rna  mutations
    sample_id
    s1          True      False
    s2          True       True
    s3         False      False
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Union

import pandas as pd

from assaykit.core.errors import (
    AlignmentError,
    DuplicateNameError,
    SelectorError,
    UnknownExperimentError,
)
from assaykit.core.records import SampleRecords
from assaykit.core.table import SAMPLE_ID, CoordinatedTable, _as_metadata

logger = logging.getLogger(__name__)

__all__ = ['MultiExperimentCollection', 'Experiment']

Experiment = Union[CoordinatedTable, SampleRecords]

_SAMPLE_MAP_COLUMNS = ['assay', 'primary', 'colname']


class MultiExperimentCollection:
    """
    Experiments sharing a sample population, plus their sample map.

    Registration order is preserved everywhere (presence matrix columns,
    ``names``, iteration). The collection only grows: experiments are
    added, never replaced or removed in place; subsetting returns a new
    collection.
    """

    def __init__(self, cohort: Any = None):
        """
        Args:
            cohort: Sample-level metadata. A DataFrame (ids from a
                'sample_id' column or the index), a sequence of ids, or
                None to start empty. Samples first seen in a registered
                experiment are appended.
        """
        if cohort is None:
            self._cohort = pd.DataFrame(index=pd.Index([], dtype=object, name=SAMPLE_ID))
        else:
            self._cohort = _as_metadata(cohort, SAMPLE_ID, 'sample')
            if self._cohort.index.has_duplicates:
                dupes = list(self._cohort.index[self._cohort.index.duplicated()][:5])
                raise AlignmentError(f"Duplicate cohort sample ids: {dupes}")
        self._experiments: dict[str, Experiment] = {}
        self._sample_map = pd.DataFrame(columns=_SAMPLE_MAP_COLUMNS, dtype=object)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(
        self,
        name: str,
        experiment: Experiment,
        sample_map: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Add an experiment and derive its sample-map rows.

        Args:
            name: Unique experiment name
            experiment: CoordinatedTable or SampleRecords (anything with
                ``sample_ids`` and ``subset_samples``)
            sample_map: Optional {experiment sample id: cohort sample id}.
                Columns not listed map to themselves.

        Raises:
            DuplicateNameError: If the name is already registered
            TypeError: If the experiment exposes no sample ids
        """
        if name in self._experiments:
            raise DuplicateNameError(f"Experiment '{name}' is already registered")
        if not hasattr(experiment, 'sample_ids') or not hasattr(experiment, 'subset_samples'):
            raise TypeError(
                f"experiment must be a CoordinatedTable or SampleRecords, got {type(experiment)}"
            )

        colnames = [str(s) for s in experiment.sample_ids]
        mapping = {str(k): str(v) for k, v in (sample_map or {}).items()}
        stray = sorted(set(mapping) - set(colnames))
        if stray:
            logger.warning(
                f"sample_map for '{name}' names {len(stray)} column(s) absent from the "
                f"experiment: {stray[:5]}"
            )

        rows = pd.DataFrame({
            'assay': [name] * len(colnames),
            'primary': [mapping.get(c, c) for c in colnames],
            'colname': colnames,
        }, dtype=object)

        new_primaries = [p for p in pd.unique(rows["primary"]) if p not in self._cohort.index]
        if len(new_primaries):
            logger.info(
                f"'{name}' adds {len(new_primaries)} sample(s) not in the cohort"
            )
            extended = self._cohort.index.append(pd.Index(new_primaries, dtype=object, name=SAMPLE_ID))
            self._cohort = self._cohort.reindex(extended)

        self._experiments[name] = experiment
        if self._sample_map.empty:
            self._sample_map = rows
        elif not rows.empty:
            self._sample_map = pd.concat([self._sample_map, rows], ignore_index=True)
        logger.info(f"Registered experiment '{name}' with {len(colnames)} sample(s)")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def experiments(self) -> Mapping[str, Experiment]:
        """Read-only view of the registered experiments."""
        return MappingProxyType(self._experiments)

    @property
    def names(self) -> list[str]:
        return list(self._experiments)

    @property
    def cohort(self) -> pd.DataFrame:
        """Copy of the cohort sample metadata."""
        return self._cohort.copy()

    @property
    def sample_map(self) -> pd.DataFrame:
        """Copy of the (assay, primary, colname) relation."""
        return self._sample_map.copy()

    def __getitem__(self, name: str) -> Experiment:
        try:
            return self._experiments[name]
        except KeyError:
            raise UnknownExperimentError(f"No experiment named '{name}'") from None

    def __contains__(self, name: object) -> bool:
        return name in self._experiments

    def __len__(self) -> int:
        return len(self._experiments)

    def __iter__(self):
        return iter(self._experiments)

    # ------------------------------------------------------------------
    # Presence queries
    # ------------------------------------------------------------------

    def _check_names(self, names: Union[str, Iterable[str]]) -> list[str]:
        if isinstance(names, str):
            names = [names]
        names = list(dict.fromkeys(names))
        unknown = [n for n in names if n not in self._experiments]
        if unknown:
            raise UnknownExperimentError(
                f"Unknown experiment(s) {unknown}; registered: {self.names}"
            )
        return names

    def _primaries(self, name: str) -> set[str]:
        return set(self._sample_map.loc[self._sample_map['assay'] == name, 'primary'])

    def samples_with(self, names: Union[str, Iterable[str]]) -> set[str]:
        """
        Cohort samples that have data in every named experiment.

        Raises:
            UnknownExperimentError: If any name is not registered
            ValueError: If no names are given
        """
        names = self._check_names(names)
        if not names:
            raise ValueError("samples_with() needs at least one experiment name")

        result = self._primaries(names[0])
        for name in names[1:]:
            result &= self._primaries(name)
        return result

    samplesWith = samples_with

    def presence_matrix(self) -> pd.DataFrame:
        """
        Boolean sample x experiment table.

        Rows are every cohort sample (cohort order), columns are the
        experiments in registration order; True where the sample has data.
        """
        matrix = pd.DataFrame(False, index=self._cohort.index.copy(), columns=self.names, dtype=bool)
        for name in self.names:
            matrix.loc[matrix.index.isin(self._primaries(name)), name] = True
        matrix.columns.name = 'experiment'
        return matrix

    presenceMatrix = presence_matrix

    def combination_counts(self) -> pd.Series:
        """
        Number of samples per presence pattern, largest first.

        The index is a MultiIndex of booleans, one level per experiment,
        which is the tabular form behind an UpSet plot.
        """
        presence = self.presence_matrix()
        if presence.shape[1] == 0:
            return pd.Series(dtype=int, name='n_samples')
        counts = presence.value_counts(sort=True)
        counts.name = 'n_samples'
        return counts

    def complete_cases(self) -> list[str]:
        """Samples with data in every experiment, in cohort order."""
        presence = self.presence_matrix()
        if presence.shape[1] == 0:
            return []
        return presence.index[presence.all(axis=1)].tolist()

    # ------------------------------------------------------------------
    # Subsetting
    # ------------------------------------------------------------------

    def subset_samples(self, sample_ids: Iterable[str]) -> MultiExperimentCollection:
        """
        New collection restricted to the given cohort samples.

        Each experiment keeps only the columns mapped to those samples
        (experiment column order is preserved).

        Raises:
            SelectorError: If a sample id is not in the cohort
        """
        wanted = list(dict.fromkeys(str(s) for s in sample_ids))
        unknown = [s for s in wanted if s not in self._cohort.index]
        if unknown:
            raise SelectorError(f"Unknown cohort sample id(s): {unknown[:5]}")

        result = MultiExperimentCollection(cohort=self._cohort.loc[wanted])
        keep = set(wanted)
        for name, experiment in self._experiments.items():
            rows = self._sample_map[self._sample_map['assay'] == name]
            rows = rows[rows['primary'].isin(keep)]
            subset = experiment.subset_samples(rows['colname'].tolist())
            result.register(name, subset, dict(zip(rows['colname'], rows['primary'])))
        return result

    def subset_experiments(self, names: Iterable[str]) -> MultiExperimentCollection:
        """
        New collection with only the named experiments (in the given order).

        Raises:
            UnknownExperimentError: If a name is not registered
        """
        names = self._check_names(names)
        result = MultiExperimentCollection(cohort=self._cohort)
        for name in names:
            rows = self._sample_map[self._sample_map['assay'] == name]
            result.register(name, self._experiments[name], dict(zip(rows['colname'], rows['primary'])))
        return result

    def __repr__(self) -> str:
        lines = [f"MultiExperimentCollection({len(self)} experiments, {len(self._cohort)} samples)"]
        for name, experiment in self._experiments.items():
            lines.append(f"  [{name}] {type(experiment).__name__}, {len(experiment.sample_ids)} samples")
        return "\n".join(lines)
