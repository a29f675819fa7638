"""
Genomic interval records and an immutable overlap index.

Intervals are half-open, ``[start, end)``, on a single linear coordinate
axis per chromosome. Two intervals overlap when
``a.start < b.end and b.start < a.end``; strand never takes part.

Engineering Design:
    Per chromosome the index keeps four parallel numpy arrays, ordered by
    start (stable sort, so equal starts keep input order):

    - starts / ends of the intervals
    - running maximum of ends (non-decreasing)
    - original input position of each interval

    A query for ``[qs, qe)`` binary-searches the starts for the first
    interval starting at or after ``qe`` and the running maximum for the
    first interval whose prefix could reach past ``qs``. Only the slice
    between the two is checked exactly, and the hits are reported in input
    order.

Examples:
    >>> from assaykit.core.intervals import IntervalIndex, IntervalRecord
    >>> index = IntervalIndex.build([
    ...     IntervalRecord("chr1", 50, 150),
    ...     IntervalRecord("chr1", 150, 250),
    ...     IntervalRecord("chr1", 300, 400),
    ... ])
    >>> index.query_overlaps("chr1", 100, 200).tolist()
    [0, 1]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Sequence

import numpy as np
import pandas as pd

from assaykit.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    'Strand',
    'IntervalRecord',
    'IntervalIndex',
    'parse_region',
    'CHROMOSOME_COLUMN',
    'START_COLUMN',
    'END_COLUMN',
    'STRAND_COLUMN',
]

# Row metadata columns carrying feature coordinates
CHROMOSOME_COLUMN = "chromosome"
START_COLUMN = "start"
END_COLUMN = "end"
STRAND_COLUMN = "strand"

_REGION_PATTERN = re.compile(
    r"^(?P<chrom>[^:\s]+)(?::(?P<start>[\d,_]+)-(?P<end>[\d,_]+))?$"
)


class Strand(str, Enum):
    """Feature orientation. Informational only."""

    PLUS = "+"
    MINUS = "-"
    UNKNOWN = "*"

    @classmethod
    def parse(cls, value: Any) -> Strand:
        """
        Normalize the usual strand spellings.

        Accepts ``+``/``-``/``*``/``.``, ``None`` and NaN, and the integer
        encodings ``1``/``-1``/``0``.
        """
        if isinstance(value, Strand):
            return value
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return cls.UNKNOWN
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            return {1: cls.PLUS, -1: cls.MINUS, 0: cls.UNKNOWN}.get(int(value), cls.UNKNOWN)

        text = str(value).strip()
        if text == "+":
            return cls.PLUS
        if text == "-":
            return cls.MINUS
        if text in ("*", ".", ""):
            return cls.UNKNOWN
        raise ConfigurationError(f"Unrecognized strand value: {value!r}")


@dataclass(frozen=True)
class IntervalRecord:
    """
    A half-open genomic interval ``[start, end)`` on one chromosome.

    Attributes:
        chromosome: Sequence name (e.g. "chr1")
        start: 0-based inclusive start
        end: Exclusive end
        strand: Orientation; does not affect overlap
    """

    chromosome: str
    start: int
    end: int
    strand: Strand = field(default=Strand.UNKNOWN)

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(self, 'chromosome', str(self.chromosome))
        object.__setattr__(self, 'start', int(self.start))
        object.__setattr__(self, 'end', int(self.end))
        object.__setattr__(self, 'strand', Strand.parse(self.strand))

    @property
    def width(self) -> int:
        return self.end - self.start

    def overlaps(self, chromosome: str, start: int, end: int) -> bool:
        """Half-open overlap test against ``[start, end)`` on ``chromosome``."""
        return self.chromosome == chromosome and self.start < end and start < self.end

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}({self.strand.value})"


def parse_region(region: str) -> tuple[str, int, int]:
    """
    Parse a region string such as ``chr1:1,000-2,000``.

    A bare chromosome name (``chrX``) selects the whole chromosome, i.e.
    ``(chrX, 0, <int64 max>)``.

    Raises:
        ConfigurationError: If the string is malformed or start > end
    """
    match = _REGION_PATTERN.match(region.strip())
    if match is None:
        raise ConfigurationError(
            f"Malformed region {region!r}; expected 'chrom' or 'chrom:start-end'"
        )

    chrom = match.group('chrom')
    if match.group('start') is None:
        return chrom, 0, np.iinfo(np.int64).max

    start = int(re.sub(r"[,_]", "", match.group('start')))
    end = int(re.sub(r"[,_]", "", match.group('end')))
    if start > end:
        raise ConfigurationError(f"Region {region!r} has start > end")
    return chrom, start, end


@dataclass(frozen=True)
class _ChromosomeBlock:
    starts: np.ndarray
    ends: np.ndarray
    max_ends: np.ndarray
    positions: np.ndarray


class IntervalIndex:
    """
    Immutable overlap index over a fixed collection of intervals.

    Build once with :meth:`build` or :meth:`from_frame`, then query any
    number of times. Results are positions into the original input, in
    input order.
    """

    def __init__(self, blocks: dict[str, _ChromosomeBlock], n_intervals: int):
        self._blocks = blocks
        self._n_intervals = n_intervals

    @classmethod
    def build(cls, intervals: Sequence[IntervalRecord]) -> IntervalIndex:
        """
        Build an index from interval records.

        Raises:
            ConfigurationError: If any interval has start > end
        """
        intervals = list(intervals)
        chroms = np.array([iv.chromosome for iv in intervals], dtype=object)
        starts = np.array([iv.start for iv in intervals], dtype=np.int64)
        ends = np.array([iv.end for iv in intervals], dtype=np.int64)
        positions = np.arange(len(intervals), dtype=np.intp)
        return cls._from_arrays(chroms, starts, ends, positions)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        chromosome_col: str = CHROMOSOME_COLUMN,
        start_col: str = START_COLUMN,
        end_col: str = END_COLUMN,
    ) -> IntervalIndex:
        """
        Build an index from coordinate columns of a DataFrame.

        Rows with a missing chromosome, start or end are not indexed and
        can never be returned by a query. Positions refer to row order.

        Raises:
            ConfigurationError: If a column is missing, a coordinate is not
                integral, or any row has start > end
        """
        missing = [c for c in (chromosome_col, start_col, end_col) if c not in frame.columns]
        if missing:
            raise ConfigurationError(f"Coordinate columns missing: {missing}")

        complete = frame[[chromosome_col, start_col, end_col]].notna().all(axis=1).to_numpy()
        positions = np.flatnonzero(complete).astype(np.intp)
        subset = frame.iloc[positions]

        try:
            starts = subset[start_col].to_numpy(dtype=float)
            ends = subset[end_col].to_numpy(dtype=float)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Non-numeric interval coordinates: {e}") from e
        if np.any(starts != np.floor(starts)) or np.any(ends != np.floor(ends)):
            raise ConfigurationError("Interval coordinates must be integers")

        chroms = subset[chromosome_col].astype(str).to_numpy(dtype=object)
        return cls._from_arrays(chroms, starts.astype(np.int64), ends.astype(np.int64), positions)

    @classmethod
    def _from_arrays(
        cls,
        chroms: np.ndarray,
        starts: np.ndarray,
        ends: np.ndarray,
        positions: np.ndarray,
    ) -> IntervalIndex:
        bad = np.flatnonzero(starts > ends)
        if bad.size:
            first = bad[0]
            raise ConfigurationError(
                f"{bad.size} interval(s) have start > end; first at input position "
                f"{positions[first]}: {chroms[first]}:{starts[first]}-{ends[first]}"
            )

        blocks: dict[str, _ChromosomeBlock] = {}
        for chrom in pd.unique(chroms):
            in_chrom = np.flatnonzero(chroms == chrom)
            order = in_chrom[np.argsort(starts[in_chrom], kind='stable')]
            block_ends = ends[order]
            blocks[chrom] = _ChromosomeBlock(
                starts=starts[order],
                ends=block_ends,
                max_ends=np.maximum.accumulate(block_ends),
                positions=positions[order],
            )

        logger.debug(
            f"Built interval index: {len(starts)} intervals on {len(blocks)} chromosomes"
        )
        return cls(blocks, len(starts))

    @property
    def chromosomes(self) -> list[str]:
        return list(self._blocks)

    def __len__(self) -> int:
        return self._n_intervals

    def query_overlaps(self, chromosome: str, start: int, end: int) -> np.ndarray:
        """
        Positions of stored intervals overlapping ``[start, end)``.

        Returns:
            Ascending array of input positions; empty if the chromosome is
            unknown or nothing overlaps.

        Raises:
            ConfigurationError: If start > end
        """
        if start > end:
            raise ConfigurationError(f"Query start ({start}) > end ({end})")

        block = self._blocks.get(str(chromosome))
        if block is None:
            return np.empty(0, dtype=np.intp)

        # candidates start before the query end ...
        hi = np.searchsorted(block.starts, end, side='left')
        # ... and lie past the first prefix whose furthest end reaches the query
        lo = np.searchsorted(block.max_ends, start, side='right')
        if lo >= hi:
            return np.empty(0, dtype=np.intp)

        window = slice(lo, hi)
        hits = block.ends[window] > start
        return np.sort(block.positions[window][hits])

    # camelCase alias
    queryOverlaps = query_overlaps

    def query_regions(self, regions: Iterable[IntervalRecord | str]) -> np.ndarray:
        """Union of overlaps for several query regions, ascending, no duplicates."""
        hits = []
        for region in regions:
            if isinstance(region, IntervalRecord):
                chrom, start, end = region.chromosome, region.start, region.end
            else:
                chrom, start, end = parse_region(region)
            hits.append(self.query_overlaps(chrom, start, end))
        if not hits:
            return np.empty(0, dtype=np.intp)
        return np.unique(np.concatenate(hits)).astype(np.intp)

    def __repr__(self) -> str:
        return f"IntervalIndex({self._n_intervals} intervals, {len(self._blocks)} chromosomes)"
