"""Tests for interval records, region parsing and the overlap index."""

import numpy as np
import pandas as pd
import pytest

from assaykit.core.errors import ConfigurationError
from assaykit.core.intervals import IntervalIndex, IntervalRecord, Strand, parse_region


def brute_force(intervals, chrom, start, end):
    return [i for i, iv in enumerate(intervals) if iv.overlaps(chrom, start, end)]


class TestStrand:

    @pytest.mark.parametrize("value,expected", [
        ("+", Strand.PLUS),
        ("-", Strand.MINUS),
        ("*", Strand.UNKNOWN),
        (".", Strand.UNKNOWN),
        (None, Strand.UNKNOWN),
        (np.nan, Strand.UNKNOWN),
        (1, Strand.PLUS),
        (-1, Strand.MINUS),
        (0, Strand.UNKNOWN),
    ])
    def test_parse(self, value, expected):
        assert Strand.parse(value) is expected

    def test_parse_rejects_garbage(self):
        with pytest.raises(ConfigurationError, match="strand"):
            Strand.parse("forward")


class TestIntervalRecord:

    def test_normalizes_fields(self):
        record = IntervalRecord("chr1", np.int64(10), 20.0, "-")
        assert record.start == 10 and isinstance(record.start, int)
        assert record.end == 20
        assert record.strand is Strand.MINUS
        assert record.width == 10

    def test_overlap_is_half_open(self):
        record = IntervalRecord("chr1", 100, 200)
        assert record.overlaps("chr1", 199, 300)
        assert not record.overlaps("chr1", 200, 300)
        assert not record.overlaps("chr1", 0, 100)
        assert not record.overlaps("chr2", 100, 200)

    def test_strand_does_not_affect_overlap(self):
        plus = IntervalRecord("chr1", 100, 200, "+")
        minus = IntervalRecord("chr1", 100, 200, "-")
        assert plus.overlaps("chr1", 150, 160) == minus.overlaps("chr1", 150, 160)


class TestParseRegion:

    def test_basic(self):
        assert parse_region("chr1:100-200") == ("chr1", 100, 200)

    def test_thousands_separators(self):
        assert parse_region("chr17:7,661,778-7,687,538") == ("chr17", 7661778, 7687538)

    def test_whole_chromosome(self):
        chrom, start, end = parse_region("chrX")
        assert chrom == "chrX"
        assert start == 0
        assert end == np.iinfo(np.int64).max

    @pytest.mark.parametrize("region", ["chr1:100", "chr1:a-b", "chr1:100-200-300", ""])
    def test_malformed(self, region):
        with pytest.raises(ConfigurationError, match="Malformed region"):
            parse_region(region)

    def test_start_after_end(self):
        with pytest.raises(ConfigurationError, match="start > end"):
            parse_region("chr1:500-100")


class TestIntervalIndex:

    @pytest.fixture
    def three_intervals(self):
        return [
            IntervalRecord("chr1", 50, 150),
            IntervalRecord("chr1", 150, 250),
            IntervalRecord("chr1", 300, 400),
        ]

    def test_documented_example(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        assert index.query_overlaps("chr1", 100, 200).tolist() == [0, 1]

    def test_camel_case_alias(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        assert index.queryOverlaps("chr1", 100, 200).tolist() == [0, 1]

    def test_touching_intervals_do_not_overlap(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        assert index.query_overlaps("chr1", 250, 300).tolist() == []
        assert index.query_overlaps("chr1", 0, 50).tolist() == []

    def test_unknown_chromosome_is_empty(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        result = index.query_overlaps("chrZ", 0, 10_000)
        assert result.size == 0

    def test_start_greater_than_end_fails_build(self):
        with pytest.raises(ConfigurationError, match="start > end"):
            IntervalIndex.build([
                IntervalRecord("chr1", 10, 20),
                IntervalRecord("chr1", 30, 25),
            ])

    def test_query_start_greater_than_end(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        with pytest.raises(ConfigurationError):
            index.query_overlaps("chr1", 200, 100)

    def test_results_in_input_order(self):
        # input deliberately unsorted, with a start tie
        intervals = [
            IntervalRecord("chr2", 500, 600),
            IntervalRecord("chr1", 300, 350),
            IntervalRecord("chr1", 100, 400),
            IntervalRecord("chr1", 100, 120),
            IntervalRecord("chr1", 10, 20),
        ]
        index = IntervalIndex.build(intervals)
        assert index.query_overlaps("chr1", 110, 310).tolist() == [1, 2, 3]

    def test_long_interval_found_behind_short_ones(self):
        # a long early interval must be found even when later ones end before the query
        intervals = [IntervalRecord("chr1", 0, 10_000)] + [
            IntervalRecord("chr1", s, s + 5) for s in range(10, 1000, 10)
        ]
        index = IntervalIndex.build(intervals)
        assert index.query_overlaps("chr1", 5000, 5001).tolist() == [0]

    def test_zero_width_interval_uses_overlap_formula(self):
        index = IntervalIndex.build([IntervalRecord("chr1", 100, 100)])
        assert index.query_overlaps("chr1", 50, 150).tolist() == [0]
        assert index.query_overlaps("chr1", 100, 150).tolist() == []

    def test_repeated_queries_reuse_index(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        first = index.query_overlaps("chr1", 100, 200).tolist()
        for _ in range(3):
            assert index.query_overlaps("chr1", 100, 200).tolist() == first
        assert len(index) == 3
        assert index.chromosomes == ["chr1"]

    def test_empty_index(self):
        index = IntervalIndex.build([])
        assert len(index) == 0
        assert index.query_overlaps("chr1", 0, 10).size == 0

    def test_matches_brute_force(self):
        rng = np.random.RandomState(0)
        intervals = []
        for _ in range(400):
            start = int(rng.randint(0, 5000))
            intervals.append(IntervalRecord(f"chr{rng.randint(1, 4)}", start, start + int(rng.randint(0, 300))))
        index = IntervalIndex.build(intervals)

        for _ in range(100):
            chrom = f"chr{rng.randint(1, 4)}"
            qs = int(rng.randint(0, 5200))
            qe = qs + int(rng.randint(0, 400))
            assert index.query_overlaps(chrom, qs, qe).tolist() == brute_force(intervals, chrom, qs, qe)

    def test_query_regions_union(self, three_intervals):
        index = IntervalIndex.build(three_intervals)
        hits = index.query_regions(["chr1:0-60", IntervalRecord("chr1", 350, 360), "chr1:55-56"])
        assert hits.tolist() == [0, 2]


class TestIntervalIndexFromFrame:

    def test_skips_rows_with_missing_coordinates(self):
        frame = pd.DataFrame({
            'chromosome': ['chr1', None, 'chr1'],
            'start': [0, 10, np.nan],
            'end': [100, 20, 50],
        })
        index = IntervalIndex.from_frame(frame)
        assert len(index) == 1
        assert index.query_overlaps("chr1", 0, 1000).tolist() == [0]

    def test_positions_refer_to_frame_rows(self):
        frame = pd.DataFrame({
            'chromosome': [None, 'chr2', 'chr2'],
            'start': [np.nan, 10, 500],
            'end': [np.nan, 20, 600],
        })
        index = IntervalIndex.from_frame(frame)
        assert index.query_overlaps("chr2", 0, 1000).tolist() == [1, 2]

    def test_missing_column(self):
        with pytest.raises(ConfigurationError, match="Coordinate columns missing"):
            IntervalIndex.from_frame(pd.DataFrame({'chromosome': ['chr1'], 'start': [1]}))

    def test_fractional_coordinates_rejected(self):
        frame = pd.DataFrame({'chromosome': ['chr1'], 'start': [1.5], 'end': [3.0]})
        with pytest.raises(ConfigurationError, match="integers"):
            IntervalIndex.from_frame(frame)

    def test_custom_column_names(self):
        frame = pd.DataFrame({'seqnames': ['chr1'], 'from': [5], 'to': [15]})
        index = IntervalIndex.from_frame(frame, 'seqnames', 'from', 'to')
        assert index.query_overlaps("chr1", 10, 11).tolist() == [0]
