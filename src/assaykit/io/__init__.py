"""
I/O module for loading and writing coordinated tables.

Key Functions:
    - load_table: Load an assay matrix plus optional metadata files
    - read_table / write_table: CSV bundle round trip
    - load_bed_intervals: BED file -> IntervalRecords
    - write_presence_matrix: Export a collection's presence summary

Design Philosophy:
    - Robust error handling for malformed data
    - Metadata aligned by id, never by position
    - Plain CSV, readable from R and spreadsheets
"""

from assaykit.io.loaders import load_table, read_table, load_bed_intervals, bundle_paths
from assaykit.io.writers import write_table, write_presence_matrix

__all__ = [
    'load_table',
    'read_table',
    'load_bed_intervals',
    'bundle_paths',
    'write_table',
    'write_presence_matrix',
]
