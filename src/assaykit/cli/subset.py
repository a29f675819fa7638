"""
Subset CLI subcommand.

Loads a table bundle, keeps features overlapping the requested regions,
then applies explicit feature and sample selections, and writes the
result as a new bundle.

Usage:
    assaykit subset --input data/rna --output results/tp53 --region chr17:7,661,778-7,687,538
    assaykit subset --input data/rna --output results/peaks --regions-bed peaks.bed
    assaykit subset --input data/rna --output results/pair --samples s2 s1
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from assaykit.cli import configure_logging
from assaykit.cli.config import load_config, merge_config_with_args
from assaykit.core.errors import AssayKitError
from assaykit.io.loaders import load_bed_intervals, read_table
from assaykit.io.writers import write_table


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the subset subcommand."""
    parser = subparsers.add_parser(
        "subset",
        help="Filter a table bundle by region, features and samples",
        description="Region, feature and sample subsetting of a CSV table bundle "
                    "(BASE.assay.csv, BASE.rows.csv, BASE.cols.csv)"
    )

    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="Path to YAML/JSON config file (optional, CLI args override config values)")
    parser.add_argument("--input", "-i", type=Path, default=None,
                        help="Input bundle base path (without extension)")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Output bundle base path (without extension)")
    parser.add_argument("--region", action="append", default=None,
                        help="Keep features overlapping this region (chrom or chrom:start-end, "
                             "half-open). Repeatable; regions are combined by union")
    parser.add_argument("--regions-bed", type=Path, default=None,
                        help="BED file of regions (combined with --region by union)")
    parser.add_argument("--features", nargs="+", default=None,
                        help="Feature ids to keep, in output order")
    parser.add_argument("--samples", nargs="+", default=None,
                        help="Sample ids to keep, in output order")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")

    parser.set_defaults(func=run_subset)


def run_subset(args: argparse.Namespace, cli_args: Optional[List[str]] = None) -> int:
    """Execute the subset command."""
    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.config is not None:
        try:
            args = merge_config_with_args(load_config(args.config), args, cli_args)
        except (FileNotFoundError, ValueError) as e:
            logger.error(str(e))
            return 1

    if args.input is None or args.output is None:
        logger.error("--input and --output are required (on the command line or in --config)")
        return 1

    try:
        table = read_table(args.input)
        logger.info(f"Input: {table.n_features} features x {table.n_samples} samples")

        regions = list(args.region or [])
        if args.regions_bed is not None:
            regions.extend(load_bed_intervals(args.regions_bed))
        if regions:
            table = table.filter_rows_by_regions(regions)
            logger.info(f"{table.n_features} features overlap {len(regions)} region(s)")

        if args.features or args.samples:
            table = table.subset(args.features, args.samples)

        write_table(table, args.output)
    except (AssayKitError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    logger.info(f"Output: {table.n_features} features x {table.n_samples} samples -> {args.output}")
    return 0
