"""
assaykit CLI - Command-line interface for coordinated assay tables.

Commands:
    assaykit subset     - Filter a table bundle by region, features and samples
    assaykit presence   - Sample x experiment presence summary for a study
"""

import argparse
import logging
import sys
from typing import Optional, List

from assaykit import __version__


def configure_logging(verbose: bool = False) -> None:
    """Console logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
    )


def main(args: Optional[List[str]] = None) -> int:
    """Main CLI dispatcher for assaykit."""
    parser = argparse.ArgumentParser(
        prog="assaykit",
        description="Coordinated assay tables: subsetting, range queries, multi-experiment presence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  subset     Filter a table bundle by region, features and samples
  presence   Sample x experiment presence summary for a study config

Examples:
  assaykit subset --input data/rna --output results/rna_chr17 --region chr17:7,500,000-7,700,000
  assaykit subset --input data/rna --output results/cases --samples s1 s2 s3
  assaykit presence --config study.yaml --require rna methylation --output presence.csv
        """
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Import and register subcommands
    from assaykit.cli import subset, presence
    subset.register_parser(subparsers)
    presence.register_parser(subparsers)

    raw_args = list(sys.argv[1:] if args is None else args)
    parsed_args = parser.parse_args(raw_args)

    if parsed_args.command is None:
        parser.print_help()
        return 0

    # Dispatch to subcommand
    return parsed_args.func(parsed_args, raw_args)


if __name__ == "__main__":
    sys.exit(main())
