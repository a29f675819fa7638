"""
Presence CLI subcommand.

Builds a MultiExperimentCollection from a study config and reports which
samples have data in which experiment.

Usage:
    assaykit presence --config study.yaml
    assaykit presence --config study.yaml --require rna mutations --output presence.csv
"""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from assaykit.cli import configure_logging
from assaykit.cli.config import build_collection, load_collection_config
from assaykit.core.errors import AssayKitError
from assaykit.io.writers import write_presence_matrix


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the presence subcommand."""
    parser = subparsers.add_parser(
        "presence",
        help="Sample x experiment presence summary",
        description="Which cohort samples have data in which experiment"
    )
    parser.add_argument("--config", "-c", type=Path, required=True,
                        help="YAML/JSON study config listing experiments")
    parser.add_argument("--require", nargs="+", default=None,
                        help="List samples having data in all of these experiments")
    parser.add_argument("--output", "-o", type=Path, default=None,
                        help="Write the 0/1 presence matrix to this CSV")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug logging")

    parser.set_defaults(func=run_presence)


def run_presence(args: argparse.Namespace, cli_args: Optional[List[str]] = None) -> int:
    """Execute the presence command."""
    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        collection = build_collection(load_collection_config(args.config))
        presence = collection.presence_matrix()

        print(f"\n{len(collection)} experiments, {presence.shape[0]} samples")
        for name in collection.names:
            print(f"  {name}: {int(presence[name].sum())} samples")
        print(f"  complete cases: {len(collection.complete_cases())}")

        print("\nSamples per experiment combination:")
        for pattern, count in collection.combination_counts().items():
            pattern = pattern if isinstance(pattern, tuple) else (pattern,)
            members = [n for n, present in zip(collection.names, pattern) if present]
            print(f"  {' & '.join(members) or '(none)'}: {count}")

        if args.require:
            samples = collection.samples_with(args.require)
            ordered = [s for s in presence.index if s in samples]
            print(f"\nSamples with {' & '.join(args.require)} ({len(ordered)}):")
            for sample in ordered:
                print(f"  {sample}")

        if args.output is not None:
            write_presence_matrix(collection, args.output)
    except (AssayKitError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    return 0
