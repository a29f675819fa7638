"""
Configuration file support for the assaykit CLI.

Supports YAML and JSON config files with CLI argument override. A
collection config lists the experiments of a study:

```yaml
cohort: data/patients.csv          # optional sample metadata (first column ids)
experiments:
  - name: rna
    table: data/rna                # bundle base (rna.assay.csv, ...)
  - name: methylation
    assay: data/meth_matrix.tsv    # or explicit files
    rows: data/meth_probes.csv
    cols: data/meth_samples.csv
    sample_map:                    # experiment column -> cohort id
      GSM1001: patient_01
```

Relative paths resolve against the config file's directory.
"""

import json
import logging
from argparse import Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

from assaykit.core.errors import ConfigurationError
from assaykit.core.multi import MultiExperimentCollection
from assaykit.io.loaders import load_table, read_table

logger = logging.getLogger(__name__)


@dataclass
class ExperimentConfig:
    """One experiment entry of a collection config."""
    name: str
    table: Optional[Path] = None
    assay: Optional[Path] = None
    rows: Optional[Path] = None
    cols: Optional[Path] = None
    sample_map: Dict[str, str] = field(default_factory=dict)

    def load(self):
        """Load the experiment's CoordinatedTable."""
        if self.table is not None:
            return read_table(self.table)
        return load_table(self.assay, row_meta_path=self.rows, col_meta_path=self.cols)


@dataclass
class CollectionConfig:
    """
    Complete configuration schema for `assaykit presence`.

    Mirrors the YAML structure shown in the module docstring.
    """
    experiments: List[ExperimentConfig] = field(default_factory=list)
    cohort: Optional[Path] = None

    @classmethod
    def from_dict(cls, config: Dict[str, Any], base_dir: Optional[Path] = None) -> "CollectionConfig":
        """
        Validate a parsed config mapping.

        Raises:
            ConfigurationError: If entries are missing names or sources, or
                names repeat
        """
        base_dir = Path(base_dir) if base_dir is not None else Path('.')

        def resolve(value: Any) -> Optional[Path]:
            if value is None:
                return None
            path = Path(value).expanduser()
            return path if path.is_absolute() else base_dir / path

        entries = config.get('experiments')
        if not entries or not isinstance(entries, list):
            raise ConfigurationError("Config needs a non-empty 'experiments' list")

        experiments = []
        seen = set()
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or 'name' not in entry:
                raise ConfigurationError(f"Experiment entry {i} must be a mapping with a 'name'")
            name = str(entry['name'])
            if name in seen:
                raise ConfigurationError(f"Experiment name '{name}' appears twice in config")
            seen.add(name)

            if ('table' in entry) == ('assay' in entry):
                raise ConfigurationError(
                    f"Experiment '{name}' needs exactly one of 'table' or 'assay'"
                )
            sample_map = entry.get('sample_map') or {}
            if not isinstance(sample_map, dict):
                raise ConfigurationError(f"Experiment '{name}': sample_map must be a mapping")

            experiments.append(ExperimentConfig(
                name=name,
                table=resolve(entry.get('table')),
                assay=resolve(entry.get('assay')),
                rows=resolve(entry.get('rows')),
                cols=resolve(entry.get('cols')),
                sample_map={str(k): str(v) for k, v in sample_map.items()},
            ))

        return cls(experiments=experiments, cohort=resolve(config.get('cohort')))


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("study.yaml"))
        >>> print(config['experiments'][0]['name'])
        rna
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ValueError(
            f"Unsupported config format: {suffix}. "
            f"Use .yaml, .yml, or .json"
        )

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            else:
                config = json.load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def load_collection_config(config_path: Path) -> CollectionConfig:
    """Load and validate a collection config, resolving paths against its directory."""
    config_path = Path(config_path)
    return CollectionConfig.from_dict(load_config(config_path), base_dir=config_path.parent)


def build_collection(config: CollectionConfig) -> MultiExperimentCollection:
    """Load every configured experiment and register it in a new collection."""
    cohort = None
    if config.cohort is not None:
        if not config.cohort.exists():
            raise FileNotFoundError(f"Cohort file not found: {config.cohort}")
        cohort = pd.read_csv(config.cohort, converters={0: str})
        cohort = cohort.set_index(cohort.columns[0])

    collection = MultiExperimentCollection(cohort=cohort)
    for experiment in config.experiments:
        logger.info(f"Loading experiment '{experiment.name}'")
        collection.register(experiment.name, experiment.load(), experiment.sample_map or None)
    return collection


# Short flags shared by the subcommands
_SHORT_TO_LONG = {
    'c': 'config',
    'i': 'input',
    'o': 'output',
    'v': 'verbose',
}

# Namespace fields owned by the dispatcher, never taken from a config file
_RESERVED_DESTS = {'func', 'command', 'config'}


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    """Destinations of options present on the command line."""
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            explicit.add(arg[2:].split('=', 1)[0].replace('-', '_'))
        elif arg.startswith('-') and len(arg) >= 2 and arg[1] in _SHORT_TO_LONG:
            # -i value, -ivalue
            explicit.add(_SHORT_TO_LONG[arg[1]])
    return explicit


def merge_config_with_args(config: Dict[str, Any], args: Namespace, cli_args: Optional[List[str]] = None) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Only keys that already exist on ``args`` are taken from the config
    (dashes in config keys become underscores); dispatcher fields
    (``func``, ``command``, ``config``) are never overridden. Path-like
    options are converted to Path objects.

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    for key, value in config.items():
        dest = str(key).replace('-', '_')
        if dest in _RESERVED_DESTS or not hasattr(merged, dest):
            logger.debug(f"Ignoring config key '{key}'")
            continue
        if dest in explicit or value is None:
            continue
        if dest in ('input', 'output', 'regions_bed'):
            value = Path(value)
        elif dest in ('region', 'features', 'samples') and isinstance(value, str):
            value = [value]
        setattr(merged, dest, value)

    return merged
