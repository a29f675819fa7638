"""Tests for config loading, collection configs and CLI/config merging."""

import argparse
import json
from pathlib import Path

import pytest
import yaml

from assaykit.cli.config import (
    CollectionConfig,
    build_collection,
    load_collection_config,
    load_config,
    merge_config_with_args,
)
from assaykit.core.errors import ConfigurationError
from assaykit.io.writers import write_table


class TestLoadConfig:

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({'input': 'data/rna', 'region': ['chr1:1-10']}))
        assert load_config(path) == {'input': 'data/rna', 'region': ['chr1:1-10']}

    def test_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({'output': 'out'}))
        assert load_config(path) == {'output': 'out'}

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "config.yml"
        path.write_text("")
        assert load_config(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "config.toml"
        path.write_text("a = 1")
        with pytest.raises(ValueError, match="Unsupported config format"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("key: [unclosed")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_config(path)


class TestMergeConfigWithArgs:

    @pytest.fixture
    def defaults(self):
        return argparse.Namespace(input=None, output=None, region=None, samples=None, verbose=False)

    def test_config_fills_defaults(self, defaults):
        merged = merge_config_with_args({'input': 'data/rna', 'region': 'chr1:1-10'}, defaults, [])
        assert merged.input == Path('data/rna')
        assert merged.region == ['chr1:1-10']

    def test_explicit_cli_wins(self, defaults):
        defaults.output = Path('cli_out')
        merged = merge_config_with_args({'output': 'config_out'}, defaults, ['--output', 'cli_out'])
        assert merged.output == Path('cli_out')

    def test_explicit_short_flags_win(self, defaults):
        defaults.input = Path('cli_in')
        defaults.output = Path('cli_out')
        merged = merge_config_with_args(
            {'input': 'config_in', 'output': 'config_out', 'samples': ['S1']},
            defaults,
            ['-c', 'cfg.yaml', '-i', 'cli_in', '-o', 'cli_out'],
        )
        assert merged.input == Path('cli_in')
        assert merged.output == Path('cli_out')
        assert merged.samples == ['S1']

    def test_dispatcher_fields_not_overridden(self, defaults):
        def handler(args, raw):
            return 0

        defaults.func = handler
        defaults.command = 'subset'
        defaults.config = Path('cfg.yaml')
        merged = merge_config_with_args(
            {'func': 'oops', 'command': 'presence', 'config': 'other.yaml'}, defaults, [],
        )
        assert merged.func is handler
        assert merged.command == 'subset'
        assert merged.config == Path('cfg.yaml')

    def test_unknown_keys_ignored(self, defaults):
        merged = merge_config_with_args({'colour': 'blue'}, defaults, [])
        assert not hasattr(merged, 'colour')

    def test_dashed_keys(self, defaults):
        defaults.regions_bed = None
        merged = merge_config_with_args({'regions-bed': 'peaks.bed'}, defaults, [])
        assert merged.regions_bed == Path('peaks.bed')

    def test_original_namespace_untouched(self, defaults):
        merge_config_with_args({'input': 'x'}, defaults, [])
        assert defaults.input is None


class TestCollectionConfig:

    def test_paths_resolve_against_base(self, tmp_path):
        config = CollectionConfig.from_dict({
            'cohort': 'patients.csv',
            'experiments': [
                {'name': 'rna', 'table': 'data/rna'},
                {'name': 'meth', 'assay': '/abs/meth.tsv', 'sample_map': {'GSM1': 'p1'}},
            ],
        }, base_dir=tmp_path)

        assert config.cohort == tmp_path / 'patients.csv'
        assert config.experiments[0].table == tmp_path / 'data' / 'rna'
        assert config.experiments[1].assay == Path('/abs/meth.tsv')
        assert config.experiments[1].sample_map == {'GSM1': 'p1'}

    @pytest.mark.parametrize("config,message", [
        ({}, "non-empty 'experiments'"),
        ({'experiments': [{'table': 'x'}]}, "'name'"),
        ({'experiments': [{'name': 'a'}]}, "exactly one"),
        ({'experiments': [{'name': 'a', 'table': 'x', 'assay': 'y'}]}, "exactly one"),
        ({'experiments': [{'name': 'a', 'table': 'x'}, {'name': 'a', 'table': 'y'}]}, "twice"),
        ({'experiments': [{'name': 'a', 'table': 'x', 'sample_map': ['p1']}]}, "sample_map"),
    ])
    def test_validation(self, config, message):
        with pytest.raises(ConfigurationError, match=message):
            CollectionConfig.from_dict(config)


class TestBuildCollection:

    def test_builds_from_bundles(self, toy_table, small_table, tmp_path):
        write_table(toy_table, tmp_path / "data" / "toy")
        write_table(small_table.subset(None, ['S000', 'S001']), tmp_path / "data" / "small")
        (tmp_path / "patients.csv").write_text("sample_id,sex\np1,F\np2,M\n")

        config_path = tmp_path / "study.yaml"
        config_path.write_text(yaml.safe_dump({
            'cohort': 'patients.csv',
            'experiments': [
                {'name': 'toy', 'table': 'data/toy', 'sample_map': {'s1': 'p1', 's2': 'p2'}},
                {'name': 'small', 'table': 'data/small', 'sample_map': {'S000': 'p2'}},
            ],
        }))

        collection = build_collection(load_collection_config(config_path))
        assert collection.names == ['toy', 'small']
        assert collection.samples_with({'toy', 'small'}) == {'p2'}
        # s3 and S001 have no cohort mapping and join the cohort as-is
        assert collection.cohort.index.tolist() == ['p1', 'p2', 's3', 'S001']

    def test_missing_cohort_file(self, tmp_path):
        config = CollectionConfig.from_dict(
            {'cohort': 'absent.csv', 'experiments': [{'name': 'a', 'table': 'a'}]},
            base_dir=tmp_path,
        )
        with pytest.raises(FileNotFoundError, match="Cohort"):
            build_collection(config)
