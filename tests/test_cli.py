"""End-to-end tests of the assaykit command line."""

import pandas as pd
import pytest
import yaml

from assaykit.cli import main
from assaykit.io.loaders import read_table
from assaykit.io.writers import write_table


@pytest.fixture
def bundle(small_table, tmp_path):
    base = tmp_path / "input" / "rna"
    write_table(small_table, base)
    return base


class TestMain:

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "subset" in capsys.readouterr().out

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert "assaykit" in capsys.readouterr().out


class TestSubsetCommand:

    def test_region_filter(self, bundle, small_table, tmp_path):
        out = tmp_path / "out" / "chr2"
        assert main(["subset", "-i", str(bundle), "-o", str(out), "--region", "chr2:0-2500"]) == 0

        result = read_table(out)
        expected = small_table.filter_rows_by_overlap("chr2", 0, 2500)
        assert result.equals(expected)
        assert result.n_features == 3

    def test_regions_combine_by_union(self, bundle, tmp_path):
        bed = tmp_path / "regions.bed"
        bed.write_text("chr3\t0\t100\n")
        out = tmp_path / "union"
        code = main([
            "subset", "-i", str(bundle), "-o", str(out),
            "--region", "chr1:0-100", "--regions-bed", str(bed),
        ])
        assert code == 0
        assert read_table(out).feature_ids.tolist() == ["GENE_00000", "GENE_00002"]

    def test_feature_and_sample_selection(self, bundle, tmp_path):
        out = tmp_path / "picked"
        code = main([
            "subset", "-i", str(bundle), "-o", str(out),
            "--features", "GENE_00005", "GENE_00001",
            "--samples", "S003", "S000",
        ])
        assert code == 0
        result = read_table(out)
        assert result.feature_ids.tolist() == ["GENE_00005", "GENE_00001"]
        assert result.sample_ids.tolist() == ["S003", "S000"]
        assert result.col_meta["phenotype"].tolist() == ["CTRL", "CASE"]

    def test_config_supplies_arguments(self, bundle, tmp_path):
        out = tmp_path / "from_config"
        config = tmp_path / "subset.yaml"
        config.write_text(yaml.safe_dump({
            'input': str(bundle), 'output': str(out), 'samples': ['S001'],
        }))
        assert main(["subset", "--config", str(config)]) == 0
        assert read_table(out).sample_ids.tolist() == ["S001"]

    def test_cli_overrides_config(self, bundle, tmp_path):
        config = tmp_path / "subset.yaml"
        config.write_text(yaml.safe_dump({
            'input': str(bundle), 'output': str(tmp_path / "ignored"), 'samples': ['S001'],
        }))
        out = tmp_path / "chosen"
        assert main(["subset", "--config", str(config), "--output", str(out)]) == 0
        assert (tmp_path / "chosen.assay.csv").exists()
        assert not (tmp_path / "ignored.assay.csv").exists()

    def test_short_flags_override_config(self, bundle, small_table, tmp_path):
        other = tmp_path / "other"
        write_table(small_table.subset(['GENE_00000']), other)
        config = tmp_path / "subset.yaml"
        config.write_text(yaml.safe_dump({'input': str(other), 'output': str(tmp_path / "ignored")}))

        out = tmp_path / "short"
        assert main(["subset", "-c", str(config), "-i", str(bundle), "-o", str(out)]) == 0
        assert read_table(out).n_features == small_table.n_features
        assert not (tmp_path / "ignored.assay.csv").exists()

    def test_missing_input_fails(self, tmp_path):
        assert main(["subset", "-o", str(tmp_path / "x")]) == 1

    def test_unknown_sample_fails(self, bundle, tmp_path):
        code = main(["subset", "-i", str(bundle), "-o", str(tmp_path / "x"), "--samples", "NOPE"])
        assert code == 1
        assert not (tmp_path / "x.assay.csv").exists()

    def test_malformed_region_fails(self, bundle, tmp_path):
        assert main(["subset", "-i", str(bundle), "-o", str(tmp_path / "x"), "--region", "chr1:5"]) == 1


class TestPresenceCommand:

    @pytest.fixture
    def study(self, toy_table, small_table, tmp_path):
        write_table(toy_table, tmp_path / "toy")
        write_table(small_table.subset(None, ['S000', 'S001']), tmp_path / "small")
        config = tmp_path / "study.yaml"
        config.write_text(yaml.safe_dump({
            'experiments': [
                {'name': 'toy', 'table': 'toy'},
                {'name': 'small', 'table': 'small', 'sample_map': {'S000': 's1'}},
            ],
        }))
        return config

    def test_summary(self, study, capsys):
        assert main(["presence", "--config", str(study), "--require", "toy", "small"]) == 0
        out = capsys.readouterr().out
        assert "2 experiments, 4 samples" in out
        assert "toy: 3 samples" in out
        assert "complete cases: 1" in out
        assert "Samples with toy & small (1):" in out

    def test_writes_matrix(self, study, tmp_path):
        out = tmp_path / "presence.csv"
        assert main(["presence", "--config", str(study), "--output", str(out)]) == 0
        frame = pd.read_csv(out, index_col=0)
        assert frame.columns.tolist() == ['toy', 'small']
        assert frame.loc['s1'].tolist() == [1, 1]
        assert frame.loc['S001'].tolist() == [0, 1]

    def test_unknown_required_experiment(self, study):
        assert main(["presence", "--config", str(study), "--require", "atac"]) == 1

    def test_missing_config(self, tmp_path):
        assert main(["presence", "--config", str(tmp_path / "absent.yaml")]) == 1
