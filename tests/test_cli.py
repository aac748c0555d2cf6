"""Tests for the command-line interface."""

import csv

import pytest
from click.testing import CliRunner

from isoreconcile.cli import main
from isoreconcile.io.gtf import read_exon_chains
from isoreconcile.io.tables import MATCH_HEADERS
from isoreconcile.utils.intervals import Interval


def _read_tsv(path):
    with open(path, newline="") as f:
        return list(csv.DictReader(f, delimiter="\t"))


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestMainGroup:
    """Tests for the top-level command group."""

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("eqclass", "cluster", "match", "gene-ranges"):
            assert command in result.output

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config(self, runner, synthetic_gtf, tmp_path):
        config_path = tmp_path / "bad.toml"
        config_path.write_text("[match]\nmax_distance = 3\n")

        result = runner.invoke(
            main,
            ["-c", str(config_path), "eqclass", "-i", str(synthetic_gtf), "-o", str(tmp_path / "o")],
        )
        assert result.exit_code == 1
        assert "Error" in result.output


class TestEqclassCommand:
    """Tests for the eqclass command."""

    def test_writes_classes(self, runner, synthetic_gtf, tmp_path):
        output = tmp_path / "eq.tsv"
        result = runner.invoke(main, ["eqclass", "-i", str(synthetic_gtf), "-o", str(output)])

        assert result.exit_code == 0, result.output
        rows = _read_tsv(output)
        assert {r["chain_id"]: r["eq_class"] for r in rows} == {
            "tx1": "tx1.tx2",
            "tx2": "tx1.tx2",
            "tx3": "tx3",
        }

    def test_malformed_input(self, runner, tmp_path):
        bad = tmp_path / "bad.gtf"
        bad.write_text('chr1\ttest\texon\tx\t200\t.\t+\t.\ttranscript_id "t1";\n')

        result = runner.invoke(main, ["eqclass", "-i", str(bad), "-o", str(tmp_path / "o.tsv")])
        assert result.exit_code == 1
        assert "Error" in result.output


class TestClusterCommand:
    """Tests for the cluster command."""

    def test_prefix(self, runner, synthetic_gtf, tmp_path):
        output = tmp_path / "genes.tsv"
        result = runner.invoke(
            main, ["cluster", "-i", str(synthetic_gtf), "-o", str(output), "--prefix", "novel"]
        )

        assert result.exit_code == 0, result.output
        genes = {r["chain_id"]: r["gene_id"] for r in _read_tsv(output)}
        assert genes == {"tx1": "genenovel.1", "tx2": "genenovel.1", "tx3": "genenovel.3"}

    def test_prefix_from_config(self, runner, synthetic_gtf, tmp_path):
        config_path = tmp_path / "isoreconcile.toml"
        config_path.write_text('[overlap]\ngene_prefix = "cfg"\n')
        output = tmp_path / "genes.tsv"

        result = runner.invoke(
            main, ["-c", str(config_path), "cluster", "-i", str(synthetic_gtf), "-o", str(output)]
        )
        assert result.exit_code == 0, result.output
        assert _read_tsv(output)[0]["gene_id"] == "genecfg.1"

    def test_invalid_threads(self, runner, synthetic_gtf, tmp_path):
        result = runner.invoke(
            main,
            ["cluster", "-i", str(synthetic_gtf), "-o", str(tmp_path / "g.tsv"), "-t", "0"],
        )
        assert result.exit_code == 1


class TestMatchCommand:
    """Tests for the match command."""

    def test_self_match(self, runner, synthetic_gtf, tmp_path):
        output = tmp_path / "matches.tsv"
        result = runner.invoke(
            main,
            ["match", "-q", str(synthetic_gtf), "-r", str(synthetic_gtf), "-o", str(output)],
        )

        assert result.exit_code == 0, result.output
        assert "Matching Summary" in result.output
        rows = _read_tsv(output)
        assert list(rows[0]) == MATCH_HEADERS
        assert {r["query_id"] for r in rows} == {"tx1", "tx2", "tx3"}
        assert all(r["round"] == "1" for r in rows)
        assert ("tx3", "tx3") in {(r["query_id"], r["subject_id"]) for r in rows}

    def test_eq_classes_output(self, runner, synthetic_gtf, tmp_path):
        output = tmp_path / "matches.tsv"
        eq_output = tmp_path / "eq.tsv"
        result = runner.invoke(
            main,
            [
                "match",
                "-q",
                str(synthetic_gtf),
                "-r",
                str(synthetic_gtf),
                "-o",
                str(output),
                "--eq-classes",
                str(eq_output),
            ],
        )

        assert result.exit_code == 0, result.output
        rows = _read_tsv(eq_output)
        assert list(rows[0]) == ["chain_id", "eq_class"]
        # tx2 extends past tx1's last exon, so only tx1 is compatible with both
        assert {r["chain_id"]: r["eq_class"] for r in rows} == {
            "tx1": "tx1.tx2",
            "tx2": "tx2",
            "tx3": "tx3",
        }


class TestGeneRangesCommand:
    """Tests for the gene-ranges command."""

    def test_annotation_genes(self, runner, synthetic_gtf, tmp_path):
        output = tmp_path / "genes.gtf"
        result = runner.invoke(main, ["gene-ranges", "-i", str(synthetic_gtf), "-o", str(output)])

        assert result.exit_code == 0, result.output
        skeletons = {c.chain_id: c for c in read_exon_chains(output)}
        assert set(skeletons) == {"g1", "g2"}
        assert skeletons["g1"].intervals == [Interval(100, 200), Interval(300, 410)]

    def test_with_cluster_output(self, runner, synthetic_gtf, tmp_path):
        gene_map = tmp_path / "genes.tsv"
        output = tmp_path / "genes.gtf"

        result = runner.invoke(main, ["cluster", "-i", str(synthetic_gtf), "-o", str(gene_map)])
        assert result.exit_code == 0, result.output
        result = runner.invoke(
            main,
            ["gene-ranges", "-i", str(synthetic_gtf), "-o", str(output), "--gene-map", str(gene_map)],
        )

        assert result.exit_code == 0, result.output
        assert {c.chain_id for c in read_exon_chains(output)} == {"gene.1", "gene.3"}

    def test_bad_gene_map(self, runner, synthetic_gtf, tmp_path):
        gene_map = tmp_path / "genes.tsv"
        gene_map.write_text("id\tgene\ntx1\tg\n")

        result = runner.invoke(
            main,
            [
                "gene-ranges",
                "-i",
                str(synthetic_gtf),
                "-o",
                str(tmp_path / "out.gtf"),
                "--gene-map",
                str(gene_map),
            ],
        )
        assert result.exit_code == 1
        assert "chain_id" in result.output

    def test_clustered_read_classes(self, runner, tmp_path):
        """Read classes of unknown strand cluster and aggregate with stranded ones."""
        gtf = tmp_path / "read_classes.gtf"
        gtf.write_text(
            'chr1\ttest\texon\t100\t200\t.\t+\t.\tgene_id "g1"; transcript_id "tx1";\n'
            'chr1\ttest\texon\t300\t400\t.\t+\t.\tgene_id "g1"; transcript_id "tx1";\n'
            'chr1\ttest\texon\t120\t190\t.\t.\t.\tgene_id "r1"; transcript_id "rc1";\n'
            'chr1\ttest\texon\t150\t250\t.\t-\t.\tgene_id "r2"; transcript_id "rc2";\n'
        )
        gene_map = tmp_path / "genes.tsv"
        output = tmp_path / "genes.gtf"

        result = runner.invoke(
            main, ["cluster", "-i", str(gtf), "-o", str(gene_map), "--ignore-strand"]
        )
        assert result.exit_code == 0, result.output
        result = runner.invoke(
            main, ["gene-ranges", "-i", str(gtf), "-o", str(output), "--gene-map", str(gene_map)]
        )

        assert result.exit_code == 0, result.output
        (skeleton,) = read_exon_chains(output)
        assert skeleton.chain_id == "gene.1"
        assert skeleton.strand == "*"
        assert skeleton.intervals == [Interval(100, 250), Interval(300, 400)]
