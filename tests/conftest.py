"""Pytest configuration and shared fixtures for isoreconcile tests.

Fixtures are organized by category:

- Chain fixtures: Build exon chains programmatically
- File fixtures: Write small GTF/GFF3/TOML files under tmp_path
"""

from pathlib import Path
from typing import Callable

import pytest

from isoreconcile.core.chains import ExonChain

ChainFactory = Callable[..., ExonChain]


# =============================================================================
# Chain Fixtures
# =============================================================================


@pytest.fixture
def make_chain() -> ChainFactory:
    """Return a factory building chains with chr1/+ defaults."""

    def _make(
        chain_id: str,
        intervals: list[tuple[int, int]],
        strand: str = "+",
        seqid: str = "chr1",
        gene_id: str | None = None,
    ) -> ExonChain:
        return ExonChain.from_intervals(chain_id, seqid, strand, intervals, gene_id=gene_id)

    return _make


@pytest.fixture
def reference_chains(make_chain: ChainFactory) -> list[ExonChain]:
    """Three annotated transcripts of one gene and one of another.

    - txA: full-length, three exons
    - txB: txA without its first exon
    - txC: skips txA's middle exon
    - txD: unrelated gene on chr2
    """
    return [
        make_chain("txA", [(100, 200), (300, 400), (500, 600)], gene_id="geneA"),
        make_chain("txB", [(320, 400), (500, 650)], gene_id="geneA"),
        make_chain("txC", [(100, 200), (500, 600)], gene_id="geneA"),
        make_chain("txD", [(1000, 1100), (1200, 1300)], seqid="chr2", strand="-", gene_id="geneD"),
    ]


# =============================================================================
# File Fixtures
# =============================================================================


@pytest.fixture
def synthetic_gtf(tmp_path: Path) -> Path:
    """Write a small GTF annotation.

    Exons of tx2 are listed out of genomic order and tx3 has unknown strand.
    """
    gtf_path = tmp_path / "annotation.gtf"
    rows = [
        ("chr1", "transcript", 100, 400, "+", 'gene_id "g1"; transcript_id "tx1";'),
        ("chr1", "exon", 100, 200, "+", 'gene_id "g1"; transcript_id "tx1"; exon_number "1";'),
        ("chr1", "exon", 300, 400, "+", 'gene_id "g1"; transcript_id "tx1"; exon_number "2";'),
        ("chr1", "exon", 300, 410, "+", 'gene_id "g1"; transcript_id "tx2"; exon_number "2";'),
        ("chr1", "exon", 100, 200, "+", 'gene_id "g1"; transcript_id "tx2"; exon_number "1";'),
        ("chr2", "exon", 50, 80, ".", 'gene_id "g2"; transcript_id "tx3";'),
    ]
    with open(gtf_path, "w") as f:
        f.write("# synthetic annotation\n")
        for seqid, ftype, start, end, strand, attributes in rows:
            f.write(f"{seqid}\ttest\t{ftype}\t{start}\t{end}\t.\t{strand}\t.\t{attributes}\n")
    return gtf_path


@pytest.fixture
def synthetic_gff3(tmp_path: Path) -> Path:
    """Write a small GFF3 annotation with gene/mRNA/exon hierarchy on the minus strand."""
    gff_path = tmp_path / "annotation.gff3"
    lines = [
        "##gff-version 3",
        "chr1\ttest\tgene\t100\t400\t.\t-\t.\tID=gene1",
        "chr1\ttest\tmRNA\t100\t400\t.\t-\t.\tID=mrna1;Parent=gene1",
        "chr1\ttest\texon\t300\t400\t.\t-\t.\tID=exon2;Parent=mrna1",
        "chr1\ttest\texon\t100\t200\t.\t-\t.\tID=exon1;Parent=mrna1",
    ]
    gff_path.write_text("\n".join(lines) + "\n")
    return gff_path
