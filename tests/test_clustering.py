"""Tests for overlap-graph gene clustering."""

import pytest

from isoreconcile.core.clustering import (
    assign_gene_ids,
    cluster_chains,
    find_overlap_edges,
    format_gene_id,
)
from isoreconcile.exceptions import InvalidChain


class TestClusterChains:
    """Tests for cluster_chains."""

    def test_singletons(self, make_chain):
        chains = [make_chain(f"c{i}", [(1000 * i + 100, 1000 * i + 200)]) for i in range(3)]
        assert cluster_chains(chains) == [0, 1, 2]

    def test_component_named_after_smallest_vertex(self, make_chain):
        chains = [
            make_chain("c0", [(100, 200)]),
            make_chain("c1", [(5000, 5100)]),
            make_chain("c2", [(190, 300)]),
            make_chain("c3", [(290, 400)]),
            make_chain("c4", [(390, 500)]),
        ]
        assert cluster_chains(chains) == [0, 1, 0, 0, 0]

    def test_empty(self):
        assert cluster_chains([]) == []


class TestFindOverlapEdges:
    """Tests for find_overlap_edges."""

    def test_min_overlap_threshold(self, make_chain):
        chains = [make_chain("a", [(100, 200)]), make_chain("b", [(196, 300)])]
        assert find_overlap_edges(chains, min_overlap=5) == [(0, 1)]
        assert find_overlap_edges(chains, min_overlap=6) == []

    def test_span_overlap_without_exon_overlap(self, make_chain):
        chains = [
            make_chain("a", [(100, 200), (500, 600)]),
            make_chain("b", [(250, 400)]),
        ]
        assert find_overlap_edges(chains) == []


class TestAssignGeneIds:
    """Tests for assign_gene_ids."""

    def test_shared_exon_scenario(self, make_chain):
        """Chains sharing or overlapping exons end up in one gene."""
        chains = [
            make_chain("c1", [(100, 200), (300, 400)]),
            make_chain("c2", [(100, 200), (300, 410)]),
            make_chain("c3", [(150, 250), (300, 400)]),
        ]
        genes = assign_gene_ids(chains, min_overlap=5)
        assert genes == {"c1": "gene.1", "c2": "gene.1", "c3": "gene.1"}

    def test_transitive_chain(self, make_chain):
        chains = [
            make_chain("A", [(100, 200)]),
            make_chain("B", [(180, 300)]),
            make_chain("C", [(280, 400)]),
        ]
        assert assign_gene_ids(chains) == {"A": "gene.1", "B": "gene.1", "C": "gene.1"}

    def test_named_after_first_member(self, make_chain):
        chains = [
            make_chain("x", [(5000, 5100)]),
            make_chain("A", [(100, 200)]),
            make_chain("B", [(180, 300)]),
        ]
        assert assign_gene_ids(chains) == {"x": "gene.1", "A": "gene.2", "B": "gene.2"}

    def test_prefix(self, make_chain):
        chains = [make_chain("a", [(100, 200)]), make_chain("b", [(1000, 1100)])]
        assert assign_gene_ids(chains, prefix="novel") == {"a": "genenovel.1", "b": "genenovel.2"}

    def test_partition(self, reference_chains):
        genes = assign_gene_ids(reference_chains)
        assert set(genes) == {c.chain_id for c in reference_chains}
        assert genes["txA"] == genes["txB"] == genes["txC"] == "gene.1"
        assert genes["txD"] == "gene.4"

    def test_opposite_strands_split(self, make_chain):
        chains = [make_chain("p", [(100, 200)]), make_chain("m", [(100, 200)], strand="-")]
        assert assign_gene_ids(chains) == {"p": "gene.1", "m": "gene.2"}
        assert assign_gene_ids(chains, ignore_strand=True) == {"p": "gene.1", "m": "gene.1"}

    def test_unknown_strand_links(self, make_chain):
        chains = [
            make_chain("p", [(100, 200)]),
            make_chain("u", [(150, 250)], strand="*"),
            make_chain("m", [(200, 300)], strand="-"),
        ]
        assert set(assign_gene_ids(chains).values()) == {"gene.1"}

    def test_different_chromosomes(self, make_chain):
        chains = [make_chain("a", [(100, 200)]), make_chain("b", [(100, 200)], seqid="chr2")]
        assert assign_gene_ids(chains) == {"a": "gene.1", "b": "gene.2"}

    def test_empty(self):
        assert assign_gene_ids([]) == {}

    def test_duplicate_ids(self, make_chain):
        with pytest.raises(InvalidChain):
            assign_gene_ids([make_chain("a", [(1, 10)]), make_chain("a", [(1, 10)])])

    @pytest.mark.parametrize("n_workers", [1, 3])
    def test_overlapping_pairs_share_gene(self, make_chain, n_workers):
        chains = [
            make_chain(f"c{i}", [(start, start + 60)], seqid=f"chr{i % 2}")
            for i, start in enumerate([10, 40, 200, 230, 500, 900, 940, 1000])
        ]
        genes = assign_gene_ids(chains, n_workers=n_workers)
        for i, j in find_overlap_edges(chains):
            assert genes[chains[i].chain_id] == genes[chains[j].chain_id]

    def test_roots_are_smallest_members(self, reference_chains):
        roots = cluster_chains(reference_chains)
        for i, root in enumerate(roots):
            assert root <= i
            assert roots[root] == root


def test_format_gene_id():
    assert format_gene_id(0) == "gene.1"
    assert format_gene_id(41, "x") == "genex.42"
