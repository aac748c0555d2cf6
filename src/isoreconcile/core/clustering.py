"""Overlap-graph gene clustering.

Chains without a reference gene are grouped into synthetic genes: two chains
are linked when some exon of one overlaps some exon of the other by at least
``min_overlap`` bases, and each connected component of that graph becomes
one gene. Overlap is transitive through the graph, so A and C share a gene
whenever both overlap B.

Components come from a networkx graph with one vertex per chain. Each
component is named after its smallest vertex, that is its first chain in
input order, so the result is fully determined by the input order.

Example:
    >>> from isoreconcile.core.clustering import assign_gene_ids
    >>> genes = assign_gene_ids(read_classes, prefix="novel")
    >>> genes["rc7"]
    'genenovel.3'
"""

from __future__ import annotations

import logging
from typing import Sequence

import networkx as nx

from isoreconcile.core.chains import ExonChain, check_unique_ids
from isoreconcile.core.search import find_candidate_pairs
from isoreconcile.utils.intervals import has_overlap

logger = logging.getLogger(__name__)

DEFAULT_MIN_OVERLAP = 5


# =============================================================================
# Overlap Graph
# =============================================================================


def find_overlap_edges(
    chains: Sequence[ExonChain],
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[tuple[int, int]]:
    """Find overlap-graph edges among chains.

    Args:
        chains: Chains to compare with each other.
        min_overlap: Minimum shared exonic bases for an edge.
        ignore_strand: Link chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Sorted (i, j) edges with ``i < j``.
    """
    edges = []
    for i, j in find_candidate_pairs(chains, chains, 0, ignore_strand, n_workers):
        if i < j and has_overlap(chains[i].intervals, chains[j].intervals, min_overlap):
            edges.append((i, j))
    return edges


def cluster_chains(
    chains: Sequence[ExonChain],
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[int]:
    """Compute the component root of every chain.

    Args:
        chains: Chains to cluster.
        min_overlap: Minimum shared exonic bases for an edge.
        ignore_strand: Link chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Root position (smallest member position) per chain.
    """
    graph = nx.Graph()
    graph.add_nodes_from(range(len(chains)))
    graph.add_edges_from(find_overlap_edges(chains, min_overlap, ignore_strand, n_workers))

    roots = [0] * len(chains)
    for component in nx.connected_components(graph):
        root = min(component)
        for vertex in component:
            roots[vertex] = root
    return roots


def format_gene_id(root: int, prefix: str = "") -> str:
    """Name a gene after the 0-based position of its root chain."""
    return f"gene{prefix}.{root + 1}"


def assign_gene_ids(
    chains: Sequence[ExonChain],
    prefix: str = "",
    min_overlap: int = DEFAULT_MIN_OVERLAP,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> dict[str, str]:
    """Assign one synthetic gene identifier per overlap component.

    Gene identifiers have the form ``gene<prefix>.<n>`` where ``n`` is the
    1-based input position of the component's first chain. Chains without
    overlaps form singleton genes.

    Args:
        chains: Chains with unique identifiers.
        prefix: Inserted between ``gene`` and the number.
        min_overlap: Minimum shared exonic bases for an edge.
        ignore_strand: Link chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Mapping of chain id to gene id, in input order.

    Raises:
        InvalidChain: If identifiers are not unique.
    """
    check_unique_ids(chains)
    if not chains:
        logger.debug("No chains given, nothing to cluster")
        return {}

    roots = cluster_chains(chains, min_overlap, ignore_strand, n_workers)
    genes = {chain.chain_id: format_gene_id(root, prefix) for chain, root in zip(chains, roots)}

    logger.info(f"Clustered {len(chains)} chains into {len(set(roots))} genes")
    return genes
