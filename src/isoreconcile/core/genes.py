"""Gene-level exon skeletons.

Collapses all transcripts of a gene into one exon chain: the union of their
exons, with overlapping or directly adjacent exons merged, re-ranked along
the gene's strand.

Genes from the overlap clusterer may mix strands: unknown-strand (``*``)
chains join stranded genes, and ``ignore_strand`` links ``+`` with ``-``.
The gene strand is the one strand its stranded members agree on; a gene
with no stranded member, or with members on both strands, is ``*`` and
ranked like ``+``.

Example:
    >>> from isoreconcile.core.genes import aggregate_gene_ranges
    >>> skeletons = aggregate_gene_ranges(annotations)
    >>> skeletons["geneA"].intervals
    [Interval(start=100, end=200), Interval(start=300, end=410)]
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

from isoreconcile.core.chains import STRAND_UNKNOWN, ExonChain, rank_exons
from isoreconcile.exceptions import InvalidChain
from isoreconcile.utils.intervals import merge_intervals

logger = logging.getLogger(__name__)


def resolve_gene_strand(strands: Iterable[str]) -> str:
    """Pick the strand of a gene from the strands of its members.

    Example:
        >>> resolve_gene_strand(["+", "*", "+"])
        '+'
        >>> resolve_gene_strand(["+", "-"])
        '*'
    """
    known = set(strands) - {STRAND_UNKNOWN}
    if len(known) == 1:
        return known.pop()
    return STRAND_UNKNOWN


def aggregate_gene_ranges(
    chains: Iterable[ExonChain],
    gene_map: Mapping[str, str] | None = None,
) -> dict[str, ExonChain]:
    """Build one consolidated exon chain per gene.

    Args:
        chains: Transcript chains.
        gene_map: Gene id per chain id. When omitted, each chain's own
            ``gene_id`` is used.

    Returns:
        Mapping of gene id to its skeleton chain, in order of first appearance.
        Skeleton chains use the gene id as their ``chain_id``.

    Raises:
        InvalidChain: If a chain has no exons or no gene, or if the
            transcripts of a gene lie on different chromosomes.
    """
    groups: dict[str, list[ExonChain]] = {}
    for chain in chains:
        gene_id = gene_map.get(chain.chain_id) if gene_map is not None else chain.gene_id
        if gene_id is None:
            raise InvalidChain("no gene identifier assigned", chain.chain_id)
        if not chain.exons:
            raise InvalidChain("cannot aggregate a chain with no exons", chain.chain_id)
        groups.setdefault(gene_id, []).append(chain)

    skeletons = {}
    for gene_id, members in groups.items():
        seqids = {chain.seqid for chain in members}
        if len(seqids) > 1:
            raise InvalidChain(
                f"transcripts of gene {gene_id} lie on several chromosomes: {sorted(seqids)}",
                members[0].chain_id,
            )
        seqid = seqids.pop()

        strand = resolve_gene_strand(chain.strand for chain in members)
        if len({chain.strand for chain in members}) > 1:
            logger.debug(f"Gene {gene_id} mixes strands, using {strand!r}")

        merged = merge_intervals(iv for chain in members for iv in chain.intervals)
        skeletons[gene_id] = ExonChain(
            chain_id=gene_id,
            seqid=seqid,
            strand=strand,
            exons=tuple(rank_exons(merged, strand)),
            gene_id=gene_id,
        )

    logger.info(f"Aggregated transcripts into {len(skeletons)} gene skeletons")
    return skeletons
