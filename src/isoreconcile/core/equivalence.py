"""Splice compatibility and equivalence classes.

Two chains are splice-compatible when the junction structure of one is
contained in the other: every exonic base of the smaller chain is exonic in
the larger one and the larger chain has no exon inside an intron of the
smaller one. Comparisons run on boundary-trimmed chains, so transcript
start and end positions never break compatibility.

The equivalence class of a chain is the sorted, ``.``-joined list of every
chain it is compatible with, itself included. The relation is symmetric,
so if B appears in A's class then A appears in B's.

Example:
    >>> from isoreconcile.core.equivalence import build_equivalence_classes
    >>> classes = build_equivalence_classes(annotations)
    >>> classes["tx1"]
    'tx1.tx2'
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

import attrs

from isoreconcile.core.chains import (
    ExonChain,
    check_unique_ids,
    strands_compatible,
    trim_boundaries,
)
from isoreconcile.core.search import find_candidate_pairs
from isoreconcile.utils.intervals import has_overlap, uncovered_length

logger = logging.getLogger(__name__)

EQ_CLASS_SEPARATOR = "."


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(frozen=True, slots=True)
class SpliceOverlap:
    """A query/subject pair whose exons overlap.

    Attributes:
        query_index: Position of the query chain.
        subject_index: Position of the subject chain.
        compatible: Whether the pair is splice-compatible.
        equal: Whether both chains have identical junctions.
    """

    query_index: int
    subject_index: int
    compatible: bool
    equal: bool


# =============================================================================
# Compatibility Tests
# =============================================================================


def is_splice_subset(
    query: ExonChain,
    subject: ExonChain,
    ignore_strand: bool = False,
) -> bool:
    """Check whether the structure of ``query`` is contained in ``subject``.

    Args:
        query: Candidate sub-structure.
        subject: Candidate super-structure.
        ignore_strand: Compare chains on opposite strands.

    Returns:
        True if every query exon base is covered by subject exons and no
        subject exon falls inside a query intron.
    """
    if query.seqid != subject.seqid:
        return False
    if not strands_compatible(query.strand, subject.strand, ignore_strand):
        return False
    if not query.exons or not subject.exons:
        return False

    if uncovered_length(query.intervals, subject.intervals) > 0:
        return False

    introns = query.introns
    return not (introns and has_overlap(introns, subject.intervals))


def is_splice_compatible(
    a: ExonChain,
    b: ExonChain,
    ignore_strand: bool = False,
) -> bool:
    """Check whether one chain's structure is contained in the other's."""
    return is_splice_subset(a, b, ignore_strand) or is_splice_subset(b, a, ignore_strand)


def find_splice_overlaps(
    queries: Sequence[ExonChain],
    subjects: Sequence[ExonChain],
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[SpliceOverlap]:
    """Find overlapping chain pairs and flag their splice compatibility.

    Args:
        queries: Query chains.
        subjects: Subject chains.
        ignore_strand: Compare chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        One SpliceOverlap per pair sharing at least one exonic base,
        sorted by query then subject position.
    """
    hits = []
    for qi, si in find_candidate_pairs(queries, subjects, 0, ignore_strand, n_workers):
        query, subject = queries[qi], subjects[si]
        if not has_overlap(query.intervals, subject.intervals):
            continue
        hits.append(
            SpliceOverlap(
                query_index=qi,
                subject_index=si,
                compatible=is_splice_compatible(query, subject, ignore_strand),
                equal=query.junctions == subject.junctions,
            )
        )
    return hits


# =============================================================================
# Equivalence Classes
# =============================================================================


def build_equivalence_classes(
    chains: Sequence[ExonChain],
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> dict[str, str]:
    """Compute the equivalence class key of every chain.

    Chains without exons cannot be trimmed and map to the empty key.

    Args:
        chains: Chains with unique identifiers.
        ignore_strand: Compare chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Mapping of chain id to equivalence class key, in input order.

    Raises:
        InvalidChain: If identifiers are not unique.
    """
    check_unique_ids(chains)
    if not chains:
        logger.debug("No chains given, no equivalence classes to build")
        return {}

    trimmed = [trim_boundaries(chain) if chain.exons else chain for chain in chains]

    members: dict[int, list[str]] = defaultdict(list)
    for hit in find_splice_overlaps(trimmed, trimmed, ignore_strand, n_workers):
        if hit.compatible:
            members[hit.query_index].append(chains[hit.subject_index].chain_id)

    classes = {
        chain.chain_id: EQ_CLASS_SEPARATOR.join(sorted(members.get(i, [])))
        for i, chain in enumerate(chains)
    }

    n_shared = sum(1 for key in classes.values() if EQ_CLASS_SEPARATOR in key)
    logger.info(f"Built equivalence classes for {len(classes)} chains ({n_shared} shared)")
    return classes


def assign_equivalence_classes(
    chains: Sequence[ExonChain],
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[ExonChain]:
    """Return copies of ``chains`` with their ``eq_class`` field filled in."""
    classes = build_equivalence_classes(chains, ignore_strand, n_workers)
    return [attrs.evolve(chain, eq_class=classes[chain.chain_id]) for chain in chains]
