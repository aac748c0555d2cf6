"""Candidate pair search between exon-chain collections.

Every comparison in the engine starts from the same question: which
query/subject chains are close enough on the genome to be worth a detailed
look? This module answers it with one sorted interval index per chromosome,
so the cost grows with the number of true neighbours rather than with the
square of the collection size.

Chromosomes are independent partitions. With ``n_workers > 1`` they are
searched on a thread pool and the per-partition results are merged in
chromosome order, so the output never depends on worker scheduling.

Example:
    >>> from isoreconcile.core.search import find_candidate_pairs
    >>> pairs = find_candidate_pairs(read_classes, annotations, max_gap=35)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from isoreconcile.core.chains import ExonChain, strands_compatible
from isoreconcile.utils.intervals import IntervalIndex

logger = logging.getLogger(__name__)


def partition_by_seqid(chains: Sequence[ExonChain]) -> dict[str, list[int]]:
    """Group chain positions by chromosome, skipping chains without exons."""
    partitions: dict[str, list[int]] = defaultdict(list)
    for i, chain in enumerate(chains):
        if chain.exons:
            partitions[chain.seqid].append(i)
    return partitions


def _search_partition(
    queries: Sequence[ExonChain],
    query_idx: list[int],
    subjects: Sequence[ExonChain],
    subject_idx: list[int],
    max_gap: int,
    ignore_strand: bool,
) -> list[tuple[int, int]]:
    """Find candidate pairs within one chromosome."""
    index = IntervalIndex([subjects[i].span for i in subject_idx], ids=subject_idx)

    pairs = []
    for qi in query_idx:
        query = queries[qi]
        for si in index.query(query.span, max_gap=max_gap):
            si = int(si)
            if strands_compatible(query.strand, subjects[si].strand, ignore_strand):
                pairs.append((qi, si))
    return pairs


def find_candidate_pairs(
    queries: Sequence[ExonChain],
    subjects: Sequence[ExonChain],
    max_gap: int = 0,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[tuple[int, int]]:
    """Find query/subject chains whose spans lie within ``max_gap`` bases.

    Args:
        queries: Query chains.
        subjects: Subject chains (may be the same sequence as ``queries``).
        max_gap: Spans this many bases apart still pair up.
        ignore_strand: Pair chains regardless of strand.
        n_workers: Number of threads used across chromosomes.

    Returns:
        Sorted list of (query position, subject position) pairs.
    """
    query_parts = partition_by_seqid(queries)
    subject_parts = partition_by_seqid(subjects)
    seqids = sorted(set(query_parts) & set(subject_parts))

    if not seqids:
        return []

    results: dict[str, list[tuple[int, int]]] = {}
    if n_workers > 1 and len(seqids) > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = {
                seqid: executor.submit(
                    _search_partition,
                    queries,
                    query_parts[seqid],
                    subjects,
                    subject_parts[seqid],
                    max_gap,
                    ignore_strand,
                )
                for seqid in seqids
            }
            for seqid, future in futures.items():
                results[seqid] = future.result()
    else:
        for seqid in seqids:
            results[seqid] = _search_partition(
                queries,
                query_parts[seqid],
                subjects,
                subject_parts[seqid],
                max_gap,
                ignore_strand,
            )

    pairs = sorted(pair for seqid in seqids for pair in results[seqid])
    logger.debug(f"Found {len(pairs)} candidate pairs across {len(seqids)} chromosomes")
    return pairs
