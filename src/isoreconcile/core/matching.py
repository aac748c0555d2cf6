"""Distance-bounded matching of chains to annotated transcripts.

Each query chain (typically a read class) is matched to the reference
transcript(s) it most resembles. Matching runs in three rounds, each applied
only to queries that no earlier round matched:

1. **Primary**: exon boundaries may differ by up to ``max_dist`` bases,
   transcript ends are trimmed away, and short internal exons are ignored
   when deciding whether two chains line up. A read class covering only
   part of a transcript still lines up with it; the missing ends show up
   in the distance and in the start/end lengths.
2. **Rescue**: exact overlap (no tolerance) of the trimmed structures,
   keeping short exons.
3. **Final rescue**: exact overlap of the untrimmed structures, with the
   unmatched start/end sequence added to the distance.

Within a round, the matches of a query are narrowed in order: distance
within ``primary_secondary_dist`` of its best distance, then the fewest
exons without a counterpart, then (when any remain) matches whose start and
end differ by at most ``primary_secondary_dist``. Rounds 1 and 2 apply all
three filters, round 3 only the first. All ties left after filtering are
reported.

The rounds exchange an immutable :class:`MatchState`, so each round sees a
fixed snapshot of what is already matched.

Example:
    >>> from isoreconcile.core.matching import calculate_distance_to_annotation
    >>> matches = calculate_distance_to_annotation(read_classes, annotations)
    >>> {m.query_id: m.subject_id for m in matches if m.round == 1}
"""

from __future__ import annotations

import logging
from collections import defaultdict
from enum import Enum
from typing import Any, Sequence

import attrs

from isoreconcile.core.chains import ExonChain, check_unique_ids, trim_boundaries
from isoreconcile.core.equivalence import EQ_CLASS_SEPARATOR
from isoreconcile.core.search import find_candidate_pairs
from isoreconcile.utils.intervals import Interval, uncovered_length

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_MAX_DIST = 35
DEFAULT_PRIMARY_SECONDARY_DIST = 5


class OverlapMode(Enum):
    """How exons of two chains must relate to count as a hit."""

    WITHIN = "within"  # Query exon inside subject exon, widened by the tolerance
    ANY = "any"  # Exons overlap or lie within the tolerance of each other


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(frozen=True, slots=True)
class RoundParams:
    """Search and filter settings of one matching round.

    Attributes:
        round_number: 1, 2 or 3.
        max_dist: Per-exon positional tolerance in base pairs.
        mode: Exon hit criterion.
        drop_short: Ignore internal exons shorter than ``max_dist`` for hits.
        cut_start_end: Compare boundary-trimmed chains.
        boundary_in_distance: Add unique start/end length to the distance.
        tie_break: Apply the outside-count and boundary filters.
    """

    round_number: int
    max_dist: int
    mode: OverlapMode
    drop_short: bool
    cut_start_end: bool
    boundary_in_distance: bool = False
    tie_break: bool = True


def matching_rounds(max_dist: int = DEFAULT_MAX_DIST) -> tuple[RoundParams, ...]:
    """Return the settings of the three matching rounds, in order."""
    return (
        RoundParams(1, max_dist, OverlapMode.WITHIN, drop_short=True, cut_start_end=True),
        RoundParams(2, 0, OverlapMode.ANY, drop_short=False, cut_start_end=True),
        RoundParams(
            3,
            0,
            OverlapMode.ANY,
            drop_short=False,
            cut_start_end=False,
            boundary_in_distance=True,
            tie_break=False,
        ),
    )


@attrs.define(frozen=True, slots=True)
class DistanceOverlap:
    """Overlap statistics of one query/subject pair.

    Attributes:
        query_index: Position of the query chain.
        subject_index: Position of the subject chain.
        unique_length_query: Query exonic bases not covered by the subject.
        unique_length_subject: Subject exonic bases not covered by the query.
        query_outside_count: Query exons with no subject exon within tolerance.
        subject_outside_count: Subject exons with no query exon within tolerance.
        unique_start_length_query: First-exon query bases outside the subject's first exon.
        unique_end_length_query: Last-exon query bases outside the subject's last exon.
    """

    query_index: int
    subject_index: int
    unique_length_query: int
    unique_length_subject: int
    query_outside_count: int
    subject_outside_count: int
    unique_start_length_query: int
    unique_end_length_query: int

    @property
    def outside_count(self) -> int:
        """Exons of either chain lacking a counterpart."""
        return self.query_outside_count + self.subject_outside_count

    def distance(self, include_boundaries: bool = False) -> int:
        """Bases present in one structure but not the other."""
        dist = self.unique_length_query + self.unique_length_subject
        if include_boundaries:
            dist += self.unique_start_length_query + self.unique_end_length_query
        return dist


@attrs.define(frozen=True, slots=True)
class AnnotationMatch:
    """A surviving query/reference pairing.

    Attributes:
        query_id: Query chain identifier.
        subject_id: Reference chain identifier.
        distance: Distance used for ranking in the matching round.
        query_outside_count: Query exons with no counterpart.
        subject_outside_count: Reference exons with no counterpart.
        unique_start_length_query: Unmatched bases at the query start.
        unique_end_length_query: Unmatched bases at the query end.
        unique_length_query: Query exonic bases absent from the reference.
        unique_length_subject: Reference exonic bases absent from the query.
        round: Matching round that produced the row.
        candidate_count: Candidate pairs for the query in that round.
        survivor_count: Rows kept for the query in that round.
    """

    query_id: str
    subject_id: str
    distance: int
    query_outside_count: int
    subject_outside_count: int
    unique_start_length_query: int
    unique_end_length_query: int
    unique_length_query: int
    unique_length_subject: int
    round: int
    candidate_count: int
    survivor_count: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return attrs.asdict(self)


@attrs.define(frozen=True, slots=True)
class MatchState:
    """Queries matched so far and the rows produced for them.

    Attributes:
        matched: Positions of queries with at least one row.
        matches: Rows in the order they were produced.
    """

    matched: frozenset[int] = frozenset()
    matches: tuple[AnnotationMatch, ...] = ()


# =============================================================================
# Geometry
# =============================================================================


def _exon_hit(query: Interval, subject: Interval, mode: OverlapMode, max_dist: int) -> bool:
    if mode is OverlapMode.WITHIN:
        return query.within(subject, slack=max_dist)
    return query.near(subject, max_gap=max_dist)


def _any_hit(
    queries: Sequence[Interval],
    subjects: Sequence[Interval],
    mode: OverlapMode,
    max_dist: int,
) -> bool:
    return any(_exon_hit(q, s, mode, max_dist) for q in queries for s in subjects)


def _count_outside(
    intervals: Sequence[Interval],
    others: Sequence[Interval],
    max_dist: int,
) -> int:
    return sum(1 for iv in intervals if not any(iv.near(o, max_gap=max_dist) for o in others))


def _geometry_intervals(chain: ExonChain, min_length: int, keep_boundaries: bool) -> list[Interval]:
    """Exons used for hit detection once short internal exons are dropped."""
    kept = [
        exon.interval
        for exon in chain.exons
        if exon.length >= min_length
        or (keep_boundaries and (exon.rank == 1 or exon.end_rank == 1))
    ]
    return kept or chain.intervals


def find_splice_overlaps_by_dist(
    queries: Sequence[ExonChain],
    subjects: Sequence[ExonChain],
    max_dist: int = DEFAULT_MAX_DIST,
    mode: OverlapMode = OverlapMode.WITHIN,
    first_last_separate: bool = True,
    drop_short: bool = False,
    cut_start_end: bool = False,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[DistanceOverlap]:
    """Find query/subject pairs that line up within a positional tolerance.

    Args:
        queries: Query chains.
        subjects: Subject chains.
        max_dist: Per-exon tolerance in base pairs.
        mode: Exon hit criterion.
        first_last_separate: Compare the untrimmed first exons, and the
            untrimmed last exons, with each other to measure how far the
            query extends past the subject at either end. When False the
            start and end lengths are reported as 0. This never decides
            whether a pair lines up, so truncated queries still match.
        drop_short: Ignore internal exons shorter than ``max_dist`` when
            looking for hits; they still count for the statistics.
        cut_start_end: Compare boundary-trimmed chains.
        ignore_strand: Pair chains on opposite strands.
        n_workers: Threads for the candidate search.

    A pair lines up when some exon of the query body hits some exon of the
    subject body. With ``cut_start_end`` the bodies are the trimmed chains,
    so transcript starts and ends never prevent a match.

    Returns:
        Statistics for every pair that lines up, sorted by query then subject.
    """
    if not queries or not subjects:
        return []

    def body(chain: ExonChain) -> ExonChain:
        return trim_boundaries(chain) if cut_start_end and chain.exons else chain

    query_bodies = [body(chain) for chain in queries]
    subject_bodies = [body(chain) for chain in subjects]

    hits = []
    for qi, si in find_candidate_pairs(queries, subjects, max_dist, ignore_strand, n_workers):
        query, subject = queries[qi], subjects[si]
        q_body, s_body = query_bodies[qi], subject_bodies[si]
        q_ivs, s_ivs = q_body.intervals, s_body.intervals

        if drop_short:
            q_geo = _geometry_intervals(q_body, max_dist, cut_start_end)
            s_geo = _geometry_intervals(s_body, max_dist, cut_start_end)
        else:
            q_geo, s_geo = q_ivs, s_ivs
        if not _any_hit(q_geo, s_geo, mode, max_dist):
            continue

        unique_start = unique_end = 0
        if first_last_separate:
            q_first, s_first = query.first_exon.interval, subject.first_exon.interval
            q_last, s_last = query.last_exon.interval, subject.last_exon.interval
            unique_start = uncovered_length([q_first], [s_first])
            unique_end = uncovered_length([q_last], [s_last])

        hits.append(
            DistanceOverlap(
                query_index=qi,
                subject_index=si,
                unique_length_query=uncovered_length(q_ivs, s_ivs),
                unique_length_subject=uncovered_length(s_ivs, q_ivs),
                query_outside_count=_count_outside(q_ivs, s_ivs, max_dist),
                subject_outside_count=_count_outside(s_ivs, q_ivs, max_dist),
                unique_start_length_query=unique_start,
                unique_end_length_query=unique_end,
            )
        )

    return hits


# =============================================================================
# Filtering
# =============================================================================


def select_best_matches(
    overlaps: Sequence[DistanceOverlap],
    primary_secondary_dist: int = DEFAULT_PRIMARY_SECONDARY_DIST,
    tie_break: bool = True,
    boundary_in_distance: bool = False,
) -> list[DistanceOverlap]:
    """Narrow the candidate matches of one query to its best ones.

    Args:
        overlaps: Candidate pairs of a single query.
        primary_secondary_dist: Allowed excess over the best distance, and
            the largest start/end difference considered boundary-consistent.
        tie_break: Apply the outside-count and boundary filters.
        boundary_in_distance: Add unique start/end length to the distance.

    Returns:
        Surviving pairs ordered by distance, then subject position.
    """
    if not overlaps:
        return []

    best = min(o.distance(boundary_in_distance) for o in overlaps)
    kept = [o for o in overlaps if o.distance(boundary_in_distance) <= best + primary_secondary_dist]

    if tie_break:
        fewest_outside = min(o.outside_count for o in kept)
        kept = [o for o in kept if o.outside_count == fewest_outside]

        consistent = [
            o
            for o in kept
            if o.unique_start_length_query <= primary_secondary_dist
            and o.unique_end_length_query <= primary_secondary_dist
        ]
        if consistent:
            kept = consistent

    return sorted(kept, key=lambda o: (o.distance(boundary_in_distance), o.subject_index))


# =============================================================================
# Matching Rounds
# =============================================================================


def run_matching_round(
    state: MatchState,
    queries: Sequence[ExonChain],
    subjects: Sequence[ExonChain],
    params: RoundParams,
    primary_secondary_dist: int = DEFAULT_PRIMARY_SECONDARY_DIST,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> MatchState:
    """Run one matching round on the queries not yet matched.

    Args:
        state: Matches of earlier rounds.
        queries: All query chains.
        subjects: Reference chains.
        params: Settings of this round.
        primary_secondary_dist: Tie-break tolerance.
        ignore_strand: Pair chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        A new state including this round's matches.
    """
    pending = [i for i in range(len(queries)) if i not in state.matched]
    if not pending:
        logger.debug(f"Round {params.round_number}: no unmatched queries left")
        return state

    overlaps = find_splice_overlaps_by_dist(
        [queries[i] for i in pending],
        subjects,
        max_dist=params.max_dist,
        mode=params.mode,
        first_last_separate=True,
        drop_short=params.drop_short,
        cut_start_end=params.cut_start_end,
        ignore_strand=ignore_strand,
        n_workers=n_workers,
    )

    by_query: dict[int, list[DistanceOverlap]] = defaultdict(list)
    for overlap in overlaps:
        by_query[pending[overlap.query_index]].append(overlap)

    rows = []
    for qi in sorted(by_query):
        candidates = by_query[qi]
        survivors = select_best_matches(
            candidates,
            primary_secondary_dist,
            tie_break=params.tie_break,
            boundary_in_distance=params.boundary_in_distance,
        )
        for overlap in survivors:
            rows.append(
                AnnotationMatch(
                    query_id=queries[qi].chain_id,
                    subject_id=subjects[overlap.subject_index].chain_id,
                    distance=overlap.distance(params.boundary_in_distance),
                    query_outside_count=overlap.query_outside_count,
                    subject_outside_count=overlap.subject_outside_count,
                    unique_start_length_query=overlap.unique_start_length_query,
                    unique_end_length_query=overlap.unique_end_length_query,
                    unique_length_query=overlap.unique_length_query,
                    unique_length_subject=overlap.unique_length_subject,
                    round=params.round_number,
                    candidate_count=len(candidates),
                    survivor_count=len(survivors),
                )
            )

    logger.debug(
        f"Round {params.round_number}: {len(by_query)}/{len(pending)} queries matched "
        f"({len(rows)} rows)"
    )
    return MatchState(
        matched=state.matched | frozenset(by_query),
        matches=state.matches + tuple(rows),
    )


def calculate_distance_to_annotation(
    queries: Sequence[ExonChain],
    subjects: Sequence[ExonChain],
    max_dist: int = DEFAULT_MAX_DIST,
    primary_secondary_dist: int = DEFAULT_PRIMARY_SECONDARY_DIST,
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[AnnotationMatch]:
    """Match query chains to their closest reference transcripts.

    A query with no row in the result had no candidate in any round and
    should be treated as novel.

    Args:
        queries: Query chains with unique identifiers.
        subjects: Reference chains with unique identifiers.
        max_dist: Per-exon tolerance of the primary round.
        primary_secondary_dist: Tie-break tolerance.
        ignore_strand: Pair chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Matches of round 1, then round 2, then round 3; within a round
        ordered by query position, distance and reference position.

    Raises:
        InvalidChain: If identifiers are not unique within either collection.
    """
    check_unique_ids(queries)
    check_unique_ids(subjects)

    state = MatchState()
    for params in matching_rounds(max_dist):
        state = run_matching_round(
            state,
            queries,
            subjects,
            params,
            primary_secondary_dist=primary_secondary_dist,
            ignore_strand=ignore_strand,
            n_workers=n_workers,
        )

    logger.info(
        f"Matched {len(state.matched)}/{len(queries)} queries to annotations "
        f"({len(state.matches)} rows)"
    )
    return list(state.matches)


def query_equivalence_classes(
    matches: Sequence[AnnotationMatch],
    separator: str = EQ_CLASS_SEPARATOR,
) -> dict[str, str]:
    """Derive the equivalence class key of each matched query.

    A query's key is the sorted, ``separator``-joined set of reference
    transcripts it was matched to, so queries compatible with the same
    transcripts share a key. Unmatched queries have no entry.

    Args:
        matches: Rows from :func:`calculate_distance_to_annotation`.
        separator: String placed between transcript identifiers.

    Returns:
        Mapping of query id to key, in order of first appearance.
    """
    subjects: dict[str, set[str]] = {}
    for match in matches:
        subjects.setdefault(match.query_id, set()).add(match.subject_id)
    return {query_id: separator.join(sorted(ids)) for query_id, ids in subjects.items()}
