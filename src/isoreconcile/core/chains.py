"""Exon-chain data model.

An exon chain is the structure of one transcript or read class: an ordered,
strand-aware sequence of exons on one chromosome. Exons are always stored in
ascending genomic order regardless of strand; ``rank`` follows the direction
of transcription and ``end_rank`` counts from the 3' end.

Example:
    >>> from isoreconcile.core.chains import ExonChain, trim_boundaries
    >>> chain = ExonChain.from_intervals("tx1", "chr1", "-", [(100, 200), (300, 400)])
    >>> [exon.rank for exon in chain.exons]
    [2, 1]
    >>> trim_boundaries(chain).intervals
    [Interval(start=200, end=200), Interval(start=300, end=300)]
"""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

import attrs

from isoreconcile.exceptions import InvalidChain
from isoreconcile.utils.intervals import Interval

# =============================================================================
# Constants
# =============================================================================

STRAND_PLUS = "+"
STRAND_MINUS = "-"
STRAND_UNKNOWN = "*"

VALID_STRANDS = {STRAND_PLUS, STRAND_MINUS, STRAND_UNKNOWN}

# GTF/GFF3 write unknown strand as "."
_STRAND_ALIASES = {".": STRAND_UNKNOWN}


def normalize_strand(strand: str) -> str:
    """Map a strand symbol onto ``+``, ``-`` or ``*``.

    Raises:
        InvalidChain: If the symbol is not a known strand.
    """
    strand = _STRAND_ALIASES.get(strand, strand)
    if strand not in VALID_STRANDS:
        raise InvalidChain(f"Unknown strand symbol: {strand!r}")
    return strand


def strands_compatible(a: str, b: str, ignore_strand: bool = False) -> bool:
    """Check whether two strands may be compared.

    Unknown strand (``*``) is compatible with every strand.
    """
    if ignore_strand or a == b:
        return True
    return STRAND_UNKNOWN in (a, b)


# =============================================================================
# Data Models
# =============================================================================


@attrs.define(frozen=True, slots=True)
class Exon:
    """A single exon of a chain.

    Attributes:
        start: Start position (1-based, inclusive).
        end: End position (1-based, inclusive).
        rank: 1-based position following transcription direction.
        end_rank: 1-based position counted from the 3' end.
    """

    start: int
    end: int
    rank: int
    end_rank: int

    @property
    def interval(self) -> Interval:
        """Exon coordinates as an Interval."""
        return Interval(self.start, self.end)

    @property
    def length(self) -> int:
        """Exon length in base pairs."""
        return self.end - self.start + 1


@attrs.define(frozen=True, slots=True)
class ExonChain:
    """An ordered, strand-aware exon structure.

    Attributes:
        chain_id: Identifier, unique within its collection.
        seqid: Chromosome/contig name.
        strand: ``+``, ``-`` or ``*`` (unknown).
        exons: Exons sorted by genomic start.
        gene_id: Externally assigned gene identifier, if any.
        eq_class: Equivalence class key, once computed.
    """

    chain_id: str
    seqid: str
    strand: str
    exons: tuple[Exon, ...] = ()
    gene_id: str | None = None
    eq_class: str | None = None

    @classmethod
    def from_intervals(
        cls,
        chain_id: str,
        seqid: str,
        strand: str,
        intervals: Iterable[tuple[int, int]],
        gene_id: str | None = None,
    ) -> ExonChain:
        """Build a chain from start-ordered exon coordinates.

        Ranks are assigned ascending on ``+`` and ``*`` and descending on ``-``.

        Args:
            chain_id: Chain identifier.
            seqid: Chromosome/contig name.
            strand: Strand symbol (``.`` is read as unknown).
            intervals: (start, end) pairs in ascending genomic order.
            gene_id: Optional gene identifier.

        Returns:
            A validated ExonChain.

        Raises:
            InvalidChain: If an interval is inverted, or the intervals are
                unsorted or overlapping.
        """
        strand = normalize_strand(strand)
        ivs = [Interval(int(start), int(end)) for start, end in intervals]

        for i, iv in enumerate(ivs):
            if iv.start > iv.end:
                raise InvalidChain(f"exon {iv.start}-{iv.end} has start > end", chain_id)
            if i and iv.start <= ivs[i - 1].end:
                raise InvalidChain(
                    f"exon {iv.start}-{iv.end} is not after {ivs[i - 1].start}-{ivs[i - 1].end}",
                    chain_id,
                )

        return cls(
            chain_id=chain_id,
            seqid=seqid,
            strand=strand,
            exons=tuple(rank_exons(ivs, strand)),
            gene_id=gene_id,
        )

    @property
    def n_exons(self) -> int:
        """Number of exons."""
        return len(self.exons)

    @property
    def intervals(self) -> list[Interval]:
        """Exon coordinates in genomic order."""
        return [exon.interval for exon in self.exons]

    @property
    def span(self) -> Interval:
        """Genomic span from first to last exon."""
        if not self.exons:
            raise InvalidChain("chain has no exons", self.chain_id)
        return Interval(self.exons[0].start, self.exons[-1].end)

    @property
    def first_exon(self) -> Exon:
        """The 5' exon (rank 1)."""
        if not self.exons:
            raise InvalidChain("chain has no exons", self.chain_id)
        return self.exons[-1] if self.strand == STRAND_MINUS else self.exons[0]

    @property
    def last_exon(self) -> Exon:
        """The 3' exon (end_rank 1)."""
        if not self.exons:
            raise InvalidChain("chain has no exons", self.chain_id)
        return self.exons[0] if self.strand == STRAND_MINUS else self.exons[-1]

    @property
    def introns(self) -> list[Interval]:
        """Gaps between consecutive exons (adjacent exons leave no intron)."""
        return [
            Interval(left.end + 1, right.start - 1)
            for left, right in zip(self.exons, self.exons[1:])
            if right.start - left.end > 1
        ]

    @property
    def junctions(self) -> list[tuple[int, int]]:
        """Splice junctions as (end of exon k, start of exon k+1) pairs."""
        return [(left.end, right.start) for left, right in zip(self.exons, self.exons[1:])]


# =============================================================================
# Operations
# =============================================================================


def rank_exons(intervals: Sequence[Interval], strand: str) -> list[Exon]:
    """Attach rank and end_rank to start-ordered intervals.

    Unknown strand ranks like ``+``.
    """
    n = len(intervals)
    exons = []
    for i, iv in enumerate(intervals):
        rank = n - i if strand == STRAND_MINUS else i + 1
        exons.append(Exon(iv.start, iv.end, rank, n + 1 - rank))
    return exons


def trim_boundaries(chain: ExonChain) -> ExonChain:
    """Collapse the transcript ends of a chain to single bases.

    The first exon keeps only its 3' base and the last exon only its 5'
    base, so that comparisons see the internal splice junctions but not the
    fuzzy transcript start and end. Ranks are preserved.

    Args:
        chain: Chain to trim.

    Returns:
        A new chain with collapsed terminal exons.

    Raises:
        InvalidChain: If the chain has no exons.
    """
    if not chain.exons:
        raise InvalidChain("cannot trim a chain with no exons", chain.chain_id)

    minus = chain.strand == STRAND_MINUS
    trimmed = []
    for exon in chain.exons:
        start, end = exon.start, exon.end
        if exon.rank == 1:
            if minus:
                end = start
            else:
                start = end
        if exon.end_rank == 1:
            if minus:
                start = end
            else:
                end = start
        trimmed.append(attrs.evolve(exon, start=start, end=end))

    return attrs.evolve(chain, exons=tuple(trimmed))


def check_unique_ids(chains: Iterable[ExonChain]) -> None:
    """Ensure chain identifiers are unique within a collection.

    Raises:
        InvalidChain: Naming the first duplicated identifier.
    """
    counts = Counter(chain.chain_id for chain in chains)
    duplicated = [chain_id for chain_id, n in counts.items() if n > 1]
    if duplicated:
        raise InvalidChain(
            f"identifier occurs {counts[duplicated[0]]} times in the collection",
            duplicated[0],
        )
