"""GTF/GFF3 exon handling.

Turns the exon records of an annotation (or of assembled read classes) into
exon chains, and writes chains back out as GTF exon lines.

Features:
    - GTF attributes (``gene_id "g1"; transcript_id "t1";``)
    - GFF3 attributes (exon ``Parent`` -> transcript ``Parent`` -> gene)
    - Unknown strand (``.``) read as ``*``
    - Equivalence classes attached on request (annotation preparation)

Example:
    >>> from isoreconcile.io.gtf import prepare_annotations
    >>> annotations = prepare_annotations("annotation.gtf")
    >>> annotations[0].eq_class
    'ENST0001.ENST0002'
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from isoreconcile.core.chains import ExonChain
from isoreconcile.core.equivalence import assign_equivalence_classes
from isoreconcile.exceptions import AnnotationParseError

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

# Column indices
COL_SEQID = 0
COL_SOURCE = 1
COL_TYPE = 2
COL_START = 3
COL_END = 4
COL_SCORE = 5
COL_STRAND = 6
COL_PHASE = 7
COL_ATTRIBUTES = 8

FEATURE_EXON = "exon"
FEATURE_TYPES_TRANSCRIPT = {"mRNA", "transcript", "ncRNA", "lnc_RNA"}

_GTF_ATTRIBUTE = re.compile(r'\s*([^\s";]+)\s+"?([^";]*)"?')


# =============================================================================
# Attribute Parsing
# =============================================================================


def parse_attributes(attr_string: str) -> dict[str, str]:
    """Parse a GTF or GFF3 attribute column into a dictionary.

    Args:
        attr_string: ``key "value";`` pairs (GTF) or ``key=value;`` pairs (GFF3).

    Returns:
        Dictionary of attribute key-value pairs.
    """
    attributes: dict[str, str] = {}
    if not attr_string or attr_string == ".":
        return attributes

    for item in attr_string.split(";"):
        item = item.strip()
        if not item:
            continue

        if "=" in item and '"' not in item:
            key, value = item.split("=", 1)
            value = value.replace("%3B", ";").replace("%3D", "=").replace("%26", "&")
            value = value.replace("%2C", ",")
            attributes[key] = value
        else:
            match = _GTF_ATTRIBUTE.match(item)
            if match:
                attributes.setdefault(match.group(1), match.group(2))

    return attributes


# =============================================================================
# Parser
# =============================================================================


class ExonChainParser:
    """Parse exon records into exon chains.

    Exons are grouped by transcript, sorted by start and ranked along the
    transcript's strand. Transcripts keep the order in which their first
    exon appears in the file.

    Attributes:
        path: Path to the GTF/GFF3 file.

    Example:
        >>> parser = ExonChainParser("annotation.gtf")
        >>> for chain in parser.iter_chains():
        ...     print(chain.chain_id, chain.n_exons)
    """

    def __init__(self, path: Path | str) -> None:
        """Initialize the parser.

        Args:
            path: Path to GTF/GFF3 file.

        Raises:
            FileNotFoundError: If file doesn't exist.
        """
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Annotation file not found: {self.path}")

        self._chains: list[ExonChain] | None = None

    def _parse_line(self, line: str, line_number: int) -> dict[str, Any] | None:
        """Parse a single feature line.

        Returns:
            Parsed feature dictionary or None for comments/empty/short lines.

        Raises:
            AnnotationParseError: If coordinates are not integers.
        """
        line = line.strip()
        if not line or line.startswith("#"):
            return None

        parts = line.split("\t")
        if len(parts) < 9:
            logger.warning(f"Malformed line {line_number} (expected 9 columns): {line[:50]}...")
            return None

        try:
            start = int(parts[COL_START])
            end = int(parts[COL_END])
        except ValueError as e:
            raise AnnotationParseError(
                f"invalid coordinates: {e}", str(self.path), line_number
            ) from e

        return {
            "seqid": parts[COL_SEQID],
            "type": parts[COL_TYPE],
            "start": start,
            "end": end,
            "strand": parts[COL_STRAND],
            "attributes": parse_attributes(parts[COL_ATTRIBUTES]),
            "line_number": line_number,
        }

    def _build_chains(self) -> list[ExonChain]:
        """Build exon chains from the file."""
        exons: dict[str, list[dict[str, Any]]] = {}
        transcript_genes: dict[str, str] = {}

        with open(self.path) as f:
            for line_number, line in enumerate(f, start=1):
                feature = self._parse_line(line, line_number)
                if feature is None:
                    continue

                attributes = feature["attributes"]
                if feature["type"] in FEATURE_TYPES_TRANSCRIPT and "ID" in attributes:
                    parent = attributes.get("Parent", "")
                    if parent:
                        transcript_genes[attributes["ID"]] = parent.split(",")[0]
                    continue

                if feature["type"] != FEATURE_EXON:
                    continue

                if "transcript_id" in attributes:
                    parents = [attributes["transcript_id"]]
                elif "Parent" in attributes:
                    parents = attributes["Parent"].split(",")
                else:
                    raise AnnotationParseError(
                        "exon has neither transcript_id nor Parent", str(self.path), line_number
                    )

                for transcript_id in parents:
                    exons.setdefault(transcript_id, []).append(feature)

        chains = []
        for transcript_id, features in exons.items():
            locations = {(f["seqid"], f["strand"]) for f in features}
            if len(locations) > 1:
                raise AnnotationParseError(
                    f"exons of transcript {transcript_id} lie on several "
                    f"chromosome/strand combinations",
                    str(self.path),
                    features[0]["line_number"],
                )
            seqid, strand = locations.pop()

            gene_id = features[0]["attributes"].get("gene_id") or transcript_genes.get(transcript_id)
            intervals = sorted((f["start"], f["end"]) for f in features)
            chains.append(
                ExonChain.from_intervals(transcript_id, seqid, strand, intervals, gene_id=gene_id)
            )

        logger.info(f"Parsed {len(chains)} transcripts from {self.path.name}")
        return chains

    def iter_chains(self) -> Iterator[ExonChain]:
        """Iterate over exon chains.

        Yields:
            ExonChain objects.
        """
        if self._chains is None:
            self._chains = self._build_chains()
        yield from self._chains


def read_exon_chains(path: Path | str) -> list[ExonChain]:
    """Read all exon chains from a GTF/GFF3 file."""
    return list(ExonChainParser(path).iter_chains())


def prepare_annotations(
    source: Path | str | Sequence[ExonChain],
    ignore_strand: bool = False,
    n_workers: int = 1,
) -> list[ExonChain]:
    """Load reference transcripts and attach their equivalence classes.

    Args:
        source: Annotation file, or chains already in memory.
        ignore_strand: Compare chains on opposite strands.
        n_workers: Threads for the candidate search.

    Returns:
        Chains with ``eq_class`` filled in.
    """
    if isinstance(source, (str, Path)):
        chains = read_exon_chains(source)
    else:
        chains = list(source)
    return assign_equivalence_classes(chains, ignore_strand, n_workers)


# =============================================================================
# Writer
# =============================================================================


def format_gtf_exon(chain: ExonChain, rank: int, start: int, end: int, source: str) -> str:
    """Format one exon of a chain as a GTF line."""
    strand = "." if chain.strand == "*" else chain.strand
    gene_id = chain.gene_id if chain.gene_id is not None else chain.chain_id
    attributes = (
        f'gene_id "{gene_id}"; transcript_id "{chain.chain_id}"; exon_number "{rank}";'
    )
    return "\t".join(
        [chain.seqid, source, FEATURE_EXON, str(start), str(end), ".", strand, ".", attributes]
    )


def write_exon_chains_gtf(
    chains: Iterable[ExonChain],
    output_path: Path | str,
    source: str = "isoreconcile",
) -> None:
    """Write chains as GTF exon lines, exons in rank order.

    Args:
        chains: Chains to write.
        output_path: Output file path.
        source: Source column value.
    """
    output_path = Path(output_path)
    n_chains = 0

    with open(output_path, "w") as f:
        for chain in chains:
            for exon in sorted(chain.exons, key=lambda e: e.rank):
                f.write(format_gtf_exon(chain, exon.rank, exon.start, exon.end, source) + "\n")
            n_chains += 1

    logger.info(f"Wrote {n_chains} chains to {output_path}")
