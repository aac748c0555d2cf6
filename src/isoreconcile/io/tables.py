"""TSV writers for reconciliation results.

Example:
    >>> from isoreconcile.io.tables import write_annotation_matches_tsv
    >>> write_annotation_matches_tsv(matches, "matches.tsv")
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Mapping, Sequence

import attrs

from isoreconcile.core.matching import AnnotationMatch

logger = logging.getLogger(__name__)

MATCH_HEADERS = [field.name for field in attrs.fields(AnnotationMatch)]


def _write_mapping_tsv(
    mapping: Mapping[str, str],
    output_path: Path | str,
    headers: list[str],
) -> None:
    output_path = Path(output_path)
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f, delimiter="\t")
        writer.writerow(headers)
        for key, value in mapping.items():
            writer.writerow([key, value])

    logger.info(f"Wrote {len(mapping)} rows to {output_path}")


def write_equivalence_classes_tsv(classes: Mapping[str, str], output_path: Path | str) -> None:
    """Write ``chain_id``/``eq_class`` rows."""
    _write_mapping_tsv(classes, output_path, ["chain_id", "eq_class"])


def write_gene_assignments_tsv(genes: Mapping[str, str], output_path: Path | str) -> None:
    """Write ``chain_id``/``gene_id`` rows."""
    _write_mapping_tsv(genes, output_path, ["chain_id", "gene_id"])


def write_annotation_matches_tsv(
    matches: Sequence[AnnotationMatch],
    output_path: Path | str,
) -> None:
    """Write one row per annotation match with all overlap statistics.

    Args:
        matches: Rows from the annotation matcher.
        output_path: Output file path.
    """
    output_path = Path(output_path)

    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f, delimiter="\t")
        writer.writerow(MATCH_HEADERS)
        for match in matches:
            row = match.to_dict()
            writer.writerow([row[name] for name in MATCH_HEADERS])

    logger.info(f"Wrote {len(matches)} annotation matches to {output_path}")
