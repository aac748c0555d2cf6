"""Input/output handlers for isoreconcile.

- GTF/GFF3: exon records to exon chains, and chains back to GTF
- TSV: equivalence classes, gene assignments, annotation matches

Example:
    >>> from isoreconcile.io import read_exon_chains
    >>> chains = read_exon_chains("read_classes.gtf")
"""

from isoreconcile.io.gtf import prepare_annotations, read_exon_chains, write_exon_chains_gtf
from isoreconcile.io.tables import (
    write_annotation_matches_tsv,
    write_equivalence_classes_tsv,
    write_gene_assignments_tsv,
)

__all__: list[str] = [
    "prepare_annotations",
    "read_exon_chains",
    "write_exon_chains_gtf",
    "write_annotation_matches_tsv",
    "write_equivalence_classes_tsv",
    "write_gene_assignments_tsv",
]
