"""Core reconciliation engine for isoreconcile.

- Exon-chain model and boundary trimming
- Splice compatibility and equivalence classes
- Overlap-graph gene clustering
- Distance-bounded annotation matching
- Gene-level exon skeletons

Example:
    >>> from isoreconcile.core import ExonChain, assign_gene_ids
    >>> chain = ExonChain.from_intervals("rc1", "chr1", "+", [(100, 200), (300, 400)])
    >>> assign_gene_ids([chain])
    {'rc1': 'gene.1'}
"""

from isoreconcile.core.chains import Exon, ExonChain, trim_boundaries
from isoreconcile.core.clustering import assign_gene_ids
from isoreconcile.core.equivalence import (
    assign_equivalence_classes,
    build_equivalence_classes,
    is_splice_compatible,
)
from isoreconcile.core.genes import aggregate_gene_ranges
from isoreconcile.core.matching import (
    AnnotationMatch,
    calculate_distance_to_annotation,
    query_equivalence_classes,
)

__all__: list[str] = [
    # Model
    "Exon",
    "ExonChain",
    "trim_boundaries",
    # Equivalence classes
    "assign_equivalence_classes",
    "build_equivalence_classes",
    "is_splice_compatible",
    # Clustering
    "assign_gene_ids",
    # Matching
    "AnnotationMatch",
    "calculate_distance_to_annotation",
    "query_equivalence_classes",
    # Gene skeletons
    "aggregate_gene_ranges",
]
