"""isoreconcile: reconcile transcript structures against an annotation.

isoreconcile compares exon chains (transcripts or read classes) with a
reference annotation and with each other: it computes splice-compatible
equivalence classes, clusters overlapping chains into genes, matches novel
chains to the closest annotated transcript, and collapses genes into
exon skeletons.

Example:
    >>> import isoreconcile
    >>> isoreconcile.__version__
    '0.1.0'

Modules:
    core: Exon-chain model and the reconciliation algorithms
    io: GTF/GFF3 exon reading and result writers
    utils: Interval operations and logging
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
