"""Exception types for isoreconcile.

The engine performs no I/O, so there are no transient failure modes:
every error raised here describes malformed input and is fatal.
"""


class ReconcileError(Exception):
    """Base exception for all isoreconcile errors."""


class InvalidChain(ReconcileError, ValueError):
    """An exon chain is empty, malformed, or inconsistent with its collection."""

    def __init__(self, message: str, chain_id: str = "") -> None:
        super().__init__(message)
        self.chain_id = chain_id

    def __str__(self) -> str:
        if self.chain_id:
            return f"Invalid chain {self.chain_id}: {super().__str__()}"
        return super().__str__()


class AnnotationParseError(ReconcileError):
    """An annotation file could not be turned into exon chains."""

    def __init__(self, message: str, filename: str = "", line_number: int = 0) -> None:
        super().__init__(message)
        self.filename = filename
        self.line_number = line_number

    def __str__(self) -> str:
        if self.filename and self.line_number:
            return f"Parse error in {self.filename} at line {self.line_number}: {super().__str__()}"
        if self.filename:
            return f"Parse error in {self.filename}: {super().__str__()}"
        return super().__str__()
