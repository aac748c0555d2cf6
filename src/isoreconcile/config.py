"""Configuration management for isoreconcile.

Settings come from defaults, an optional TOML file, and command-line
options (which override the file).

Example:
    >>> from isoreconcile.config import Config
    >>> config = Config.load("isoreconcile.toml")
    >>> config.match.max_dist
    35

A configuration file mirrors the sections below::

    [overlap]
    min_overlap = 5
    ignore_strand = false
    gene_prefix = "novel"

    [match]
    max_dist = 35
    primary_secondary_dist = 5

    [parallel]
    n_workers = 4
"""

import tomllib
from pathlib import Path
from typing import Any

import attrs

from isoreconcile.core.clustering import DEFAULT_MIN_OVERLAP
from isoreconcile.core.matching import DEFAULT_MAX_DIST, DEFAULT_PRIMARY_SECONDARY_DIST

# =============================================================================
# Default Configuration Values
# =============================================================================

# Algorithm tolerances are owned by the engine modules imported above
DEFAULT_IGNORE_STRAND = False
DEFAULT_GENE_PREFIX = ""

DEFAULT_N_WORKERS = 1


def _non_negative(instance: Any, attribute: attrs.Attribute, value: int) -> None:
    if value < 0:
        raise ValueError(f"{attribute.name} must be >= 0, got {value}")


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class OverlapConfig:
    """Configuration for overlap detection and gene clustering.

    Attributes:
        min_overlap: Minimum shared exonic bases linking two chains.
        ignore_strand: Compare chains regardless of strand.
        gene_prefix: Prefix inserted into synthetic gene identifiers.
    """

    min_overlap: int = attrs.field(default=DEFAULT_MIN_OVERLAP, validator=_non_negative)
    ignore_strand: bool = DEFAULT_IGNORE_STRAND
    gene_prefix: str = DEFAULT_GENE_PREFIX


@attrs.define
class MatchConfig:
    """Configuration for annotation matching.

    Attributes:
        max_dist: Per-exon positional tolerance of the primary round.
        primary_secondary_dist: Tolerance for keeping near-best matches.
    """

    max_dist: int = attrs.field(default=DEFAULT_MAX_DIST, validator=_non_negative)
    primary_secondary_dist: int = attrs.field(
        default=DEFAULT_PRIMARY_SECONDARY_DIST, validator=_non_negative
    )


@attrs.define
class ParallelConfig:
    """Configuration for parallel candidate search.

    Attributes:
        n_workers: Threads used across chromosomes.
    """

    n_workers: int = attrs.field(default=DEFAULT_N_WORKERS, validator=attrs.validators.ge(1))


@attrs.define
class Config:
    """Main configuration container for isoreconcile.

    Attributes:
        overlap: Overlap and clustering configuration.
        match: Annotation matching configuration.
        parallel: Parallel processing configuration.
    """

    overlap: OverlapConfig = attrs.Factory(OverlapConfig)
    match: MatchConfig = attrs.Factory(MatchConfig)
    parallel: ParallelConfig = attrs.Factory(ParallelConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a configuration from nested section dictionaries.

        Raises:
            ValueError: If a section or key is unknown, or a value is invalid.
        """
        sections = {
            "overlap": OverlapConfig,
            "match": MatchConfig,
            "parallel": ParallelConfig,
        }
        unknown = set(data) - set(sections)
        if unknown:
            raise ValueError(f"Unknown configuration section(s): {sorted(unknown)}")

        kwargs = {}
        for name, section_cls in sections.items():
            values = data.get(name, {})
            fields = {field.name for field in attrs.fields(section_cls)}
            bad_keys = set(values) - fields
            if bad_keys:
                raise ValueError(f"Unknown key(s) in [{name}]: {sorted(bad_keys)}")
            kwargs[name] = section_cls(**values)

        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from a TOML file.

        Args:
            path: Path to configuration file. If None, returns default configuration.

        Returns:
            Loaded configuration object.

        Raises:
            FileNotFoundError: If configuration file doesn't exist.
            ValueError: If configuration file is invalid.
        """
        if path is None:
            return cls()

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, "rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid configuration file {path}: {e}") from e

        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary."""
        return attrs.asdict(self)
