"""Command-line interface for isoreconcile.

This module provides the main entry point for the isoreconcile CLI tool.
It uses Click to define commands for each reconciliation step.

Commands:
    eqclass: Equivalence classes of the transcripts in an annotation
    cluster: Synthetic gene identifiers for overlapping chains
    match: Closest annotated transcript(s) per query chain
    gene-ranges: One merged exon skeleton per gene

Example:
    $ isoreconcile --help
    $ isoreconcile eqclass -i annotation.gtf -o eqclasses.tsv
    $ isoreconcile cluster -i read_classes.gtf -o genes.tsv --prefix novel
    $ isoreconcile match -q read_classes.gtf -r annotation.gtf -o matches.tsv
    $ isoreconcile gene-ranges -i annotation.gtf -o genes.gtf
"""

import csv
import traceback
from pathlib import Path
from typing import Optional

import attrs
import click
from rich.console import Console
from rich.markup import escape

from isoreconcile import __version__
from isoreconcile.config import Config
from isoreconcile.core.clustering import assign_gene_ids
from isoreconcile.core.equivalence import build_equivalence_classes
from isoreconcile.core.genes import aggregate_gene_ranges
from isoreconcile.core.matching import (
    calculate_distance_to_annotation,
    query_equivalence_classes,
)
from isoreconcile.exceptions import ReconcileError
from isoreconcile.io.gtf import read_exon_chains, write_exon_chains_gtf
from isoreconcile.io.tables import (
    write_annotation_matches_tsv,
    write_equivalence_classes_tsv,
    write_gene_assignments_tsv,
)
from isoreconcile.utils.logging import Timer, get_logger, setup_logging

# Initialize rich console for pretty output
console = Console()

logger = get_logger(__name__)

CLI_ERRORS = (ReconcileError, OSError, ValueError)


def _fail(ctx: click.Context, error: Exception) -> None:
    """Report an error and exit with status 1."""
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    if ctx.obj.get("verbose"):
        traceback.print_exc()
    raise SystemExit(1)


def _resolve_config(ctx: click.Context, **overrides: Optional[object]) -> Config:
    """Apply command-line overrides on top of the loaded configuration."""
    config: Config = ctx.obj["config"]
    sections = {"overlap": config.overlap, "match": config.match, "parallel": config.parallel}

    for name, section in sections.items():
        fields = {field.name for field in attrs.fields(type(section))}
        changes = {k: v for k, v in overrides.items() if k in fields and v is not None}
        if changes:
            sections[name] = attrs.evolve(section, **changes)

    return Config(**sections)


@click.group()
@click.version_option(version=__version__, prog_name="isoreconcile")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="TOML configuration file.",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    help="Write debug log to this file.",
)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    config_path: Optional[Path],
    log_file: Optional[Path],
) -> None:
    """isoreconcile: reconcile transcript structures against an annotation.

    Builds equivalence classes, clusters overlapping chains into genes,
    matches read classes to annotated transcripts and derives gene-level
    exon skeletons.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    verbosity = 0 if quiet else (2 if verbose else 1)
    setup_logging(verbosity=verbosity, log_file=log_file)

    try:
        ctx.obj["config"] = Config.load(config_path)
    except CLI_ERRORS as e:
        _fail(ctx, e)


# =============================================================================
# eqclass command
# =============================================================================


@main.command("eqclass")
@click.option(
    "-i",
    "--input",
    "input_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF/GFF3 file with transcript exons.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output TSV (chain_id, eq_class).",
)
@click.option(
    "--ignore-strand/--stranded",
    default=None,
    help="Compare chains regardless of strand.",
)
@click.option("-t", "--threads", "n_workers", type=int, help="Worker threads.")
@click.pass_context
def eqclass(
    ctx: click.Context,
    input_path: Path,
    output: Path,
    ignore_strand: Optional[bool],
    n_workers: Optional[int],
) -> None:
    """Compute splice-compatible equivalence classes."""
    try:
        config = _resolve_config(ctx, ignore_strand=ignore_strand, n_workers=n_workers)
        chains = read_exon_chains(input_path)

        with Timer("Equivalence classes", logger):
            classes = build_equivalence_classes(
                chains,
                ignore_strand=config.overlap.ignore_strand,
                n_workers=config.parallel.n_workers,
            )

        write_equivalence_classes_tsv(classes, output)
        if not ctx.obj["quiet"]:
            n_classes = len(set(classes.values()))
            console.print(f"  Chains:           {len(classes):,}")
            console.print(f"  Distinct classes: {n_classes:,}")
            console.print(f"[green]Wrote equivalence classes:[/green] {output}")

    except CLI_ERRORS as e:
        _fail(ctx, e)


# =============================================================================
# cluster command
# =============================================================================


@main.command("cluster")
@click.option(
    "-i",
    "--input",
    "input_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF/GFF3 file with chain exons.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output TSV (chain_id, gene_id).",
)
@click.option("--prefix", "gene_prefix", type=str, help="Gene identifier prefix.")
@click.option("--min-overlap", type=int, help="Minimum shared exonic bases (default: 5).")
@click.option(
    "--ignore-strand/--stranded",
    default=None,
    help="Link chains regardless of strand.",
)
@click.option("-t", "--threads", "n_workers", type=int, help="Worker threads.")
@click.pass_context
def cluster(
    ctx: click.Context,
    input_path: Path,
    output: Path,
    gene_prefix: Optional[str],
    min_overlap: Optional[int],
    ignore_strand: Optional[bool],
    n_workers: Optional[int],
) -> None:
    """Assign synthetic gene identifiers to overlapping chains."""
    try:
        config = _resolve_config(
            ctx,
            gene_prefix=gene_prefix,
            min_overlap=min_overlap,
            ignore_strand=ignore_strand,
            n_workers=n_workers,
        )
        chains = read_exon_chains(input_path)

        with Timer("Gene clustering", logger):
            genes = assign_gene_ids(
                chains,
                prefix=config.overlap.gene_prefix,
                min_overlap=config.overlap.min_overlap,
                ignore_strand=config.overlap.ignore_strand,
                n_workers=config.parallel.n_workers,
            )

        write_gene_assignments_tsv(genes, output)
        if not ctx.obj["quiet"]:
            console.print(f"  Chains: {len(genes):,}")
            console.print(f"  Genes:  {len(set(genes.values())):,}")
            console.print(f"[green]Wrote gene assignments:[/green] {output}")

    except CLI_ERRORS as e:
        _fail(ctx, e)


# =============================================================================
# match command
# =============================================================================


@main.command("match")
@click.option(
    "-q",
    "--query",
    "query_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF/GFF3 file with query chains (e.g. read classes).",
)
@click.option(
    "-r",
    "--reference",
    "reference_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF/GFF3 reference annotation.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output TSV with one row per surviving match.",
)
@click.option(
    "--eq-classes",
    "eq_classes_output",
    type=click.Path(path_type=Path),
    help="Also write the equivalence class of each matched query (chain_id, eq_class).",
)
@click.option("--max-dist", type=int, help="Per-exon tolerance in bp (default: 35).")
@click.option(
    "--primary-secondary-dist",
    type=int,
    help="Tolerance for keeping near-best matches in bp (default: 5).",
)
@click.option(
    "--ignore-strand/--stranded",
    default=None,
    help="Match chains regardless of strand.",
)
@click.option("-t", "--threads", "n_workers", type=int, help="Worker threads.")
@click.pass_context
def match(
    ctx: click.Context,
    query_path: Path,
    reference_path: Path,
    output: Path,
    eq_classes_output: Optional[Path],
    max_dist: Optional[int],
    primary_secondary_dist: Optional[int],
    ignore_strand: Optional[bool],
    n_workers: Optional[int],
) -> None:
    """Match query chains to the closest annotated transcripts."""
    try:
        config = _resolve_config(
            ctx,
            max_dist=max_dist,
            primary_secondary_dist=primary_secondary_dist,
            ignore_strand=ignore_strand,
            n_workers=n_workers,
        )
        queries = read_exon_chains(query_path)
        references = read_exon_chains(reference_path)

        with Timer("Annotation matching", logger):
            matches = calculate_distance_to_annotation(
                queries,
                references,
                max_dist=config.match.max_dist,
                primary_secondary_dist=config.match.primary_secondary_dist,
                ignore_strand=config.overlap.ignore_strand,
                n_workers=config.parallel.n_workers,
            )

        write_annotation_matches_tsv(matches, output)
        if eq_classes_output is not None:
            write_equivalence_classes_tsv(query_equivalence_classes(matches), eq_classes_output)
        if not ctx.obj["quiet"]:
            matched_by_round = {1: set(), 2: set(), 3: set()}
            for m in matches:
                matched_by_round[m.round].add(m.query_id)
            n_matched = sum(len(ids) for ids in matched_by_round.values())

            console.print("")
            console.print("[bold]Matching Summary:[/bold]")
            console.print(f"  Queries:          {len(queries):,}")
            for round_number, ids in matched_by_round.items():
                console.print(f"  Matched round {round_number}:  {len(ids):,}")
            console.print(f"  Unmatched:        {len(queries) - n_matched:,}")
            console.print("")
            console.print(f"[green]Wrote annotation matches:[/green] {output}")

    except CLI_ERRORS as e:
        _fail(ctx, e)


# =============================================================================
# gene-ranges command
# =============================================================================


def _read_gene_map(path: Path) -> dict[str, str]:
    """Read a chain_id/gene_id TSV such as the output of ``cluster``."""
    with open(path, newline="") as f:
        reader = csv.DictReader(f, delimiter="\t")
        if reader.fieldnames is None or not {"chain_id", "gene_id"} <= set(reader.fieldnames):
            raise ValueError(f"{path} must have 'chain_id' and 'gene_id' columns")
        return {row["chain_id"]: row["gene_id"] for row in reader}


@main.command("gene-ranges")
@click.option(
    "-i",
    "--input",
    "input_path",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="GTF/GFF3 file with transcript exons.",
)
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    required=True,
    help="Output GTF with one exon skeleton per gene.",
)
@click.option(
    "--gene-map",
    type=click.Path(exists=True, path_type=Path),
    help="TSV (chain_id, gene_id) overriding the genes in the input file.",
)
@click.pass_context
def gene_ranges(
    ctx: click.Context,
    input_path: Path,
    output: Path,
    gene_map: Optional[Path],
) -> None:
    """Merge the exons of each gene into one skeleton."""
    try:
        chains = read_exon_chains(input_path)
        mapping = _read_gene_map(gene_map) if gene_map is not None else None

        skeletons = aggregate_gene_ranges(chains, mapping)

        write_exon_chains_gtf(skeletons.values(), output)
        if not ctx.obj["quiet"]:
            console.print(f"  Genes: {len(skeletons):,}")
            console.print(f"[green]Wrote gene skeletons:[/green] {output}")

    except CLI_ERRORS as e:
        _fail(ctx, e)


if __name__ == "__main__":
    main()
