"""Command-line interface for hhdedupe.

Provides CLI commands for batch resolution, pair scoring and configuration
checks.
"""

import importlib.metadata
import json
import sys
from pathlib import Path

import click

from hhdedupe.engine.config import DedupConfig, load_config
from hhdedupe.errors import ConfigError

__all__ = ["cli"]

try:
    __version__ = importlib.metadata.version("hhdedupe")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.1.0"  # Fallback for development


def _parse_pairs(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> list[tuple[str, str]]:
    """Parse ``A:B`` (or ``A|B`` when ids contain colons) into id pairs."""
    pairs: list[tuple[str, str]] = []
    for value in values:
        separator = "|" if "|" in value else ":"
        parts = value.split(separator)
        if len(parts) != 2 or not all(parts):
            raise click.BadParameter(f"expected RECORD_A:RECORD_B, got {value!r}", ctx, param)
        pairs.append((parts[0], parts[1]))
    return pairs


def _load_config_or_exit(config_path: str | None) -> DedupConfig:
    """Load the configuration (defaults when no path); exit 2 if invalid."""
    if config_path is None:
        return DedupConfig()
    try:
        return load_config(config_path)
    except ConfigError as e:
        click.secho(f"✗ Invalid configuration: {e}", fg="red", err=True)
        sys.exit(2)


@click.group()
@click.version_option(version=__version__, prog_name="hhdedupe")
def cli() -> None:
    """Entity resolution for job postings and organizations.

    Use 'hhdedupe COMMAND --help' for command-specific help.
    """


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False),
    required=True,
    help="Output directory for artifacts, events.jsonl and run.json",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON configuration file",
)
@click.option(
    "--invalidate",
    multiple=True,
    callback=_parse_pairs,
    help="Edge to invalidate after resolution, as RECORD_A:RECORD_B (repeatable)",
)
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=1,
    help="Worker threads (default: 1, sequential)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output",
)
def run(
    input_path: str,
    output_dir: str,
    config_path: str | None,
    invalidate: list[tuple[str, str]],
    workers: int,
    verbose: bool,
) -> None:
    """Resolve the records in INPUT_PATH (JSON Lines) into clusters.

    Outputs are written to OUTPUT_DIR with full audit trail: artifacts/
    holds assignments, edges, clusters, the review queue and reposting
    links.

    Examples
    --------
        hhdedupe run postings.jsonl -o out
        hhdedupe run postings.jsonl -o out --config hhdedupe.json --workers 4
        hhdedupe run postings.jsonl -o out --invalidate job-1:job-7
    """
    from hhdedupe.engine import run_dedup

    config = _load_config_or_exit(config_path)

    if verbose:
        click.echo("Starting resolution run...", err=True)
        click.echo(f"  Input: {input_path}", err=True)
        click.echo(f"  Output: {output_dir}", err=True)
        click.echo(f"  Workers: {workers}", err=True)
        thresholds = config.thresholds
        click.echo(
            f"  Thresholds: near={thresholds.near} fuzzy={thresholds.fuzzy_accept} "
            f"possible={thresholds.possible}",
            err=True,
        )

    try:
        result = run_dedup(
            input_path=Path(input_path),
            output_dir=Path(output_dir),
            config=config,
            invalidate=invalidate,
            max_workers=workers,
            command_argv=sys.argv,
        )
    except Exception as e:
        click.secho(f"✗ Error: {e}", fg="red", err=True)
        if verbose:
            import traceback

            click.echo(traceback.format_exc(), err=True)
        sys.exit(1)

    if not result.success:
        click.secho(f"✗ Run failed: {result.error_message}", fg="red", err=True)
        sys.exit(1)

    if verbose:
        click.echo("\n✓ Run completed successfully!", err=True)
        click.echo("\nResults:", err=True)
        click.echo(f"  Total records: {result.total_records}", err=True)
        click.echo(f"  Rejected: {result.rejected_records}", err=True)
        click.echo(f"  Clusters: {result.total_clusters}", err=True)
        click.echo(f"  Duplicate clusters: {result.duplicate_clusters}", err=True)
        click.echo(f"  Review queue: {result.possible_matches}", err=True)
        click.echo(f"  Reposts: {result.reposts}", err=True)
        click.echo("\nOutputs:", err=True)
        for name, path in result.output_files.items():
            click.echo(f"  {name}: {path}", err=True)
    click.secho(
        f"✓ Resolved {result.total_records} records into {result.total_clusters} clusters "
        f"({result.duplicate_clusters} with duplicates, {result.possible_matches} for review)",
        fg="green",
    )


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.argument("record_a")
@click.argument("record_b")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="JSON configuration file (weights, temporal window)",
)
def score(input_path: str, record_a: str, record_b: str, config_path: str | None) -> None:
    """Print the similarity breakdown of RECORD_A and RECORD_B from INPUT_PATH.

    Examples
    --------
        hhdedupe score postings.jsonl job-1 job-7
    """
    from hhdedupe.api import load_records
    from hhdedupe.scoring import SimilarityScorer

    config = _load_config_or_exit(config_path)
    records = {record.record_id: record for record in load_records(input_path, strict=False)}

    missing = [rid for rid in (record_a, record_b) if rid not in records]
    if missing:
        click.secho(f"✗ Unknown record id(s): {', '.join(missing)}", fg="red", err=True)
        sys.exit(1)

    scorer = SimilarityScorer(
        weights=config.weights,
        temporal_window_days=config.temporal_window_days,
    )
    try:
        pair_score = scorer.score_pair(records[record_a], records[record_b])
    except ValueError as e:
        click.secho(f"✗ {e}", fg="red", err=True)
        sys.exit(1)

    payload = pair_score.to_dict()
    match_type = config.thresholds.classify(pair_score.score)
    payload["classification"] = match_type.value if match_type else "no_match"
    click.echo(json.dumps(payload, indent=2, sort_keys=True))


@cli.command("check-config")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
def check_config(config_path: str) -> None:
    """Validate a JSON configuration file and print the effective settings.

    Exits with status 2 when the configuration is invalid.
    """
    config = _load_config_or_exit(config_path)
    click.echo(json.dumps(config.to_dict(), indent=2, sort_keys=True))
    click.secho("✓ Configuration is valid", fg="green", err=True)


if __name__ == "__main__":
    cli()
