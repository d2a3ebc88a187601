"""scorediff CLI entry point."""

import csv
import io
import logging
import re
import sys

import click

from scorediff import __version__
from scorediff.aggregator import DiffAggregator
from scorediff.analysis import distance_matrix
from scorediff.beat_grid import DEFAULT_STEP
from scorediff.diff_parser import DEFAULT_STRIP_SUFFIX, DiffParser, HunkPolicy
from scorediff.loader import DocumentLoader, LoadReport
from scorediff.models import AggregationResult, format_beat
from scorediff.result_exporter import ResultExporter

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]
DEFAULT_TITLE = "scorediff"


def _title_to_filename(title: str, suffix: str) -> str:
    """Convert a report title to a safe output filename with *suffix*."""
    sanitized = re.sub(r"[^\w\s-]", "", title)
    sanitized = re.sub(r"\s+", "_", sanitized.strip())
    return f"{sanitized or DEFAULT_TITLE}{suffix}"


def _build_parser(on_unmatched_hunk: str, strip_suffix: str) -> DiffParser:
    return DiffParser(hunk_policy=on_unmatched_hunk, strip_suffix=strip_suffix)


def _load_documents(paths: tuple[str, ...]) -> LoadReport:
    """Load every path and warn about failures; exit when nothing could be read."""
    report = DocumentLoader().load(paths)
    for failure in report.failures:
        click.echo(f"  WARNING: Skipping '{failure.name}': {failure.reason}", err=True)

    if not report.documents:
        click.echo("  ERROR: No diff document could be loaded.", err=True)
        sys.exit(1)
    return report


def _aggregate_report(
    report: LoadReport, parser: DiffParser, workers: int, exact_gaps: bool
) -> AggregationResult:
    max_step = None if exact_gaps else DEFAULT_STEP
    aggregator = DiffAggregator(parser=parser, max_workers=workers, max_step=max_step)
    aggregator.add_documents(report.as_pairs())
    for failure in report.failures:
        aggregator.add_failure(failure)
    return aggregator.aggregate()


def parser_options(func):
    """Options shared by every command that parses diff documents."""
    func = click.option(
        "--strip-suffix",
        default=DEFAULT_STRIP_SUFFIX,
        show_default=True,
        metavar="TEXT",
        help="File suffix removed from endpoint names. Pass '' to keep names as-is.",
    )(func)
    func = click.option(
        "--on-unmatched-hunk",
        type=click.Choice([policy.value for policy in HunkPolicy], case_sensitive=False),
        default=HunkPolicy.CONTINUE.value,
        show_default=True,
        help=(
            "What to do with content after a hunk header that has no measure/beat: "
            "keep counting it at the previous position, or drop it."
        ),
    )(func)
    return func


def grid_options(func):
    """Options controlling beat-grid inference."""
    return click.option(
        "--exact-gaps",
        is_flag=True,
        default=False,
        help=(
            "Fill each measure using only its smallest observed beat gap, even when "
            "that gap exceeds one beat. By default whole beats are always filled in."
        ),
    )(func)


# ── CLI group ──────────────────────────────────────────────────────────────────

@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="scorediff")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity for parser and aggregation diagnostics.",
)
def main(log_level: str) -> None:
    """scorediff: align score-annotated diffs onto one measure/beat timeline."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )


# ── aggregate subcommand ───────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--output",
    "-o",
    default=None,
    metavar="PATH",
    help="Destination file path. Defaults to <title> with the format's extension.",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "markdown"], case_sensitive=False),
    default="json",
    show_default=True,
    help="JSON data model for renderers, or a Markdown summary.",
)
@click.option("--title", default=DEFAULT_TITLE, show_default=True, metavar="TEXT", help="Report title.")
@click.option(
    "--workers",
    type=click.IntRange(1, 64),
    default=1,
    show_default=True,
    help="Number of threads used to parse documents.",
)
@parser_options
@grid_options
def aggregate(
    paths: tuple[str, ...],
    output: str | None,
    output_format: str,
    title: str,
    workers: int,
    on_unmatched_hunk: str,
    strip_suffix: str,
    exact_gaps: bool,
) -> None:
    """
    Aggregate diff documents into one timeline-aligned data model.

    PATHS are diff text files or directories containing *.txt diffs.

    \b
    Examples:
      scorediff aggregate diffs/
      scorediff aggregate a_b.txt a_c.txt -o result.json
      scorediff aggregate diffs/ --format markdown --title "Op. 33 No. 1"
    """
    parser = _build_parser(on_unmatched_hunk, strip_suffix)
    exporter = ResultExporter(title=title, output_format=output_format)
    resolved_output = output if output is not None else _title_to_filename(
        title, exporter.default_extension
    )

    click.echo(f"scorediff v{__version__}")
    click.echo(f"  Inputs : {len(paths)} path(s)")
    click.echo(f"  Format : {exporter.output_format}")
    click.echo(f"  Output : {resolved_output}")
    click.echo()

    click.echo("[1/3] Loading diff documents...")
    report = _load_documents(paths)
    click.echo(f"      Loaded {len(report.documents)} document(s), {len(report.failures)} failure(s)")

    click.echo(f"[2/3] Aligning documents on a shared timeline ({workers} worker(s))...")
    result = _aggregate_report(report, parser, workers, exact_gaps)

    click.echo(f"      Endpoints  : {len(result.endpoints)}")
    click.echo(f"      Documents  : {len(result.edges)}")
    click.echo(
        f"      Timeline   : {len(result.timeline)} position(s) "
        f"in {len(result.timeline.measures())} measure(s)"
    )
    click.echo(f"      Global max : {result.global_max}")

    click.echo(f"[3/3] Writing {exporter.output_format} → '{resolved_output}'...")
    try:
        exporter.export(result, resolved_output)
    except OSError as exc:
        click.echo(f"  ERROR: Could not write output file: {exc}", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"Done!  Wrote '{resolved_output}'.")


# ── inspect subcommand ─────────────────────────────────────────────────────────

@main.command()
@click.argument("diff_file", type=click.Path(exists=True, dir_okay=False, readable=True))
@parser_options
def inspect(diff_file: str, on_unmatched_hunk: str, strip_suffix: str) -> None:
    """
    Parse a single diff document and report what was extracted.

    DIFF_FILE is the path to one diff text file.
    """
    report = DocumentLoader().load([diff_file])
    if report.failures:
        click.echo(f"  ERROR: Could not read '{diff_file}': {report.failures[0].reason}", err=True)
        sys.exit(1)

    loaded = report.documents[0]
    document = _build_parser(on_unmatched_hunk, strip_suffix).parse(loaded.text, loaded.name)

    for role, extraction in (("Source", document.source), ("Target", document.target)):
        status = "clean" if extraction.clean else f"fallback: {extraction.reason}"
        click.echo(f"{role} : {extraction.identifier!r} ({status})")
    click.echo(
        f"Hunks  : {document.hunks_matched} matched, {document.hunks_unmatched} unmatched "
        f"(policy: {on_unmatched_hunk})"
    )
    click.echo(f"Dropped: {document.dropped_lines} content line(s) before any coordinate")
    click.echo(f"Changes: {document.edge.total} line(s) at {len(document.edge.counts)} position(s)")
    for position in sorted(document.edge.counts):
        count = document.edge.counts[position]
        click.echo(
            f"  measure {position.measure:>4}, beat {format_beat(position.beat):<8} {count:>4}"
        )


# ── matrix subcommand ──────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path())
@click.option(
    "--index",
    type=int,
    default=None,
    metavar="N",
    help="Timeline index to measure at. Defaults to total changes per pair.",
)
@parser_options
@grid_options
def matrix(
    paths: tuple[str, ...],
    index: int | None,
    on_unmatched_hunk: str,
    strip_suffix: str,
    exact_gaps: bool,
) -> None:
    """
    Print the pairwise endpoint distance matrix as CSV.

    Distances are change counts, either at one timeline index or in total;
    this is the input expected by tree-building tools.
    """
    parser = _build_parser(on_unmatched_hunk, strip_suffix)
    result = _aggregate_report(_load_documents(paths), parser, 1, exact_gaps)
    try:
        names, distances = distance_matrix(result, index)
    except IndexError as exc:
        click.echo(f"  ERROR: {exc}", err=True)
        sys.exit(1)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["", *names])
    for name, row in zip(names, distances):
        writer.writerow([name, *(int(value) for value in row)])
    click.echo(buffer.getvalue(), nl=False)
