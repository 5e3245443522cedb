"""CLI main entry point for DSAT token probing."""

import logging
import sys
from datetime import datetime as dt_module

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..core import (
    BUILTIN_SCHEMES,
    ConfigurationError,
    Ordering,
    ParameterSet,
    ParameterSetError,
    ProbeExecutor,
    TokenSchemeError,
    canonical_query_string,
    compute_digest,
    derive_token,
    load_settings,
)
from ..experiments import ExperimentMatrix, default_variants, load_variants
from .formatters import (
    format_results_detailed,
    format_results_json,
    format_results_table,
    format_variants_table,
)

console = Console()
error_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )
    # urllib3 logs every connection at debug level
    logging.getLogger("urllib3").setLevel(logging.INFO if verbose else logging.WARNING)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """DSAT Token Probe - Test token scheme hypotheses against the DSAT bus API."""
    pass


@cli.command()
@click.option("--route", "-r", default="33", help="Route number to request")
@click.option("--dir", "direction", default="0", help="Direction flag (0 or 1)")
@click.option(
    "--variants",
    "variants_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of variants to run instead of the defaults",
)
@click.option(
    "--only",
    "only",
    multiple=True,
    help="Run only the named variant (repeatable)",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
@click.option("--endpoint", help="Override the endpoint URL")
@click.option("--timeout", "-t", type=float, help="Request timeout in seconds")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json", "detailed"]),
    default="table",
    help="Output format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    help="Also write the result log as JSON to this file",
)
@click.option("--verbose", "-v", is_flag=True, help="Show tokens and debug logging")
def run(
    route: str,
    direction: str,
    variants_file: str | None,
    only: tuple[str, ...],
    config_file: str | None,
    endpoint: str | None,
    timeout: float | None,
    output_format: str,
    output: str | None,
    verbose: bool,
) -> None:
    """Run the experiment matrix against the live service.

    Every variant is sent exactly once, in order; failures are reported,
    never retried.

    Examples:
        dsat-probe run
        dsat-probe run --route 3X --dir 1 --format detailed
        dsat-probe run --only base --only base-sorted -o results.json
    """
    setup_logging(verbose)
    try:
        settings = load_settings(config_file, endpoint=endpoint, timeout=timeout)
        if variants_file:
            variants = load_variants(variants_file)
        else:
            variants = default_variants(route=route, direction=direction)

        matrix = ExperimentMatrix(variants)
        if only:
            matrix = matrix.select(only)
        matrix.validate(settings)

        executor = ProbeExecutor(settings)
        with console.status(
            f"[bold green]Probing {len(matrix)} variants against {settings.endpoint}..."
        ):
            results = matrix.run(executor)

    except (ConfigurationError, ParameterSetError) as e:
        error_console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(1)

    if output_format == "json":
        click.echo(format_results_json(results))
    elif output_format == "detailed":
        format_results_detailed(results)
    else:
        format_results_table(results, verbose=verbose)

    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(format_results_json(results))
        error_console.print(f"[dim]Wrote {len(results)} results to {output}[/dim]")


@cli.command()
@click.argument("params", nargs=-1)
@click.option("--sorted", "sort_keys", is_flag=True, help="Sort keys before hashing")
@click.option(
    "--at",
    "at_str",
    help="Clock reading to use (YYYY-MM-DD HH:MM), defaults to now",
)
@click.option("--scheme", "-s", help="Token scheme name")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
def token(
    params: tuple[str, ...],
    sort_keys: bool,
    at_str: str | None,
    scheme: str | None,
    config_file: str | None,
) -> None:
    """Derive a token offline for KEY=VALUE parameters.

    Examples:
        dsat-probe token routeName=33 dir=0 lang=zh-tw device=web
        dsat-probe token routeName=33 dir=0 --sorted --at "2024-03-05 09:07"
    """
    moment = dt_module.now()
    if at_str:
        try:
            moment = dt_module.strptime(at_str, "%Y-%m-%d %H:%M")
        except ValueError:
            error_console.print("[red]Invalid datetime format. Use YYYY-MM-DD HH:MM[/red]")
            sys.exit(1)

    try:
        settings = load_settings(config_file)
        token_scheme = settings.resolve_scheme(scheme)
        parameter_set = ParameterSet.from_strings(params)
    except (ConfigurationError, ParameterSetError, TokenSchemeError) as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    ordering = Ordering.SORTED if sort_keys else Ordering.INSERTION
    canonical = canonical_query_string(parameter_set, ordering)

    click.echo(f"Hash input: {canonical}")
    click.echo(f"Digest:     {compute_digest(canonical, token_scheme.algorithm)}")
    click.echo(f"Scheme:     {token_scheme.name}")
    click.echo(f"Token:      {derive_token(canonical, moment, token_scheme)}")


@cli.command()
@click.option("--route", "-r", default="33", help="Route number to request")
@click.option("--dir", "direction", default="0", help="Direction flag (0 or 1)")
@click.option(
    "--variants",
    "variants_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON file of variants",
)
def variants(route: str, direction: str, variants_file: str | None) -> None:
    """List the variants a run would send."""
    try:
        if variants_file:
            configured = load_variants(variants_file)
        else:
            configured = default_variants(route=route, direction=direction)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    format_variants_table(configured)


@cli.command()
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
def schemes(config_file: str | None) -> None:
    """List known token schemes."""
    try:
        settings = load_settings(config_file)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    table = Table(title="Token Schemes", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Hash", style="yellow")
    table.add_column("Insertions", style="green")
    table.add_column("Description")

    for scheme in {**BUILTIN_SCHEMES, **settings.schemes}.values():
        steps = ", ".join(f"{step.fragment}@{step.index}" for step in scheme.insertions)
        name = scheme.name
        if scheme.name == settings.scheme:
            name += " (default)"
        table.add_row(name, scheme.algorithm, steps, scheme.description)

    console.print(table)


@cli.group()
def config() -> None:
    """Configuration management."""
    pass


@config.command("show")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON settings file",
)
def show_config(config_file: str | None) -> None:
    """Show current configuration."""
    try:
        settings = load_settings(config_file)
    except ConfigurationError as e:
        error_console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    console.print("[bold]Current Configuration:[/bold]")
    console.print(f"• Endpoint: {settings.endpoint}")
    console.print(f"• Origin: {settings.origin}")
    console.print(f"• Referer: {settings.referer}")
    console.print(f"• Token header: {settings.token_header}")
    console.print(f"• Timeout: {settings.timeout} seconds")
    console.print(f"• Default scheme: {settings.scheme}")
    console.print(f"• Success check: data.{settings.id_field} + data.{settings.records_field}")


if __name__ == "__main__":
    cli()
