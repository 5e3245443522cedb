"""Output formatters for probe results."""

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..core.canonical import canonical_query_string
from ..core.models import ProbeResult, Variant

console = Console()


def _outcome(result: ProbeResult) -> str:
    if result.success:
        return "[green]SUCCESS[/green]"
    kind = result.failure_kind.value if result.failure_kind else "failed"
    return f"[red]{kind}[/red]"


def format_results_table(results: list[ProbeResult], verbose: bool = False) -> None:
    """Display the probe log as a rich table."""
    if not results:
        console.print("No probes were run.")
        return

    table = Table(title="Probe Results", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Variant", style="cyan", no_wrap=True)
    table.add_column("Ordering", style="yellow")
    table.add_column("Scheme", style="yellow")
    table.add_column("Status", style="blue")
    table.add_column("Outcome")
    table.add_column("Detail", style="green")
    if verbose:
        table.add_column("Token", style="dim")

    for idx, result in enumerate(results, 1):
        if result.success:
            detail = f"route {result.route_id}, {result.record_count} stops"
        else:
            detail = escape(result.error or "-")

        row = [
            str(idx),
            result.variant,
            result.ordering.value,
            result.scheme,
            str(result.status_code) if result.status_code is not None else "-",
            _outcome(result),
            detail,
        ]
        if verbose:
            row.append(result.token)
        table.add_row(*row)

    console.print(table)

    succeeded = sum(1 for result in results if result.success)
    console.print(f"\n[bold]{succeeded}/{len(results)}[/bold] variants accepted")


def format_results_detailed(results: list[ProbeResult]) -> None:
    """Display each probe with its hash input, token and sample record."""
    if not results:
        console.print("No probes were run.")
        return

    for idx, result in enumerate(results, 1):
        text = f"""[bold]Variant:[/bold] {result.variant} ({result.ordering.value}, {result.scheme})
[bold]Hash input:[/bold] {escape(result.canonical_query)}
[bold]Token:[/bold] {result.token}
[bold]Probed at:[/bold] {result.probed_at.isoformat(timespec="seconds")}
[bold]Status:[/bold] {result.status_code if result.status_code is not None else "no response"}
[bold]Outcome:[/bold] {_outcome(result)}"""

        if result.elapsed_seconds is not None:
            text += f"\n[bold]Elapsed:[/bold] {result.elapsed_seconds:.2f}s"
        if result.success:
            text += f"\n[bold]Route:[/bold] {result.route_id} ({result.record_count} stops)"
            text += f"\n[bold]Sample:[/bold] {escape(json.dumps(result.sample, ensure_ascii=False))}"
        else:
            text += f"\n[bold]Error:[/bold] {escape(str(result.error))}"
            if result.raw_payload is not None:
                payload = result.raw_payload
                if not isinstance(payload, str):
                    payload = json.dumps(payload, ensure_ascii=False)
                text += f"\n[bold]Payload:[/bold] {escape(payload[:500])}"

        console.print(
            Panel(
                text,
                title=f"Probe {idx}: {result.label}",
                border_style="green" if result.success else "red",
            ),
        )


def format_results_json(results: list[ProbeResult]) -> str:
    """Format the probe log as JSON."""
    return json.dumps(
        [result.model_dump(mode="json") for result in results],
        ensure_ascii=False,
        indent=2,
    )


def format_variants_table(variants: list[Variant]) -> None:
    """Display configured variants with their hash inputs."""
    table = Table(title="Variants", show_header=True, header_style="bold magenta")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Label", style="green")
    table.add_column("Ordering", style="yellow")
    table.add_column("Scheme", style="yellow")
    table.add_column("Hash input", style="blue")

    for variant in variants:
        table.add_row(
            variant.name,
            variant.label,
            variant.ordering.value,
            variant.scheme or "(default)",
            canonical_query_string(variant.params, variant.ordering),
        )

    console.print(table)
