"""lattice CLI — run maintenance agents over a JSON snapshot of records.

`lattice scan records.json --type integrity` runs one agent once.
`lattice tick records.json` runs one scheduling pass over every type.
Repaired records can be written back out with `--output`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from lattice.cli.context import build_runtime, load_snapshot, run_async, write_snapshot
from lattice.config import settings
from lattice.findings import Finding
from lattice.kernel.agent import AgentConfig
from lattice.log import configure_logging
from lattice.metrics import AgentMetrics
from lattice.types import AgentType

console = Console()

app = typer.Typer(
    name="lattice",
    help="lattice -- maintenance agents for a shared knowledge graph.",
    no_args_is_help=True,
)

_SEVERITY_STYLE = {"low": "dim", "medium": "yellow", "high": "bold red"}


@app.callback()
def _root(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Logging level"),
) -> None:
    configure_logging(log_level)


@app.command("types")
def list_types():
    """List the agent types and their default intervals."""
    table = Table(title="Agent types")
    table.add_column("Type", style="cyan")
    table.add_column("Default interval", justify="right")
    for kind in AgentType:
        minutes = settings.default_interval_ms(kind) / 60_000
        table.add_row(kind.value, f"{minutes:g} min")
    console.print(table)


@app.command("scan")
def scan(
    snapshot: Path = typer.Argument(help="JSON file with the records to scan"),
    agent_type: str = typer.Option(..., "--type", "-t", help="Agent type to run"),
    territory: str = typer.Option("*", "--territory", help="Tag, domain or scope to restrict to"),
    limit: int = typer.Option(50, "--limit", "-n", help="Max findings to show"),
    output: Optional[Path] = typer.Option(None, "--output", "-o",
                                          help="Write the (repaired) records here"),
):
    """Run a single agent once against a snapshot."""
    records = _load(snapshot)
    runtime = build_runtime()

    async def _scan():
        agent = await runtime.create_agent(agent_type, AgentConfig(territory=territory))
        return await runtime.run_agent(agent.agent_id, records)

    try:
        report = run_async(_scan())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    _print_findings(report.findings[:limit], f"{agent_type} — {report.count} finding(s)")
    console.print(
        f"[green]repaired {report.repaired}[/green]  "
        f"[dim]skipped {report.skipped}  faults {report.faults}[/dim]"
    )
    if output:
        write_snapshot(output, records)
        console.print(f"[dim]wrote {len(records)} records to {output}[/dim]")


@app.command("tick")
def tick(
    snapshot: Path = typer.Argument(help="JSON file with the records to scan"),
    agent_types: Optional[list[str]] = typer.Option(
        None, "--type", "-t", help="Agent types to create (default: all)",
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o",
                                          help="Write the (repaired) records here"),
):
    """Create one agent per type and run a single scheduling pass."""
    records = _load(snapshot)
    runtime = build_runtime()

    async def _tick():
        for kind in agent_types or [k.value for k in AgentType]:
            await runtime.create_agent(kind)
        report = await runtime.agent_tick_job(records)
        return report, runtime.get_agent_metrics()

    try:
        report, metrics = run_async(_tick())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]ran {report.ran_count}[/green]  [dim]skipped {report.skipped_count}[/dim]")
    _print_metrics(metrics)
    if output:
        write_snapshot(output, records)
        console.print(f"[dim]wrote {len(records)} records to {output}[/dim]")


def _load(path: Path) -> list:
    try:
        return load_snapshot(path)
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read snapshot: {e}[/red]")
        raise typer.Exit(1)


def _print_findings(findings: list[Finding], title: str) -> None:
    if not findings:
        console.print("[dim]No findings.[/dim]")
        return

    table = Table(title=title)
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Record", style="blue", no_wrap=True)
    table.add_column("Message", style="white")
    table.add_column("Repair", style="green")

    for f in findings:
        style = _SEVERITY_STYLE.get(f.severity.value, "white")
        table.add_row(
            f.finding_type,
            f"[{style}]{f.severity.value}[/{style}]",
            f.record_id or "-",
            f.message[:120],
            f.repair_action or "",
        )
    console.print(table)


def _print_metrics(metrics: AgentMetrics) -> None:
    table = Table(title="Agents")
    table.add_column("Type", style="cyan")
    table.add_column("Agents", justify="right")
    table.add_column("Runs", justify="right")
    table.add_column("Findings", justify="right", style="yellow")
    table.add_column("Repairs", justify="right", style="green")
    for kind, m in metrics.by_type.items():
        table.add_row(kind, str(m.count), str(m.total_runs),
                      str(m.total_findings), str(m.total_repairs))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
