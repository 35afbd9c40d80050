"""CLI entry point for the cosmos agent."""

import asyncio
import contextlib
import signal
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from cosmos_agent.agent import CosmosAgent
from cosmos_agent.common.config import AgentConfig, load_config
from cosmos_agent.common.exceptions import AgentError, ConfigurationError
from cosmos_agent.common.logging import configure_logging
from cosmos_agent.common.models import NormalizedContainerReport

app = typer.Typer(
    name="cosmos-agent",
    help="Cosmos agent - container metrics reporting",
    no_args_is_help=True,
)

console = Console(stderr=True)

EnvFileOption = Annotated[
    Path | None,
    typer.Option("--env-file", "-e", help="Path to a .env file with agent settings"),
]


def _load(env_file: Path | None) -> AgentConfig:
    """Load configuration or exit before touching the runtime."""
    try:
        config = load_config(env_file)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        console.print("Set COSMOS_HOST to the collector URL.")
        raise typer.Exit(1) from None
    configure_logging(config.logging)
    return config


def _fail(e: AgentError) -> typer.Exit:
    operation = e.details.get("operation", "startup")
    console.print(f"[red]Error:[/red] {operation} failed: {e.message}")
    return typer.Exit(1)


@app.command("run")
def cmd_run(env_file: EnvFileOption = None) -> None:
    """Report container metrics every interval until stopped."""
    config = _load(env_file)
    agent = CosmosAgent(config)

    async def run() -> None:
        task = asyncio.create_task(agent.run_forever())

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, task.cancel)

        with contextlib.suppress(asyncio.CancelledError):
            await task

    try:
        asyncio.run(run())
    except AgentError as e:
        raise _fail(e) from None
    except KeyboardInterrupt:
        pass


@app.command("once")
def cmd_once(
    env_file: EnvFileOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Collect and print the report without sending it"),
    ] = False,
) -> None:
    """Run a single reporting cycle."""
    config = _load(env_file)
    agent = CosmosAgent(config)

    try:
        if dry_run:
            reports = asyncio.run(agent.collect_once())
            _print_reports(reports)
            return
        delivered = asyncio.run(agent.report_once())
    except AgentError as e:
        raise _fail(e) from None

    if not delivered:
        raise typer.Exit(1)
    rprint("[green]✓[/green] Report delivered")


def _print_reports(reports: list[NormalizedContainerReport]) -> None:
    table = Table(title="Containers")
    table.add_column("ID", style="cyan")
    table.add_column("Names")
    table.add_column("Image")
    table.add_column("CPU %", justify="right")
    table.add_column("Memory", justify="right")
    table.add_column("RX Δ", justify="right")
    table.add_column("TX Δ", justify="right")

    for report in reports:
        stats = report.stats
        table.add_row(
            report.id[:12],
            ", ".join(report.names),
            report.image,
            f"{stats.cpu.total_utilization:.2f}",
            f"{stats.memory.usage} / {stats.memory.limit}",
            str(stats.network.rx_bytes_delta),
            str(stats.network.tx_bytes_delta),
        )

    Console().print(table)


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
