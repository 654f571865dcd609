"""Typer CLI for provisioning RabbitMQ topology."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from rabbit_topology.broker.session import DryRunSession
from rabbit_topology.config.loader import (
    DEFAULT_CONFIG_PATH,
    load_broker_config,
    load_topology_config,
)
from rabbit_topology.config.models import TopologyConfig
from rabbit_topology.configurator import configure as configure_topology
from rabbit_topology.errors import TopologyError
from rabbit_topology.topology.arguments import lint_arguments
from rabbit_topology.topology.provisioner import provision

console = Console()
app = typer.Typer(name="rabbit-topology", help="RabbitMQ topology provisioning CLI")


def _load(config_path: str) -> TopologyConfig:
    try:
        return load_topology_config(Path(config_path))
    except TopologyError as exc:
        console.print(f"[red]Invalid config:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _warnings(config: TopologyConfig) -> list[str]:
    found: list[str] = []
    for e in config.exchanges:
        found.extend(f"exchange {e.name}: {w}" for w in lint_arguments(e.arguments))
    for q in config.queues:
        found.extend(f"queue {q.name}: {w}" for w in lint_arguments(q.arguments))
    return found


@app.command()
def validate(
    config_path: str = typer.Argument(
        str(DEFAULT_CONFIG_PATH), help="Path to topology JSON/YAML"
    ),
) -> None:
    """Validate a topology document without touching the broker."""
    config = _load(config_path)

    table = Table(title=f"Topology — {escape(str(config_path))}")
    table.add_column("Entity", style="cyan")
    table.add_column("Name")
    table.add_column("Detail")
    for e in config.exchanges:
        table.add_row("exchange", escape(e.name), f"{e.kind} durable={e.durable}")
    for q in config.queues:
        detail = f"durable={q.durable} bindings={len(q.bindings)}"
        table.add_row("queue", escape(q.name), detail)
    console.print(table)

    for warning in _warnings(config):
        console.print(f"[yellow]warning:[/yellow] {escape(warning)}")
    console.print(
        f"[green]Valid[/green] — {len(config.exchanges)} exchange(s), "
        f"{len(config.queues)} queue(s), {config.binding_count()} binding(s)"
    )


@app.command()
def plan(
    config_path: str = typer.Argument(
        str(DEFAULT_CONFIG_PATH), help="Path to topology JSON/YAML"
    ),
) -> None:
    """Print the ordered declarations a provisioning run would issue."""
    config = _load(config_path)
    session = DryRunSession()
    try:
        provision(config, session)
    except TopologyError as exc:
        console.print(f"[red]Plan failed:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    for step, op in enumerate(session.operations, start=1):
        console.print(f"{step:>3}. {escape(op.describe())}")
        if op.params.get("arguments"):
            console.print(f"     arguments: {escape(str(op.params['arguments']))}")


@app.command()
def configure(
    config_path: str = typer.Argument(
        str(DEFAULT_CONFIG_PATH), help="Path to topology JSON/YAML"
    ),
    url: str | None = typer.Option(
        None, "--url", help="AMQP URI (default: broker config / RABBITMQ_URL)"
    ),
    broker_config: str | None = typer.Option(
        None, "--broker-config", help="Broker settings YAML"
    ),
) -> None:
    """Declare every exchange, queue and binding from the topology document."""
    try:
        broker = load_broker_config(Path(broker_config) if broker_config else None)
        result = configure_topology(Path(config_path), url, broker_config=broker)
    except TopologyError as exc:
        console.print(f"[red]Configuration failed:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    console.print(
        f"[green]Configuration complete[/green] — "
        f"{len(result['exchanges'])} exchange(s), {len(result['queues'])} queue(s), "
        f"{result['bindings']} binding(s)"
    )
