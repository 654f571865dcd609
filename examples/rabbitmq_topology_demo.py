#!/usr/bin/env python3
"""Runnable demo: dry-run a topology document, then provision it.

Prerequisites:
    docker run -d -p 5672:5672 rabbitmq:3
    uv run python examples/rabbitmq_topology_demo.py
"""

from __future__ import annotations

import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from rabbit_topology.broker.session import DryRunSession
from rabbit_topology.config.loader import load_broker_config, load_topology_config
from rabbit_topology.configurator import configure
from rabbit_topology.errors import BrokerConnectionError
from rabbit_topology.topology.provisioner import provision

console = Console()
CONFIG = Path(__file__).parent / "rabbit-config.json"


def main() -> None:
    # 1. Load and validate the document
    topology = load_topology_config(CONFIG)
    console.print(
        "[bold]Topology loaded[/bold]",
        f"{len(topology.exchanges)} exchanges, {len(topology.queues)} queues",
    )

    # 2. Dry run: show what would be declared, in order
    dry = DryRunSession()
    provision(topology, dry)
    for op in dry.operations:
        console.print(f"  {escape(op.describe())}")

    # 3. Provision against the broker
    broker = load_broker_config()
    try:
        result = configure(topology, broker_config=broker)
    except BrokerConnectionError as exc:
        console.print(f"[red]Broker not reachable:[/red] {escape(str(exc))}")
        console.print("Start RabbitMQ or export RABBITMQ_URL first.")
        sys.exit(1)
    console.print(f"[green]Provisioned[/green] {result}")


if __name__ == "__main__":
    main()
