"""Topology provisioner — replays a TopologyConfig against a broker session."""

from __future__ import annotations

from typing import Any

import structlog

from rabbit_topology.broker.session import BrokerSession
from rabbit_topology.config.models import Exchange, Queue, TopologyConfig
from rabbit_topology.topology.arguments import decode_arguments

logger = structlog.get_logger()


def _declare_exchange(session: BrokerSession, exchange: Exchange) -> None:
    arguments = decode_arguments(exchange.arguments)
    logger.info("exchange.declaring", exchange=exchange.name, kind=exchange.kind.value)
    session.declare_exchange(
        exchange.name,
        exchange.kind.value,
        exchange.durable,
        exchange.auto_delete,
        exchange.internal,
        arguments,
    )
    logger.info("exchange.declared", exchange=exchange.name)


def _declare_queue(session: BrokerSession, queue: Queue) -> int:
    arguments = decode_arguments(queue.arguments)
    logger.info("queue.declaring", queue=queue.name)
    session.declare_queue(queue.name, queue.durable, queue.auto_delete, arguments)
    logger.info("queue.declared", queue=queue.name)

    for binding in queue.bindings:
        binding_args = decode_arguments(binding.arguments)
        session.bind_queue(
            queue.name, binding.from_exchange, binding.routing_key, binding_args
        )
        logger.info(
            "queue.bound",
            queue=queue.name,
            exchange=binding.from_exchange,
            routing_key=binding.routing_key,
        )
    return len(queue.bindings)


def _close_quietly(session: BrokerSession) -> None:
    """Best-effort release after a failed run; the original error wins."""
    try:
        session.close()
    except Exception as exc:
        logger.warning("session.close_failed", error=str(exc))


def provision(config: TopologyConfig, session: BrokerSession) -> dict[str, Any]:
    """Declare every exchange, then every queue with its bindings, then close.

    Declarations follow document order.  Nothing is checked for prior
    existence and nothing is rolled back: a failure part-way through leaves
    whatever was declared before it in place and propagates unchanged.
    """
    exchanges: list[str] = []
    queues: list[str] = []
    bindings = 0
    try:
        for exchange in config.exchanges:
            _declare_exchange(session, exchange)
            exchanges.append(exchange.name)
        for queue in config.queues:
            bindings += _declare_queue(session, queue)
            queues.append(queue.name)
    except Exception:
        logger.error(
            "topology.provision_failed",
            exchanges_declared=exchanges,
            queues_declared=queues,
        )
        _close_quietly(session)
        raise

    session.close()
    logger.info(
        "topology.provisioned",
        exchanges=len(exchanges),
        queues=len(queues),
        bindings=bindings,
    )
    return {"exchanges": exchanges, "queues": queues, "bindings": bindings}
