"""Broker session protocol — the capability the provisioner declares against.

Connection establishment (URI, credentials, TLS) happens before a session is
handed to the provisioner; a session is used by exactly one provisioning run
and closed once at its end.

Declares over an existing entity with identical parameters are expected to
be no-ops.  Declares over an existing entity with *different* parameters are
expected to fail loudly (``BrokerDeclareConflictError``), never to update the
entity in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol, runtime_checkable

import structlog

from rabbit_topology.topology.arguments import DecodedValue

logger = structlog.get_logger()


@runtime_checkable
class BrokerSession(Protocol):
    """Topology-declaring operations of a single broker session."""

    def declare_exchange(
        self,
        name: str,
        kind: str,
        durable: bool,
        auto_delete: bool,
        internal: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        """Create or verify an exchange."""
        ...

    def declare_queue(
        self,
        name: str,
        durable: bool,
        auto_delete: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        """Create or verify a (never exclusive) queue."""
        ...

    def bind_queue(
        self,
        queue: str,
        exchange: str,
        routing_key: str,
        arguments: dict[str, DecodedValue],
    ) -> None:
        """Bind *queue* to *exchange* with *routing_key*."""
        ...

    def close(self) -> None:
        """Release the session."""
        ...


class OperationKind(StrEnum):
    DECLARE_EXCHANGE = "declare-exchange"
    DECLARE_QUEUE = "declare-queue"
    BIND_QUEUE = "bind-queue"


@dataclass(frozen=True, slots=True)
class DeclareOperation:
    """One recorded session call."""

    kind: OperationKind
    target: str
    params: dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        if self.kind == OperationKind.BIND_QUEUE:
            return (
                f"bind {self.target} <- {self.params['exchange']} "
                f"[{self.params['routing_key']}]"
            )
        flags = [
            k for k in ("durable", "auto_delete", "internal") if self.params.get(k)
        ]
        detail = self.params.get("kind", "")
        suffix = f" ({', '.join(flags)})" if flags else ""
        return f"{self.kind} {self.target} {detail}".rstrip() + suffix


@dataclass
class DryRunSession:
    """Records every call instead of talking to a broker."""

    operations: list[DeclareOperation] = field(default_factory=list)
    closed: bool = False

    def declare_exchange(
        self,
        name: str,
        kind: str,
        durable: bool,
        auto_delete: bool,
        internal: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._record(
            DeclareOperation(
                OperationKind.DECLARE_EXCHANGE,
                name,
                {
                    "kind": str(kind),
                    "durable": durable,
                    "auto_delete": auto_delete,
                    "internal": internal,
                    "arguments": arguments,
                },
            )
        )

    def declare_queue(
        self,
        name: str,
        durable: bool,
        auto_delete: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._record(
            DeclareOperation(
                OperationKind.DECLARE_QUEUE,
                name,
                {
                    "durable": durable,
                    "auto_delete": auto_delete,
                    "arguments": arguments,
                },
            )
        )

    def bind_queue(
        self,
        queue: str,
        exchange: str,
        routing_key: str,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._record(
            DeclareOperation(
                OperationKind.BIND_QUEUE,
                queue,
                {
                    "exchange": exchange,
                    "routing_key": routing_key,
                    "arguments": arguments,
                },
            )
        )

    def close(self) -> None:
        self.closed = True

    def _record(self, op: DeclareOperation) -> None:
        if self.closed:
            msg = "session is closed"
            raise RuntimeError(msg)
        self.operations.append(op)
        logger.debug("dry_run.recorded", operation=op.kind.value, target=op.target)
