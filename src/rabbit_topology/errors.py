"""Exception hierarchy for topology loading, argument decoding and provisioning."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class TopologyError(Exception):
    """Base class for every error raised by rabbit_topology."""


# -- Configuration -------------------------------------------------------------


class ConfigNotFoundError(TopologyError, FileNotFoundError):
    """Raised when the configuration source cannot be located."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        super().__init__(f"Config file not found: {self.path}")

    def __str__(self) -> str:
        return f"Config file not found: {self.path}"


class ConfigParseError(TopologyError, ValueError):
    """Raised when a document cannot be mapped onto the configuration shape."""

    def __init__(self, message: str, *, source: str | Path | None = None) -> None:
        self.source = source
        super().__init__(message)


# -- Arguments -----------------------------------------------------------------


class ArgumentError(TopologyError):
    """Base class for argument decoding failures."""

    def __init__(self, message: str, *, name: str | None, value: Any) -> None:
        self.name = name
        self.value = value
        super().__init__(message)


class MalformedArgumentError(ArgumentError, ValueError):
    """Raised when an argument value does not match its declared type."""

    def __init__(self, name: str | None, value: Any, reason: str) -> None:
        label = name if name is not None else "<list item>"
        super().__init__(
            f"Malformed argument '{label}' (value={value!r}): {reason}",
            name=name,
            value=value,
        )
        self.reason = reason


class UnknownArgumentTypeError(ArgumentError):
    """Raised when an argument carries a type tag the decoder does not know."""

    def __init__(self, name: str | None, type_tag: Any) -> None:
        label = name if name is not None else "<list item>"
        super().__init__(
            f"Unknown type {type_tag!r} for argument '{label}'",
            name=name,
            value=type_tag,
        )
        self.type_tag = type_tag


# -- Broker --------------------------------------------------------------------


class BrokerError(TopologyError):
    """Base class for failures reported by, or while talking to, the broker."""


class BrokerConnectionError(BrokerError):
    """Raised when a session cannot be established or drops mid-run."""

    def __init__(self, message: str, *, target: str | None = None) -> None:
        self.target = target
        super().__init__(message)


class BrokerOperationError(BrokerError):
    """Raised when the broker rejects a declare or bind operation."""

    def __init__(
        self,
        operation: str,
        entity: str,
        *,
        reply_code: int | None = None,
        reply_text: str = "",
    ) -> None:
        self.operation = operation
        self.entity = entity
        self.reply_code = reply_code
        self.reply_text = reply_text
        super().__init__(
            f"Broker rejected {operation} of '{entity}': {reply_code} {reply_text}"
        )


class BrokerDeclareConflictError(BrokerOperationError):
    """Raised when a declare conflicts with an existing same-named entity."""
