"""Decoding of typed argument trees into broker argument values.

Arguments arrive as text tagged with a type; the broker wants native values.
``decode_argument`` turns one :class:`Argument` into a ``str``, ``int``,
``bool`` or (for ``List``) a ``list`` of recursively decoded children.
Decoding never mutates its input, so the same tree can be decoded any number
of times.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from rabbit_topology.config.models import (
    Argument,
    ArgumentType,
    ExchangeArgument,
    QueueArgument,
)
from rabbit_topology.errors import MalformedArgumentError, UnknownArgumentTypeError

DecodedValue = str | int | bool | list["DecodedValue"]

_INTEGER = re.compile(r"^\s*[+-]?[0-9]+\s*$")

# Types the broker expects for well-known arguments.
EXPECTED_TYPES: dict[str, ArgumentType] = {
    ExchangeArgument.ALTERNATE_EXCHANGE: ArgumentType.STRING,
    QueueArgument.MESSAGE_TTL: ArgumentType.NUMBER,
    QueueArgument.EXPIRES: ArgumentType.NUMBER,
    QueueArgument.MAX_LENGTH: ArgumentType.NUMBER,
    QueueArgument.MAX_LENGTH_BYTES: ArgumentType.NUMBER,
    QueueArgument.DEAD_LETTER_EXCHANGE: ArgumentType.STRING,
    QueueArgument.DEAD_LETTER_ROUTING_KEY: ArgumentType.STRING,
    QueueArgument.MAX_PRIORITY: ArgumentType.NUMBER,
}


def _require_value(argument: Argument) -> str:
    if argument.value is None:
        raise MalformedArgumentError(
            argument.name, None, f"{argument.type} argument requires a value"
        )
    return argument.value


def _parse_number(argument: Argument) -> int:
    text = _require_value(argument)
    # int() alone would also take "1_000", which is not an integer literal here
    if not _INTEGER.match(text):
        raise MalformedArgumentError(argument.name, text, "not an integer")
    return int(text)


def _parse_boolean(argument: Argument) -> bool:
    text = _require_value(argument)
    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise MalformedArgumentError(argument.name, text, "expected 'true' or 'false'")


def _reject_items(argument: Argument) -> None:
    if argument.items:
        raise MalformedArgumentError(
            argument.name,
            argument.value,
            f"only List arguments may have items, not {argument.type}",
        )


def decode_argument(argument: Argument) -> DecodedValue:
    """Decode a single argument, recursing into ``List`` items in order."""
    arg_type = argument.type
    if arg_type == ArgumentType.LIST:
        if argument.value:
            raise MalformedArgumentError(
                argument.name,
                argument.value,
                "List arguments take their elements from 'items', not 'value'",
            )
        return [decode_argument(item) for item in argument.items]
    if arg_type == ArgumentType.STRING:
        _reject_items(argument)
        return _require_value(argument)
    if arg_type == ArgumentType.NUMBER:
        _reject_items(argument)
        return _parse_number(argument)
    if arg_type == ArgumentType.BOOLEAN:
        _reject_items(argument)
        return _parse_boolean(argument)
    raise UnknownArgumentTypeError(argument.name, arg_type)


def decode_arguments(arguments: Iterable[Argument]) -> dict[str, DecodedValue]:
    """Decode a top-level argument list into a name -> value mapping."""
    decoded: dict[str, DecodedValue] = {}
    for argument in arguments:
        if argument.name is None:
            raise MalformedArgumentError(None, argument.value, "argument has no name")
        decoded[argument.name] = decode_argument(argument)
    return decoded


def lint_arguments(arguments: Iterable[Argument]) -> list[str]:
    """Return warnings for well-known arguments declared with an unusual type."""
    warnings: list[str] = []
    for argument in arguments:
        if argument.name is None:
            continue
        expected = EXPECTED_TYPES.get(argument.name)
        if expected is not None and argument.type != expected:
            warnings.append(
                f"'{argument.name}' is usually {expected}, got {argument.type}"
            )
    return warnings
