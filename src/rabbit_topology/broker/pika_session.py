"""RabbitMQ broker session over a pika BlockingConnection."""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import urlsplit, urlunsplit

import pika
import pika.exceptions
import structlog
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from rabbit_topology.config.models import BrokerConfig
from rabbit_topology.errors import (
    BrokerConnectionError,
    BrokerDeclareConflictError,
    BrokerOperationError,
)
from rabbit_topology.topology.arguments import DecodedValue

logger = structlog.get_logger()

# AMQP reply code for a declare whose parameters differ from the existing entity
PRECONDITION_FAILED = 406


def redact_url(url: str) -> str:
    """Mask the password in an AMQP URI for logs and error messages."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    netloc = f"{parts.username}:***@{host}"
    return urlunsplit(parts._replace(netloc=netloc))


class PikaBrokerSession:
    """Declares exchanges, queues and bindings on one channel of a connection."""

    def __init__(self, connection: pika.BlockingConnection) -> None:
        self._connection = connection
        self._channel = connection.channel()

    def __enter__(self) -> PikaBrokerSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- Declarations ----------------------------------------------------------

    def declare_exchange(
        self,
        name: str,
        kind: str,
        durable: bool,
        auto_delete: bool,
        internal: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._call(
            "exchange-declare",
            name,
            lambda: self._channel.exchange_declare(
                exchange=name,
                exchange_type=str(kind),
                durable=durable,
                auto_delete=auto_delete,
                internal=internal,
                arguments=arguments,
            ),
        )

    def declare_queue(
        self,
        name: str,
        durable: bool,
        auto_delete: bool,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._call(
            "queue-declare",
            name,
            lambda: self._channel.queue_declare(
                queue=name,
                durable=durable,
                exclusive=False,
                auto_delete=auto_delete,
                arguments=arguments,
            ),
        )

    def bind_queue(
        self,
        queue: str,
        exchange: str,
        routing_key: str,
        arguments: dict[str, DecodedValue],
    ) -> None:
        self._call(
            "queue-bind",
            f"{queue} <- {exchange}",
            lambda: self._channel.queue_bind(
                queue=queue,
                exchange=exchange,
                routing_key=routing_key,
                arguments=arguments,
            ),
        )

    def close(self) -> None:
        if not self._connection.is_open:
            return
        try:
            self._connection.close()
        except pika.exceptions.AMQPError as exc:
            msg = f"Failed to close broker connection: {exc!r}"
            raise BrokerConnectionError(msg) from exc
        logger.info("broker.closed")

    def _call(self, operation: str, entity: str, fn: Callable[[], object]) -> None:
        """Run one channel method, translating pika failures."""
        try:
            fn()
        except pika.exceptions.ChannelClosedByBroker as exc:
            error_cls = (
                BrokerDeclareConflictError
                if exc.reply_code == PRECONDITION_FAILED
                else BrokerOperationError
            )
            raise error_cls(
                operation,
                entity,
                reply_code=exc.reply_code,
                reply_text=exc.reply_text,
            ) from exc
        except pika.exceptions.AMQPChannelError as exc:
            raise BrokerOperationError(
                operation, entity, reply_text=repr(exc)
            ) from exc
        except pika.exceptions.AMQPConnectionError as exc:
            msg = f"Connection lost during {operation} of '{entity}': {exc!r}"
            raise BrokerConnectionError(msg) from exc


# -- Connection ----------------------------------------------------------------


def connection_parameters(url: str, config: BrokerConfig) -> pika.URLParameters:
    """Build pika parameters from an AMQP URI plus connection settings."""
    try:
        params = pika.URLParameters(url)
    except ValueError as exc:
        msg = f"Invalid broker URL {redact_url(url)}: {exc}"
        raise BrokerConnectionError(msg, target=redact_url(url)) from exc
    params.client_properties = {"connection_name": config.client_name}
    params.socket_timeout = config.socket_timeout_seconds
    if config.heartbeat_seconds is not None:
        params.heartbeat = config.heartbeat_seconds
    if config.blocked_connection_timeout_seconds is not None:
        params.blocked_connection_timeout = config.blocked_connection_timeout_seconds
    return params


def _log_retry(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome is not None else None
    logger.warning(
        "broker.connect_retry",
        attempt=state.attempt_number,
        error=repr(exc),
    )


def connect(
    url: str | None = None, config: BrokerConfig | None = None
) -> PikaBrokerSession:
    """Open a connection and return a session on a fresh channel.

    Only establishing the connection is retried; declarations never are.
    """
    config = config or BrokerConfig()
    target = url or config.url.get_secret_value()
    safe_target = redact_url(target)
    params = connection_parameters(target, config)

    retrying = Retrying(
        retry=retry_if_exception_type(pika.exceptions.AMQPConnectionError),
        stop=stop_after_attempt(config.retry.max_attempts),
        wait=wait_exponential(
            multiplier=config.retry.initial_wait_seconds,
            exp_base=config.retry.multiplier,
            max=config.retry.max_wait_seconds,
        ),
        before_sleep=_log_retry,
        reraise=True,
    )
    try:
        connection = retrying(pika.BlockingConnection, params)
        try:
            session = PikaBrokerSession(connection)
        except pika.exceptions.AMQPError:
            if connection.is_open:
                connection.close()
            raise
    except pika.exceptions.AMQPError as exc:
        msg = f"Cannot connect to broker at {safe_target}: {exc!r}"
        raise BrokerConnectionError(msg, target=safe_target) from exc
    logger.info("broker.connected", target=safe_target)
    return session
