"""Process-level entry point: load a topology document and provision it."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog

from rabbit_topology.broker.pika_session import connect
from rabbit_topology.config.loader import (
    DEFAULT_CONFIG_PATH,
    load_broker_config,
    load_topology_config,
)
from rabbit_topology.config.models import BrokerConfig, TopologyConfig
from rabbit_topology.errors import (
    ArgumentError,
    BrokerConnectionError,
    BrokerOperationError,
    ConfigNotFoundError,
    ConfigParseError,
)
from rabbit_topology.topology.provisioner import provision

logger = structlog.get_logger()


def configure(
    config_source: str | Path | TopologyConfig | None = None,
    connection_url: str | None = None,
    *,
    broker_config: BrokerConfig | None = None,
) -> dict[str, Any]:
    """Provision the broker from *config_source*.

    *config_source* is a path to a JSON/YAML document (``rabbit-config.json``
    when omitted) or an already-built :class:`TopologyConfig`.
    *connection_url* overrides the URL from *broker_config*, which itself
    defaults to the built-in settings (``RABBITMQ_URL``).

    Every failure is logged and re-raised; nothing already declared is undone.
    """
    source: str | Path = "<in-memory>"
    try:
        if isinstance(config_source, TopologyConfig):
            config = config_source
        else:
            source = config_source or DEFAULT_CONFIG_PATH
            config = load_topology_config(source)
        broker = broker_config or load_broker_config()
        session = connect(connection_url, broker)
        return provision(config, session)
    except ConfigNotFoundError as exc:
        logger.error("configure.config_not_found", path=str(exc.path))
        raise
    except ConfigParseError:
        logger.error("configure.config_invalid", source=str(source))
        raise
    except ArgumentError as exc:
        logger.error("configure.argument_invalid", argument=exc.name, value=exc.value)
        raise
    except BrokerOperationError as exc:
        logger.error(
            "configure.broker_rejected",
            operation=exc.operation,
            entity=exc.entity,
            reply_code=exc.reply_code,
            hint="check the topology document against existing broker entities",
        )
        raise
    except BrokerConnectionError as exc:
        logger.error("configure.broker_unreachable", error=str(exc))
        raise
    except Exception as exc:
        logger.error(
            "configure.failed", error_type=type(exc).__name__, error=str(exc)
        )
        raise
