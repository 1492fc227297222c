"""Resolve the configured protocol connector."""

from __future__ import annotations

import importlib
import logging

from botfleet.protocol.base import EventSink, ProtocolConnector, SessionHandle
from botfleet.supervisor.models import Credentials, Endpoint
from botfleet.utils.errors import TransportError

logger = logging.getLogger(__name__)


class UnavailableConnector:
    """Connector used when no protocol client is configured.

    Every dial fails, so sessions go through the normal error path.
    """

    async def connect(
        self,
        endpoint: Endpoint,
        credentials: Credentials,
        on_event: EventSink,
    ) -> SessionHandle:
        raise TransportError(
            "No protocol connector configured",
            details={"endpoint": str(endpoint)},
        )


def load_connector(path: str | None) -> ProtocolConnector:
    """Build a connector from a ``module:factory`` path.

    Args:
        path: Import path of a zero-argument callable returning a connector,
            or None for UnavailableConnector

    Raises:
        ValueError: If the path is malformed or does not resolve
    """
    if not path:
        logger.warning("[PROTOCOL] No connector configured, dials will fail")
        return UnavailableConnector()

    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"protocol_connector must be 'module:factory', got {path!r}")

    try:
        module = importlib.import_module(module_name)
        factory = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot load protocol connector {path!r}: {e}") from e

    connector = factory()
    if not isinstance(connector, ProtocolConnector):
        raise ValueError(f"{path!r} did not return a protocol connector")

    logger.info(f"[PROTOCOL] Using connector {type(connector).__name__} from {path}")
    return connector
