"""Prometheus metrics for the supervisor.

Features:
- HTTP request metrics (latency, count, errors)
- Session status transitions and reconnect scheduling
- Chat log volume by kind
- Observer connections and fan-out evictions
"""

from fastapi import FastAPI
from prometheus_client import Counter, Gauge, Info
from prometheus_fastapi_instrumentator import Instrumentator, metrics


# =============================================================================
# Custom Metrics
# =============================================================================

APP_INFO = Info("botfleet_app", "Application information")

SESSION_TRANSITIONS = Counter(
    "botfleet_session_transitions_total",
    "Session status transitions",
    ["status"],  # connecting, online, reconnecting, offline, error
)

SESSIONS_REGISTERED = Gauge(
    "botfleet_sessions_registered",
    "Sessions currently tracked by the supervisor",
)

RECONNECTS_SCHEDULED = Counter(
    "botfleet_reconnects_scheduled_total",
    "Auto-reconnect timers started",
)

CHAT_EVENTS = Counter(
    "botfleet_chat_events_total",
    "Chat log records appended",
    ["kind"],  # chat, whisper, system
)

OBSERVERS_CONNECTED = Gauge(
    "botfleet_observers_connected",
    "Push channel observers currently attached",
)

OBSERVER_EVICTIONS = Counter(
    "botfleet_observer_evictions_total",
    "Observers dropped because their outbox overflowed",
)

WS_MESSAGES_RECEIVED = Counter(
    "botfleet_ws_messages_received_total",
    "Inbound push channel messages",
    ["message_type"],
)


# =============================================================================
# Instrumentator Setup
# =============================================================================

def setup_prometheus(app: FastAPI, app_version: str = "1.0.0") -> Instrumentator:
    """Instrument the app and expose ``/metrics``.

    Args:
        app: FastAPI application instance
        app_version: Application version string

    Returns:
        Configured Instrumentator instance
    """
    APP_INFO.info({
        "version": app_version,
        "app_name": "botfleet",
    })

    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/health", "/metrics"],
        inprogress_name="botfleet_http_requests_inprogress",
        inprogress_labels=True,
    )

    instrumentator.add(
        metrics.default(
            metric_namespace="botfleet",
            metric_subsystem="http",
            latency_highr_buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        )
    )

    instrumentator.instrument(app)
    instrumentator.expose(app, endpoint="/metrics", include_in_schema=True, tags=["Monitoring"])

    return instrumentator


# =============================================================================
# Metric Helper Functions
# =============================================================================

def record_transition(status: str) -> None:
    SESSION_TRANSITIONS.labels(status=status).inc()


def set_session_count(count: int) -> None:
    SESSIONS_REGISTERED.set(count)


def record_reconnect_scheduled() -> None:
    RECONNECTS_SCHEDULED.inc()


def record_chat_event(kind: str) -> None:
    CHAT_EVENTS.labels(kind=kind).inc()


def record_observer(connected: bool) -> None:
    """Record an observer attaching (True) or going away (False)."""
    if connected:
        OBSERVERS_CONNECTED.inc()
    else:
        OBSERVERS_CONNECTED.dec()


def record_observer_evicted() -> None:
    OBSERVER_EVICTIONS.inc()


def record_ws_message(message_type: str) -> None:
    WS_MESSAGES_RECEIVED.labels(message_type=message_type).inc()
