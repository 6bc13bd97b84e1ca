"""
Structured logging with PHI/PII protection.

Everything goes through structlog. Request context (request id, acting user)
is bound with structlog.contextvars by RequestContextMiddleware and the
authentication class, and merged into every event. Events are rendered by
structlog's ProcessorFormatter on the stdlib handlers configured in LOGGING,
so Django's own loggers share the same output.
"""
from __future__ import annotations

import structlog

# Fields that should never reach log output
SENSITIVE_FIELDS = {
    "password",
    "token",
    "access",
    "refresh",
    "secret",
    "api_key",
    "content",
    "message",
    "email",
    "phone",
    "to",
    "date_of_birth",
    "full_name",
    "ssn",
}

REDACTED = "[REDACTED]"


def _sanitize(value):
    if isinstance(value, dict):
        return {k: REDACTED if str(k).lower() in SENSITIVE_FIELDS else _sanitize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize(v) for v in value]
    return value


def redact_phi(logger, method_name, event_dict):
    """structlog processor: blank out sensitive keys, nested ones included."""
    for key in list(event_dict):
        if key == "event":
            continue
        if key.lower() in SENSITIVE_FIELDS:
            event_dict[key] = REDACTED
        else:
            event_dict[key] = _sanitize(event_dict[key])
    return event_dict


# Shared by structlog loggers and by foreign (stdlib) records through
# ProcessorFormatter.foreign_pre_chain.
SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.StackInfoRenderer(),
    redact_phi,
]


def configure_structlog(*, cache_loggers: bool = True) -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=cache_loggers,
    )


def formatter_config(*, json: bool) -> dict:
    """A LOGGING `formatters` entry rendering through structlog."""
    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)
    return {
        "()": structlog.stdlib.ProcessorFormatter,
        "processors": [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        "foreign_pre_chain": SHARED_PROCESSORS,
    }


def bind_request_context(*, request_id: str | None = None, actor_id=None) -> None:
    values = {}
    if request_id is not None:
        values["request_id"] = request_id
    if actor_id is not None:
        values["actor_id"] = str(actor_id)
    if values:
        structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()

