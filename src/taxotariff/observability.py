"""Request-scoped observability helpers."""

from __future__ import annotations

import json
import logging
import uuid
from contextvars import ContextVar
from typing import Optional

logger = logging.getLogger(__name__)

_run_id_ctx: ContextVar[Optional[str]] = ContextVar("run_id", default=None)

LOG_FORMAT = "[%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install a basic handler for CLI and server entrypoints."""

    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def new_run_id() -> str:
    """Generate a new run identifier for correlating logs."""

    value = str(uuid.uuid4())
    _run_id_ctx.set(value)
    return value


def bind_run_id(value: Optional[str]) -> ContextVar.Token | None:
    """Bind a run_id for the current context and return the reset token."""

    if value is None:
        return None
    return _run_id_ctx.set(value)


def reset_run_id(token: Optional[ContextVar.Token]) -> None:
    if token is None:
        return
    _run_id_ctx.reset(token)


def current_run_id() -> Optional[str]:
    """Return the active run_id if set."""

    return _run_id_ctx.get()


def redact_secret(raw: Optional[str]) -> str:
    """Return a redacted representation of a credential for safe logging."""

    if not raw:
        return "<missing>"
    if len(raw) <= 3:
        return "***"
    return f"{raw[:4]}***"


def log_event(message: str, **extra: object) -> None:
    """Log an event with the active run_id automatically attached.

    The payload is rendered into the message as compact JSON and also kept on
    the record as ``payload`` for structured handlers.
    """

    payload = {"run_id": current_run_id(), **extra}
    rendered = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    logger.info("%s %s", message, rendered, extra={"payload": payload})
