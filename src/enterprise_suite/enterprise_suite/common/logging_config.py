"""Logging setup for the application.

All loggers live under the ``enterprise_suite`` prefix so one handler
configured here covers every module. Each record carries the tenant bound
for the current request or job (``-`` on the central domain).
"""
from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

_LOGGER_PREFIX = "enterprise_suite"
_FORMAT = "%(asctime)s %(levelname)s [%(tenant)s] %(name)s: %(message)s"

_current_tenant: ContextVar[Optional[str]] = ContextVar("log_tenant", default=None)


class TenantContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.tenant = _current_tenant.get() or "-"
        return True


def bind_tenant(tenant_id: Optional[str]):
    """Attach a tenant id to subsequent log records; returns a reset token."""
    return _current_tenant.set(tenant_id)


def unbind_tenant(token) -> None:
    _current_tenant.reset(token)


def get_logger(name: str) -> logging.Logger:
    marker = f"{_LOGGER_PREFIX}.{_LOGGER_PREFIX}."
    if marker in name:
        name = name.split(marker, 1)[1]
    if name.startswith(_LOGGER_PREFIX):
        return logging.getLogger(name)
    return logging.getLogger(f"{_LOGGER_PREFIX}.{name}")


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    root_logger = logging.getLogger(_LOGGER_PREFIX)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    root_logger.setLevel(level)

    if not any(getattr(h, "_enterprise_suite", False) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler.addFilter(TenantContextFilter())
        handler._enterprise_suite = True  # type: ignore[attr-defined]
        root_logger.addHandler(handler)

    return root_logger
