"""Shared logging configuration for the API, jobs and CLI."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from peakconditions.config.settings import settings

_CONFIGURED = False


class _ServiceNameFilter(logging.Filter):
    def __init__(self, service_name: str) -> None:
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self.service_name
        return True


def setup_logging(service_name: str | None = None, level: str | None = None) -> None:
    """Configure root logging with a JSON formatter and the service name."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    service = service_name or settings.service_name
    handler = logging.StreamHandler()
    handler.setFormatter(
        JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(service)s")
    )
    handler.addFilter(_ServiceNameFilter(service))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.captureWarnings(True)
    _CONFIGURED = True


__all__ = ["setup_logging"]
