"""Entrypoint: python -m relay_service"""
from __future__ import annotations

import logging

import uvicorn

from relay_service.api.middleware.correlation_id import CorrelationIdFilter
from relay_service.config import settings


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s [%(correlation_id)s]: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())


def main() -> None:
    _configure_logging()
    uvicorn.run(
        "relay_service.app:create_app",
        factory=True,
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
