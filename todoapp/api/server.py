"""Uvicorn entrypoint for running the API server."""

from __future__ import annotations

import argparse
import logging

import uvicorn

from todoapp.config.logging_config import setup_logging
from todoapp.config.settings import ConfigurationError, get_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the Todo API server.")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address.")
    parser.add_argument("--port", type=int, default=8000, help="Bind port.")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload.")
    parser.add_argument("--log-level", default="INFO", help="Application log level.")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    logger = logging.getLogger(__name__)

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        setup_logging(level=args.log_level)
        logger.error("Invalid configuration: %s", exc)
        return 2

    setup_logging(log_dir=settings.logs_dir, level=args.log_level)
    logger.info("Starting API server on %s:%d", args.host, args.port)
    uvicorn.run(
        "todoapp.api.app:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
