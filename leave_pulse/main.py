"""Entrypoints for running Leave Pulse via `python -m leave_pulse.main`."""

from __future__ import annotations

import logging
import os
import sys

import uvicorn

from .api import create_app
from .config import load_settings
from .mcp_server import create_mcp
from .service import build_service


def configure_logging() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "info").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )


def run() -> None:
    configure_logging()
    env_file = os.getenv("LEAVE_PULSE_ENV")
    settings = load_settings(env_file)
    app = create_app(service=build_service(settings))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info"),
    )


def run_mcp() -> None:
    configure_logging()
    settings = load_settings(os.getenv("LEAVE_PULSE_ENV"))
    create_mcp(build_service(settings)).run()


if __name__ == "__main__":  # pragma: no cover
    if sys.argv[1:] == ["mcp"]:
        run_mcp()
    else:
        run()
