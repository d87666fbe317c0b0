"""
Run the chat server.

    python -m conversational_orchestrator

Configuration comes from secret files and environment variables, see
'conversational_orchestrator.config'.
"""

import sys

import uvicorn
from loguru import logger

from conversational_orchestrator.api.server import build_app
from conversational_orchestrator.config import load_settings


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run(build_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
