#!/usr/bin/env python3
"""
Main entry point for DevConnect
"""

import asyncio
import signal
import sys

from dotenv import load_dotenv
from loguru import logger

from devconnect.core.config import Settings, get_settings
from devconnect.core.diagnostics import configure_diagnostics


def configure_logging(settings: Settings) -> None:
    """Route loguru to stderr and, if configured, a rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    if settings.log_file:
        logger.add(settings.log_file, rotation="10 MB", level="DEBUG")


async def run() -> None:
    # Import must be done after logging setup
    from devconnect.connections import ConnectionEngine
    from devconnect.db.base import get_engine, get_session_factory, init_models
    from devconnect.health import start_health_server
    from devconnect.users import UserDirectory

    settings = get_settings()
    engine = get_engine()
    await init_models(engine)

    session_factory = get_session_factory()
    directory = UserDirectory(session_factory)
    connections = ConnectionEngine(session_factory, directory=directory)
    logger.info(f"Services ready: {type(directory).__name__}, {type(connections).__name__}")

    runner = await start_health_server(engine, settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig_name in ("SIGINT", "SIGTERM"):
        try:
            loop.add_signal_handler(getattr(signal, sig_name), stop.set)
        except NotImplementedError:
            # Signal handlers are unavailable on some platforms
            pass

    logger.info(f"{settings.app_name} {settings.app_version} started ({settings.environment})")
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down...")
        await runner.cleanup()
        await engine.dispose()


def main() -> None:
    if load_dotenv(override=False):
        logger.info(".env file loaded")
    get_settings.cache_clear()
    settings = get_settings()
    configure_logging(settings)
    configure_diagnostics()
    asyncio.run(run())


if __name__ == "__main__":
    main()
