"""
Health check service for DevConnect
"""
import time
from datetime import datetime

from aiohttp import web
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncEngine

from devconnect.core.config import Settings, get_settings
from devconnect.core.diagnostics import get_diagnostics_report
from devconnect.db.base import check_database

ENGINE_KEY = web.AppKey("engine", AsyncEngine)
SETTINGS_KEY = web.AppKey("settings", Settings)
STARTED_AT_KEY = web.AppKey("started_at", float)


async def health_handler(request: web.Request) -> web.Response:
    """Report process and database health."""
    app = request.app
    settings = app[SETTINGS_KEY]

    db_ok = await check_database(app[ENGINE_KEY])
    overall_status = "ok" if db_ok else "degraded"
    uptime = time.monotonic() - app[STARTED_AT_KEY]

    result = {
        "status": overall_status,
        "timestamp": datetime.now().isoformat(),
        "uptime": f"{int(uptime)}s",
        "database": {
            "status": "connected" if db_ok else "disconnected",
        },
        "environment": settings.environment,
        "version": settings.app_version,
        "diagnostics": get_diagnostics_report(),
    }

    if not db_ok:
        logger.warning("Health check degraded: database unreachable")
    status_code = 200 if db_ok else 503
    return web.json_response(result, status=status_code)


def create_health_app(engine: AsyncEngine, settings: Settings | None = None) -> web.Application:
    app = web.Application()
    app[ENGINE_KEY] = engine
    app[SETTINGS_KEY] = settings or get_settings()
    app[STARTED_AT_KEY] = time.monotonic()
    app.router.add_get("/health", health_handler)
    return app


async def start_health_server(engine: AsyncEngine, settings: Settings | None = None) -> web.AppRunner:
    """Start the health check server"""
    settings = settings or get_settings()
    app = create_health_app(engine, settings)

    logger.info(f"Starting health check server on {settings.health_host}:{settings.health_port}")
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.health_host, settings.health_port)
    await site.start()
    return runner
