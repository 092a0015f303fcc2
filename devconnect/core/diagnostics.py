import functools
import logging
import time
from collections import Counter
from datetime import datetime

from devconnect.core.config import get_settings

# Separate stdlib channel so the tracer can be switched on without touching loguru sinks
logger = logging.getLogger("devconnect.diagnostics")

# Queries slower than this are logged at WARNING
SLOW_OPERATION_SECONDS = 0.5

metrics = {
    "db_operations": 0,
    "errors": 0,
    "last_db_operation_time": None,
    "by_operation": Counter(),
}


def diagnostics_enabled() -> bool:
    return get_settings().diagnostics_enabled


def configure_diagnostics():
    """Attach a stream handler to the diagnostics channel when DIAGNOSTICS is on."""
    if not diagnostics_enabled():
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "%(asctime)s | DIAG | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.info("Diagnostics enabled")


def reset_metrics():
    metrics["db_operations"] = 0
    metrics["errors"] = 0
    metrics["last_db_operation_time"] = None
    metrics["by_operation"] = Counter()


def _operation_name(func, args) -> str:
    # Repository methods are called as repo.method(session, ...)
    owner = type(args[0]).__name__ if args and not hasattr(args[0], "execute") else None
    return f"{owner}.{func.__name__}" if owner else func.__name__


def track_db(func):
    """Count and time a repository call. A no-op unless diagnostics are enabled."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        if not diagnostics_enabled():
            return await func(*args, **kwargs)

        name = _operation_name(func, args)
        metrics["db_operations"] += 1
        metrics["by_operation"][name] += 1
        metrics["last_db_operation_time"] = datetime.now().isoformat()

        started = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            metrics["errors"] += 1
            logger.error(f"{name} failed: {e!r}")
            raise

        elapsed = time.perf_counter() - started
        size = f" ({len(result)} rows)" if isinstance(result, (list, set)) else ""
        level = logging.WARNING if elapsed >= SLOW_OPERATION_SECONDS else logging.INFO
        logger.log(level, f"{name} took {elapsed * 1000:.1f}ms{size}")
        return result

    return wrapper


def get_diagnostics_report() -> dict:
    """Get a snapshot of the diagnostics counters."""
    return {
        "enabled": diagnostics_enabled(),
        "db_operations": metrics["db_operations"],
        "errors": metrics["errors"],
        "last_db_operation_time": metrics["last_db_operation_time"],
        "busiest_operations": dict(metrics["by_operation"].most_common(5)),
        "current_time": datetime.now().isoformat(),
    }
