"""ARQ worker for commerce service background tasks.

Schedules periodic tasks via ARQ cron jobs backed by Redis.
Run with: arq services.commerce_service.worker.WorkerSettings
"""

from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings
from libs.common.config import get_settings
from libs.common.logging import configure_logging, get_logger

logger = get_logger(__name__)


def get_redis_settings() -> RedisSettings:
    """Parse REDIS_URL from application settings into ARQ RedisSettings."""
    parsed = urlparse(get_settings().REDIS_URL)

    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or "0"),
        password=parsed.password,
        ssl=parsed.scheme == "rediss",
    )


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_sweep_expired_reservations(ctx: dict):
    """Release stock held by reservations past their TTL."""
    from services.commerce_service.tasks import sweep_expired_reservations

    logger.info("Running: sweep_expired_reservations")
    await sweep_expired_reservations()


async def startup(ctx: dict):
    configure_logging()


# ── Worker configuration ──


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()
    on_startup = startup

    functions = [task_sweep_expired_reservations]

    cron_jobs = [
        # Every 5 minutes
        cron(
            task_sweep_expired_reservations,
            minute={0, 5, 10, 15, 20, 25, 30, 35, 40, 45, 50, 55},
            run_at_startup=True,
        ),
    ]
