import logging
from typing import Any

from arq import cron
from arq.connections import RedisSettings

from app.core.config import settings
from app.core.database import SessionLocal
from app.repositories.idempotency_repository import IdempotencyRepository

logger = logging.getLogger(__name__)

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def purge_idempotency_records_task(ctx: dict[str, Any]) -> int:
    """Background task: drop Idempotency-Key records older than the replay window.

    Runs hourly. Requests repeated after the window are treated as new.
    """
    db = SessionLocal()
    try:
        repo = IdempotencyRepository(db)
        count = repo.delete_expired(max_age_hours=settings.IDEMPOTENCY_TTL_HOURS)
        if count > 0:
            logger.info("Purged %d expired idempotency records", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [
        purge_idempotency_records_task,
    ]
    cron_jobs = [
        cron(purge_idempotency_records_task, minute={15}),  # hourly
    ]
    redis_settings = redis_settings
