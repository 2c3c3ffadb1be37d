"""Tests for worker background tasks and cron job registration."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from app.core import database as db_module
from app.models.idempotency_record import IdempotencyRecord
from app.repositories.idempotency_repository import IdempotencyRepository
from app.worker import WorkerSettings, purge_idempotency_records_task


class TestPurgeIdempotencyRecordsTask:
    @pytest.mark.asyncio
    async def test_purges_only_expired_records(self, db_session):
        repo = IdempotencyRepository(db_session)
        stale = repo.create(
            idempotency_key="stale",
            request_method="POST",
            request_path="/v1/bookings/x/payments",
        )
        stale.created_at = datetime.now(UTC) - timedelta(hours=48)  # type: ignore[assignment]
        db_session.commit()
        repo.create(
            idempotency_key="fresh",
            request_method="POST",
            request_path="/v1/bookings/x/payments",
        )

        with patch("app.worker.SessionLocal", db_module.SessionLocal):
            result = await purge_idempotency_records_task({})

        assert result == 1
        db_session.expire_all()
        keys = [r.idempotency_key for r in db_session.query(IdempotencyRecord).all()]
        assert keys == ["fresh"]

    @pytest.mark.asyncio
    async def test_uses_configured_window(self):
        mock_repo = MagicMock()
        mock_repo.delete_expired.return_value = 0

        with (
            patch("app.worker.IdempotencyRepository", return_value=mock_repo),
            patch("app.worker.settings") as mock_settings,
        ):
            mock_settings.IDEMPOTENCY_TTL_HOURS = 6
            result = await purge_idempotency_records_task({})

        assert result == 0
        mock_repo.delete_expired.assert_called_once_with(max_age_hours=6)


class TestWorkerSettings:
    def test_task_registered(self):
        assert purge_idempotency_records_task in WorkerSettings.functions

    def test_cron_job_registered(self):
        names = [job.name for job in WorkerSettings.cron_jobs]
        assert any("purge_idempotency_records_task" in name for name in names)
