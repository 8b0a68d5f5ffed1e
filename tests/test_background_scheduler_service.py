"""
Tests for the background scheduler wiring.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from thundercloud.services.background_scheduler_service import (
    CLEANUP_JOB_ID,
    DETECT_JOB_ID,
    REFRESH_JOB_ID,
    BackgroundSchedulerService,
)


@pytest.fixture
def monitoring_service():
    service = MagicMock()
    service.refresh_cache = AsyncMock(return_value={"observers": 0})
    service.detect_and_notify = AsyncMock(return_value={"observers": 0})
    service.cleanup_cache = AsyncMock(return_value=0)
    return service


@pytest.fixture
def scheduler_service(monitoring_service, test_settings):
    return BackgroundSchedulerService(monitoring_service, test_settings)


class TestBackgroundSchedulerService:

    def test_not_running_before_start(self, scheduler_service):
        status = scheduler_service.get_scheduler_status()
        assert status["running"] is False

    @pytest.mark.asyncio
    async def test_start_registers_jobs(self, scheduler_service):
        assert scheduler_service.start() is True
        try:
            scheduler = scheduler_service.scheduler
            refresh = scheduler.get_job(REFRESH_JOB_ID)
            detect = scheduler.get_job(DETECT_JOB_ID)
            cleanup = scheduler.get_job(CLEANUP_JOB_ID)

            assert isinstance(refresh.trigger, IntervalTrigger)
            assert refresh.trigger.interval == timedelta(minutes=5)
            assert detect.trigger.interval == timedelta(minutes=5)
            assert isinstance(cleanup.trigger, CronTrigger)
            assert str(cleanup.trigger.timezone) == "Asia/Tokyo"
            assert "hour='3'" in str(cleanup.trigger)

            status = scheduler_service.get_scheduler_status()
            assert status["running"] is True
            assert {job["id"] for job in status["jobs"]} == {REFRESH_JOB_ID, DETECT_JOB_ID, CLEANUP_JOB_ID}
        finally:
            scheduler_service.stop()

    @pytest.mark.asyncio
    async def test_job_defaults(self, scheduler_service):
        scheduler_service.start()
        try:
            job = scheduler_service.scheduler.get_job(REFRESH_JOB_ID)
            assert job.coalesce is True
            assert job.max_instances == 1
            assert job.misfire_grace_time == 60
        finally:
            scheduler_service.stop()

    @pytest.mark.asyncio
    async def test_jobs_delegate(self, scheduler_service, monitoring_service):
        await scheduler_service.refresh_cache_job()
        await scheduler_service.detect_and_notify_job()
        await scheduler_service.cleanup_cache_job()

        monitoring_service.refresh_cache.assert_awaited_once()
        monitoring_service.detect_and_notify.assert_awaited_once()
        monitoring_service.cleanup_cache.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_job_errors_are_contained(self, scheduler_service, monitoring_service):
        monitoring_service.detect_and_notify.side_effect = RuntimeError("boom")

        await scheduler_service.detect_and_notify_job()

    def test_stop_when_not_running(self, scheduler_service):
        scheduler_service.stop()
