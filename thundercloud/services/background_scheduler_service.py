"""
Background Scheduler Service

Runs the monitoring jobs on an in-process APScheduler.

Schedule:
  - Cache refresh: every 5 minutes (configurable)
  - Detect and notify: every 5 minutes (configurable)
  - Cache cleanup: daily at 03:00 local time in the quiet-hours timezone
"""

from typing import Any, Dict, Optional

from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from thundercloud.core.config import Settings, settings as default_settings
from thundercloud.core.logging import get_logger
from thundercloud.services.thunder_monitoring_service import ThunderMonitoringService

logger = get_logger(__name__)

REFRESH_JOB_ID = "thunder_cache_refresh"
DETECT_JOB_ID = "thunder_detect_and_notify"
CLEANUP_JOB_ID = "daily_cache_cleanup"


class BackgroundSchedulerService:
    """Service for scheduled monitoring operations."""

    def __init__(self, monitoring_service: ThunderMonitoringService, config: Optional[Settings] = None):
        """
        Initialize the scheduler service.

        Args:
            monitoring_service: Orchestrator whose jobs are scheduled
            config: Settings to read intervals and timezone from
        """
        self.monitoring_service = monitoring_service
        self.config = config or default_settings
        self.scheduler: Optional[AsyncIOScheduler] = None
        self._setup_scheduler()

    def _setup_scheduler(self):
        """Setup APScheduler for background jobs."""
        jobstores = {
            'default': MemoryJobStore()
        }
        executors = {
            'default': AsyncIOExecutor()
        }
        job_defaults = {
            'coalesce': True,  # Combine multiple pending executions
            'max_instances': 1,  # Only one instance at a time
            'misfire_grace_time': self.config.misfire_grace_time_seconds
        }

        self.scheduler = AsyncIOScheduler(
            jobstores=jobstores,
            executors=executors,
            job_defaults=job_defaults,
            timezone='UTC'
        )
        logger.info("APScheduler configured successfully")

    def _add_jobs(self):
        self.scheduler.add_job(
            func=self.refresh_cache_job,
            trigger=IntervalTrigger(minutes=self.config.refresh_interval_minutes),
            id=REFRESH_JOB_ID,
            name='Thunder Cloud Cache Refresh',
            replace_existing=True
        )

        self.scheduler.add_job(
            func=self.detect_and_notify_job,
            trigger=IntervalTrigger(minutes=self.config.detect_interval_minutes),
            id=DETECT_JOB_ID,
            name='Thunder Cloud Detection',
            replace_existing=True
        )

        self.scheduler.add_job(
            func=self.cleanup_cache_job,
            trigger=CronTrigger(
                hour=self.config.cleanup_hour,
                minute=self.config.cleanup_minute,
                timezone=self.config.quiet_hours_timezone
            ),
            id=CLEANUP_JOB_ID,
            name='Daily Weather Cache Cleanup',
            replace_existing=True
        )

    def start(self) -> bool:
        """Start the scheduler. Returns False if it could not be started."""
        if self.scheduler.running:
            logger.warning("Scheduler already running")
            return True

        try:
            self._add_jobs()
            self.scheduler.start()
        except Exception as e:
            logger.error(f"Failed to start background scheduler: {e}")
            return False

        logger.info("Background scheduler started")
        logger.info("Scheduled jobs:")
        logger.info(f"  - Cache refresh: every {self.config.refresh_interval_minutes} min")
        logger.info(f"  - Detect and notify: every {self.config.detect_interval_minutes} min")
        logger.info(
            f"  - Cache cleanup: {self.config.cleanup_hour:02d}:{self.config.cleanup_minute:02d} "
            f"{self.config.quiet_hours_timezone}"
        )
        return True

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler and self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Background scheduler stopped")

    async def refresh_cache_job(self):
        """Background job to refresh directional cache entries."""
        try:
            logger.info("Starting cache refresh job")
            await self.monitoring_service.refresh_cache()
        except Exception as e:
            logger.error(f"Error in cache refresh job: {e}")

    async def detect_and_notify_job(self):
        """Background job to detect thunder clouds and alert observers."""
        try:
            logger.info("Starting detection job")
            await self.monitoring_service.detect_and_notify()
        except Exception as e:
            logger.error(f"Error in detection job: {e}")

    async def cleanup_cache_job(self):
        """Background job to remove expired cache entries."""
        try:
            logger.info("Starting cache cleanup job")
            await self.monitoring_service.cleanup_cache()
        except Exception as e:
            logger.error(f"Error in cache cleanup job: {e}")

    def get_scheduler_status(self) -> Dict[str, Any]:
        """Get current scheduler status."""
        jobs = []
        for job in self.scheduler.get_jobs():
            jobs.append({
                'id': job.id,
                'name': job.name,
                'next_run_time': job.next_run_time.isoformat() if getattr(job, 'next_run_time', None) else None,
                'trigger': str(job.trigger)
            })

        return {
            'running': self.scheduler.running,
            'jobs': jobs
        }
