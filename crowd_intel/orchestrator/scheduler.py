"""
Crowd Scheduler
Runs the two periodic batch jobs of the engine:
- Refresh: recompute current readings for all active leaf places every few minutes
- Forecast: regenerate next-day forecasts for all active places once a day, off-peak
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from crowd_intel.config import settings
from crowd_intel.models.schemas import BatchSummary
from crowd_intel.services.aggregation import CrowdAggregationService
from crowd_intel.services.prediction import PredictionService
from crowd_intel.utils import utcnow

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "crowd_refresh_cycle"
FORECAST_JOB_ID = "crowd_forecast_cycle"


class CrowdScheduler:
    """
    Schedules and tracks the refresh and forecast batch jobs

    Both jobs are "continue on per-place failure": a bad place is counted in
    the job summary, and an unexpected job-level error is logged and recorded
    without stopping the scheduler.
    """

    def __init__(
        self,
        scheduler: AsyncIOScheduler,
        aggregation: CrowdAggregationService,
        prediction: PredictionService
    ):
        """
        Args:
            scheduler: APScheduler instance for managing scheduled tasks
            aggregation: Service used by the refresh job
            prediction: Service used by the forecast job
        """
        self.scheduler = scheduler
        self.aggregation = aggregation
        self.prediction = prediction

        self.last_refresh_time: Optional[datetime] = None
        self.last_forecast_time: Optional[datetime] = None
        self.last_refresh_summary: Optional[BatchSummary] = None
        self.last_forecast_summary: Optional[BatchSummary] = None
        self.last_refresh_error: Optional[str] = None
        self.last_forecast_error: Optional[str] = None
        self.refresh_in_progress = False
        self.forecast_in_progress = False

        logger.info("Crowd Scheduler initialized")

    async def run_refresh_cycle(self) -> Dict[str, Any]:
        """
        Refresh current readings for all active leaf places

        Returns:
            Job result with the batch summary
        """
        if self.refresh_in_progress:
            logger.warning("Refresh already in progress, skipping")
            return {"success": False, "reason": "Already in progress"}

        logger.info("Running refresh cycle")
        try:
            self.refresh_in_progress = True
            summary = await self.aggregation.refresh_all()
            self.last_refresh_summary = summary
            self.last_refresh_error = None
            return {"success": True, "job": "refresh", "summary": summary.model_dump(mode="json")}

        except Exception as e:
            logger.error(f"Refresh cycle failed: {e}", exc_info=True)
            self.last_refresh_error = str(e)
            return {"success": False, "job": "refresh", "error": str(e)}
        finally:
            self.last_refresh_time = utcnow()
            self.refresh_in_progress = False

    async def run_forecast_cycle(self) -> Dict[str, Any]:
        """
        Regenerate tomorrow's forecasts for all active places

        Returns:
            Job result with the batch summary
        """
        if self.forecast_in_progress:
            logger.warning("Forecast generation already in progress, skipping")
            return {"success": False, "reason": "Already in progress"}

        logger.info("Running forecast cycle")
        try:
            self.forecast_in_progress = True
            summary = await self.prediction.generate_daily_predictions()
            self.last_forecast_summary = summary
            self.last_forecast_error = None
            return {"success": True, "job": "forecast", "summary": summary.model_dump(mode="json")}

        except Exception as e:
            logger.error(f"Forecast cycle failed: {e}", exc_info=True)
            self.last_forecast_error = str(e)
            return {"success": False, "job": "forecast", "error": str(e)}
        finally:
            self.last_forecast_time = utcnow()
            self.forecast_in_progress = False

    def setup_scheduled_cycles(self):
        """Register both jobs on the scheduler"""
        logger.info("Setting up scheduled cycles")

        self.scheduler.add_job(
            self.run_refresh_cycle,
            trigger=IntervalTrigger(minutes=settings.refresh_interval_minutes),
            id=REFRESH_JOB_ID,
            replace_existing=True,
            max_instances=1,  # Prevent overlapping runs
            coalesce=True
        )
        logger.info(f"Scheduled refresh cycle every {settings.refresh_interval_minutes} minutes")

        self.scheduler.add_job(
            self.run_forecast_cycle,
            trigger=CronTrigger(hour=settings.forecast_cron_hour, minute=settings.forecast_cron_minute),
            id=FORECAST_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        logger.info(
            f"Scheduled forecast cycle daily at "
            f"{settings.forecast_cron_hour:02d}:{settings.forecast_cron_minute:02d}"
        )

    def get_status(self) -> Dict[str, Any]:
        """
        Current status of both jobs

        Returns:
            Last run time, last summary and in-progress flag per job
        """
        return {
            "scheduler": "Crowd Scheduler",
            "status": "running" if self.scheduler.running else "stopped",
            "jobs": {
                "refresh": {
                    "interval_minutes": settings.refresh_interval_minutes,
                    "last_run": self.last_refresh_time.isoformat() if self.last_refresh_time else None,
                    "last_summary": self.last_refresh_summary.model_dump(mode="json") if self.last_refresh_summary else None,
                    "last_error": self.last_refresh_error,
                    "in_progress": self.refresh_in_progress
                },
                "forecast": {
                    "cron": f"{settings.forecast_cron_hour:02d}:{settings.forecast_cron_minute:02d}",
                    "last_run": self.last_forecast_time.isoformat() if self.last_forecast_time else None,
                    "last_summary": self.last_forecast_summary.model_dump(mode="json") if self.last_forecast_summary else None,
                    "last_error": self.last_forecast_error,
                    "in_progress": self.forecast_in_progress
                }
            },
            "timestamp": utcnow().isoformat()
        }
