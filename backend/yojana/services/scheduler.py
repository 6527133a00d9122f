"""
Yojana RAG — Training Scheduler
2 jobs keep the index fresh:
  1. Scheduled training (daily 2 AM IST by default)
  2. Data refresh (every 6 hours), fetch only

At most one training pass runs at a time in this process. Scheduled runs
skip quietly when one is active; forced runs raise TrainingInProgressError.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from yojana.config import Settings
from yojana.core.errors import TrainingInProgressError
from yojana.models.training import SchedulerStatus, TrainingRunResult, utc_now_iso
from yojana.services.data_acquisition import DataAcquisitionService
from yojana.services.rag_trainer import RAGTrainer
from yojana.utils.logger import logger


TRAINING_JOB_ID = "scheduled_training"
REFRESH_JOB_ID = "data_refresh"
CATCH_UP_JOB_ID = "catch_up_training"


class TrainingScheduler:
    """Owns the APScheduler instance and the one-run-at-a-time flag."""

    def __init__(self, trainer: RAGTrainer, acquisition: DataAcquisitionService, settings: Settings):
        self.trainer = trainer
        self.acquisition = acquisition
        self.settings = settings
        self.training_cron = settings.training_cron
        self.scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone)
        self.is_training = False
        self.last_refresh_time: Optional[str] = None

    # ══════════════════════════════════════════
    # Mutual exclusion
    # ══════════════════════════════════════════

    def _try_begin(self) -> bool:
        # Check and set with no await in between.
        if self.is_training:
            return False
        self.is_training = True
        return True

    def _end(self) -> None:
        self.is_training = False

    def training_overdue(self) -> bool:
        last = self.trainer.get_training_stats()
        if last is None or last.timestamp_dt is None:
            return True
        age = datetime.now(timezone.utc) - last.timestamp_dt
        return age > timedelta(hours=self.settings.max_training_age_hours)

    # ══════════════════════════════════════════
    # JOB 1: Scheduled Training
    # ══════════════════════════════════════════

    async def scheduled_training(self) -> Optional[TrainingRunResult]:
        """Full pass when the last one is stale, otherwise a change-driven retrain."""
        if not self._try_begin():
            logger.warning("⚠️ Training already in progress, skipping scheduled training")
            return None

        try:
            logger.info("🕐 [Scheduler] Starting scheduled RAG model training...")
            if self.training_overdue():
                logger.info(f"⏰ Last training older than {self.settings.max_training_age_hours}h, running full training")
                result = await self.trainer.train()
            else:
                result = await self.trainer.retrain()
            logger.info(f"✅ Scheduled training finished: {result.message}")
            return result
        except Exception as e:
            logger.error(f"❌ Scheduled training failed: {e}")
            return None
        finally:
            self._end()

    # ══════════════════════════════════════════
    # JOB 2: Data Refresh
    # ══════════════════════════════════════════

    async def data_refresh(self) -> None:
        """Fetch fresh data and record scraping metadata. Never touches the index."""
        logger.info("📡 [Scheduler] Starting scheduled data fetch...")
        try:
            schemes = await self.acquisition.fetch_all()
            self.acquisition.save_scraping_metadata(schemes)
        except Exception as e:
            logger.error(f"❌ Scheduled data fetch failed: {e}")
            return

        self.last_refresh_time = utc_now_iso()
        if self.trainer.has_data_changed(schemes, self.acquisition.load_dataset()):
            logger.info("📊 Fetched data differs from the trained dataset, next training run will pick it up")
        logger.info(f"✅ Scheduled data fetch completed: {len(schemes)} schemes")

    # ══════════════════════════════════════════
    # Manual runs
    # ══════════════════════════════════════════

    async def force_train(self) -> TrainingRunResult:
        if not self._try_begin():
            raise TrainingInProgressError("Training already in progress")
        try:
            logger.info("🚀 Starting forced training...")
            return await self.trainer.train()
        finally:
            self._end()

    async def run_training(self, force_retrain: bool = False) -> TrainingRunResult:
        """force_retrain runs a full pass, otherwise only when data changed."""
        if force_retrain:
            return await self.force_train()
        if not self._try_begin():
            raise TrainingInProgressError("Training already in progress")
        try:
            return await self.trainer.retrain()
        finally:
            self._end()

    # ══════════════════════════════════════════
    # Lifecycle
    # ══════════════════════════════════════════

    def _training_trigger(self, cron_expression: str) -> CronTrigger:
        return CronTrigger.from_crontab(cron_expression, timezone=self.settings.scheduler_timezone)

    def start(self) -> None:
        if self.scheduler.running:
            return

        self.scheduler.add_job(
            self.scheduled_training,
            self._training_trigger(self.training_cron),
            id=TRAINING_JOB_ID,
            name="Scheduled RAG Training",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.data_refresh,
            IntervalTrigger(hours=self.settings.refresh_interval_hours),
            id=REFRESH_JOB_ID,
            name=f"Data Refresh ({self.settings.refresh_interval_hours}-hourly)",
            replace_existing=True,
        )

        # Resume after downtime
        if self.training_overdue():
            logger.info("⏰ Training is overdue, scheduling a catch-up run")
            self.scheduler.add_job(
                self.scheduled_training,
                "date",
                run_date=datetime.now(timezone.utc),
                id=CATCH_UP_JOB_ID,
                name="Catch-up Training",
                replace_existing=True,
            )

        self.scheduler.start()
        logger.info(
            "⏰ Scheduler started:\n"
            f"  🧠 Training: '{self.training_cron}' ({self.settings.scheduler_timezone})\n"
            f"  📡 Data refresh: every {self.settings.refresh_interval_hours} hours"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("⏹️ Scheduled training service stopped")

    def update_training_schedule(self, cron_expression: str) -> None:
        """Replace the training cron. Invalid expressions raise ValueError."""
        trigger = self._training_trigger(cron_expression)
        self.scheduler.add_job(
            self.scheduled_training,
            trigger,
            id=TRAINING_JOB_ID,
            name="Scheduled RAG Training",
            replace_existing=True,
        )
        self.training_cron = cron_expression
        logger.info(f"✅ Training schedule updated: {cron_expression}")

    # ══════════════════════════════════════════
    # Status
    # ══════════════════════════════════════════

    def status(self) -> SchedulerStatus:
        jobs = []
        next_training = None
        for job in self.scheduler.get_jobs():
            next_run = getattr(job, "next_run_time", None)
            jobs.append({
                "id": job.id,
                "name": job.name,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(job.trigger),
            })
            if job.id == TRAINING_JOB_ID and next_run:
                next_training = next_run.isoformat()

        last_run = self.trainer.get_training_stats()
        return SchedulerStatus(
            is_training=self.is_training,
            is_scheduled=self.scheduler.running and self.scheduler.get_job(TRAINING_JOB_ID) is not None,
            last_run_timestamp=last_run.timestamp if last_run else None,
            next_scheduled_timestamp=next_training,
            last_refresh_timestamp=self.last_refresh_time,
            jobs=jobs,
        )

    def get_status(self) -> dict:
        return {
            "training": self.trainer.get_training_stats(),
            "scheduling": self.status(),
        }
