import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from yojana.core.errors import TrainingError, TrainingInProgressError
from yojana.models.training import TrainingRun, TrainingRunResult
from yojana.services.scheduler import REFRESH_JOB_ID, TRAINING_JOB_ID, TrainingScheduler


def _run(hours_ago: float) -> TrainingRun:
    timestamp = datetime.now(timezone.utc) - timedelta(hours=hours_ago)
    return TrainingRun(total_schemes=3, timestamp=timestamp.isoformat())


def _scheduler(settings, last_run=None):
    trainer = MagicMock()
    trainer.train = AsyncMock(return_value=TrainingRunResult(message="Training completed"))
    trainer.retrain = AsyncMock(return_value=TrainingRunResult(skipped=True, message="No retraining needed"))
    trainer.get_training_stats.return_value = last_run
    trainer.has_data_changed.return_value = False

    acquisition = MagicMock()
    acquisition.fetch_all = AsyncMock(return_value=[])
    acquisition.load_dataset.return_value = []

    return TrainingScheduler(trainer, acquisition, settings), trainer, acquisition


@pytest.mark.asyncio
async def test_scheduled_training_runs_full_pass_when_overdue(settings):
    scheduler, trainer, _ = _scheduler(settings, last_run=_run(hours_ago=30))

    await scheduler.scheduled_training()

    trainer.train.assert_awaited_once()
    trainer.retrain.assert_not_awaited()
    assert scheduler.is_training is False


@pytest.mark.asyncio
async def test_scheduled_training_retrains_when_recent(settings):
    scheduler, trainer, _ = _scheduler(settings, last_run=_run(hours_ago=2))

    await scheduler.scheduled_training()

    trainer.retrain.assert_awaited_once()
    trainer.train.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduled_training_skips_while_busy(settings):
    scheduler, trainer, _ = _scheduler(settings)
    scheduler.is_training = True

    assert await scheduler.scheduled_training() is None
    trainer.train.assert_not_awaited()
    trainer.retrain.assert_not_awaited()


@pytest.mark.asyncio
async def test_scheduled_training_failure_is_logged_and_flag_cleared(settings):
    scheduler, trainer, _ = _scheduler(settings)
    trainer.train.side_effect = TrainingError("boom", stage="ingesting")

    assert await scheduler.scheduled_training() is None
    assert scheduler.is_training is False


@pytest.mark.asyncio
async def test_force_train_raises_while_busy(settings):
    scheduler, _, _ = _scheduler(settings)
    scheduler.is_training = True

    with pytest.raises(TrainingInProgressError):
        await scheduler.force_train()
    with pytest.raises(TrainingInProgressError):
        await scheduler.run_training(force_retrain=False)


@pytest.mark.asyncio
async def test_only_one_of_two_concurrent_runs_proceeds(settings):
    scheduler, trainer, _ = _scheduler(settings)
    release = asyncio.Event()

    async def slow_train(*args, **kwargs):
        await release.wait()
        return TrainingRunResult(message="Training completed")

    trainer.train.side_effect = slow_train

    first = asyncio.create_task(scheduler.run_training(force_retrain=True))
    await asyncio.sleep(0)
    assert scheduler.is_training is True

    with pytest.raises(TrainingInProgressError):
        await scheduler.run_training(force_retrain=True)
    assert await scheduler.scheduled_training() is None

    release.set()
    result = await first
    assert result.message == "Training completed"
    assert trainer.train.await_count == 1
    assert scheduler.is_training is False


@pytest.mark.asyncio
async def test_run_training_without_force_uses_retrain(settings):
    scheduler, trainer, _ = _scheduler(settings)

    result = await scheduler.run_training()

    assert result.skipped
    trainer.retrain.assert_awaited_once()


@pytest.mark.asyncio
async def test_data_refresh_only_fetches_and_records_metadata(settings):
    scheduler, trainer, acquisition = _scheduler(settings)

    await scheduler.data_refresh()

    acquisition.fetch_all.assert_awaited_once()
    acquisition.save_scraping_metadata.assert_called_once_with([])
    trainer.train.assert_not_awaited()
    trainer.retrain.assert_not_awaited()
    assert scheduler.last_refresh_time is not None


@pytest.mark.asyncio
async def test_data_refresh_failure_is_swallowed(settings):
    scheduler, _, acquisition = _scheduler(settings)
    acquisition.fetch_all.side_effect = RuntimeError("all portals down")

    await scheduler.data_refresh()

    acquisition.save_scraping_metadata.assert_not_called()
    assert scheduler.last_refresh_time is None


def test_update_training_schedule(settings):
    scheduler, _, _ = _scheduler(settings)

    scheduler.update_training_schedule("30 3 * * 1")
    assert scheduler.training_cron == "30 3 * * 1"
    assert scheduler.scheduler.get_job(TRAINING_JOB_ID) is not None

    with pytest.raises(ValueError):
        scheduler.update_training_schedule("not a cron")
    assert scheduler.training_cron == "30 3 * * 1"


def test_training_overdue(settings):
    assert _scheduler(settings)[0].training_overdue()
    assert _scheduler(settings, last_run=_run(hours_ago=25))[0].training_overdue()
    assert not _scheduler(settings, last_run=_run(hours_ago=1))[0].training_overdue()


@pytest.mark.asyncio
async def test_start_registers_jobs_and_status_reports_them(settings):
    scheduler, _, _ = _scheduler(settings, last_run=_run(hours_ago=1))

    scheduler.start()
    try:
        status = scheduler.status()
        assert status.is_scheduled
        assert not status.is_training
        assert {job["id"] for job in status.jobs} == {TRAINING_JOB_ID, REFRESH_JOB_ID}
        assert status.next_scheduled_timestamp is not None
        assert status.last_run_timestamp is not None
        assert scheduler.get_status()["training"].total_schemes == 3
    finally:
        scheduler.stop()

    assert scheduler.status().is_scheduled is False
