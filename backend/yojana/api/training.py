"""
Yojana RAG — Training API Router
Trigger training, inspect status, browse training examples and search the index.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from yojana.core.errors import TrainingError, TrainingInProgressError
from yojana.models.scheme import SchemeRecord
from yojana.services.container import ServiceContainer
from yojana.utils.logger import logger

router = APIRouter()


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


class TrainRequest(BaseModel):
    force_retrain: bool = False


class ValidateRequest(BaseModel):
    test_queries: list[str] = Field(..., min_length=1)


class ScheduleRequest(BaseModel):
    cron: str = Field(..., description="Five-field cron expression, e.g. '0 2 * * *'")


async def _run(container: ServiceContainer, force_retrain: bool):
    try:
        return await container.run_training(force_retrain=force_retrain)
    except TrainingInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except TrainingError as e:
        logger.error(f"❌ Training request failed: {e}")
        raise HTTPException(status_code=500, detail={"error": "Training failed", "stage": e.stage, "message": str(e)})


@router.post("/train")
async def train(body: TrainRequest = TrainRequest(), container: ServiceContainer = Depends(get_container)):
    """
    Full training pass. Without force_retrain a pass newer than
    max_training_age_hours is left as is.
    """
    if not body.force_retrain and not container.scheduler.training_overdue():
        last = container.trainer.get_training_stats()
        return {
            "success": True,
            "message": "Model was trained recently. Use force_retrain=true to retrain anyway.",
            "last_training": last.timestamp if last else None,
        }

    result = await _run(container, force_retrain=True)
    return {"success": True, "message": "RAG model training completed successfully", "results": result}


@router.post("/retrain")
async def retrain(container: ServiceContainer = Depends(get_container)):
    """Retrain only if the fetched data changed since the last pass."""
    result = await _run(container, force_retrain=False)
    return {"success": True, "message": result.message, "results": result}


@router.get("/status")
async def status(container: ServiceContainer = Depends(get_container)):
    return {
        "success": True,
        "data": {
            **container.get_status(),
            "scraping": container.acquisition.get_scraping_stats(),
            "stage": container.trainer.stage.value,
            "last_error": container.trainer.last_error,
        },
    }


@router.post("/fetch-data")
async def fetch_data(container: ServiceContainer = Depends(get_container)):
    """Fetch fresh scheme data without training."""
    schemes = await container.acquisition.fetch_all()
    metadata = container.acquisition.save_scraping_metadata(schemes)
    return {
        "success": True,
        "message": "Government scheme data fetched successfully",
        "data": {
            "total_schemes": len(schemes),
            "sources": metadata["sources"],
            "categories": metadata["categories"],
        },
    }


@router.get("/examples")
async def examples(
    limit: int = Query(50, ge=1, le=1000),
    category: Optional[str] = Query(None, description="general | eligibility | benefits | procedure | category"),
    language: Optional[str] = Query(None, description="en | hi | ta"),
    container: ServiceContainer = Depends(get_container),
):
    all_examples = container.trainer.load_training_examples()
    filtered = container.trainer.load_training_examples(category=category, language=language, limit=limit)
    return {
        "success": True,
        "data": {"examples": filtered, "total": len(all_examples), "filtered": len(filtered)},
    }


@router.post("/validate")
async def validate(body: ValidateRequest, container: ServiceContainer = Depends(get_container)):
    report = await container.trainer.validate(body.test_queries)
    return {"success": True, "data": report}


@router.get("/sources")
async def sources(container: ServiceContainer = Depends(get_container)):
    stats = container.acquisition.get_scraping_stats() or {}
    return {
        "success": True,
        "data": {
            "available_sources": [
                {"name": s.name, "id": s.id_prefix, "description": s.description, "status": "active"}
                for s in container.acquisition.scrapers
            ],
            "local_data": container.settings.use_local_data,
            "last_scraping": stats.get("lastUpdated"),
            "total_schemes": stats.get("totalSchemes", 0),
        },
    }


@router.get("/search")
async def search(
    q: str = Query(..., description="Search query"),
    k: int = Query(5, ge=1, le=50),
    container: ServiceContainer = Depends(get_container),
):
    hits = await container.search(q, k)
    return {"query": q, "results": hits}


@router.post("/schemes")
async def upsert_scheme(record: SchemeRecord, container: ServiceContainer = Depends(get_container)):
    """Admin create/update of a single scheme in the index."""
    await container.upsert(record)
    return {"success": True, "id": record.id}


@router.put("/schedule")
async def update_schedule(body: ScheduleRequest, container: ServiceContainer = Depends(get_container)):
    try:
        container.scheduler.update_training_schedule(body.cron)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid cron expression: {e}")
    return {"success": True, "cron": body.cron}
