"""
Yojana RAG — Pydantic Models for Training Runs
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrainingStage(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    PROCESSING = "processing"
    GENERATING_EXAMPLES = "generating_examples"
    INGESTING = "ingesting"
    VALIDATING = "validating"
    DONE = "done"
    FAILED = "failed"


class TrainingExample(BaseModel):
    """Synthetic query used to validate retrieval for one scheme."""
    query: str
    language: str
    expected_scheme_id: str
    category: str
    difficulty: str
    expected_response: str = ""


class QueryValidation(BaseModel):
    query: str
    result_count: int = 0
    mean_score: float = 0.0
    top_scheme_id: Optional[str] = None
    success: bool = False
    error: Optional[str] = None


class ValidationReport(BaseModel):
    total_queries: int = 0
    successful_retrievals: int = 0
    success_rate: float = 0.0
    average_relevance_score: float = 0.0
    response_time_ms: float = 0.0
    queries: list[QueryValidation] = Field(default_factory=list)


class IngestionError(BaseModel):
    """A record that could not be written to the index."""
    scheme_id: str
    error: str


class TrainingRun(BaseModel):
    """Metrics snapshot persisted after each completed pass."""
    model_config = ConfigDict(protected_namespaces=())

    total_schemes: int = 0
    training_examples_generated: int = 0
    validation_success_rate: float = 0.0
    average_relevance_score: float = 0.0
    response_time_ms: float = 0.0
    timestamp: str = Field(default_factory=utc_now_iso)

    model_version: str = "1.0.0"
    embedding_provider: str = ""
    embedding_dimension: int = 0
    vector_backend: str = ""
    ingested: int = 0
    ingestion_errors: int = 0
    validation: Optional[ValidationReport] = None

    @property
    def timestamp_dt(self) -> Optional[datetime]:
        try:
            parsed = datetime.fromisoformat(self.timestamp)
        except (TypeError, ValueError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class TrainingRunResult(BaseModel):
    success: bool = True
    skipped: bool = False
    message: str = ""
    run: Optional[TrainingRun] = None
    ingestion_errors: list[IngestionError] = Field(default_factory=list)


class SchedulerStatus(BaseModel):
    is_training: bool = False
    is_scheduled: bool = False
    last_run_timestamp: Optional[str] = None
    next_scheduled_timestamp: Optional[str] = None
    last_refresh_timestamp: Optional[str] = None
    jobs: list[dict[str, Any]] = Field(default_factory=list)
