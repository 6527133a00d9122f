# Models module
from yojana.models.scheme import SchemeRecord, SearchHit, split_list_cell
from yojana.models.training import (
    TrainingStage, TrainingExample, TrainingRun, TrainingRunResult,
    IngestionError, QueryValidation, ValidationReport, SchedulerStatus,
)
