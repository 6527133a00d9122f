"""
Yojana RAG — Training Orchestrator
Acquire → process → generate examples → ingest → validate → persist.

Each pass moves through the TrainingStage states. The dataset snapshot,
training examples and metrics (last) are written only when a pass reaches
DONE, so a failed pass leaves the previous results untouched.

Run one pass from the command line:
  python -m yojana.services.rag_trainer [--force] [--local PATH]
"""

import argparse
import asyncio
import time
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from yojana.config import Settings
from yojana.core.embedding_client import EmbeddingProvider
from yojana.core.errors import TrainingError
from yojana.core.vector_store import VectorIndex, embed_records
from yojana.models.scheme import SchemeRecord
from yojana.models.training import (
    IngestionError,
    QueryValidation,
    TrainingExample,
    TrainingRun,
    TrainingRunResult,
    TrainingStage,
    ValidationReport,
)
from yojana.services.data_acquisition import DataAcquisitionService
from yojana.services.retrieval_service import RetrievalService
from yojana.services.scheme_processing import process_scheme
from yojana.services.training_examples import generate_training_examples
from yojana.utils.file_store import read_json, write_json
from yojana.utils.logger import logger


RESULTS_FILE = "training_results.json"
EXAMPLES_FILE = "training_examples.json"

VALIDATION_QUERIES = [
    "What is PM Kisan scheme?",
    "Tell me about agriculture schemes",
    "How to apply for MGNREGA?",
    "What are the benefits of PMAY?",
]
VALIDATION_TOP_K = 3


class RAGTrainer:
    """Builds and refreshes the scheme index. The only writer of the index."""

    def __init__(
        self,
        settings: Settings,
        acquisition: DataAcquisitionService,
        provider: EmbeddingProvider,
        index: VectorIndex,
        retrieval: RetrievalService,
    ):
        self.settings = settings
        self.acquisition = acquisition
        self.provider = provider
        self.index = index
        self.retrieval = retrieval
        self.data_dir: Path = settings.data_path
        self.stage = TrainingStage.IDLE
        self.last_error: Optional[str] = None

    @property
    def results_file(self) -> Path:
        return self.data_dir / RESULTS_FILE

    @property
    def examples_file(self) -> Path:
        return self.data_dir / EXAMPLES_FILE

    def _set_stage(self, stage: TrainingStage) -> None:
        self.stage = stage
        logger.info(f"  ▶️ Stage: {stage.value}")

    # ══════════════════════════════════════════
    # Full pipeline
    # ══════════════════════════════════════════

    async def train(self, records: Optional[list[SchemeRecord]] = None) -> TrainingRunResult:
        """
        Run one full training pass. Raises TrainingError (with the original
        exception as __cause__) when the pass cannot complete.
        """
        logger.info("🚀 Starting RAG model training...")
        self.last_error = None

        try:
            # Step 1: Acquire
            self._set_stage(TrainingStage.ACQUIRING)
            schemes = list(records) if records is not None else await self.acquisition.fetch_all()
            if not schemes:
                raise TrainingError("No scheme records were acquired", stage=self.stage.value)

            # Step 2: Process
            self._set_stage(TrainingStage.PROCESSING)
            processed = [process_scheme(s) for s in schemes]
            high_priority = sum(1 for p in processed if p.priority >= 3)
            logger.info(f"🔧 Processed {len(processed)} schemes ({high_priority} high priority)")

            # Step 3: Training examples
            self._set_stage(TrainingStage.GENERATING_EXAMPLES)
            examples = generate_training_examples(schemes)
            logger.info(f"📝 Generated {len(examples)} training examples")

            # Step 4: Ingest
            self._set_stage(TrainingStage.INGESTING)
            ingested, ingestion_errors = await self._ingest(schemes)
            if ingested == 0:
                raise TrainingError("No schemes could be written to the vector index", stage=self.stage.value)

            # Step 5: Validate
            self._set_stage(TrainingStage.VALIDATING)
            report = await self.validate(VALIDATION_QUERIES)

            run = TrainingRun(
                total_schemes=len(schemes),
                training_examples_generated=len(examples),
                validation_success_rate=report.success_rate,
                average_relevance_score=report.average_relevance_score,
                response_time_ms=report.response_time_ms,
                model_version=self.settings.model_version,
                embedding_provider=self.provider.name,
                embedding_dimension=self.provider.dimension,
                vector_backend=self.index.backend_name,
                ingested=ingested,
                ingestion_errors=len(ingestion_errors),
                validation=report,
            )

            # Step 6: Persist, one write after the other. Metrics go last.
            self.acquisition.save_dataset(schemes)
            self._save_training_examples(examples)
            self._save_training_results(run)

        except TrainingError as e:
            self._fail(e)
            raise
        except Exception as e:
            self._fail(e)
            raise TrainingError(f"Training failed during {self.stage.value}: {e}", stage=self.stage.value) from e

        self.stage = TrainingStage.DONE
        logger.info(
            f"🎉 RAG model training completed: {run.ingested}/{run.total_schemes} schemes, "
            f"success rate {run.validation_success_rate:.0%}"
        )
        return TrainingRunResult(
            success=True,
            message="Training completed",
            run=run,
            ingestion_errors=ingestion_errors,
        )

    def _fail(self, error: Exception) -> None:
        failed_stage = self.stage.value
        self.stage = TrainingStage.FAILED
        self.last_error = str(error)
        logger.error(f"❌ RAG model training failed during {failed_stage}: {error}")

    async def _ingest(self, schemes: list[SchemeRecord]) -> tuple[int, list[IngestionError]]:
        """
        Batch upsert; entries of a failed chunk are retried one by one.
        Per-scheme failures are collected, not raised.
        """
        logger.info(f"🧠 Training vector database with {len(schemes)} schemes...")
        entries = await embed_records(self.provider, schemes, self.index.batch_size)
        report = await self.index.upsert_batch(entries)

        ingested = report.upserted
        errors: list[IngestionError] = []
        if report.errors:
            logger.warning(f"⚠️ {len(report.failed_ids)} schemes in failed batches, retrying one by one")
            by_id = {entry.id: entry for entry in entries}
            for scheme_id in report.failed_ids:
                entry = by_id[scheme_id]
                try:
                    await self.index.upsert(entry.id, entry.vector, entry.metadata, entry.document)
                    ingested += 1
                except Exception as e:
                    logger.error(f"❌ Failed to add scheme {scheme_id} to vector database: {e}")
                    errors.append(IngestionError(scheme_id=scheme_id, error=str(e)))

        logger.info(f"✅ Vector database training completed ({ingested}/{len(schemes)})")
        return ingested, errors

    # ══════════════════════════════════════════
    # Incremental
    # ══════════════════════════════════════════

    async def retrain(self) -> TrainingRunResult:
        """Full pass only when the fetched data differs from the last trained dataset."""
        logger.info("🔄 Starting model retraining...")
        try:
            fresh = await self.acquisition.fetch_all()
        except Exception as e:
            self._fail(e)
            raise TrainingError(f"Data acquisition failed: {e}", stage=TrainingStage.ACQUIRING.value) from e

        if not fresh:
            error = TrainingError("No scheme records were acquired", stage=TrainingStage.ACQUIRING.value)
            self.stage = TrainingStage.ACQUIRING
            self._fail(error)
            raise error

        existing = self.acquisition.load_dataset()
        if not self.has_data_changed(fresh, existing):
            logger.info("ℹ️ No data changes detected, skipping retraining")
            return TrainingRunResult(
                success=True,
                skipped=True,
                message="No retraining needed",
                run=self.get_training_stats(),
            )

        logger.info("📊 Data has changed, retraining model...")
        return await self.train(fresh)

    @staticmethod
    def has_data_changed(new: list[SchemeRecord], existing: list[SchemeRecord]) -> bool:
        if len(new) != len(existing):
            return True
        existing_by_id = {s.id: s for s in existing}
        for scheme in new:
            previous = existing_by_id.get(scheme.id)
            if previous is None or previous.last_updated != scheme.last_updated:
                return True
        return False

    async def upsert_scheme(self, record: SchemeRecord) -> None:
        """Admin create/update: embed and write a single scheme."""
        document = record.document_text()
        vector = await self.provider.embed(document)
        await self.index.upsert(record.id, vector, record.index_metadata(), document)
        logger.info(f"✅ Upserted scheme {record.id} into vector index")

    async def retire_scheme(self, scheme_id: str) -> None:
        await self.index.retire([scheme_id])

    # ══════════════════════════════════════════
    # Validation
    # ══════════════════════════════════════════

    async def validate(self, queries: list[str], k: int = VALIDATION_TOP_K) -> ValidationReport:
        logger.info("🔍 Validating training results...")
        report = ValidationReport(total_queries=len(queries))
        score_total = 0.0
        start = time.perf_counter()

        for query in queries:
            outcome = QueryValidation(query=query)
            try:
                hits = await self.retrieval.search(query, k)
            except Exception as e:
                logger.error(f"❌ Validation failed for query: {query} ({e})")
                outcome.error = str(e)
                hits = []

            if hits:
                outcome.success = True
                outcome.result_count = len(hits)
                outcome.mean_score = sum(h.score for h in hits) / len(hits)
                outcome.top_scheme_id = hits[0].id
                report.successful_retrievals += 1
                score_total += outcome.mean_score
            report.queries.append(outcome)

        report.response_time_ms = (time.perf_counter() - start) * 1000
        if queries:
            report.success_rate = report.successful_retrievals / len(queries)
            report.average_relevance_score = score_total / len(queries)

        logger.info(f"✅ Training validation completed ({report.successful_retrievals}/{len(queries)})")
        return report

    # ══════════════════════════════════════════
    # Persistence
    # ══════════════════════════════════════════

    def _save_training_results(self, run: TrainingRun) -> None:
        write_json(self.results_file, run.model_dump())
        logger.info("💾 Training results saved")

    def _save_training_examples(self, examples: list[TrainingExample]) -> None:
        write_json(self.examples_file, [e.model_dump() for e in examples])
        logger.info(f"💾 Saved {len(examples)} training examples")

    def get_training_stats(self) -> Optional[TrainingRun]:
        """Metrics of the last completed pass, or None."""
        data = read_json(self.results_file)
        if not isinstance(data, dict):
            return None
        try:
            return TrainingRun.model_validate(data)
        except ValidationError as e:
            logger.warning(f"⚠️ Ignoring unreadable training results: {e.error_count()} error(s)")
            return None

    def load_training_examples(
        self,
        category: Optional[str] = None,
        language: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[TrainingExample]:
        data = read_json(self.examples_file, default=[])
        if not isinstance(data, list):
            return []

        examples = []
        for item in data:
            try:
                example = TrainingExample.model_validate(item)
            except ValidationError:
                continue
            if category and example.category != category:
                continue
            if language and example.language != language:
                continue
            examples.append(example)

        return examples[:limit] if limit else examples


async def _run_cli(force: bool, local_path: Optional[str]) -> TrainingRunResult:
    from yojana.config import get_settings
    from yojana.services.container import ServiceContainer

    settings = get_settings()
    if local_path:
        settings = settings.model_copy(update={"use_local_data": True, "local_data_path": local_path})

    container = ServiceContainer(settings)
    await container.start(start_scheduler=False)
    try:
        if force:
            return await container.trainer.train()
        return await container.trainer.retrain()
    finally:
        await container.shutdown()


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run one Yojana RAG training pass")
    parser.add_argument("--force", action="store_true", help="train even if the data is unchanged")
    parser.add_argument("--local", metavar="PATH", help="train from a local JSON/CSV dataset")
    args = parser.parse_args(argv)

    try:
        result = asyncio.run(_run_cli(args.force, args.local))
    except TrainingError as e:
        logger.error(f"❌ {e}")
        return 1

    logger.info(f"📊 {result.message}")
    if result.run:
        logger.info(f"📊 Result: {result.run.model_dump_json(indent=2, exclude={'validation'})}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
