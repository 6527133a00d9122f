"""
Yojana RAG — Service Container
Builds the provider, index, retrieval, acquisition, trainer and scheduler
once per process and wires them together. Nothing else constructs them.
"""

from typing import Optional

from yojana.config import Settings, get_settings
from yojana.core.embedding_client import EmbeddingProvider, create_embedding_provider
from yojana.core.vector_store import VectorIndex, create_vector_index
from yojana.models.scheme import SchemeRecord, SearchHit
from yojana.models.training import TrainingRunResult
from yojana.services.data_acquisition import DataAcquisitionService
from yojana.services.rag_trainer import RAGTrainer
from yojana.services.retrieval_service import RetrievalService
from yojana.services.scheduler import TrainingScheduler
from yojana.services.scraper.base_scraper import BaseScraper
from yojana.utils.logger import logger


class ServiceContainer:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        provider: Optional[EmbeddingProvider] = None,
        index: Optional[VectorIndex] = None,
        scrapers: Optional[list[BaseScraper]] = None,
    ):
        self.settings = settings or get_settings()
        self.provider = provider or create_embedding_provider(self.settings)
        self.index = index or create_vector_index(self.settings)
        self.retrieval = RetrievalService(self.provider, self.index)
        self.acquisition = DataAcquisitionService(self.settings, scrapers)
        self.trainer = RAGTrainer(self.settings, self.acquisition, self.provider, self.index, self.retrieval)
        self.scheduler = TrainingScheduler(self.trainer, self.acquisition, self.settings)

    async def start(
        self,
        start_scheduler: bool = True,
        known_records: Optional[list[SchemeRecord]] = None,
    ) -> None:
        """
        Initialize the index (seeding it with the last trained dataset when
        empty) and start the scheduler. Configuration errors propagate.
        """
        await self.provider.warm_up()
        records = known_records if known_records is not None else self.acquisition.load_dataset()
        await self.index.initialize(self.provider, records)
        logger.info(
            f"🧠 Embeddings: {self.provider.name} ({self.provider.dimension}d) | "
            f"Index: {self.index.backend_name}{' (fallback)' if self.index.is_fallback else ''}"
        )

        if start_scheduler and self.settings.scheduler_enabled:
            self.scheduler.start()

    async def shutdown(self) -> None:
        self.scheduler.stop()

    # --- External interface ---

    async def search(self, query_text: str, k: int = 5) -> list[SearchHit]:
        return await self.retrieval.search(query_text, k)

    async def upsert(self, record: SchemeRecord) -> None:
        await self.trainer.upsert_scheme(record)

    async def run_training(self, force_retrain: bool = False) -> TrainingRunResult:
        return await self.scheduler.run_training(force_retrain)

    def get_status(self) -> dict:
        return self.scheduler.get_status()
