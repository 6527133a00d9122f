"""
Yojana RAG — Data Acquisition Service
Pulls scheme records from every configured source concurrently,
normalizes and de-duplicates them, and persists dataset snapshots.

Files in the data directory:
  scraped_schemes.json   — last trained dataset (camelCase records)
  scraping_metadata.json — totals / sources / categories of the last fetch
"""

import asyncio
from pathlib import Path
from typing import Optional

from yojana.config import Settings
from yojana.models.scheme import SchemeRecord
from yojana.models.training import utc_now_iso
from yojana.services.scraper.base_scraper import BaseScraper
from yojana.services.scraper.local_dataset import load_local_dataset
from yojana.services.scraper.portal_scraper import default_scrapers
from yojana.services.scraper.scheme_normalizer import dedupe_schemes, normalize_scheme
from yojana.utils.file_store import read_json, write_json
from yojana.utils.logger import logger


DATASET_FILE = "scraped_schemes.json"
METADATA_FILE = "scraping_metadata.json"


class DataAcquisitionService:
    """Fetches, cleans and stores government scheme records."""

    def __init__(self, settings: Settings, scrapers: Optional[list[BaseScraper]] = None):
        self.settings = settings
        self.scrapers = scrapers if scrapers is not None else default_scrapers(settings)
        self.data_dir: Path = settings.data_path

    @property
    def dataset_file(self) -> Path:
        return self.data_dir / DATASET_FILE

    @property
    def metadata_file(self) -> Path:
        return self.data_dir / METADATA_FILE

    # ══════════════════════════════════════════
    # Fetch
    # ══════════════════════════════════════════

    async def fetch_all(self) -> list[SchemeRecord]:
        """
        Merged, de-duplicated records from every source. A failing source
        contributes nothing. Nothing is written to disk here.
        """
        if self.settings.use_local_data:
            raw = load_local_dataset(self.settings.local_dataset_path)
            records = [normalize_scheme(item, default_source="Local Dataset") for item in raw]
        else:
            logger.info("🔄 Starting government scheme data fetching...")
            batches = await asyncio.gather(*(self._fetch_source(s) for s in self.scrapers))
            records = [record for batch in batches for record in batch]

        schemes = dedupe_schemes(r for r in records if r is not None)
        self._stamp_timestamps(schemes)
        logger.info(f"✅ Successfully fetched {len(schemes)} government schemes")
        return schemes

    async def _fetch_source(self, scraper: BaseScraper) -> list[Optional[SchemeRecord]]:
        try:
            raw = await scraper.fetch()
        except Exception as e:
            logger.error(f"❌ Source {scraper.name} failed: {e}")
            return []
        logger.info(f"  📦 {scraper.name}: {len(raw)} raw schemes")
        return [normalize_scheme(item, default_source=scraper.name) for item in raw]

    def _stamp_timestamps(self, schemes: list[SchemeRecord]) -> None:
        """Records without lastUpdated keep their previously stored timestamp."""
        missing = [s for s in schemes if not s.last_updated]
        if not missing:
            return
        previous = {s.id: s.last_updated for s in self.load_dataset() if s.last_updated}
        now = utc_now_iso()
        for scheme in missing:
            scheme.last_updated = previous.get(scheme.id, now)

    # ══════════════════════════════════════════
    # Persistence
    # ══════════════════════════════════════════

    def save_dataset(self, schemes: list[SchemeRecord]) -> None:
        write_json(self.dataset_file, [s.to_json() for s in schemes])
        logger.info(f"💾 Data saved to {self.dataset_file}")

    def load_dataset(self) -> list[SchemeRecord]:
        """Previously stored dataset; empty when none exists."""
        raw = read_json(self.dataset_file, default=[])
        if not isinstance(raw, list):
            return []
        schemes = []
        for item in raw:
            if isinstance(item, dict):
                scheme = normalize_scheme(item)
                if scheme:
                    schemes.append(scheme)
        return schemes

    def save_scraping_metadata(self, schemes: list[SchemeRecord]) -> dict:
        metadata = {
            "totalSchemes": len(schemes),
            "lastUpdated": utc_now_iso(),
            "sources": sorted({s.source for s in schemes}),
            "categories": sorted({s.category for s in schemes}),
        }
        write_json(self.metadata_file, metadata)
        logger.info(f"📊 Metadata saved to {self.metadata_file}")
        return metadata

    def get_scraping_stats(self) -> Optional[dict]:
        return read_json(self.metadata_file, default=None)

    def source_names(self) -> list[str]:
        return [s.name for s in self.scrapers]
