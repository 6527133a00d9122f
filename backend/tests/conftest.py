import pytest

from yojana.config import get_settings
from yojana.core.embedding_client import HashEmbeddingProvider
from yojana.core.vector_store import InMemoryVectorStore, VectorIndex
from yojana.models.scheme import SchemeRecord
from yojana.services.scraper.base_scraper import BaseScraper


class StubScraper(BaseScraper):
    """Source returning fixed raw dicts, or raising."""

    def __init__(self, name, schemes=None, error=None):
        super().__init__()
        self.name = name
        self.id_prefix = name.lower()
        self._schemes = schemes or []
        self._error = error
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self._error:
            raise self._error
        return [dict(s) for s in self._schemes]


PM_KISAN = {
    "id": "pm-kisan-samman-nidhi",
    "name": "PM Kisan Samman Nidhi",
    "nameHindi": "पीएम किसान सम्मान निधि",
    "category": "Agriculture",
    "objective": "Direct income support for every farmer family",
    "eligibility": ["Landholding farmer families"],
    "benefits": "6000 rupees per year",
    "tags": ["agriculture", "farmer", "income support"],
    "lastUpdated": "2024-01-15T00:00:00+00:00",
}

MERIT_SCHOLARSHIP = {
    "id": "nsp-merit-scholarship",
    "name": "Merit Scholarship Scheme",
    "category": "Education",
    "objective": "Financial assistance to meritorious students",
    "eligibility": ["Minimum 50% marks in previous examination"],
    "benefits": "10000 to 20000 per annum",
    "tags": ["education", "scholarship"],
    "lastUpdated": "2024-01-15T00:00:00+00:00",
}

HOUSING = {
    "id": "pmay-gramin",
    "name": "PM Awas Yojana Gramin",
    "category": "Housing",
    "objective": "Pucca house construction for houseless rural households",
    "benefits": "120000 rupees assistance",
    "tags": ["housing", "rural"],
    "lastUpdated": "2024-01-15T00:00:00+00:00",
}


@pytest.fixture
def settings(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("VECTOR_BACKEND", "memory")
    monkeypatch.setenv("EMBEDDING_PROVIDER", "hash")
    monkeypatch.setenv("EMBEDDING_DIMENSION", "384")
    monkeypatch.setenv("SCHEDULER_ENABLED", "false")
    monkeypatch.setenv("USE_LOCAL_DATA", "false")
    monkeypatch.delenv("LOCAL_DATA_PATH", raising=False)

    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def provider():
    return HashEmbeddingProvider(384)


@pytest.fixture
def index():
    return VectorIndex(InMemoryVectorStore(384), 384, batch_size=500)


@pytest.fixture
def scheme_factory():
    def make(scheme_id, name, category="General", **fields):
        return SchemeRecord(id=scheme_id, name=name, category=category, **fields)
    return make


@pytest.fixture
def stub_scraper():
    return StubScraper


@pytest.fixture
def sample_schemes():
    return [dict(PM_KISAN), dict(MERIT_SCHOLARSHIP), dict(HOUSING)]
