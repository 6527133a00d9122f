"""
Yojana RAG — Application Configuration
Retrieval & training core for the government scheme assistant.
All config from .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


BACKEND_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- App ---
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Embeddings ---
    embedding_provider: str = "hash"          # remote | local | hash
    embedding_dimension: int = 384
    embedding_model: str = "all-MiniLM-L6-v2"  # sentence-transformers model for "local"
    remote_embedding_url: str = "http://localhost:11434"
    remote_embedding_model: str = "nomic-embed-text"
    embedding_timeout_seconds: float = 10.0

    # --- Vector index ---
    vector_backend: str = "supabase"          # supabase | memory
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    vector_table: str = "scheme_vectors"
    vector_match_function: str = "match_scheme_vectors"
    batch_size: int = 500

    # --- Data acquisition ---
    data_dir: str = "data"
    use_local_data: bool = False
    local_data_path: str = ""
    source_timeout_seconds: float = 10.0
    scrape_timeout_seconds: float = 15.0

    # --- Scheduling ---
    training_cron: str = "0 2 * * *"
    scheduler_timezone: str = "Asia/Kolkata"
    refresh_interval_hours: int = 6
    max_training_age_hours: int = 24
    scheduler_enabled: bool = True

    model_version: str = "1.0.0"

    # --- Derived ---
    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def supabase_key(self) -> str:
        """Service role key for full DB access, anon key otherwise."""
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def has_supabase_config(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def data_path(self) -> Path:
        """Data directory; relative paths resolve against the backend root."""
        path = Path(self.data_dir)
        if not path.is_absolute():
            path = BACKEND_ROOT / path
        return path.resolve()

    @property
    def local_dataset_path(self) -> Path:
        """Local override dataset, tolerating quoted and Windows-style paths."""
        raw = self.local_data_path.strip().strip('"').strip("'")
        if not raw:
            return self.data_path / "scraped_schemes.json"
        return Path(raw.replace("\\", "/"))


@lru_cache()
def get_settings() -> Settings:
    """Cached singleton for application settings."""
    return Settings()
