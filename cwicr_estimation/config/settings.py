"""CWICR estimation configuration settings.

Loads configuration from environment variables with sensible defaults.
A local .env file is honoured for development (emulator hosts, service URLs).
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local configuration (service URLs, emulator flags, etc.)
load_dotenv()


def _optional_int(name: str) -> Optional[int]:
    """Read an optional integer environment variable."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Embedding generator
    embedding_service_url: str = field(default_factory=lambda: os.getenv("EMBEDDING_SERVICE_URL", "http://localhost:8001"))
    embedding_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("EMBEDDING_TIMEOUT_SECONDS", "5")))
    embedding_dimension: Optional[int] = field(default_factory=lambda: _optional_int("EMBEDDING_DIMENSION"))

    # Similarity backend (Qdrant)
    vector_store_url: str = field(default_factory=lambda: os.getenv("VECTOR_STORE_URL", "http://localhost:6333"))
    vector_store_api_key: Optional[str] = field(default_factory=lambda: os.getenv("VECTOR_STORE_API_KEY"), repr=False)
    vector_search_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("VECTOR_SEARCH_TIMEOUT_SECONDS", "10")))
    catalog_collection_en: str = field(default_factory=lambda: os.getenv("CATALOG_COLLECTION_EN", "ddc-cwicr-en"))
    catalog_collection_de: str = field(default_factory=lambda: os.getenv("CATALOG_COLLECTION_DE", "ddc-cwicr-de"))

    # Search
    search_cache_ttl_seconds: float = field(default_factory=lambda: float(os.getenv("SEARCH_CACHE_TTL_SECONDS", "3600")))
    default_language: str = field(default_factory=lambda: os.getenv("DEFAULT_LANGUAGE", "en"))
    default_region: str = field(default_factory=lambda: os.getenv("DEFAULT_REGION", "EE"))
    default_top_k: int = field(default_factory=lambda: int(os.getenv("DEFAULT_TOP_K", "5")))
    max_top_k: int = field(default_factory=lambda: int(os.getenv("MAX_TOP_K", "50")))

    # Estimation
    labor_rate_per_hour: float = field(default_factory=lambda: float(os.getenv("LABOR_RATE_PER_HOUR", "50")))
    estimate_concurrency: int = field(default_factory=lambda: int(os.getenv("ESTIMATE_CONCURRENCY", "8")))
    estimate_history_limit: int = field(default_factory=lambda: int(os.getenv("ESTIMATE_HISTORY_LIMIT", "20")))

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def collection_for_language(self, language: str) -> str:
        """Get the catalog collection holding work items for a language."""
        return self.catalog_collection_de if language == "de" else self.catalog_collection_en

    def validate(self) -> None:
        """Validate numeric settings are within range.

        Raises:
            ValueError: If a setting is out of range.
        """
        positive = {
            "EMBEDDING_TIMEOUT_SECONDS": self.embedding_timeout_seconds,
            "VECTOR_SEARCH_TIMEOUT_SECONDS": self.vector_search_timeout_seconds,
            "SEARCH_CACHE_TTL_SECONDS": self.search_cache_ttl_seconds,
            "DEFAULT_TOP_K": self.default_top_k,
            "MAX_TOP_K": self.max_top_k,
            "ESTIMATE_CONCURRENCY": self.estimate_concurrency,
            "ESTIMATE_HISTORY_LIMIT": self.estimate_history_limit,
        }
        for name, value in positive.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if self.labor_rate_per_hour < 0:
            raise ValueError(f"LABOR_RATE_PER_HOUR must not be negative, got {self.labor_rate_per_hour}")

        if self.embedding_dimension is not None and self.embedding_dimension <= 0:
            raise ValueError(f"EMBEDDING_DIMENSION must be positive, got {self.embedding_dimension}")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
