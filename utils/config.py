"""
Configuration management.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional

from core.collaborators import SecurityLevel
from core.comparison.engine import DEFAULT_FIELD_WEIGHTS, EngineOptions


def _load_weights() -> dict:
    """Similarity weights from SIMILARITY_WEIGHTS (JSON object), else defaults."""
    raw = os.getenv("SIMILARITY_WEIGHTS")
    if not raw:
        return dict(DEFAULT_FIELD_WEIGHTS)
    weights = json.loads(raw)
    if not isinstance(weights, dict):
        raise ValueError("SIMILARITY_WEIGHTS must be a JSON object")
    return {str(k): float(v) for k, v in weights.items()}


@dataclass
class Config:
    """
    Application configuration.

    Loads from environment variables with sensible defaults.
    """

    # Server
    host: str = field(default_factory=lambda: os.getenv("HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Property data
    property_provider: str = field(default_factory=lambda: os.getenv("PROPERTY_PROVIDER", "mock"))
    property_api_url: str = field(default_factory=lambda: os.getenv("PROPERTY_API_URL", ""))
    property_api_token: Optional[str] = field(default_factory=lambda: os.getenv("PROPERTY_API_TOKEN"))
    request_timeout: int = field(default_factory=lambda: int(os.getenv("REQUEST_TIMEOUT", "30")))

    # Storage
    storage_backend: str = field(default_factory=lambda: os.getenv("STORAGE_BACKEND", "memory"))
    data_dir: str = field(default_factory=lambda: os.getenv("DATA_DIR", "./data"))
    security_level: str = field(default_factory=lambda: os.getenv("SECURITY_LEVEL", "medium"))

    # Cache
    cache_max_bytes: int = field(
        default_factory=lambda: int(os.getenv("CACHE_MAX_BYTES", str(10 * 1024 * 1024)))
    )
    cache_expiration_ms: int = field(
        default_factory=lambda: int(os.getenv("CACHE_EXPIRATION_MS", str(24 * 60 * 60 * 1000)))
    )
    single_flight: bool = field(
        default_factory=lambda: os.getenv("SINGLE_FLIGHT", "false").lower() == "true"
    )

    # Scoring
    similarity_weights: dict = field(default_factory=_load_weights)

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from environment."""
        return cls()

    @property
    def storage_path(self) -> str:
        return os.path.join(self.data_dir, "comparison_store.json")

    def engine_options(self) -> EngineOptions:
        """Engine-facing subset of the configuration."""
        return EngineOptions(
            max_cache_size=self.cache_max_bytes,
            default_cache_expiration_ms=self.cache_expiration_ms,
            field_weights=dict(self.similarity_weights),
            single_flight=self.single_flight,
            security_level=SecurityLevel(self.security_level.lower()),
        )

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return {
            "host": self.host,
            "port": self.port,
            "debug": self.debug,
            "log_level": self.log_level,
            "property_provider": self.property_provider,
            "property_api_url": self.property_api_url,
            "request_timeout": self.request_timeout,
            "storage_backend": self.storage_backend,
            "data_dir": self.data_dir,
            "security_level": self.security_level,
            "cache_max_bytes": self.cache_max_bytes,
            "cache_expiration_ms": self.cache_expiration_ms,
            "single_flight": self.single_flight,
            "similarity_weights": dict(self.similarity_weights),
        }
