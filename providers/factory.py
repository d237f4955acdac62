"""
Engine assembly from configuration.
"""

import logging
from typing import Optional

from core.comparison.engine import ComparisonEngine
from core.storage import InMemorySecureStorage, JsonFileSecureStorage
from utils.config import Config

from .finder import PoolComparableFinder
from .http import HttpComparableFinder, HttpPropertyClient, HttpPropertyProvider
from .mock import MockPropertyProvider


logger = logging.getLogger(__name__)


def build_engine(config: Optional[Config] = None) -> ComparisonEngine:
    """
    Construct the comparison engine with collaborators chosen by config.

    PROPERTY_PROVIDER:
    - "mock": synthesised properties, candidate pool of mock properties
    - "http": property API at PROPERTY_API_URL

    STORAGE_BACKEND:
    - "memory": process-local
    - "file": JSON file under DATA_DIR
    """
    config = config or Config.load()

    if config.property_provider == "http":
        if not config.property_api_url:
            raise ValueError("PROPERTY_API_URL is required for the http provider")
        client = HttpPropertyClient(
            config.property_api_url,
            timeout=config.request_timeout,
            api_token=config.property_api_token,
        )
        provider = HttpPropertyProvider(client)
        finder = HttpComparableFinder(client)
    elif config.property_provider == "mock":
        provider = MockPropertyProvider()
        pool = [provider.generate_snapshot(f"property_{n}") for n in range(1, 41)]
        finder = PoolComparableFinder(provider, pool)
    else:
        raise ValueError(f"Unknown property provider: {config.property_provider}")

    if config.storage_backend == "file":
        storage = JsonFileSecureStorage(config.storage_path)
    elif config.storage_backend == "memory":
        storage = InMemorySecureStorage()
    else:
        raise ValueError(f"Unknown storage backend: {config.storage_backend}")

    logger.info(
        "Comparison engine using %s provider and %s storage",
        config.property_provider, config.storage_backend,
    )
    return ComparisonEngine(
        property_provider=provider,
        comparable_finder=finder,
        storage=storage,
        options=config.engine_options(),
    )
