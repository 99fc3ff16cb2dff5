#!/usr/bin/env python3
"""
Provider Factory for Issue Tracker

Builds the configured store provider and owns its connection lifecycle.
"""

import logging
import time
from typing import Optional, Mapping, Any, Callable

from apps.api.errors import StoreUnavailable
from apps.api.utils.providers import StoreProvider
from apps.api.utils.memory_store import MemoryStore

logger = logging.getLogger(__name__)

BACKENDS = ("firestore", "memory")


class StoreProviderFactory:
    """
    Factory for creating store provider instances.

    Design Patterns:
    - Factory Pattern: Creates provider instances per configured backend
    - Dependency Injection: The created handle is passed into each service
    """

    @staticmethod
    def create_firestore_provider(credentials_path: Optional[str] = None) -> StoreProvider:
        """
        Create Firestore-backed provider.

        Args:
            credentials_path: Optional service account JSON path.

        Returns:
            StoreProvider instance
        """
        # Imported lazily so the memory backend works without Google credentials
        from apps.api.utils.firebase_helper import FirebaseHelper
        return FirebaseHelper(credentials_path=credentials_path)

    @staticmethod
    def create_memory_provider() -> StoreProvider:
        """Create in-memory provider"""
        return MemoryStore()

    @staticmethod
    def create_provider(backend: str, credentials_path: Optional[str] = None) -> StoreProvider:
        if backend == "firestore":
            return StoreProviderFactory.create_firestore_provider(credentials_path)
        if backend == "memory":
            return StoreProviderFactory.create_memory_provider()
        raise ValueError(f"Unknown store backend '{backend}'. Expected one of {BACKENDS}")


def connect_store(
    config: Mapping[str, Any],
    sleep: Callable[[float], None] = time.sleep
) -> StoreProvider:
    """
    Build the configured store and verify the connection.

    Retries with exponential backoff up to STORE_CONNECT_RETRIES attempts,
    then raises StoreUnavailable so startup fails fast.
    """
    backend = config.get("STORE_BACKEND", "firestore")
    retries = max(1, int(config.get("STORE_CONNECT_RETRIES", 5)))
    delay = float(config.get("STORE_CONNECT_BACKOFF", 1.0))
    credentials_path = config.get("FIREBASE_CREDENTIALS")

    last_error: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        try:
            store = StoreProviderFactory.create_provider(backend, credentials_path)
            store.ping()
            logger.info(f"Connected to {backend} store (attempt {attempt}/{retries})")
            return store
        except StoreUnavailable as e:
            last_error = e
            logger.warning(f"Store connection attempt {attempt}/{retries} failed: {e}")
            if attempt < retries:
                sleep(delay)
                delay *= 2

    raise StoreUnavailable(f"Could not connect to {backend} store after {retries} attempts: {last_error}")
