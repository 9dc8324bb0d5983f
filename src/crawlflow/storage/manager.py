"""
Store manager keeping the process-wide registry of live stores
"""

import asyncio
from typing import Any, Dict, List, Optional

from crawlflow.core.config.validation import validate_store
from crawlflow.core.exceptions.custom_exceptions import StorageError
from crawlflow.core.logging.logger import get_logger
from crawlflow.storage.base import BaseStore, StoreFactory


class StoreManager:
    """
    Registry mapping store ids to live store instances.

    Stores are created explicitly and removed explicitly. Creating a store
    whose id is already registered is rejected as a conflict, including
    when two creations race each other.
    """

    def __init__(self):
        self.logger = get_logger(__name__)
        self.stores: Dict[str, BaseStore] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        store_id: str,
        store_type: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> BaseStore:
        """
        Create and register a store, the type defaults to the store id.

        Raises:
            ValidationError: If the store definition is malformed
            StorageError: If a store with the same id is already registered
            ConfigurationError: If the store type is unknown
        """
        config = validate_store(
            {"id": store_id, "type": store_type, "options": options or {}}
        )
        async with self._lock:
            if store_id in self.stores:
                message = f"Store with id {store_id} already exist"
                self.logger.error(message)
                raise StorageError(
                    message,
                    error_code="STORE_CONFLICT",
                    details={"store_id": store_id},
                )

            # Often the store has the same name as its type
            store = StoreFactory.create(
                config.type or store_id, store_id, config.options
            )
            self.stores[store_id] = store

        self.logger.info(
            f"Created {store.type} store: {store_id}", store_id=store_id
        )
        return store

    async def get(self, store_id: str) -> BaseStore:
        """Get a registered store"""
        store = self.stores.get(store_id)
        if store is None:
            message = f"Can't find store with ID {store_id}"
            self.logger.error(message)
            raise StorageError(
                message, error_code="STORE_NOT_FOUND", details={"store_id": store_id}
            )
        return store

    async def get_or_create(
        self,
        store_id: str,
        store_type: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> BaseStore:
        """Get a registered store or create it when missing"""
        if store_id in self.stores:
            return self.stores[store_id]
        try:
            return await self.create(store_id, store_type, options)
        except StorageError as e:
            # Lost a creation race, the store exists now
            if e.error_code == "STORE_CONFLICT":
                return self.stores[store_id]
            raise

    async def remove(self, store_id: str) -> BaseStore:
        """Unregister a store, backend cleanup is best-effort"""
        store = self.stores.pop(store_id, None)
        if store is None:
            message = f"Can't find store for removal with ID {store_id}"
            self.logger.error(message)
            raise StorageError(
                message, error_code="STORE_NOT_FOUND", details={"store_id": store_id}
            )

        try:
            await store.dispose()
        except StorageError as e:
            self.logger.warning(
                f"Failed to dispose store {store_id}: {e}", store_id=store_id
            )

        self.logger.info(f"Removed store: {store_id}", store_id=store_id)
        return store

    def list_stores(self) -> List[str]:
        """List registered store ids"""
        return list(self.stores.keys())

    async def clear(self) -> None:
        """Remove all registered stores"""
        for store_id in list(self.stores):
            await self.remove(store_id)
