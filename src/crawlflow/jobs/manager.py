"""
Job submission surface
"""

from typing import Any, Dict, Optional

from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    StorageError,
)
from crawlflow.core.logging.logger import get_logger
from crawlflow.jobs.executor import JobExecutor, JobResult
from crawlflow.jobs.scheduler import ProgressCallback
from crawlflow.storage.base import BaseStore
from crawlflow.storage.manager import StoreManager


class JobManager:
    """
    Create (run) jobs and remove their outputs.

    Example:
        >>> manager = JobManager()
        >>> result = await manager.create(job)
        >>> await manager.remove(job["id"], {"store": "job-store"})
    """

    def __init__(
        self,
        store_manager: Optional[StoreManager] = None,
        workers_limit: Optional[int] = None,
    ):
        self.logger = get_logger(__name__)
        self.store_manager = store_manager or StoreManager()
        self.executor = JobExecutor(self.store_manager, workers_limit)

    async def create(
        self,
        data: Dict[str, Any],
        params: Optional[Dict[str, Any]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> JobResult:
        """Run a job to completion"""
        return await self.executor.execute(data, params, progress)

    async def remove(
        self, job_id: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Remove the outputs of a job (stored under the job id).

        Removal is best-effort: a StorageError raised by the backend is
        logged and the call still succeeds. Failing to resolve the store
        itself is reported.

        Args:
            job_id: Id of the job
            params: ``store`` as a store instance or a registered store id
        """
        store = await self._resolve_store((params or {}).get("store"))

        self.logger.debug(f"Removing data for job {job_id} from store {store.id}")
        try:
            await store.remove(job_id)
        except StorageError as e:
            self.logger.warning(
                f"Failed to remove data for job {job_id}: {e}",
                job_id=job_id,
                store_id=store.id,
                error_code=e.error_code,
            )
            return {"id": job_id, "removed": False}

        return {"id": job_id, "removed": True}

    async def _resolve_store(self, store: Any) -> BaseStore:
        if isinstance(store, BaseStore):
            return store
        if isinstance(store, str):
            return await self.store_manager.get(store)
        raise ConfigurationError(
            "You must provide a store to remove job data from",
            error_code="STORE_REQUIRED",
        )
