"""
HTTP task handler: download a resource into the task store.

Task options:
    url: Resource URL (required)
    method: HTTP method, default GET
    params: Query parameters
    headers: Request headers (e.g. set by the ``basicAuth`` hook)
    auth: ``{user, password}`` credentials used for Basic authentication
        when no ``Authorization`` header is already set
    timeout: Request timeout in seconds, default HTTP_TIMEOUT
    key: Store key template, defaults to the task id

The response body is streamed into the store, chunk by chunk, so large
downloads never sit in memory. Responses with an error status fail the
task.
"""

from typing import Any, Dict, Optional

import httpx

from crawlflow.core.config.settings import settings
from crawlflow.core.exceptions.custom_exceptions import (
    ConfigurationError,
    DomainError,
    ValidationError,
)
from crawlflow.storage.base import BaseStore
from crawlflow.tasks.base import BaseTaskHandler, TaskHandlerFactory
from crawlflow.utils.templates import render_template


class HttpTaskHandler(BaseTaskHandler):
    """Stream an HTTP response body into the task store"""

    async def run(
        self,
        task: Dict[str, Any],
        store: Optional[BaseStore],
        params: Dict[str, Any],
    ) -> Dict[str, Any]:
        if store is None:
            raise ConfigurationError(
                f"Task {task['id']} has no store to write to",
                error_code="STORE_REQUIRED",
                details={"task_id": task["id"]},
            )

        options = task.get("options") or {}
        if not options.get("url"):
            raise ValidationError(
                f"Task {task['id']} has no url",
                error_code="TASK_URL_MISSING",
                details={"task_id": task["id"]},
            )

        key = render_template(options.get("key", "{{ id }}"), task)
        client = params.get("http_client")
        if client is not None:
            return await self._fetch(client, task, options, store, key)

        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
            return await self._fetch(client, task, options, store, key)

    def _build_auth(self, options: Dict[str, Any]) -> Optional[httpx.BasicAuth]:
        auth = options.get("auth")
        headers = options.get("headers") or {}
        if not auth or "Authorization" in headers:
            return None
        return httpx.BasicAuth(auth.get("user", ""), auth.get("password", ""))

    async def _fetch(
        self,
        client: httpx.AsyncClient,
        task: Dict[str, Any],
        options: Dict[str, Any],
        store: BaseStore,
        key: str,
    ) -> Dict[str, Any]:
        url = options["url"]
        request_kwargs: Dict[str, Any] = {
            "params": options.get("params"),
            "headers": options.get("headers"),
        }
        auth = self._build_auth(options)
        if auth is not None:
            request_kwargs["auth"] = auth
        if options.get("timeout") is not None:
            request_kwargs["timeout"] = options["timeout"]

        self.logger.debug(f"Requesting {url}", task_id=task["id"])
        size = 0
        try:
            async with client.stream(
                options.get("method", "GET"), url, **request_kwargs
            ) as response:
                if response.status_code >= 400:
                    raise DomainError(
                        f"Request for task {task['id']} failed with "
                        f"status {response.status_code}",
                        error_code="HTTP_STATUS_ERROR",
                        details={
                            "task_id": task["id"],
                            "url": url,
                            "status_code": response.status_code,
                        },
                    )
                async with store.create_write_stream(key) as writer:
                    async for chunk in response.aiter_bytes():
                        await writer.write(chunk)
                        size += len(chunk)
        except httpx.HTTPError as e:
            raise DomainError(
                f"Request for task {task['id']} failed: {e}",
                error_code="HTTP_REQUEST_ERROR",
                details={"task_id": task["id"], "url": url},
            ) from e

        self.logger.info(f"Downloaded {key} ({size} bytes)", task_id=task["id"])
        return {
            "id": key,
            "status_code": response.status_code,
            "content_type": response.headers.get("content-type"),
            "size_bytes": size,
            "outputs": [key],
        }


# Register the handler
TaskHandlerFactory.register("http", HttpTaskHandler)
