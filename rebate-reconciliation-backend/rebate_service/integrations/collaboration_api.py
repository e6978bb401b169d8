"""
Upstream collaboration & project API client (aiohttp).

Endpoints used (all responses wrap their payload in ``{"data": ...}``):

* ``GET  /projects?view=simple``                      -> project id/name list
* ``GET  /collaborations?allowGlobal=true&limit=N``   -> every collaboration
* ``GET  /collaborations?collaborationId=ID``         -> one collaboration
* ``PUT  /update-collaboration`` ``{"id": ID, ...}``  -> partial patch

Reads are idempotent and retried with exponential backoff; patches are sent
once and any failure surfaces as RemoteError.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from rebate_service.config import BACKOFF_POLICY, UPSTREAM_SETTINGS
from rebate_service.exceptions import RemoteError
from rebate_service.integrations.base import CollaborationSource, ProjectLookup
from rebate_service.models.schemas.collaborations import CollaborationRecord, Project, to_upstream_patch
from rebate_service.utils import get_logger
from rebate_service.utils.backoff import compute_backoff_seconds

logger = get_logger(__name__)


class CollaborationApiClient(CollaborationSource, ProjectLookup):
    """Talks to the upstream collaboration service over HTTP."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.base_url = str(base_url or UPSTREAM_SETTINGS["collaboration_api_base_url"]).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(
            total=float(timeout_seconds or UPSTREAM_SETTINGS["request_timeout_seconds"])
        )
        self.max_attempts = int(max_attempts or BACKOFF_POLICY["max_attempts"])
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        retry: bool = False,
    ) -> Any:
        url = f"{self.base_url}{path}"
        attempts = self.max_attempts if retry else 1
        last_error: RemoteError | None = None

        for attempt in range(1, attempts + 1):
            try:
                session = await self._get_session()
                async with session.request(method, url, params=params, json=json) as response:
                    if response.status >= 400:
                        body = await response.text()
                        raise RemoteError(operation, f"status {response.status}: {body[:200]}", response.status)
                    try:
                        payload = await response.json(content_type=None)
                    except ValueError:
                        # A 2xx with a non-JSON body (proxy error page) is not retried
                        raise RemoteError(operation, "invalid JSON response", response.status)
                    return payload.get("data") if isinstance(payload, dict) else payload
            except RemoteError as e:
                last_error = e
                # Client errors will not improve on retry
                if e.status_code is not None and e.status_code < 500:
                    break
            except asyncio.TimeoutError:
                last_error = RemoteError(operation, "request timed out")
            except aiohttp.ClientError as e:
                last_error = RemoteError(operation, f"client error: {e}")

            if attempt < attempts:
                delay = compute_backoff_seconds(attempt)
                logger.warning(
                    "Upstream request failed, retrying",
                    operation=operation,
                    attempt=attempt,
                    delay_seconds=round(delay, 2),
                    error=str(last_error),
                )
                await asyncio.sleep(delay)

        logger.error(
            "Upstream request failed",
            operation=operation,
            url=url,
            error=str(last_error),
        )
        if last_error is None:
            raise RemoteError(operation, "no attempt was made")
        raise last_error

    async def list_collaborations(self) -> List[CollaborationRecord]:
        data = await self._request(
            "GET",
            "/collaborations",
            operation="list_collaborations",
            params={"allowGlobal": "true", "limit": str(UPSTREAM_SETTINGS["list_limit"])},
            retry=True,
        )
        records: List[CollaborationRecord] = []
        for raw in data or []:
            try:
                records.append(CollaborationRecord.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    "Skipping malformed collaboration record",
                    collaboration_id=raw.get("id") if isinstance(raw, dict) else None,
                    error=str(e),
                )
        logger.debug("Collaborations loaded", count=len(records))
        return records

    async def get_collaboration(self, collaboration_id: str) -> Optional[CollaborationRecord]:
        data = await self._request(
            "GET",
            "/collaborations",
            operation="get_collaboration",
            params={"collaborationId": collaboration_id},
            retry=True,
        )
        if not data:
            return None
        if isinstance(data, list):
            data = data[0]
        return CollaborationRecord.model_validate(data)

    async def patch_collaboration(self, collaboration_id: str, fields: Dict[str, Any]) -> None:
        body = {"id": collaboration_id, **to_upstream_patch(fields)}
        await self._request("PUT", "/update-collaboration", operation="patch_collaboration", json=body)
        logger.debug("Collaboration patched", collaboration_id=collaboration_id, fields=sorted(fields))

    async def list_projects(self) -> List[Project]:
        data = await self._request(
            "GET",
            "/projects",
            operation="list_projects",
            params={"view": "simple"},
            retry=True,
        )
        projects: List[Project] = []
        for raw in data or []:
            try:
                projects.append(Project.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping malformed project", error=str(e))
        return projects


__all__ = ["CollaborationApiClient"]
