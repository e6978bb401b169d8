"""
Evidence blob store client (aiohttp).

* ``POST /upload-file`` ``{"fileName", "fileData"}`` -> ``{"data": {"url": ...}}``
  where ``fileData`` is a base64 data URL.
* ``POST /delete-file`` ``{"projectId", "fileUrl"}``
"""
from __future__ import annotations

import asyncio
import base64
from typing import Optional

import aiohttp

from rebate_service.config import UPSTREAM_SETTINGS
from rebate_service.exceptions import RemoteError
from rebate_service.integrations.base import BlobStore, EvidenceFile
from rebate_service.utils import get_logger

logger = get_logger(__name__)


def to_data_url(file: EvidenceFile) -> str:
    encoded = base64.b64encode(file.content).decode("ascii")
    return f"data:{file.content_type};base64,{encoded}"


class HttpBlobStore(BlobStore):
    """Uploads and deletes evidence screenshots on the upstream file service."""

    def __init__(self, base_url: Optional[str] = None, *, timeout_seconds: Optional[float] = None):
        self.base_url = str(base_url or UPSTREAM_SETTINGS["blob_api_base_url"]).rstrip("/")
        self.timeout = aiohttp.ClientTimeout(
            total=float(timeout_seconds or UPSTREAM_SETTINGS["upload_timeout_seconds"])
        )
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _post(self, path: str, body: dict, operation: str) -> dict:
        url = f"{self.base_url}{path}"
        try:
            session = await self._get_session()
            async with session.post(url, json=body) as response:
                if response.status >= 400:
                    text = await response.text()
                    raise RemoteError(operation, f"status {response.status}: {text[:200]}", response.status)
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    raise RemoteError(operation, "invalid JSON response", response.status)
                return payload if isinstance(payload, dict) else {}
        except asyncio.TimeoutError:
            raise RemoteError(operation, "request timed out")
        except aiohttp.ClientError as e:
            raise RemoteError(operation, f"client error: {e}")

    async def upload(self, file: EvidenceFile) -> str:
        payload = await self._post(
            "/upload-file",
            {"fileName": file.filename, "fileData": to_data_url(file)},
            operation="upload_evidence",
        )
        url = (payload.get("data") or {}).get("url")
        if not url:
            raise RemoteError("upload_evidence", "response did not include a file url")
        logger.info("Evidence uploaded", filename=file.filename, url=url, size_bytes=len(file.content))
        return url

    async def delete(self, url: str, project_id: Optional[str] = None) -> None:
        await self._post(
            "/delete-file",
            {"projectId": project_id, "fileUrl": url},
            operation="delete_evidence",
        )
        logger.info("Evidence blob deleted", url=url, project_id=project_id)


__all__ = ["HttpBlobStore", "to_data_url"]
