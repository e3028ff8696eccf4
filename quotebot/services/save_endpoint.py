"""Client for the local save endpoint (desktop companion).

The companion exposes two routes:
    POST /save         {filePath, contentBase64, type} -> {success, path?, error?}
    POST /pick-folder  {}                              -> {success, path?, error?}
"""
from __future__ import annotations

import base64
import logging

import httpx

import config

logger = logging.getLogger(__name__)

MIME_TYPES = {"pdf": "application/pdf", "png": "image/png"}
CANCELLED = "Cancelled"


class SaveEndpointError(Exception):
    """The companion rejected the request or could not be reached."""


class FolderPickCancelled(Exception):
    """The user closed the folder picker without choosing."""


def to_data_url(content: bytes, file_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{MIME_TYPES[file_type]};base64,{encoded}"


class SaveEndpointClient:
    """Thin async wrapper over the companion's JSON routes."""

    def __init__(self, base_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = (base_url if base_url is not None else config.SAVE_ENDPOINT_URL).rstrip("/")
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _post(self, route: str, payload: dict) -> dict:
        if not self.enabled:
            raise SaveEndpointError("SAVE_ENDPOINT_URL is not configured")
        try:
            # No timeout: saves run to completion or fail outright
            async with httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=self._transport) as client:
                resp = await client.post(route, json=payload)
        except httpx.HTTPError as e:
            raise SaveEndpointError(f"Save endpoint unreachable: {type(e).__name__}") from e

        try:
            data = resp.json()
        except ValueError:
            raise SaveEndpointError(f"Save endpoint returned {resp.status_code} with a non-JSON body")
        if not isinstance(data, dict):
            raise SaveEndpointError("Save endpoint returned an unexpected response")
        return data

    async def save_to_path(self, file_path: str, content: bytes, file_type: str) -> str:
        """Write content at file_path on the companion's machine. Returns the saved path."""
        if file_type not in MIME_TYPES:
            raise ValueError(f"Unsupported save type: {file_type}")
        data = await self._post("/save", {
            "filePath": file_path,
            "contentBase64": to_data_url(content, file_type),
            "type": file_type,
        })
        if not data.get("success"):
            error = data.get("error") or "Unknown error"
            logger.warning(f"Save to {file_path} failed: {error}")
            raise SaveEndpointError(error)
        saved = data.get("path") or file_path
        logger.info(f"Saved {file_type.upper()} to {saved}")
        return saved

    async def pick_folder(self) -> str:
        """Ask the companion to show a folder picker. Returns the chosen path."""
        data = await self._post("/pick-folder", {})
        if not data.get("success"):
            error = data.get("error") or "Unknown error"
            if error == CANCELLED:
                raise FolderPickCancelled()
            raise SaveEndpointError(error)
        path = data.get("path")
        if not path:
            raise SaveEndpointError("Folder picker returned no path")
        return path


save_endpoint = SaveEndpointClient()
