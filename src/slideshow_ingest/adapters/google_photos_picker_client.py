"""Google Photos Picker API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from slideshow_ingest.domain.errors import RemoteServiceError

PICKER_API_BASE = "https://photospicker.googleapis.com/v1"

_GONE_STATUSES = {404, 410}


class PickerClient(Protocol):
    """Interface for the remote photo picker service."""

    async def create_session(self, access_token: str) -> dict[str, object]:
        """Allocate a remote picker session and return raw API data."""

    async def get_session(
        self, access_token: str, picker_session_id: str
    ) -> dict[str, object] | None:
        """Return raw session status, or None when the session is gone."""

    async def list_media_items(
        self,
        access_token: str,
        picker_session_id: str,
        page_size: int = 100,
        page_token: str | None = None,
    ) -> dict[str, object]:
        """Return one page of selected media items."""

    async def download(self, access_token: str, url: str) -> bytes:
        """Fetch media bytes from a size-suffixed base URL."""


@dataclass
class HttpxPickerClient(PickerClient):
    """Picker client implemented with httpx."""

    http_client: httpx.AsyncClient
    base_url: str = PICKER_API_BASE
    timeout_seconds: float = 20

    @classmethod
    def create(
        cls, base_url: str = PICKER_API_BASE, timeout_seconds: float = 20
    ) -> "HttpxPickerClient":
        """Create a picker client with a managed httpx session."""
        return cls(
            http_client=httpx.AsyncClient(),
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )

    async def create_session(self, access_token: str) -> dict[str, object]:
        """Create a session; an empty body requests the default configuration."""
        response = await self._request(
            "POST", f"{self.base_url}/sessions", access_token, json={}
        )
        _raise_for_status(response, "create picker session")
        return response.json()

    async def get_session(
        self, access_token: str, picker_session_id: str
    ) -> dict[str, object] | None:
        """Get session status from the picker API."""
        response = await self._request(
            "GET", f"{self.base_url}/sessions/{picker_session_id}", access_token
        )
        if response.status_code in _GONE_STATUSES:
            return None
        _raise_for_status(response, "get picker session")
        return response.json()

    async def list_media_items(
        self,
        access_token: str,
        picker_session_id: str,
        page_size: int = 100,
        page_token: str | None = None,
    ) -> dict[str, object]:
        """List one page of media items picked in the session."""
        params: dict[str, object] = {
            "sessionId": picker_session_id,
            "pageSize": page_size,
        }
        if page_token:
            params["pageToken"] = page_token
        response = await self._request(
            "GET", f"{self.base_url}/mediaItems", access_token, params=params
        )
        _raise_for_status(response, "list media items")
        return response.json()

    async def download(self, access_token: str, url: str) -> bytes:
        """Download media bytes; the URL must carry a size directive."""
        response = await self._request("GET", url, access_token)
        _raise_for_status(response, "download media")
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, url: str, access_token: str, **kwargs: object
    ) -> httpx.Response:
        try:
            return await self.http_client.request(
                method,
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout_seconds,
                **kwargs,
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError("picker", f"{method} {url}: {exc}") from exc


def _raise_for_status(response: httpx.Response, action: str) -> None:
    if response.is_success:
        return
    raise RemoteServiceError(
        "picker",
        f"Failed to {action}: {response.text}",
        status_code=response.status_code,
    )
