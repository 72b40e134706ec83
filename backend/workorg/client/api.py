import logging
from typing import Optional

import httpx

from workorg import config
from workorg.errors import (
    AccessDenied,
    InvalidVideoReference,
    ProjectNotFound,
    StoreUnavailable,
    TransportUnavailable,
    VideoNotFound,
)
from workorg.models.video import PlaybackRecord

logger = logging.getLogger(__name__)


class VideoApiClient:
    """HTTP side of the shared video feature, used for reconciliation and writes."""

    def __init__(self, token: str, base_url: str = config.API_URL, http: Optional[httpx.AsyncClient] = None):
        self.token = token
        self.socket_id: Optional[str] = None
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=10)

    def _headers(self) -> dict:
        headers = {"Authorization": f"Bearer {self.token}"}
        if self.socket_id:
            headers["X-Socket-ID"] = self.socket_id
        return headers

    async def _request(self, method: str, project_id: str, suffix: str = "", **kwargs) -> httpx.Response:
        try:
            response = await self.http.request(method, f"/videos/project/{project_id}{suffix}", headers=self._headers(), **kwargs)
        except httpx.TransportError as e:
            logger.error(f"{method} video for project {project_id} failed: {e}")
            raise TransportUnavailable(str(e)) from e

        if response.status_code == 400:
            raise InvalidVideoReference(kwargs.get("json", {}).get("videoUrl", ""))
        if response.status_code == 403:
            raise AccessDenied(project_id)
        if response.status_code == 404:
            if response.json().get("detail") == "No shared video found":
                raise VideoNotFound(project_id)
            raise ProjectNotFound(project_id)
        if response.status_code >= 500:
            raise StoreUnavailable(response.text)
        response.raise_for_status()
        return response

    async def fetch(self, project_id: str) -> Optional[PlaybackRecord]:
        response = await self._request("GET", project_id)
        data = response.json()
        return PlaybackRecord.model_validate(data) if data else None

    async def share(self, project_id: str, video_url: str, title: Optional[str] = None) -> PlaybackRecord:
        body = {"videoUrl": video_url}
        if title:
            body["title"] = title
        response = await self._request("POST", project_id, json=body)
        return PlaybackRecord.model_validate(response.json())

    async def update_state(self, project_id: str, is_playing: Optional[bool] = None, current_time: Optional[float] = None, is_minimized: Optional[bool] = None) -> PlaybackRecord:
        body = {}
        if is_playing is not None:
            body["isPlaying"] = is_playing
        if current_time is not None:
            body["currentTime"] = current_time
        if is_minimized is not None:
            body["isMinimized"] = is_minimized
        response = await self._request("PUT", project_id, "/state", json=body)
        return PlaybackRecord.model_validate(response.json())

    async def remove(self, project_id: str):
        await self._request("DELETE", project_id)

    async def aclose(self):
        await self.http.aclose()
