import logging
from typing import Any, Dict

import httpx
from pydantic import ValidationError

from vidrelay.config.settings import InnerTubeConfig
from vidrelay.core.errors import NotFoundError, UpstreamError
from vidrelay.models.upstream import PlayerResponse

logger = logging.getLogger(__name__)


class InnerTubeClient:
    """
    Client for the video platform's internal player API.

    Constructed explicitly with an ``httpx.AsyncClient`` and its settings so
    tests can hand in a mock transport.
    """

    def __init__(self, client: httpx.AsyncClient, settings: InnerTubeConfig):
        self.client = client
        self.settings = settings

    @property
    def user_agent(self) -> str:
        return self.settings.user_agent

    def context(self) -> Dict[str, Any]:
        client: Dict[str, Any] = {
            "clientName": self.settings.client_name,
            "clientVersion": self.settings.client_version,
            "hl": self.settings.hl,
            "gl": self.settings.gl,
        }
        if self.settings.client_name.upper().startswith("ANDROID"):
            client["androidSdkVersion"] = self.settings.android_sdk_version
        return {"client": client}

    def headers(self) -> Dict[str, str]:
        return {
            "User-Agent": self.settings.user_agent,
            "Content-Type": "application/json",
            "X-Youtube-Client-Name": str(self.settings.client_name_id),
            "X-Youtube-Client-Version": self.settings.client_version,
        }

    def endpoint(self, name: str) -> str:
        url = f"{self.settings.base_url.rstrip('/')}/{name}?prettyPrint=false"
        if self.settings.api_key:
            url += f"&key={self.settings.api_key}"
        return url

    async def post(self, name: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = {"context": self.context(), **payload}
        try:
            response = await self.client.post(self.endpoint(name), json=body, headers=self.headers())
        except httpx.HTTPError as e:
            logger.error(f"InnerTube {name} request failed: {e!r}")
            raise UpstreamError("error.player_failed", str(e) or e.__class__.__name__, kind="network")

        if not response.is_success:
            raise UpstreamError(
                "error.player_failed",
                f"Upstream responded with status {response.status_code}",
                kind="status",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise UpstreamError("error.player_failed", "Upstream returned invalid JSON", kind="parse")

        if not isinstance(data, dict):
            raise UpstreamError("error.player_failed", "Unexpected upstream payload", kind="parse")
        return data

    async def player(self, video_id: str) -> PlayerResponse:
        """Fetch the player response for ``video_id``; unplayable videos raise 404."""
        data = await self.post("player", {
            "videoId": video_id,
            "contentCheckOk": True,
            "racyCheckOk": True,
        })

        try:
            player = PlayerResponse.model_validate(data)
        except ValidationError as e:
            raise UpstreamError("error.player_failed", f"Unexpected player response: {e.error_count()} errors", kind="parse")

        status = player.playability_status
        if status.status and status.status != "OK":
            raise NotFoundError(
                "error.video_unavailable",
                status.reason or None,
                status=status.status,
            )

        return player

