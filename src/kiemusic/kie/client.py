"""Async client for the KIE music generation API."""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import ValidationError

from kiemusic.errors import KieAPIError
from kiemusic.kie.models import (
    ExtendMusicRequest,
    GenerateMusicRequest,
    KieModel,
    MusicDetailsResponse,
    StemSeparationDetailsResponse,
    StemSeparationRequest,
    TaskStartResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.kie.ai/api/v1"

ResponseT = TypeVar("ResponseT", bound=KieModel)


class KieClient:
    """Client for the KIE music API.

    Every call opens a short-lived ``httpx.AsyncClient``. HTTP-level failures
    raise ``KieAPIError``; API-level failures come back as a response whose
    ``code`` is not 200 and are left to the caller.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_key: Bearer token for the KIE API.
            base_url: API base URL. Defaults to https://api.kie.ai/api/v1.
            timeout: HTTP request timeout in seconds.
            transport: Optional httpx transport (used by tests).
        """
        self.api_key = api_key
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Task creation
    # ------------------------------------------------------------------

    async def generate_music(self, request: GenerateMusicRequest) -> TaskStartResponse:
        """Start a music generation task."""
        return await self._request(
            "POST", "/generate", TaskStartResponse, json=request.to_api()
        )

    async def extend_music(self, request: ExtendMusicRequest) -> TaskStartResponse:
        """Start a task that extends an existing track."""
        return await self._request(
            "POST", "/generate/extend", TaskStartResponse, json=request.to_api()
        )

    async def separate_vocals(self, request: StemSeparationRequest) -> TaskStartResponse:
        """Start a vocal removal / stem split task."""
        return await self._request(
            "POST", "/vocal-removal/generate", TaskStartResponse, json=request.to_api()
        )

    # ------------------------------------------------------------------
    # Task details
    # ------------------------------------------------------------------

    async def get_music_details(self, task_id: str) -> MusicDetailsResponse:
        """Fetch the current record of a generation task."""
        return await self._request(
            "GET",
            "/generate/record-info",
            MusicDetailsResponse,
            params={"taskId": task_id},
        )

    async def get_stem_separation_details(self, task_id: str) -> StemSeparationDetailsResponse:
        """Fetch the current record of a stem separation task."""
        return await self._request(
            "GET",
            "/vocal-removal/record-info",
            StemSeparationDetailsResponse,
            params={"taskId": task_id},
        )

    async def _request(
        self,
        method: str,
        path: str,
        response_model: type[ResponseT],
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> ResponseT:
        if not self.api_key:
            raise KieAPIError("KIE API key not configured")

        headers = {"Authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self._transport
        ) as client:
            try:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    headers=headers,
                    json=json,
                    params=params,
                )
            except httpx.RequestError as e:
                raise KieAPIError(f"Failed to reach KIE API: {e}") from e

        if response.is_error:
            raise KieAPIError(
                f"KIE API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                details=response.text,
            )

        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Unexpected KIE response on %s %s: %s", method, path, response.text)
            raise KieAPIError(
                f"Invalid KIE API response on {method} {path}",
                status_code=response.status_code,
                details=response.text,
            ) from e
