"""Streaming client for the evidence analysis endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncGenerator, Optional

import httpx

from .config import Settings
from .streaming import StreamEvent, decode_stream

logger = logging.getLogger(__name__)


class AnalysisStreamError(Exception):
    """Wrap transport or API failures while streaming an analysis."""

    def __init__(self, status_code: int, detail: Any):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail


class AnalysisClient:
    """Client responsible for opening and decoding analysis event streams."""

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client

        async with self._client_lock:
            if self._client is None:
                timeout = httpx.Timeout(self._settings.request_timeout, connect=10.0)
                self._client = httpx.AsyncClient(
                    timeout=timeout,
                    transport=self._transport,
                )
        return self._client

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    @property
    def _base_url(self) -> str:
        """Return the analysis API base URL without a trailing slash."""

        return str(self._settings.analysis_base_url).rstrip("/")

    async def stream_analysis(
        self, conversation_id: str, context: Optional[str] = None
    ) -> AsyncGenerator[StreamEvent, None]:
        """Start an analysis for a conversation and yield its decoded events."""

        url = f"{self._base_url}/analyze/stream"
        payload = {"conversation_id": conversation_id, "context": context or None}

        client = await self._get_http_client()
        try:
            async with client.stream(
                "POST",
                url,
                headers=self._headers,
                json=payload,
            ) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    detail = self._extract_error_detail(body)
                    raise AnalysisStreamError(response.status_code, detail)

                logger.debug("Reading analysis stream for %s", conversation_id)
                async for event in decode_stream(response.aiter_bytes()):
                    yield event
                logger.debug("Analysis stream for %s ended", conversation_id)
        except httpx.HTTPError as exc:
            raise AnalysisStreamError(
                httpx.codes.BAD_GATEWAY, str(exc) or type(exc).__name__
            ) from exc

    async def aclose(self) -> None:
        async with self._client_lock:
            client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Failed to start analysis"
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            return payload.get("detail") or payload.get("error") or payload
        return payload


__all__ = ["AnalysisClient", "AnalysisStreamError"]
