"""Fetch internet-tier locations (``http://`` / ``https://``) with httpx."""

from __future__ import annotations

import logging

import httpx

from promptmesh.errors import ContentResolutionError

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http://", "https://")


def is_remote(location: str) -> bool:
    return location.lower().startswith(REMOTE_SCHEMES)


class RemoteLoader:
    """Download text content for internet-tier records."""

    def __init__(
        self,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, url: str) -> str:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport, follow_redirects=True
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise ContentResolutionError(url, f"unreachable: {exc}") from exc

        logger.debug("Fetched %s (%d bytes)", url, len(resp.content))
        return resp.text
