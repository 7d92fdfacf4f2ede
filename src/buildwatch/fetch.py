from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging

import aiohttp

from buildwatch.errors import FetchError

logger = logging.getLogger("buildwatch")


@dataclass(frozen=True)
class PageResponse:
    status: int
    reason: str
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


async def fetch_page(session: aiohttp.ClientSession, url: str) -> PageResponse:
    logger.debug("GET %s", url)
    try:
        async with session.get(url) as resp:
            body = await resp.text(errors="replace")
            return PageResponse(
                status=resp.status,
                reason=resp.reason or "",
                body=body,
            )
    except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc
