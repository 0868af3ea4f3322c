from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx


@asynccontextmanager
async def open_client(client: httpx.AsyncClient | None, *, timeout_s: float) -> AsyncIterator[httpx.AsyncClient]:
    """Use the injected client as-is, otherwise a short-lived one per logical call."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout_s) as owned:
        yield owned
