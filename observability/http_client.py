"""
Shared httpx client scoping.

Components accept an optional injected AsyncClient (tests, app-wide pooling).
Without one, a short-lived client is opened per call and closed afterwards.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx


@asynccontextmanager
async def client_scope(
    client: Optional[httpx.AsyncClient],
    timeout: float,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client untouched, or a temporary one."""
    if client is not None:
        yield client
        return

    async with httpx.AsyncClient(timeout=timeout) as temporary:
        yield temporary
