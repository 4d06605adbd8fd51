"""Process-wide entry points backed by a shared default client"""

from typing import Any, Optional

import httpx

from .client import ResilientClient

_default_client: Optional[ResilientClient] = None


def get_default_client() -> ResilientClient:
    """Shared client used by the module-level helpers, created on first use"""
    global _default_client
    if _default_client is None:
        _default_client = ResilientClient()
    return _default_client


def set_default_client(client: Optional[ResilientClient]) -> None:
    """Replace the shared client (None drops it so the next call makes a new one)"""
    global _default_client
    _default_client = client


async def fetch_retry(url: str, **options) -> httpx.Response:
    return await get_default_client().fetch_retry(url, **options)


async def get_json(url: str, **options) -> Any:
    return await get_default_client().get_json(url, **options)


async def post_json(url: str, body: Any, **options) -> Any:
    return await get_default_client().post_json(url, body, **options)
