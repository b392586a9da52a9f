"""
Request-scoped dependencies shared by the page routers
"""
from typing import AsyncIterator

from fastapi import Request

from auction_api import AuctionApiClient


async def get_api(request: Request) -> AsyncIterator[AuctionApiClient]:
    """One backend client per request, authenticated as the signed-in user"""
    async with AuctionApiClient(getattr(request.state, "token", None)) as api:
        yield api


def current_username(request: Request) -> str:
    user = getattr(request.state, "user", None) or {}
    return user.get("sub") or "unknown-user"
