"""
Auction API Client
==================
Async access to the remote auction backend and the staff user pool.

Usage:
    from auction_api import AuctionApiClient

    async with AuctionApiClient(id_token) as api:
        auctions = await api.get_auctions()
        staged = await api.stage_items(2, 3, uploaded, {"lotType": "Ring"})
"""

from .client import AuctionApiClient
from .config import BackendConfig, get_config, reload_config
from .errors import BackendError, CognitoError, NotAuthenticatedError

__all__ = [
    'AuctionApiClient',
    'BackendConfig',
    'get_config',
    'reload_config',
    'BackendError',
    'CognitoError',
    'NotAuthenticatedError',
]

__version__ = '1.0.0'
