"""
Crypto.com Exchange v2 Connector

JSON-RPC style REST API:
    https://exchange-docs.crypto.com/spot/index.html

Endpoints Used:
    Public (GET):
        - public/get-instruments
        - public/get-ticker
        - public/get-book

    Private (signed POST):
        - private/get-account-summary
        - private/create-order, private/cancel-order
        - private/get-order-detail
        - private/get-open-orders, private/get-trades
"""

from .api_client import CryptoComAPIClient

__all__ = ["CryptoComAPIClient"]
