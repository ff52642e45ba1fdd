"""
Crypto.com Exchange v1 Connector

Form-encoded REST API (the predecessor of the v2 JSON-RPC API).

Endpoints Used:
    Public (GET):
        - symbols, ticker, depth

    Private (signed form POST):
        - account
        - order, orders/cancel, showOrder
        - openOrders, myTrades
"""

from .api_client import CryptoComV1APIClient

__all__ = ["CryptoComV1APIClient"]
