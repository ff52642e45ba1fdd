"""
Exchange Connectors Package

Each API version of the exchange has its own subfolder with an
api_client.py implementing core.exchange_interface.ExchangeInterface:

- cryptocom/:    v2 JSON-RPC style API (HMAC-SHA256 signed JSON bodies)
- cryptocom_v1/: v1 form-encoded API (SHA-256 signed form bodies)

Both share the pacer, signer and dispatcher from core/ and only map
endpoints and JSON shapes.
"""
