"""
Core Package

Contains the version-agnostic machinery shared by all REST clients:
- Pacer: spaces requests and slows down after HTTP 429
- Signer: canonical parameter strings and request signatures
- Dispatcher: pace -> sign -> send -> interpret -> retry on 429
- ProtocolVariant: what differs between API versions
- ExchangeInterface: abstract client contract
- Schemas: Pydantic models for normalized records (Ticker, Order, ...)
"""
