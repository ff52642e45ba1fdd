"""
Test Suite

Contains unit tests for the REST client library.

Structure:
- tests/unit/: Tests for individual components (signer, pacer, dispatcher,
  pagination, schemas, config) and for both versioned clients with
  stubbed transports. No test touches the network.

Uses pytest with pytest-asyncio for testing async functionality.
"""
