"""
Unit Tests for the v2 (JSON-RPC) API Client

These tests verify that the CryptoComAPIClient:
- Calls the right endpoint with the right parameters and per-call rate
- Normalizes v2 responses to our schemas
- Verifies freshly created orders (rejected / expired)
- Follows pagination for open orders and trades

The dispatcher is bypassed by replacing _get/_post with monkeypatch.

Run with:
    pytest tests/unit/test_cryptocom_api_client.py -v
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from core.errors import APIError, NotFoundError, OrderError, TransportError
from core.schemas import Account, Order, OrderBook, OrderSide, OrderStatus, OrderType, Symbol, Ticker, Trade
from exchanges.cryptocom import CryptoComAPIClient


# ============================================
# Fixtures
# ============================================

@pytest_asyncio.fixture
async def api_client():
    """Create a CryptoComAPIClient instance with dummy credentials"""
    async with CryptoComAPIClient(api_key="key", secret_key="secret") as client:
        yield client


class FakeEndpoints:
    """
    Stand-in for _get/_post.

    responses maps path -> payload, or path -> callable(params) for
    endpoints whose answer depends on the parameters.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def _answer(self, method, path, params, rate):
        self.calls.append((method, path, dict(params or {}), rate))
        response = self.responses[path]
        if isinstance(response, Exception):
            raise response
        return response(params or {}) if callable(response) else response

    async def get(self, path, params=None):
        return self._answer("GET", path, params, 0)

    async def post(self, path, params=None, requests_per_second=0):
        return self._answer("POST", path, params, requests_per_second)

    def install(self, client, monkeypatch):
        monkeypatch.setattr(client, "_get", self.get)
        monkeypatch.setattr(client, "_post", self.post)
        return self


def order_info(status, **extra):
    info = {
        "status": status,
        "side": "BUY",
        "price": 0.05,
        "quantity": 1.5,
        "order_id": "367107623521528450",
        "client_oid": "",
        "create_time": 1588777459755,
        "update_time": 0,
        "type": "LIMIT",
        "instrument_name": "ETH_BTC",
        "cumulative_quantity": 0,
        "cumulative_value": 0,
        "avg_price": 0,
        "fee_currency": "ETH",
        "time_in_force": "GOOD_TILL_CANCEL",
    }
    info.update(extra)
    return {"trade_list": [], "order_info": info}


# ============================================
# Public Market Data
# ============================================

class TestGetSymbols:
    """Tests for get_symbols"""

    @pytest.mark.asyncio
    async def test_returns_normalized_symbols(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "public/get-instruments": {
                "instruments": [
                    {
                        "instrument_name": "ETH_CRO",
                        "quote_currency": "CRO",
                        "base_currency": "ETH",
                        "price_decimals": 2,
                        "quantity_decimals": 2,
                        "max_quantity": "100000000",
                        "min_quantity": "0.01",
                    },
                    {"instrument_name": "CRO_BTC", "quote_currency": "BTC", "base_currency": "CRO"},
                ]
            }
        }).install(api_client, monkeypatch)

        result = await api_client.get_symbols()

        assert fake.calls == [("GET", "public/get-instruments", {}, 0)]
        assert len(result) == 2
        assert isinstance(result[0], Symbol)
        assert result[0].symbol == "ETH_CRO"
        assert result[0].min_quantity == 0.01
        assert result[0].max_quantity == 100000000
        assert result[1].price_decimals == 0

    @pytest.mark.asyncio
    async def test_empty_instruments(self, api_client, monkeypatch):
        FakeEndpoints({"public/get-instruments": {"instruments": None}}).install(api_client, monkeypatch)
        assert await api_client.get_symbols() == []


class TestGetTicker:
    """Tests for get_ticker / get_tickers"""

    TICKER = {
        "i": "ETH_BTC", "b": 0.0251, "k": 0.0252, "a": 0.02515,
        "t": 1587523078844, "v": 1021.3, "h": 0.026, "l": 0.024, "c": -0.001,
    }

    @pytest.mark.asyncio
    async def test_get_ticker_normalizes_fields(self, api_client, monkeypatch):
        fake = FakeEndpoints({"public/get-ticker": {"instrument_name": "ETH_BTC", "data": self.TICKER}})
        fake.install(api_client, monkeypatch)

        ticker = await api_client.get_ticker("ETH_BTC")

        assert fake.calls == [("GET", "public/get-ticker", {"instrument_name": "ETH_BTC"}, 0)]
        assert isinstance(ticker, Ticker)
        assert ticker.symbol == "ETH_BTC"
        assert ticker.last == 0.02515
        assert ticker.bid == 0.0251
        assert ticker.ask == 0.0252
        assert ticker.high == 0.026
        assert ticker.low == 0.024
        assert ticker.volume == 1021.3
        assert ticker.timestamp == datetime(2020, 4, 22, 2, 37, 58, 844000, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_null_last_price_becomes_zero(self, api_client, monkeypatch):
        FakeEndpoints({
            "public/get-ticker": {"data": [{"i": "NEW_CRO", "a": None, "b": None, "k": None}]}
        }).install(api_client, monkeypatch)

        ticker = await api_client.get_ticker("NEW_CRO")

        assert ticker.last == 0
        assert ticker.bid == 0

    @pytest.mark.asyncio
    async def test_unknown_symbol_raises_not_found(self, api_client, monkeypatch):
        FakeEndpoints({"public/get-ticker": {"data": []}}).install(api_client, monkeypatch)

        with pytest.raises(NotFoundError, match="NOPE_BTC does not exist"):
            await api_client.get_ticker("NOPE_BTC")

    @pytest.mark.asyncio
    async def test_get_tickers_returns_all(self, api_client, monkeypatch):
        FakeEndpoints({
            "public/get-ticker": {"data": [self.TICKER, {**self.TICKER, "i": "CRO_BTC"}]}
        }).install(api_client, monkeypatch)

        tickers = await api_client.get_tickers()

        assert [t.symbol for t in tickers] == ["ETH_BTC", "CRO_BTC"]


class TestGetOrderBook:
    """Tests for get_order_book"""

    @pytest.mark.asyncio
    async def test_parses_rows(self, api_client, monkeypatch):
        FakeEndpoints({
            "public/get-book": {
                "instrument_name": "ETH_BTC",
                "depth": 150,
                "data": [{
                    "bids": [[0.0251, 1.2, 3], ["0.0250", "4.5", 1]],
                    "asks": [[0.0252, 0.7, 1]],
                    "t": 1587523078844,
                }],
            }
        }).install(api_client, monkeypatch)

        book = await api_client.get_order_book("ETH_BTC")

        assert isinstance(book, OrderBook)
        assert book.symbol == "ETH_BTC"
        assert len(book.bids) == 2
        assert book.best_bid.price == 0.0251
        assert book.bids[1].size == 4.5
        assert book.best_ask.size == 0.7
        assert book.timestamp is not None

    @pytest.mark.asyncio
    async def test_missing_book_raises_not_found(self, api_client, monkeypatch):
        FakeEndpoints({"public/get-book": {"data": []}}).install(api_client, monkeypatch)

        with pytest.raises(NotFoundError):
            await api_client.get_order_book("NOPE_BTC")


# ============================================
# Private Account Data
# ============================================

class TestAccounts:
    """Tests for get_accounts / get_account"""

    ACCOUNTS = {
        "accounts": [
            {"balance": 99999999.9, "available": 99999996.0, "order": 3.9, "stake": 0, "currency": "CRO"},
            {"balance": 1.5, "available": 1.5, "order": 0, "stake": 0, "currency": "ETH"},
        ]
    }

    @pytest.mark.asyncio
    async def test_get_accounts(self, api_client, monkeypatch):
        fake = FakeEndpoints({"private/get-account-summary": self.ACCOUNTS}).install(api_client, monkeypatch)

        accounts = await api_client.get_accounts()

        assert fake.calls == [("POST", "private/get-account-summary", {}, 30)]
        assert len(accounts) == 2
        assert isinstance(accounts[0], Account)
        assert accounts[0].currency == "CRO"
        assert accounts[0].order == 3.9

    @pytest.mark.asyncio
    async def test_get_account_filters_by_currency(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/get-account-summary": {"accounts": [self.ACCOUNTS["accounts"][1]]}
        }).install(api_client, monkeypatch)

        account = await api_client.get_account("ETH")

        assert fake.calls[0][2] == {"currency": "ETH"}
        assert account.available == 1.5

    @pytest.mark.asyncio
    async def test_unknown_currency_raises_not_found(self, api_client, monkeypatch):
        FakeEndpoints({"private/get-account-summary": {"accounts": []}}).install(api_client, monkeypatch)

        with pytest.raises(NotFoundError, match="XYZ does not exist"):
            await api_client.get_account("XYZ")


# ============================================
# Orders
# ============================================

class TestCreateOrder:
    """Tests for create_order and its post-creation check"""

    @pytest.mark.asyncio
    async def test_limit_order_sends_price(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/create-order": {"order_id": "367107623521528450", "client_oid": ""},
            "private/get-order-detail": order_info("ACTIVE"),
        }).install(api_client, monkeypatch)

        order_id = await api_client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)

        assert order_id == "367107623521528450"
        create, detail = fake.calls
        assert create == (
            "POST", "private/create-order",
            {"instrument_name": "ETH_BTC", "side": "BUY", "type": "LIMIT", "quantity": 1.5, "price": 0.05},
            150,
        )
        assert detail == (
            "POST", "private/get-order-detail",
            {"instrument_name": "ETH_BTC", "order_id": "367107623521528450"},
            300,
        )

    @pytest.mark.asyncio
    async def test_market_order_omits_price(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/create-order": {"order_id": "1"},
            "private/get-order-detail": order_info("FILLED", type="MARKET"),
        }).install(api_client, monkeypatch)

        await api_client.create_order("ETH_BTC", "SELL", "MARKET", 2, price=0.05)

        assert "price" not in fake.calls[0][2]
        assert fake.calls[0][2]["side"] == "SELL"

    @pytest.mark.asyncio
    async def test_rejected_order_raises(self, api_client, monkeypatch):
        FakeEndpoints({
            "private/create-order": {"order_id": "9"},
            "private/get-order-detail": order_info("REJECTED", order_id="9", reason="INSUFFICIENT_FUNDS"),
        }).install(api_client, monkeypatch)

        with pytest.raises(OrderError) as exc_info:
            await api_client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)

        assert exc_info.value.order_id == "9"
        assert str(exc_info.value) == "order rejected. reason: INSUFFICIENT_FUNDS"

    @pytest.mark.asyncio
    async def test_expired_buy_reports_quote_balance(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/create-order": {"order_id": "7"},
            "private/get-order-detail": order_info("EXPIRED", order_id="7"),
            "private/get-account-summary": {
                "accounts": [{"currency": "BTC", "balance": 0.01, "available": 0.01, "order": 0, "stake": 0}]
            },
        }).install(api_client, monkeypatch)

        with pytest.raises(OrderError) as exc_info:
            await api_client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)

        assert str(exc_info.value) == (
            "cannot BUY 1.5 unit(s) of ETH at 0.05 BTC. your available balance is 0.01 BTC"
        )
        assert fake.calls[-1][2] == {"currency": "BTC"}

    @pytest.mark.asyncio
    async def test_expired_market_sell_uses_last_price_and_base_balance(self, api_client, monkeypatch):
        FakeEndpoints({
            "private/create-order": {"order_id": "8"},
            "private/get-order-detail": order_info("EXPIRED", order_id="8", side="SELL", type="MARKET"),
            "public/get-ticker": {"data": [{"i": "ETH_BTC", "a": 0.0249}]},
            "private/get-account-summary": {"accounts": [{"currency": "ETH", "available": 0.2}]},
        }).install(api_client, monkeypatch)

        with pytest.raises(OrderError) as exc_info:
            await api_client.create_order("ETH_BTC", OrderSide.SELL, OrderType.MARKET, 3)

        assert str(exc_info.value) == (
            "cannot SELL 3 unit(s) of ETH at 0.0249 BTC. your available balance is 0.2 ETH"
        )

    @pytest.mark.asyncio
    async def test_expired_message_survives_balance_failure(self, api_client, monkeypatch):
        FakeEndpoints({
            "private/create-order": {"order_id": "7"},
            "private/get-order-detail": order_info("EXPIRED", order_id="7"),
            "private/get-account-summary": APIError("POST", "private/get-account-summary", 10001, "SYS_ERROR"),
        }).install(api_client, monkeypatch)

        with pytest.raises(OrderError, match="your available balance is 0 BTC"):
            await api_client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)

    @pytest.mark.asyncio
    async def test_failed_status_check_keeps_order_id(self, api_client, monkeypatch):
        FakeEndpoints({
            "private/create-order": {"order_id": "1234"},
            "private/get-order-detail": TransportError(
                "POST private/get-order-detail timed out", "POST", "private/get-order-detail"
            ),
        }).install(api_client, monkeypatch)

        with pytest.raises(OrderError) as exc_info:
            await api_client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)

        assert exc_info.value.order_id == "1234"
        assert "created but status check failed" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, TransportError)


class TestOrderQueries:
    """Tests for get_order / cancel_order"""

    @pytest.mark.asyncio
    async def test_get_order_normalizes(self, api_client, monkeypatch):
        FakeEndpoints({
            "private/get-order-detail": order_info(
                "FILLED", cumulative_quantity=1.5, cumulative_value=0.075, avg_price=0.05
            )
        }).install(api_client, monkeypatch)

        order = await api_client.get_order("ETH_BTC", "367107623521528450")

        assert isinstance(order, Order)
        assert order.status == OrderStatus.FILLED
        assert order.side == OrderSide.BUY
        assert order.type == OrderType.LIMIT
        assert order.cumulative_quantity == 1.5
        assert order.created_at == datetime(2020, 5, 6, 15, 4, 19, 755000, tzinfo=timezone.utc)
        assert order.updated_at is None
        assert order.is_open is False

    @pytest.mark.asyncio
    async def test_cancel_order(self, api_client, monkeypatch):
        mock_post = AsyncMock(return_value=None)
        monkeypatch.setattr(api_client, "_post", mock_post)

        assert await api_client.cancel_order("ETH_BTC", "42") is None
        mock_post.assert_awaited_once_with(
            "private/cancel-order", {"instrument_name": "ETH_BTC", "order_id": "42"}, 150
        )


class TestPagedQueries:
    """Tests for get_open_orders / get_my_trades"""

    @pytest.mark.asyncio
    async def test_open_orders_follow_pages(self, api_client, monkeypatch):
        all_orders = [order_info("ACTIVE", order_id=str(i))["order_info"] for i in range(120)]

        def page(params):
            start = params.get("page", 0) * 50
            return {"count": 120, "order_list": all_orders[start:start + 50]}

        fake = FakeEndpoints({"private/get-open-orders": page}).install(api_client, monkeypatch)

        orders = await api_client.get_open_orders("ETH_BTC")

        assert len(orders) == 120
        assert orders[119].order_id == "119"
        assert [call[2] for call in fake.calls] == [
            {"instrument_name": "ETH_BTC"},
            {"instrument_name": "ETH_BTC", "page": 1},
            {"instrument_name": "ETH_BTC", "page": 2},
        ]
        assert all(call[3] == 30 for call in fake.calls)

    @pytest.mark.asyncio
    async def test_open_orders_without_symbol(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/get-open-orders": {"count": 0, "order_list": []}
        }).install(api_client, monkeypatch)

        assert await api_client.get_open_orders() == []
        assert fake.calls[0][2] == {}

    @pytest.mark.asyncio
    async def test_trades(self, api_client, monkeypatch):
        fake = FakeEndpoints({
            "private/get-trades": {
                "count": 1,
                "trade_list": [{
                    "side": "SELL",
                    "instrument_name": "ETH_CRO",
                    "fee": 0.014,
                    "trade_id": "367107655537806900",
                    "create_time": 1588777459755,
                    "traded_price": 7,
                    "traded_quantity": 1,
                    "fee_currency": "CRO",
                    "order_id": "367107623521528450",
                    "liquidity_indicator": "TAKER",
                }],
            }
        }).install(api_client, monkeypatch)

        trades = await api_client.get_my_trades("ETH_CRO")

        assert fake.calls[0][3] == 1
        assert len(trades) == 1
        assert isinstance(trades[0], Trade)
        assert trades[0].side == OrderSide.SELL
        assert trades[0].price == 7
        assert trades[0].quantity == 1
        assert trades[0].liquidity == "TAKER"


# ============================================
# Session Handling
# ============================================

class TestContextManager:
    """Tests for session lifecycle"""

    @pytest.mark.asyncio
    async def test_context_manager_creates_session(self):
        client = CryptoComAPIClient()
        async with client:
            assert client.session is not None
            assert client.dispatcher is not None
            assert client.dispatcher.variant.name == "v2"
        assert client.session is None

    @pytest.mark.asyncio
    async def test_context_manager_raises_if_not_used(self):
        client = CryptoComAPIClient()
        with pytest.raises(RuntimeError, match="async with"):
            await client.get_symbols()
