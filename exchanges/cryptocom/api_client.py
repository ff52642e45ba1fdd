"""
Crypto.com Exchange REST API Client (v2, JSON-RPC style)

This module provides an async HTTP client for the v2 REST API.
It handles:
- Public GET endpoints with query parameters
- Private POST endpoints with HMAC-SHA256 signed JSON bodies
- Request pacing and cooldown after HTTP 429 (via the shared Pacer)
- Data normalization to our schemas

Request Format (private):
    {
      "id": 0,
      "method": "private/get-order-detail",
      "api_key": "...",
      "params": {"instrument_name": "ETH_BTC", "order_id": "1234"},
      "sig": "<hex hmac>",
      "nonce": 1587846358253
    }

Response Format:
    {"code": 0, "method": "...", "result": {...}}

Per-call Rates (requests per second):
    public endpoints        normal rate (settings)
    get-account-summary     30
    create/cancel-order     150
    get-order-detail        300
    get-open-orders         30
    get-trades              1

Usage:
    async with CryptoComAPIClient(api_key, secret) as client:
        book = await client.get_order_book("ETH_BTC")
        orders = await client.get_open_orders("ETH_BTC")
"""

from typing import Any, Dict, List, Optional

from core.config import settings
from core.errors import NotFoundError
from core.exchange_interface import ExchangeInterface
from core.pagination import paginate
from core.protocol import JSON_RPC
from core.schemas import Account, BookEntry, Order, OrderBook, OrderSide, OrderType, Symbol, Ticker, Trade
from core.utils.time import optional_utc_datetime


def page_params(symbol: Optional[str], page: int) -> Dict[str, Any]:
    """Filter/page parameters for list endpoints; page 0 is implicit"""
    params: Dict[str, Any] = {}
    if symbol:
        params["instrument_name"] = symbol
    if page > 0:
        params["page"] = page
    return params


def parse_ticker(item: Dict[str, Any]) -> Ticker:
    """
    Normalize a v2 ticker row.

    Raw Format:
        {"i": "ETH_BTC", "b": 0.0251, "k": 0.0252, "a": 0.0251,
         "t": 1587523078844, "v": 1021.3, "h": 0.026, "l": 0.024, "c": -0.001}
    """
    return Ticker(
        symbol=item.get("i", ""),
        last=item.get("a"),
        high=item.get("h"),
        low=item.get("l"),
        volume=item.get("v"),
        bid=item.get("b"),
        ask=item.get("k"),
        timestamp=optional_utc_datetime(item.get("t")),
    )


def parse_order(item: Dict[str, Any]) -> Order:
    """Normalize a v2 order_info / order_list row"""
    return Order(
        order_id=item.get("order_id"),
        symbol=item.get("instrument_name", ""),
        side=item.get("side"),
        type=item.get("type"),
        status=item.get("status"),
        price=item.get("price"),
        quantity=item.get("quantity"),
        cumulative_quantity=item.get("cumulative_quantity"),
        cumulative_value=item.get("cumulative_value"),
        avg_price=item.get("avg_price"),
        fee_currency=item.get("fee_currency", ""),
        reason=item.get("reason"),
        created_at=optional_utc_datetime(item.get("create_time")),
        updated_at=optional_utc_datetime(item.get("update_time")),
    )


def parse_trade(item: Dict[str, Any]) -> Trade:
    """Normalize a v2 trade_list row"""
    return Trade(
        trade_id=item.get("trade_id"),
        order_id=item.get("order_id"),
        symbol=item.get("instrument_name", ""),
        side=item.get("side"),
        price=item.get("traded_price"),
        quantity=item.get("traded_quantity"),
        fee=item.get("fee"),
        fee_currency=item.get("fee_currency", ""),
        liquidity=item.get("liquidity_indicator") or "",
        created_at=optional_utc_datetime(item.get("create_time")),
    )


def as_list(value: Any) -> List[Any]:
    """Single-instrument queries sometimes return an object instead of a list"""
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    return list(value)


class CryptoComAPIClient(ExchangeInterface):
    """
    Async client for the v2 (JSON-RPC style) REST API

    All methods return normalized data using our Pydantic schemas.

    Example:
        >>> async with CryptoComAPIClient() as client:
        ...     symbols = await client.get_symbols()
        ...     print(f"Fetched {len(symbols)} instruments")

    Notes:
        - Public endpoints need no credentials
        - Private endpoints raise MissingCredentialsError without key/secret
        - Instrument names use an underscore: "ETH_BTC"
    """

    name = "cryptocom-v2"
    variant = JSON_RPC
    default_base_url = settings.cryptocom_base_url

    # ============================================
    # Public Market Data
    # ============================================

    async def get_symbols(self) -> List[Symbol]:
        """
        Fetch all tradable instruments.

        Endpoint:
            GET public/get-instruments

        Response Format:
            {"instruments": [{"instrument_name": "ETH_CRO", "quote_currency": "CRO",
                              "base_currency": "ETH", "price_decimals": 2,
                              "quantity_decimals": 2, "max_quantity": "100000000",
                              "min_quantity": "0.01"}]}
        """
        result = await self._get("public/get-instruments")
        symbols = [
            Symbol(
                symbol=item.get("instrument_name", ""),
                base_currency=item.get("base_currency", ""),
                quote_currency=item.get("quote_currency", ""),
                price_decimals=item.get("price_decimals"),
                quantity_decimals=item.get("quantity_decimals"),
                min_quantity=item.get("min_quantity"),
                max_quantity=item.get("max_quantity"),
            )
            for item in (result or {}).get("instruments") or []
        ]
        self.logger.info(f"Fetched {len(symbols)} instruments")
        return symbols

    async def get_tickers(self) -> List[Ticker]:
        """
        Fetch tickers for all instruments.

        Endpoint:
            GET public/get-ticker
        """
        result = await self._get("public/get-ticker")
        return [parse_ticker(item) for item in as_list((result or {}).get("data"))]

    async def get_ticker(self, symbol: str) -> Ticker:
        """
        Fetch the ticker for one instrument.

        Endpoint:
            GET public/get-ticker?instrument_name=ETH_BTC
        """
        result = await self._get("public/get-ticker", {"instrument_name": symbol})
        data = as_list((result or {}).get("data"))
        if not data:
            raise NotFoundError(symbol)
        ticker = parse_ticker(data[0])
        if not ticker.symbol:
            ticker.symbol = symbol
        return ticker

    async def get_order_book(self, symbol: str) -> OrderBook:
        """
        Fetch the order book for one instrument.

        Endpoint:
            GET public/get-book?instrument_name=ETH_BTC

        Response Format:
            {"instrument_name": "ETH_BTC", "depth": 150,
             "data": [{"bids": [[0.0251, 1.2, 3]], "asks": [[0.0252, 0.7, 1]], "t": 1587523078844}]}
        """
        result = await self._get("public/get-book", {"instrument_name": symbol})
        data = as_list((result or {}).get("data"))
        if not data:
            raise NotFoundError(symbol)
        book = data[0]
        return OrderBook(
            symbol=(result or {}).get("instrument_name") or symbol,
            bids=[BookEntry.from_row(row) for row in book.get("bids") or []],
            asks=[BookEntry.from_row(row) for row in book.get("asks") or []],
            timestamp=optional_utc_datetime(book.get("t")),
        )

    # ============================================
    # Private Account / Trading
    # ============================================

    async def _account_summary(self, params: Optional[Dict[str, Any]] = None) -> List[Account]:
        result = await self._post("private/get-account-summary", params, 30)
        return [Account(**item) for item in (result or {}).get("accounts") or []]

    async def get_accounts(self) -> List[Account]:
        """
        Fetch balances of all currencies.

        Endpoint:
            POST private/get-account-summary
        """
        return await self._account_summary()

    async def get_account(self, asset: str) -> Account:
        """
        Fetch the balance of one currency.

        Endpoint:
            POST private/get-account-summary {"currency": "CRO"}
        """
        accounts = await self._account_summary({"currency": asset})
        if not accounts:
            raise NotFoundError(asset)
        return accounts[0]

    async def _submit_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        quantity: float,
        price: Optional[float]
    ) -> str:
        """
        Endpoint:
            POST private/create-order
            {"instrument_name": "ETH_BTC", "side": "BUY", "type": "LIMIT", "quantity": 1.5, "price": 0.05}
        """
        params: Dict[str, Any] = {
            "instrument_name": symbol,
            "side": side.value,
            "type": order_type.value,
            "quantity": quantity,
        }
        if order_type.is_limit:
            params["price"] = price
        result = await self._post("private/create-order", params, 150)
        return str((result or {}).get("order_id", ""))

    async def get_order(self, symbol: str, order_id: str) -> Order:
        """
        Fetch the current state of one order.

        Endpoint:
            POST private/get-order-detail {"order_id": "..."}
        """
        params = {"instrument_name": symbol, "order_id": order_id}
        result = await self._post("private/get-order-detail", params, 300)
        return parse_order((result or {}).get("order_info") or {})

    async def cancel_order(self, symbol: str, order_id: str) -> None:
        """
        Request cancellation of one order.

        Endpoint:
            POST private/cancel-order {"instrument_name": "...", "order_id": "..."}
        """
        await self._post("private/cancel-order", {"instrument_name": symbol, "order_id": order_id}, 150)
        self.logger.info(f"Cancel requested for order {order_id} on {symbol}")

    async def get_open_orders(self, symbol: Optional[str] = None) -> List[Order]:
        """
        Fetch all open orders across all pages.

        Endpoint:
            POST private/get-open-orders {"instrument_name": "...", "page": n}

        Response Format:
            {"count": 120, "order_list": [{...}, ...]}
        """
        async def fetch(page: int):
            result = await self._post("private/get-open-orders", page_params(symbol, page), 30) or {}
            return int(result.get("count") or 0), [parse_order(item) for item in result.get("order_list") or []]

        orders = await paginate(fetch)
        self.logger.info(f"Fetched {len(orders)} open orders" + (f" for {symbol}" if symbol else ""))
        return orders

    async def get_my_trades(self, symbol: Optional[str] = None) -> List[Trade]:
        """
        Fetch our trade history across all pages.

        Endpoint:
            POST private/get-trades {"instrument_name": "...", "page": n}

        Response Format:
            {"count": 3, "trade_list": [{...}, ...]}
        """
        async def fetch(page: int):
            result = await self._post("private/get-trades", page_params(symbol, page), 1) or {}
            trades = [parse_trade(item) for item in result.get("trade_list") or []]
            return int(result.get("count") or 0), trades

        trades = await paginate(fetch)
        self.logger.info(f"Fetched {len(trades)} trades" + (f" for {symbol}" if symbol else ""))
        return trades
