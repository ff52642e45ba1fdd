"""
Crypto.com Exchange REST API Client (v1, form-encoded)

This module provides an async HTTP client for the older v1 REST API.
It differs from v2 in three ways:
- Private calls are form-encoded POSTs carrying api_key, time and sign
  next to the business parameters
- The signature is SHA-256 over the sorted parameters followed by the secret
- Responses use {"code": "0", "msg": "suc", "data": ...}

Symbols:
    v1 names instruments "ethbtc". Methods accept either "ethbtc" or
    "ETH_BTC"; records coming back use "ETH_BTC" wherever the response
    names base and quote separately.

Usage:
    async with CryptoComV1APIClient(api_key, secret) as client:
        ticker = await client.get_ticker("ETH_BTC")
        trades = await client.get_my_trades("ETH_BTC")
"""

from typing import Any, Dict, List, Optional, Tuple

from core.config import settings
from core.errors import ExchangeError, NotFoundError
from core.exchange_interface import ExchangeInterface
from core.pagination import paginate
from core.protocol import FORM
from core.schemas import (
    Account,
    BookEntry,
    Order,
    OrderBook,
    OrderSide,
    OrderStatus,
    OrderType,
    Symbol,
    Ticker,
    Trade,
    split_symbol,
)
from core.utils.time import optional_utc_datetime


# Numeric order states reported by v1
ORDER_STATUS = {
    0: OrderStatus.NEW,               # initial order
    1: OrderStatus.ACTIVE,            # entered the market, nothing filled
    2: OrderStatus.FILLED,
    3: OrderStatus.PARTIALLY_FILLED,
    4: OrderStatus.CANCELED,
    5: OrderStatus.PENDING_CANCEL,
    6: OrderStatus.EXPIRED,           # abnormal order
}

ORDER_TYPE = {
    "1": OrderType.LIMIT,
    "2": OrderType.MARKET,
}

ORDER_TYPE_CODE = {v: k for k, v in ORDER_TYPE.items()}


def to_v1_symbol(symbol: str) -> str:
    """ "ETH_BTC" -> "ethbtc" """
    return symbol.replace("_", "").lower()


def join_symbol(base: str, quote: str) -> str:
    """ ("eth", "btc") -> "ETH_BTC" """
    if not base or not quote:
        return f"{base}{quote}".upper()
    return f"{base.upper()}_{quote.upper()}"


def page_params(symbol: Optional[str], page: int) -> Dict[str, Any]:
    """Filter/page parameters for list endpoints; page 0 is implicit"""
    params: Dict[str, Any] = {}
    if symbol:
        params["symbol"] = to_v1_symbol(symbol)
    if page > 0:
        params["page"] = page
    return params


def parse_ticker(item: Dict[str, Any], symbol: str = "") -> Ticker:
    """
    Normalize a v1 ticker object.

    Raw Format:
        {"symbol": "ethbtc", "high": "0.026", "vol": "1021.3", "last": "0.0251",
         "low": "0.024", "buy": "0.0251", "sell": "0.0252", "rose": "-0.01", "time": 1587523078844}
    """
    return Ticker(
        symbol=symbol or item.get("symbol", ""),
        last=item.get("last"),
        high=item.get("high"),
        low=item.get("low"),
        volume=item.get("vol"),
        bid=item.get("buy"),
        ask=item.get("sell"),
        timestamp=optional_utc_datetime(item.get("time")),
    )


def parse_order(item: Dict[str, Any]) -> Order:
    """
    Normalize a v1 order.

    Raw Format:
        {"id": "1234", "side": "BUY", "type": 1, "status": 2, "price": "0.05",
         "volume": "1.5", "deal_volume": "1.5", "deal_price": "0.075",
         "avg_price": "0.05", "fee": "0.0001", "fee_coin": "btc",
         "baseCoin": "eth", "countCoin": "btc", "created_at": 1587523078844, ...}
    """
    try:
        status = ORDER_STATUS.get(int(item.get("status")), OrderStatus.UNKNOWN)
    except (TypeError, ValueError):
        status = OrderStatus.UNKNOWN

    return Order(
        order_id=item.get("id"),
        symbol=join_symbol(item.get("baseCoin", ""), item.get("countCoin", "")),
        side=item.get("side"),
        type=ORDER_TYPE.get(str(item.get("type"))),
        status=status,
        price=item.get("price"),
        quantity=item.get("volume"),
        cumulative_quantity=item.get("deal_volume"),
        cumulative_value=item.get("deal_price"),
        avg_price=item.get("avg_price"),
        fee=item.get("fee"),
        fee_currency=(item.get("fee_coin") or "").upper(),
        reason=item.get("status_msg"),
        created_at=optional_utc_datetime(item.get("created_at")),
        updated_at=optional_utc_datetime(item.get("updated_at")),
    )


def parse_trade(item: Dict[str, Any]) -> Trade:
    """Normalize a v1 trade (myTrades resultList row)"""
    return Trade(
        trade_id=item.get("id"),
        symbol=item.get("symbol", ""),
        side=item.get("side"),
        price=item.get("price"),
        quantity=item.get("volume"),
        fee=item.get("fee"),
        fee_currency=(item.get("feeCoin") or "").upper(),
        created_at=optional_utc_datetime(item.get("ctime")),
    )


class CryptoComV1APIClient(ExchangeInterface):
    """
    Async client for the v1 (form-encoded) REST API

    Same interface and schemas as CryptoComAPIClient; only endpoint paths,
    signing and JSON shapes differ.

    Notes:
        - Only LIMIT and MARKET orders exist in v1
        - Balances have no staking component (stake is always 0)
    """

    name = "cryptocom-v1"
    variant = FORM
    default_base_url = settings.cryptocom_v1_base_url

    # ============================================
    # Public Market Data
    # ============================================

    async def get_symbols(self) -> List[Symbol]:
        """
        Fetch all tradable instruments.

        Endpoint:
            GET symbols

        Response Format:
            [{"symbol": "ethbtc", "count_coin": "btc", "amount_precision": 3,
              "base_coin": "eth", "price_precision": 8}]
        """
        data = await self._get("symbols")
        symbols = [
            Symbol(
                symbol=join_symbol(item.get("base_coin", ""), item.get("count_coin", "")),
                base_currency=(item.get("base_coin") or "").upper(),
                quote_currency=(item.get("count_coin") or "").upper(),
                price_decimals=item.get("price_precision"),
                quantity_decimals=item.get("amount_precision"),
            )
            for item in data or []
        ]
        self.logger.info(f"Fetched {len(symbols)} symbols")
        return symbols

    async def get_tickers(self) -> List[Ticker]:
        """
        Fetch tickers for all instruments.

        Endpoint:
            GET ticker

        Response Format:
            {"date": 1587523078844, "ticker": [{"symbol": "ethbtc", ...}, ...]}

        Notes:
            Symbols are returned as the exchange names them ("ethbtc").
        """
        data = await self._get("ticker") or {}
        date = optional_utc_datetime(data.get("date"))
        tickers = []
        for item in data.get("ticker") or []:
            ticker = parse_ticker(item)
            if ticker.timestamp is None:
                ticker.timestamp = date
            tickers.append(ticker)
        return tickers

    async def get_ticker(self, symbol: str) -> Ticker:
        """
        Fetch the ticker for one instrument.

        Endpoint:
            GET ticker?symbol=ethbtc
        """
        data = await self._get("ticker", {"symbol": to_v1_symbol(symbol)})
        if not data:
            raise NotFoundError(symbol)
        return parse_ticker(data, symbol=symbol)

    async def get_order_book(self, symbol: str) -> OrderBook:
        """
        Fetch the order book for one instrument.

        Endpoint:
            GET depth?symbol=ethbtc&type=step0

        Response Format:
            {"tick": {"asks": [["0.0252", "0.7"]], "bids": [["0.0251", "1.2"]], "time": 1587523078844}}
        """
        data = await self._get("depth", {"symbol": to_v1_symbol(symbol), "type": "step0"}) or {}
        tick = data.get("tick")
        if not tick:
            raise NotFoundError(symbol)
        return OrderBook(
            symbol=symbol,
            bids=[BookEntry.from_row(row) for row in tick.get("bids") or []],
            asks=[BookEntry.from_row(row) for row in tick.get("asks") or []],
            timestamp=optional_utc_datetime(tick.get("time")),
        )

    # ============================================
    # Private Account / Trading
    # ============================================

    async def get_accounts(self) -> List[Account]:
        """
        Fetch balances of all currencies.

        Endpoint:
            POST account

        Response Format:
            {"total_asset": "0.5", "coin_list": [{"coin": "btc", "normal": "0.4",
                                                  "locked": "0.1", "btcValuation": "0.5"}]}
        """
        data = await self._post("account", None, 30) or {}
        accounts = []
        for item in data.get("coin_list") or []:
            available = float(item.get("normal") or 0)
            locked = float(item.get("locked") or 0)
            accounts.append(Account(
                currency=(item.get("coin") or "").upper(),
                balance=available + locked,
                available=available,
                order=locked,
            ))
        return accounts

    async def get_account(self, asset: str) -> Account:
        """
        Fetch the balance of one currency.

        v1 has no per-currency query, so all balances are fetched and filtered.
        """
        for account in await self.get_accounts():
            if account.currency == asset.upper():
                return account
        raise NotFoundError(asset)

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
            POST order {"symbol": "ethbtc", "side": "BUY", "type": 1, "volume": 1.5, "price": 0.05}
        """
        if order_type not in ORDER_TYPE_CODE:
            raise ValueError(f"v1 API does not support {order_type.value} orders")

        params: Dict[str, Any] = {
            "symbol": to_v1_symbol(symbol),
            "side": side.value,
            "type": ORDER_TYPE_CODE[order_type],
            "volume": quantity,
        }
        if order_type.is_limit:
            params["price"] = price
        data = await self._post("order", params, 150) or {}
        return str(data.get("order_id", ""))

    async def get_order(self, symbol: str, order_id: str) -> Order:
        """
        Fetch the current state of one order.

        Endpoint:
            POST showOrder {"symbol": "ethbtc", "order_id": "..."}
        """
        params = {"symbol": to_v1_symbol(symbol), "order_id": order_id}
        data = await self._post("showOrder", params, 300) or {}
        return parse_order(data.get("order_info") or {})

    async def cancel_order(self, symbol: str, order_id: str) -> None:
        """
        Request cancellation of one order.

        Endpoint:
            POST orders/cancel {"symbol": "ethbtc", "order_id": "..."}
        """
        await self._post("orders/cancel", {"symbol": to_v1_symbol(symbol), "order_id": order_id}, 150)
        self.logger.info(f"Cancel requested for order {order_id} on {symbol}")

    async def get_open_orders(self, symbol: Optional[str] = None) -> List[Order]:
        """
        Fetch all open orders across all pages.

        Endpoint:
            POST openOrders {"symbol": "ethbtc", "page": n}

        Response Format:
            {"count": 120, "resultList": [{...}, ...]}
        """
        async def fetch(page: int):
            data = await self._post("openOrders", page_params(symbol, page), 30) or {}
            return int(data.get("count") or 0), [parse_order(item) for item in data.get("resultList") or []]

        orders = await paginate(fetch)
        self.logger.info(f"Fetched {len(orders)} open orders" + (f" for {symbol}" if symbol else ""))
        return orders

    async def get_my_trades(self, symbol: Optional[str] = None) -> List[Trade]:
        """
        Fetch our trade history across all pages.

        Endpoint:
            POST myTrades {"symbol": "ethbtc", "page": n}
        """
        async def fetch(page: int):
            data = await self._post("myTrades", page_params(symbol, page), 1) or {}
            return int(data.get("count") or 0), [parse_trade(item) for item in data.get("resultList") or []]

        trades = await paginate(fetch)
        self.logger.info(f"Fetched {len(trades)} trades" + (f" for {symbol}" if symbol else ""))
        return trades

    async def _order_assets(self, symbol: str, order: Order) -> Tuple[str, str]:
        """
        v1 names have no separator. A name that has one (the order's, then
        the caller's) is split; otherwise the instrument list is consulted.
        """
        for name in (order.symbol, symbol.upper()):
            if "_" in name:
                return split_symbol(name)

        wanted = to_v1_symbol(symbol)
        try:
            for listed in await self.get_symbols():
                if to_v1_symbol(listed.symbol) == wanted:
                    return listed.base_currency, listed.quote_currency
        except ExchangeError as e:
            self.logger.warning(f"Could not fetch symbols to split {symbol}: {e}")

        self.logger.warning(f"Unknown instrument {symbol}, cannot tell base from quote")
        return symbol.upper(), ""
