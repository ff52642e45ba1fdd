"""
Exchange Interface: Abstract Contract for All API Versions

This module defines the abstract base class every versioned REST client
implements. By enforcing a consistent interface, we ensure:
- All API versions expose the same methods and return the same schemas
- Session handling, pacing and signing live in one place
- Version-specific code only maps endpoints and JSON shapes

Design Philosophy:
    "Program to an interface, not an implementation"

    A trading script can take any ExchangeInterface and call
    get_ticker()/create_order() without caring which API version is behind it.

Example:
    async with CryptoComAPIClient(api_key, secret) as client:
        ticker = await client.get_ticker("ETH_BTC")
        order_id = await client.create_order("ETH_BTC", OrderSide.BUY, OrderType.LIMIT, 1.5, 0.05)
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from core.config import settings
from core.dispatcher import Dispatcher
from core.errors import ExchangeError, OrderError
from core.logging import get_logger
from core.pacer import RateLimitHooks
from core.protocol import ProtocolVariant
from core.schemas import Account, Order, OrderBook, OrderSide, OrderStatus, OrderType, Symbol, Ticker, Trade
from core.signer import canonical_value


class ExchangeInterface(ABC):
    """
    Abstract Base Class for versioned REST clients.

    Subclasses set the class attributes and implement the abstract methods.
    Everything that talks to the network goes through _get/_post, which
    tests replace with monkeypatch.

    Class Attributes:
        name: Identifier used in logs (e.g. "cryptocom-v2")
        variant: ProtocolVariant describing signing and envelopes
        default_base_url: Used when no base_url is passed

    Abstract Methods (MUST be implemented by all versions):
        - get_symbols, get_tickers, get_ticker, get_order_book
        - get_accounts, get_account
        - _submit_order, get_order, cancel_order
        - get_open_orders, get_my_trades
    """

    name: str
    variant: ProtocolVariant
    default_base_url: str

    def __init__(
        self,
        api_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        base_url: Optional[str] = None,
        pacer: Optional[RateLimitHooks] = None,
        timeout: Optional[float] = None,
        max_rate_limit_retries: Optional[int] = None
    ):
        """
        Initialize the client.

        Args:
            api_key: API key (falls back to settings; not needed for public endpoints)
            secret_key: Secret key (falls back to settings)
            base_url: API root (falls back to default_base_url)
            pacer: Pacer to share with other clients (default: process-wide pacer)
            timeout: Overall transport timeout in seconds
            max_rate_limit_retries: Bound on 429 retries (default: settings)
        """
        self.api_key = api_key if api_key is not None else settings.cryptocom_api_key
        self.secret_key = secret_key if secret_key is not None else settings.cryptocom_secret_key
        self.base_url = base_url or self.default_base_url
        self.pacer = pacer
        self.timeout = timeout or settings.request_timeout
        self.max_rate_limit_retries = (
            max_rate_limit_retries if max_rate_limit_retries is not None else settings.max_rate_limit_retries
        )
        self.logger = get_logger(self.__class__.__module__)
        self.session: Optional[aiohttp.ClientSession] = None
        self.dispatcher: Optional[Dispatcher] = None

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        """
        Enter async context - creates HTTP session and dispatcher.

        Returns:
            Self for use in async with statement
        """
        self.session = aiohttp.ClientSession()
        self.dispatcher = Dispatcher(
            self.session,
            self.variant,
            self.base_url,
            api_key=self.api_key,
            secret_key=self.secret_key,
            pacer=self.pacer,
            timeout=self.timeout,
            max_rate_limit_retries=self.max_rate_limit_retries,
            exchange=self.name
        )
        self.logger.debug(f"{self.__class__.__name__} session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Exit async context - closes HTTP session.
        """
        if self.session:
            await self.session.close()
            self.logger.debug(f"{self.__class__.__name__} session closed")
        self.session = None
        self.dispatcher = None

    # ============================================
    # Request Helpers
    # ============================================

    def _require_dispatcher(self) -> Dispatcher:
        if not self.dispatcher:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")
        return self.dispatcher

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Public GET at the normal rate; returns the envelope payload"""
        return await self._require_dispatcher().call("GET", path, params)

    async def _post(self, path: str, params: Optional[Dict[str, Any]] = None, requests_per_second: float = 0) -> Any:
        """Signed POST with a per-call rate; returns the envelope payload"""
        return await self._require_dispatcher().call("POST", path, params, requests_per_second)

    # ============================================
    # Public Market Data
    # ============================================

    @abstractmethod
    async def get_symbols(self) -> List[Symbol]:
        """All tradable instruments"""

    @abstractmethod
    async def get_tickers(self) -> List[Ticker]:
        """Tickers for all instruments"""

    @abstractmethod
    async def get_ticker(self, symbol: str) -> Ticker:
        """
        Ticker for one instrument.

        Raises:
            NotFoundError: If the exchange returns no ticker for the symbol
        """

    @abstractmethod
    async def get_order_book(self, symbol: str) -> OrderBook:
        """
        Order book for one instrument.

        Raises:
            NotFoundError: If the exchange returns no book for the symbol
        """

    # ============================================
    # Private Account / Trading
    # ============================================

    @abstractmethod
    async def get_accounts(self) -> List[Account]:
        """Balances of all currencies"""

    @abstractmethod
    async def get_account(self, asset: str) -> Account:
        """
        Balance of one currency.

        Raises:
            NotFoundError: If the currency is unknown
        """

    @abstractmethod
    async def _submit_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        quantity: float,
        price: Optional[float]
    ) -> str:
        """Send the create request and return the new order id"""

    @abstractmethod
    async def get_order(self, symbol: str, order_id: str) -> Order:
        """Current state of one order"""

    @abstractmethod
    async def cancel_order(self, symbol: str, order_id: str) -> None:
        """Request cancellation of one order"""

    @abstractmethod
    async def get_open_orders(self, symbol: Optional[str] = None) -> List[Order]:
        """All open orders, optionally for one instrument (all pages)"""

    @abstractmethod
    async def get_my_trades(self, symbol: Optional[str] = None) -> List[Trade]:
        """Our trade history, optionally for one instrument (all pages)"""

    async def _order_assets(self, symbol: str, order: Order) -> Tuple[str, str]:
        """
        (base, quote) of the instrument an order was placed on.

        Versions whose symbols don't contain a separator override this.
        """
        base, _, quote = symbol.partition("_")
        return base, quote

    # ============================================
    # Order Placement
    # ============================================

    async def create_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        quantity: float,
        price: Optional[float] = None
    ) -> str:
        """
        Place an order and verify the exchange kept it.

        The exchange acknowledges creation before it has matched or validated
        the order, so the order is fetched again right away. Rejected or
        expired orders raise OrderError carrying the order id.

        Args:
            symbol: Instrument name (e.g. "ETH_BTC")
            side: OrderSide.BUY or OrderSide.SELL
            order_type: OrderType (price is only sent for limit-style types)
            quantity: Order quantity in base asset
            price: Limit price

        Returns:
            The order id assigned by the exchange

        Raises:
            OrderError: Order was rejected or expired, or was created but its
                status could not be fetched (the cause is chained)
            ExchangeError: Any failure while creating or fetching the order

        Notes:
            Creation is retried after HTTP 429 like every other call, so an
            order may be submitted twice if the rejection was spurious.
        """
        side = OrderSide(side)
        order_type = OrderType(order_type)
        self.logger.info(
            f"Creating {order_type.value} {side.value} order: {quantity} {symbol}"
            + (f" @ {price}" if order_type.is_limit and price is not None else "")
        )

        order_id = await self._submit_order(symbol, side, order_type, quantity, price)
        try:
            order = await self.get_order(symbol, order_id)
        except ExchangeError as e:
            # the order exists; callers need its id to avoid submitting it twice
            raise OrderError(order_id, f"order {order_id} created but status check failed: {e}") from e

        if order.status == OrderStatus.REJECTED:
            raise OrderError(order_id, f"order rejected. reason: {order.reason}")

        if order.status == OrderStatus.EXPIRED:
            raise OrderError(
                order_id,
                await self._describe_expired_order(symbol, side, order_type, quantity, price, order)
            )

        self.logger.info(f"Order {order_id} accepted ({order.status.value})")
        return order_id

    async def _describe_expired_order(
        self,
        symbol: str,
        side: OrderSide,
        order_type: OrderType,
        quantity: float,
        price: Optional[float],
        order: Order
    ) -> str:
        """
        Explain an expired order in terms of the available balance.

        Best effort: the balance is read after the fact and may have moved.
        """
        base, quote = await self._order_assets(symbol, order)

        effective_price = price or 0
        if order_type == OrderType.MARKET:
            try:
                effective_price = (await self.get_ticker(symbol)).last
            except ExchangeError as e:
                self.logger.warning(f"Could not fetch ticker for {symbol}: {e}")

        asset = base if side == OrderSide.SELL else quote
        try:
            available = (await self.get_account(asset)).available
        except ExchangeError as e:
            self.logger.warning(f"Could not fetch {asset} balance: {e}")
            available = 0

        return (
            f"cannot {side.value} {canonical_value(quantity)} unit(s) of {base} "
            f"at {canonical_value(effective_price)} {quote}. "
            f"your available balance is {canonical_value(available)} {asset}"
        )
