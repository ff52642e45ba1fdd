"""
Normalized Data Schemas

This module defines Pydantic models for every record the REST clients return.

Key Principle:
    Regardless of which API version the data comes from (v1 form API or
    v2 JSON-RPC API), it gets normalized into these standardized schemas.
    Callers work with the same Ticker/Order/Trade regardless of version.

Models:
    - Symbol: Tradable instrument and its precision limits
    - Ticker: 24h ticker statistics
    - BookEntry / OrderBook: Order book snapshot
    - Account: Balance of one currency
    - Order: Order state as reported by the exchange
    - Trade: One fill of one of our orders

Zero Values:
    Unknown or absent fields default to zero values. Numeric fields also
    accept numeric strings ("0.0123") and null, which becomes 0.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional, Sequence
from pydantic import BaseModel, Field, field_validator, ConfigDict


def _zero_if_null(v: Any) -> Any:
    """The exchange sends null (or "") for prices of instruments that never traded."""
    if v is None or v == "":
        return 0
    return v


# ============================================
# Enumerations
# ============================================

class OrderSide(str, Enum):
    """Order direction"""
    BUY = "BUY"
    SELL = "SELL"


class OrderType(str, Enum):
    """Order types accepted by create_order"""
    LIMIT = "LIMIT"
    MARKET = "MARKET"
    STOP_LOSS = "STOP_LOSS"
    STOP_LIMIT = "STOP_LIMIT"
    TAKE_PROFIT = "TAKE_PROFIT"
    TAKE_PROFIT_LIMIT = "TAKE_PROFIT_LIMIT"

    @property
    def is_limit(self) -> bool:
        """True for order types that carry a limit price"""
        return self in (OrderType.LIMIT, OrderType.STOP_LIMIT, OrderType.TAKE_PROFIT_LIMIT)


class OrderStatus(str, Enum):
    """Order lifecycle states (superset of both API versions)"""
    NEW = "NEW"
    ACTIVE = "ACTIVE"
    PARTIALLY_FILLED = "PARTIALLY_FILLED"
    FILLED = "FILLED"
    PENDING_CANCEL = "PENDING_CANCEL"
    CANCELED = "CANCELED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    UNKNOWN = "UNKNOWN"


# ============================================
# Base Record
# ============================================

class BaseRecord(BaseModel):
    """
    Base model for all records.

    Extra keys in raw payloads are ignored so new exchange fields never
    break parsing.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ============================================
# Market Data
# ============================================

class Symbol(BaseRecord):
    """
    Tradable instrument.

    Example:
        >>> Symbol(symbol="ETH_BTC", base_currency="ETH", quote_currency="BTC",
        ...        price_decimals=6, quantity_decimals=3)
    """

    symbol: str = Field(default="", description="Instrument name, e.g. ETH_BTC")
    base_currency: str = Field(default="", description="Asset being bought or sold")
    quote_currency: str = Field(default="", description="Asset prices are quoted in")
    price_decimals: int = Field(default=0, ge=0, description="Price precision")
    quantity_decimals: int = Field(default=0, ge=0, description="Quantity precision")
    min_quantity: float = Field(default=0.0, ge=0, description="Smallest order quantity")
    max_quantity: float = Field(default=0.0, ge=0, description="Largest order quantity")

    @field_validator("price_decimals", "quantity_decimals", "min_quantity", "max_quantity", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return _zero_if_null(v)


class Ticker(BaseRecord):
    """
    24h ticker statistics.

    Attributes:
        symbol: Instrument name (may be empty when requested for one symbol)
        last: Price of the latest trade, 0 if there were none
        high: Highest trade price in 24h
        low: Lowest trade price in 24h
        volume: 24h traded volume in base asset
        bid: Best bid price
        ask: Best ask price
        timestamp: Exchange time of the snapshot
    """

    symbol: str = Field(default="")
    last: float = Field(default=0.0)
    high: float = Field(default=0.0)
    low: float = Field(default=0.0)
    volume: float = Field(default=0.0)
    bid: float = Field(default=0.0)
    ask: float = Field(default=0.0)
    timestamp: Optional[datetime] = Field(default=None)

    @field_validator("last", "high", "low", "volume", "bid", "ask", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return _zero_if_null(v)


class BookEntry(BaseRecord):
    """One price level of the order book"""

    price: float = Field(default=0.0, ge=0)
    size: float = Field(default=0.0, ge=0)

    @classmethod
    def from_row(cls, row: Sequence[Any]) -> "BookEntry":
        """
        Build from a raw [price, size, ...] row.

        Rows may carry extra trailing members (number of orders) and
        prices may be strings.
        """
        price = row[0] if len(row) > 0 else 0
        size = row[1] if len(row) > 1 else 0
        return cls(price=_zero_if_null(price), size=_zero_if_null(size))


class OrderBook(BaseRecord):
    """
    Order book snapshot, best levels first.

    Example:
        >>> book.best_bid.price < book.best_ask.price
        True
    """

    symbol: str = Field(default="")
    bids: List[BookEntry] = Field(default_factory=list)
    asks: List[BookEntry] = Field(default_factory=list)
    timestamp: Optional[datetime] = Field(default=None)

    @property
    def best_bid(self) -> Optional[BookEntry]:
        return self.bids[0] if self.bids else None

    @property
    def best_ask(self) -> Optional[BookEntry]:
        return self.asks[0] if self.asks else None


# ============================================
# Account Data
# ============================================

class Account(BaseRecord):
    """
    Balance of one currency.

    Attributes:
        currency: e.g. CRO
        balance: Total balance
        available: Balance not locked in orders or staking
        order: Balance locked in open orders
        stake: Balance locked for staking (typically only CRO)
    """

    currency: str = Field(default="")
    balance: float = Field(default=0.0)
    available: float = Field(default=0.0)
    order: float = Field(default=0.0)
    stake: float = Field(default=0.0)

    @field_validator("balance", "available", "order", "stake", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return _zero_if_null(v)


# ============================================
# Trading Data
# ============================================

class Order(BaseRecord):
    """
    Order state as reported by the exchange.

    Notes:
        - side/type are None when the exchange reports a value we don't know
        - reason is only filled for rejected orders
        - created_at/updated_at are None when the exchange reports 0
    """

    order_id: str = Field(default="")
    symbol: str = Field(default="")
    side: Optional[OrderSide] = Field(default=None)
    type: Optional[OrderType] = Field(default=None)
    status: OrderStatus = Field(default=OrderStatus.UNKNOWN)
    price: float = Field(default=0.0)
    quantity: float = Field(default=0.0)
    cumulative_quantity: float = Field(default=0.0, description="Filled quantity")
    cumulative_value: float = Field(default=0.0, description="Filled value in quote asset")
    avg_price: float = Field(default=0.0)
    fee: float = Field(default=0.0)
    fee_currency: str = Field(default="")
    reason: str = Field(default="")
    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @field_validator(
        "price", "quantity", "cumulative_quantity", "cumulative_value", "avg_price", "fee",
        mode="before"
    )
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return _zero_if_null(v)

    @field_validator("order_id", "reason", mode="before")
    @classmethod
    def to_text(cls, v: Any) -> str:
        """Order ids arrive as numbers in v1 and strings in v2"""
        return "" if v is None else str(v)

    @field_validator("side", mode="before")
    @classmethod
    def parse_side(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.upper() in OrderSide.__members__:
            return v.upper()
        return v if isinstance(v, OrderSide) else None

    @field_validator("type", mode="before")
    @classmethod
    def parse_type(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.upper() in OrderType.__members__:
            return v.upper()
        return v if isinstance(v, OrderType) else None

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        if isinstance(v, str) and v.upper() in OrderStatus.__members__:
            return v.upper()
        return v if isinstance(v, OrderStatus) else OrderStatus.UNKNOWN

    @property
    def is_open(self) -> bool:
        return self.status in (OrderStatus.NEW, OrderStatus.ACTIVE, OrderStatus.PARTIALLY_FILLED)


class Trade(BaseRecord):
    """One fill of one of our orders"""

    trade_id: str = Field(default="")
    order_id: str = Field(default="")
    symbol: str = Field(default="")
    side: Optional[OrderSide] = Field(default=None)
    price: float = Field(default=0.0)
    quantity: float = Field(default=0.0)
    fee: float = Field(default=0.0)
    fee_currency: str = Field(default="")
    liquidity: str = Field(default="", description="MAKER or TAKER when reported")
    created_at: Optional[datetime] = Field(default=None)

    @field_validator("price", "quantity", "fee", mode="before")
    @classmethod
    def null_to_zero(cls, v: Any) -> Any:
        return _zero_if_null(v)

    @field_validator("trade_id", "order_id", mode="before")
    @classmethod
    def to_text(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("side", mode="before")
    @classmethod
    def parse_side(cls, v: Any) -> Optional[str]:
        if isinstance(v, str) and v.upper() in OrderSide.__members__:
            return v.upper()
        return v if isinstance(v, OrderSide) else None


# ============================================
# Helper Functions
# ============================================

def split_symbol(symbol: str) -> tuple:
    """
    Split "ETH_BTC" into ("ETH", "BTC").

    Symbols without a separator come back as (symbol, "").
    """
    base, _, quote = symbol.partition("_")
    return base, quote
