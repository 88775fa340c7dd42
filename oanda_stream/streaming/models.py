"""
Stream Record Models
====================
Typed records decoded from the pricing and transaction streams.

Price lines look like:

    {"time": "2016-12-20T05:55:46.064294036Z", "type": "HEARTBEAT"}

    {"asks": [{"liquidity": 10000000, "price": "117.680"},
              {"liquidity": 10000000, "price": "117.682"}],
     "bids": [{"liquidity": 10000000, "price": "117.665"},
              {"liquidity": 10000000, "price": "117.663"}],
     "closeoutAsk": "117.684", "closeoutBid": "117.661",
     "instrument": "USD_JPY", "status": "tradeable",
     "time": "2016-12-20T05:55:35.676011610Z", "type": "PRICE"}

Prices and most transaction amounts arrive as decimal text and stay text
until a caller asks for a number.
"""

import math
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
    field_validator,
    model_validator,
)

from oanda_stream.errors import DecodeError, NumericFormatError
from oanda_stream.utils.timestamps import ParsedTime, parse_rfc3339

R = TypeVar('R', bound='StreamRecord')

_INFINITY_LITERALS = ('inf', 'infinity')


# ============================================================
# Base Record
# ============================================================

class StreamRecord(BaseModel):
    """
    Common wire behavior for stream records.

    Field types are strict: strings stay strings, numbers stay numbers and
    booleans are neither. Keys the record does not know are ignored, and a
    ``null`` value leaves the field at its empty default.
    """

    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
        allow_inf_nan=False,
    )

    @model_validator(mode='before')
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if data is None:
            return {}
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data

    @classmethod
    def from_dict(cls: Type[R], data: Optional[Dict[str, Any]]) -> R:
        return cls.model_validate(data)


def decode_line(record_type: Type[R], line: bytes) -> R:
    """
    Decode one stream line into a fresh record.

    A JSON ``null`` line yields an all-empty record.

    Raises:
        DecodeError: invalid UTF-8, invalid JSON, or a schema mismatch
    """
    try:
        return record_type.model_validate_json(line)
    except (ValidationError, ValueError, OverflowError) as e:
        raise DecodeError(f"Cannot decode {record_type.__name__}: {e}", line=line) from e


# ============================================================
# Timestamped Records
# ============================================================

class Timestamped(StreamRecord):
    """
    Lazy, memoized access to a record's ``time`` field.

    The text is parsed once; later calls return the cached value even if
    ``time`` has since changed.
    """

    time: StrictStr = ''

    _parsed_time: Optional[ParsedTime] = PrivateAttr(default=None)

    def parse_time(self) -> ParsedTime:
        if self._parsed_time is None:
            self._parsed_time = parse_rfc3339(self.time)
        return self._parsed_time

    def unix_timestamp(self) -> int:
        """Seconds since the epoch."""
        return self.parse_time().unix

    def nanoseconds(self) -> int:
        """Sub-second part in nanoseconds (0-999,999,999), not time since epoch."""
        return self.parse_time().nanosecond

    def __eq__(self, other: Any) -> bool:
        # the parse memo is not part of the record
        if type(other) is not type(self):
            return NotImplemented
        return self.__dict__ == other.__dict__


# ============================================================
# Records
# ============================================================

class Quote(StreamRecord):
    """One price level in a tick's ask or bid ladder."""

    model_config = ConfigDict(frozen=True)

    liquidity: StrictFloat = 0.0
    price: StrictStr = ''

    @field_validator('liquidity')
    @classmethod
    def check_liquidity_finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("liquidity out of range")
        return value

    def price_as_float(self) -> float:
        """
        Parse ``price`` as a float.

        Raises:
            NumericFormatError: price text is not a number or is out of range
        """
        # float() tolerates padding and digit separators; the wire never does
        if self.price != self.price.strip() or '_' in self.price:
            raise NumericFormatError(f"Invalid price {self.price!r}")
        try:
            value = float(self.price)
        except ValueError as e:
            raise NumericFormatError(f"Invalid price {self.price!r}") from e

        if math.isinf(value) and self.price.lstrip('+-').lower() not in _INFINITY_LITERALS:
            raise NumericFormatError(f"Price out of range {self.price!r}")
        return value

    def __str__(self):
        return f"{self.price} x {self.liquidity:,.0f}"


class Tick(Timestamped):
    """
    Price update from the pricing stream.

    Heartbeats are ticks too: ``type == "HEARTBEAT"`` and no market data.
    """

    asks: List[Quote] = Field(default_factory=list)
    bids: List[Quote] = Field(default_factory=list)
    closeout_ask: StrictStr = Field(default='', alias='closeoutAsk')
    closeout_bid: StrictStr = Field(default='', alias='closeoutBid')
    instrument: StrictStr = ''
    status: StrictStr = ''
    type: StrictStr = ''

    @property
    def is_heartbeat(self) -> bool:
        return self.type == 'HEARTBEAT'

    @property
    def is_tradeable(self) -> bool:
        return self.status == 'tradeable'

    @property
    def is_japanese(self) -> bool:
        """Yen pairs quote with two fewer decimal places."""
        return 'JPY' in self.instrument

    @property
    def symbol(self) -> str:
        """Instrument without its first underscore (USD_JPY -> USDJPY)."""
        return self.instrument.replace('_', '', 1)

    def best_ask(self) -> float:
        """
        Lowest ask price, or 0.0 when there are no asks.

        A running best of exactly 0.0 is treated as unset, so a literal zero
        price is replaced by whatever ask follows it.

        Raises:
            NumericFormatError: any ask price is not a number
        """
        best = 0.0
        for ask in self.asks:
            value = ask.price_as_float()
            if best == 0:
                best = value
            elif value < best:
                best = value
        return best

    def best_bid(self) -> float:
        """
        Highest bid price, or 0.0 when there are no bids.

        Raises:
            NumericFormatError: any bid price is not a number
        """
        best = 0.0
        for bid in self.bids:
            value = bid.price_as_float()
            if value > best:
                best = value
        return best

    def __str__(self):
        if self.is_heartbeat:
            return f"HEARTBEAT @ {self.time}"
        asks = self.asks[0].price if self.asks else '-'
        bids = self.bids[0].price if self.bids else '-'
        return f"{self.instrument}: {bids} / {asks} ({self.status})"


class Transaction(Timestamped):
    """
    Account activity from the transaction stream.

    Amounts stay as decimal text. Absent fields are empty strings (or 0).
    """

    id: StrictStr = ''
    user_id: StrictInt = Field(default=0, alias='userID')
    account_id: StrictStr = Field(default='', alias='accountID')
    batch_id: StrictStr = Field(default='', alias='batchID')
    request_id: StrictStr = Field(default='', alias='requestID')
    type: StrictStr = ''
    order_id: StrictStr = Field(default='', alias='orderID')
    client_order_id: StrictStr = Field(default='', alias='clientOrderID')
    instrument: StrictStr = ''
    units: StrictStr = ''
    price: StrictStr = ''
    full_vwap: StrictStr = Field(default='', alias='fullVWAP')
    reason: StrictStr = ''
    pl: StrictStr = ''
    financing: StrictStr = ''
    commission: StrictStr = ''
    guaranteed_execution_fee: StrictStr = Field(default='', alias='guaranteedExecutionFee')
    account_balance: StrictStr = Field(default='', alias='accountBalance')
    half_spread_cost: StrictStr = Field(default='', alias='halfSpreadCost')
    gain_quote_home_conversion_factor: StrictStr = Field(
        default='', alias='gainQuoteHomeConversionFactor')
    loss_quote_home_conversion_factor: StrictStr = Field(
        default='', alias='lossQuoteHomeConversionFactor')
    trade_id: StrictStr = Field(default='', alias='tradeID')
    time_in_force: StrictStr = Field(default='', alias='timeInForce')
    position_fill: StrictStr = Field(default='', alias='positionFill')
    cancelling_transaction_id: StrictStr = Field(default='', alias='cancellingTransactionID')
    last_transaction_id: StrictStr = Field(default='', alias='lastTransactionID')

    @property
    def is_heartbeat(self) -> bool:
        return self.type == 'HEARTBEAT'

    @property
    def is_order_fill(self) -> bool:
        return self.type == 'ORDER_FILL'

    @property
    def is_market_order_trade_close(self) -> bool:
        return self.reason == 'MARKET_ORDER_TRADE_CLOSE'

    @property
    def is_take_profit_order(self) -> bool:
        return self.reason == 'TAKE_PROFIT_ORDER'

    def __str__(self):
        return f"{self.type} #{self.id}: {self.instrument} {self.units} @ {self.price} ({self.reason})"
