"""
OANDA Streaming Clients
=======================
Blocking clients for the OANDA v3 pricing and transaction streams.

Features:
- Live prices (asks/bids ladders, closeouts)
- Account transactions
- Per-feed filtering before the handler sees a record
- Live / practice selection per client
- Fail-fast: the first connection, read, or decode error ends the run

Usage:
    from oanda_stream.streaming.oanda_streaming import PriceStream

    client = PriceStream(instruments=['EUR_USD', 'USD_JPY'])
    client.run(handle_tick)   # blocks until the stream fails or stop()
"""

import os
from abc import ABC, abstractmethod
from typing import Callable, Generic, Iterable, Optional, Type, TypeVar, Union

import requests
from dotenv import load_dotenv

from oanda_stream.api.endpoints import (
    Environment,
    join_instruments,
    pricing_stream_url,
    transaction_stream_url,
)
from oanda_stream.streaming.models import Tick, Transaction
from oanda_stream.streaming.session import SessionState, StreamingSession
from oanda_stream.utils.safe_logging import get_safe_logger

load_dotenv()

logger = get_safe_logger(__name__)

R = TypeVar('R')


def _resolve_environment(live: Optional[bool]) -> Environment:
    if live is not None:
        return Environment.from_flag(live)
    return Environment.parse(os.getenv('OANDA_ENVIRONMENT', 'practice'))


class _FeedClient(ABC, Generic[R]):
    """Shared construction and run loop wiring for both feeds"""

    record_type: Type[R]

    def __init__(
        self,
        account_id: Optional[str] = None,
        token: Optional[str] = None,
        live: Optional[bool] = None,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ):
        """
        Args:
            account_id: OANDA account id (or from OANDA_ACCOUNT_ID env var)
            token: Bearer token (or from OANDA_API_TOKEN env var)
            live: True for live, False for practice (or from OANDA_ENVIRONMENT env var)
            base_url: Override the stream host (or from OANDA_STREAM_URL env var)
            http: requests.Session to stream with
        """
        self.account_id = account_id or os.getenv('OANDA_ACCOUNT_ID')
        self.token = token or os.getenv('OANDA_API_TOKEN')
        self.environment = _resolve_environment(live)
        self.base_url = base_url or os.getenv('OANDA_STREAM_URL') or None

        if not self.account_id:
            raise ValueError("OANDA_ACCOUNT_ID required")
        if not self.token:
            raise ValueError("OANDA_API_TOKEN required")

        self._http = http
        self._session: Optional[StreamingSession[R]] = None

    @property
    def live(self) -> bool:
        return self.environment is Environment.LIVE

    @property
    @abstractmethod
    def url(self) -> str:
        """Stream URL for this feed"""

    @staticmethod
    @abstractmethod
    def accept(record: R) -> bool:
        """Whether a decoded record reaches the handler"""

    @property
    def state(self) -> SessionState:
        """State of the current (or last) run"""
        if self._session is None:
            return SessionState.IDLE
        return self._session.state

    def run(self, handler: Callable[[R], None]) -> None:
        """
        Stream records, calling handler for each one the feed policy accepts.

        Blocks until the stream fails (raises) or stop() is called (returns).
        Each call opens a new connection.

        Raises:
            StreamConnectionError, StreamReadError, DecodeError
        """
        self._session = StreamingSession(
            self.url,
            self.token,
            self.record_type,
            self.accept,
            http=self._http,
        )
        logger.info(f"Starting {type(self).__name__} ({self.environment.value})")
        self._session.run(handler)

    def stop(self):
        """Stop the running stream"""
        if self._session is not None:
            self._session.stop()


class PriceStream(_FeedClient[Tick]):
    """
    OANDA pricing stream client

    Only tradeable ticks reach the handler. Heartbeats and the non-tradeable
    snapshots sent while a market is closed are dropped.

    Example:
        client = PriceStream(instruments='EUR_USD,USD_JPY')

        def handle_tick(tick: Tick):
            print(f"{tick.symbol}: {tick.best_bid()} / {tick.best_ask()}")

        client.run(handle_tick)
    """

    record_type = Tick

    def __init__(
        self,
        account_id: Optional[str] = None,
        token: Optional[str] = None,
        instruments: Union[str, Iterable[str], None] = None,
        live: Optional[bool] = None,
        base_url: Optional[str] = None,
        http: Optional[requests.Session] = None,
    ):
        """
        Args:
            instruments: 'EUR_USD,USD_JPY' or a list of codes
                         (or from OANDA_INSTRUMENTS env var)
        """
        super().__init__(account_id, token, live, base_url, http)
        if instruments is None:
            instruments = os.getenv('OANDA_INSTRUMENTS', '')
        self.instruments = join_instruments(instruments)

        if not self.instruments:
            raise ValueError("At least one instrument required")

    @property
    def url(self) -> str:
        return pricing_stream_url(self.environment, self.account_id, self.instruments, self.base_url)

    @staticmethod
    def accept(record: Tick) -> bool:
        return record.is_tradeable


class TransactionStream(_FeedClient[Transaction]):
    """
    OANDA transaction stream client

    Only order fills that close a position, by market order or by take
    profit, reach the handler.

    Example:
        client = TransactionStream(live=True)

        def handle_close(txn: Transaction):
            print(f"Closed {txn.instrument}: P/L {txn.pl}")

        client.run(handle_close)
    """

    record_type = Transaction

    @property
    def url(self) -> str:
        return transaction_stream_url(self.environment, self.account_id, self.base_url)

    @staticmethod
    def accept(record: Transaction) -> bool:
        return record.is_order_fill and (
            record.is_market_order_trade_close or record.is_take_profit_order
        )


# ============================================================
# Convenience Functions
# ============================================================

def stream_prices(instruments: Union[str, Iterable[str]], handler: Callable[[Tick], None],
                  live: Optional[bool] = None):
    """
    Stream tradeable ticks for instruments, credentials from the environment.

    Example:
        stream_prices(['EUR_USD'], lambda tick: print(tick))
    """
    client = PriceStream(instruments=instruments, live=live)
    client.run(handler)


def stream_transactions(handler: Callable[[Transaction], None], live: Optional[bool] = None):
    """
    Stream position-closing fills, credentials from the environment.

    Example:
        stream_transactions(lambda txn: print(txn.pl))
    """
    client = TransactionStream(live=live)
    client.run(handler)
