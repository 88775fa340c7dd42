"""
Streaming Endpoints
===================
Live and practice stream hosts plus the path templates for each feed.

The environment is chosen per client, so clients pointed at different
environments can run side by side.

Usage:
    from oanda_stream.api.endpoints import Environment, pricing_stream_url

    url = pricing_stream_url(Environment.PRACTICE, '101-001-1234567-001', 'EUR_USD,USD_JPY')
"""

from enum import Enum
from typing import Iterable, Optional, Union


class Environment(Enum):
    """Which OANDA environment a client talks to"""
    LIVE = "live"
    PRACTICE = "practice"

    @classmethod
    def from_flag(cls, live: bool) -> 'Environment':
        return cls.LIVE if live else cls.PRACTICE

    @classmethod
    def parse(cls, value: str) -> 'Environment':
        """Parse 'live' / 'practice' (case-insensitive)."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown environment: {value!r} (expected 'live' or 'practice')") from None


STREAM_HOSTS = {
    Environment.LIVE: "https://stream-fxtrade.oanda.com",
    Environment.PRACTICE: "https://stream-fxpractice.oanda.com",
}

PRICING_STREAM_PATH = "/v3/accounts/{account_id}/pricing/stream?instruments={instruments}"
TRANSACTION_STREAM_PATH = "/v3/accounts/{account_id}/transactions/stream"


def stream_host(environment: Environment, base_url: Optional[str] = None) -> str:
    """Host for the environment, unless an explicit base URL overrides it."""
    if base_url:
        return base_url.rstrip('/')
    return STREAM_HOSTS[environment]


def join_instruments(instruments: Union[str, Iterable[str]]) -> str:
    """Accept 'EUR_USD,USD_JPY' or ['EUR_USD', 'USD_JPY']."""
    if isinstance(instruments, str):
        return instruments
    return ','.join(instruments)


def pricing_stream_url(environment: Environment, account_id: str,
                       instruments: Union[str, Iterable[str]],
                       base_url: Optional[str] = None) -> str:
    path = PRICING_STREAM_PATH.format(
        account_id=account_id,
        instruments=join_instruments(instruments),
    )
    return stream_host(environment, base_url) + path


def transaction_stream_url(environment: Environment, account_id: str,
                           base_url: Optional[str] = None) -> str:
    path = TRANSACTION_STREAM_PATH.format(account_id=account_id)
    return stream_host(environment, base_url) + path
