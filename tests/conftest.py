"""
Pytest configuration and fixtures for OANDA Stream testing.

This module provides:
- Sample wire lines for both feeds
- A fake requests.Session whose response streams byte chunks
- Reusable tick/transaction fixtures
"""

import json
import pytest
from unittest.mock import MagicMock

ACCOUNT_ID = "101-001-1234567-001"
TOKEN = "test-token-abc123"

# ============================================================
# WIRE LINES
# ============================================================

HEARTBEAT_LINE = b'{"type":"HEARTBEAT","time":"2016-12-20T05:55:46.064294036Z"}\n'

PRICE = {
    "asks": [
        {"liquidity": 10000000, "price": "117.680"},
        {"liquidity": 10000000, "price": "117.682"},
    ],
    "bids": [
        {"liquidity": 10000000, "price": "117.665"},
        {"liquidity": 10000000, "price": "117.663"},
    ],
    "closeoutAsk": "117.684",
    "closeoutBid": "117.661",
    "instrument": "USD_JPY",
    "status": "tradeable",
    "time": "2016-12-20T05:55:35.676011610Z",
    "type": "PRICE",
}


def price_line(**overrides) -> bytes:
    """A PRICE line with fields overridden."""
    data = dict(PRICE, **overrides)
    return json.dumps(data).encode() + b'\n'


def transaction_line(**fields) -> bytes:
    """A transaction line with the given wire fields."""
    data = {
        "id": "6360",
        "time": "2016-12-20T06:01:12.123456789Z",
        "userID": 1234567,
        "accountID": ACCOUNT_ID,
        "batchID": "6359",
        "requestID": "42313902452568487",
        "instrument": "USD_JPY",
        "units": "-1000",
        "price": "117.665",
        "pl": "1.2345",
        "financing": "0.0000",
        "commission": "0.0000",
        "accountBalance": "100001.2345",
    }
    data.update(fields)
    return json.dumps(data).encode() + b'\n'


# ============================================================
# FAKE HTTP
# ============================================================

def make_response(chunks, status_code=200, text=''):
    """Mock streaming response yielding chunks from iter_content()."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.iter_content.return_value = iter(chunks)
    return response


@pytest.fixture
def stream_http():
    """
    Factory for a fake requests.Session.

    Usage:
        http = stream_http(line1, line2)            # 200, body = lines, then EOF
        http = stream_http(status_code=401, text='{"errorMessage": "..."}')
    """
    def _build(*chunks, status_code=200, text=''):
        http = MagicMock()
        http.get.return_value = make_response(list(chunks), status_code, text)
        return http
    return _build


# ============================================================
# RECORD FIXTURES
# ============================================================

@pytest.fixture
def tick():
    """Tradeable USD_JPY tick."""
    from oanda_stream.streaming.models import Tick
    return Tick.from_dict(PRICE)


@pytest.fixture
def empty_tick():
    """Tick with no asks or bids."""
    from oanda_stream.streaming.models import Tick
    return Tick(instrument="EUR_USD", status="tradeable", type="PRICE")
