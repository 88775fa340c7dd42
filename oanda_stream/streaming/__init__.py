"""
Streaming Clients
Decode-and-dispatch loops for the OANDA pricing and transaction streams.

Usage:
    from oanda_stream.streaming import PriceStream, TransactionStream

    PriceStream(instruments='EUR_USD').run(print)
"""

from oanda_stream.streaming.models import Quote, Tick, Transaction
from oanda_stream.streaming.oanda_streaming import (
    PriceStream,
    TransactionStream,
    stream_prices,
    stream_transactions,
)
from oanda_stream.streaming.session import LineReader, SessionState, StreamingSession

__all__ = [
    'Quote',
    'Tick',
    'Transaction',
    'PriceStream',
    'TransactionStream',
    'stream_prices',
    'stream_transactions',
    'LineReader',
    'SessionState',
    'StreamingSession',
]
