"""
OANDA Stream
Client for the OANDA v3 newline-delimited JSON streaming feeds.

Usage:
    from oanda_stream.streaming import PriceStream, TransactionStream

    client = PriceStream(instruments='EUR_USD,USD_JPY')   # credentials from .env
    client.run(handle_tick)
"""

__version__ = "1.0.0"
