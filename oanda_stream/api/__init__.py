"""
OANDA v3 API Endpoints
Provides the stream hosts and URL templates used by the streaming clients.

Usage:
    from oanda_stream.api.endpoints import Environment, transaction_stream_url

    url = transaction_stream_url(Environment.LIVE, account_id)
"""
