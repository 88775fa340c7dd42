"""
Test Streaming Session
======================
Unit tests for the line reader and the decode-and-dispatch run loop.
All HTTP is faked; no network access needed.

Tests verify:
- Lines are split on newline regardless of chunk boundaries
- End of stream and read failures raise StreamReadError
- Connection failures and non-2xx responses raise StreamConnectionError
- Malformed lines stop the loop with DecodeError
- Handler errors propagate, the response is always closed
- stop() ends the loop cleanly
"""

import logging

import pytest
import requests
from unittest.mock import MagicMock, patch

from oanda_stream.errors import DecodeError, StreamConnectionError, StreamReadError
from oanda_stream.streaming.models import Tick
from oanda_stream.streaming.session import LineReader, SessionState, StreamingSession
from tests.conftest import ACCOUNT_ID, HEARTBEAT_LINE, TOKEN, make_response, price_line

URL = f"https://stream.example.com/v3/accounts/{ACCOUNT_ID}/pricing/stream?instruments=USD_JPY"


def _session(http, accept=lambda tick: tick.is_tradeable):
    return StreamingSession(URL, TOKEN, Tick, accept, http=http)


# ============================================================
# LineReader
# ============================================================

class TestLineReader:
    """Test newline splitting over arbitrary chunks."""

    def test_reads_lines_with_newline(self):
        reader = LineReader([b'one\ntwo\n'])
        assert reader.readline() == b'one\n'
        assert reader.readline() == b'two\n'

    def test_joins_line_split_across_chunks(self):
        reader = LineReader([b'{"type":', b'"HEART', b'BEAT"}\n{"ty'])
        assert reader.readline() == b'{"type":"HEARTBEAT"}\n'
        assert reader.pending == 4

    def test_skips_empty_chunks(self):
        reader = LineReader([b'', b'abc', b'', b'\n'])
        assert reader.readline() == b'abc\n'

    def test_end_of_stream_raises(self):
        reader = LineReader([b'one\n'])
        reader.readline()
        with pytest.raises(StreamReadError, match="Stream ended"):
            reader.readline()

    def test_unterminated_tail_is_not_returned(self):
        reader = LineReader([b'{"status":"tradeable"}'])
        with pytest.raises(StreamReadError) as exc_info:
            reader.readline()
        assert exc_info.value.details == {'pending_bytes': 22}

    def test_read_failure_raises_with_cause(self):
        def chunks():
            yield b'one\n'
            raise requests.exceptions.ChunkedEncodingError("connection reset")

        reader = LineReader(chunks())
        assert reader.readline() == b'one\n'
        with pytest.raises(StreamReadError, match="connection reset") as exc_info:
            reader.readline()
        assert isinstance(exc_info.value.__cause__, requests.exceptions.ChunkedEncodingError)


# ============================================================
# Connecting
# ============================================================

class TestConnect:
    """Test the CONNECTING state."""

    def test_sends_bearer_token(self, stream_http):
        http = stream_http(price_line())

        with pytest.raises(StreamReadError):
            _session(http).run(lambda tick: None)

        http.get.assert_called_once()
        args, kwargs = http.get.call_args
        assert args[0] == URL
        assert kwargs['headers']['Authorization'] == f"Bearer {TOKEN}"
        assert kwargs['stream'] is True

    def test_no_timeout_applied(self, stream_http):
        http = stream_http(price_line())

        with pytest.raises(StreamReadError):
            _session(http).run(lambda tick: None)

        assert 'timeout' not in http.get.call_args.kwargs

    def test_transport_failure_raises_connection_error(self):
        http = MagicMock()
        cause = requests.exceptions.ConnectionError("name resolution failed")
        http.get.side_effect = cause
        session = _session(http)

        with pytest.raises(StreamConnectionError) as exc_info:
            session.run(lambda tick: None)

        assert exc_info.value.__cause__ is cause
        assert session.state is SessionState.TERMINATED_ERROR

    def test_invalid_url_raises_connection_error(self):
        http = MagicMock()
        http.get.side_effect = requests.exceptions.MissingSchema("No scheme supplied")

        with pytest.raises(StreamConnectionError, match="No scheme supplied"):
            _session(http).run(lambda tick: None)

    def test_connection_error_is_builtin_connection_error(self):
        http = MagicMock()
        http.get.side_effect = requests.exceptions.Timeout("slow")

        with pytest.raises(ConnectionError):
            _session(http).run(lambda tick: None)

    def test_error_status_closes_response(self, stream_http):
        http = stream_http(status_code=401, text='{"errorMessage":"Insufficient authorization to perform request."}')
        handler = MagicMock()

        with pytest.raises(StreamConnectionError, match="401") as exc_info:
            _session(http).run(handler)

        assert exc_info.value.status_code == 401
        http.get.return_value.close.assert_called()
        handler.assert_not_called()

    @pytest.mark.parametrize("status", [199, 301, 302, 500])
    def test_non_2xx_raises_with_status(self, stream_http, status):
        http = stream_http(status_code=status)

        with pytest.raises(StreamConnectionError) as exc_info:
            _session(http).run(lambda tick: None)

        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [200, 206, 299])
    def test_any_2xx_opens_stream(self, stream_http, status):
        http = stream_http(HEARTBEAT_LINE, status_code=status)

        with pytest.raises(StreamReadError, match="Stream ended"):
            _session(http).run(lambda tick: None)

    def test_creates_and_closes_own_http_session(self):
        response = make_response([HEARTBEAT_LINE])
        with patch('oanda_stream.streaming.session.requests.Session') as session_cls:
            session_cls.return_value.get.return_value = response
            session = StreamingSession(URL, TOKEN, Tick, lambda tick: True)

            with pytest.raises(StreamReadError):
                session.run(lambda tick: None)

        session_cls.return_value.close.assert_called_once()

    def test_does_not_close_callers_http_session(self, stream_http):
        http = stream_http(HEARTBEAT_LINE)

        with pytest.raises(StreamReadError):
            _session(http).run(lambda tick: None)

        http.close.assert_not_called()

    def test_logs_mask_account_id(self, stream_http, caplog):
        http = stream_http()

        with caplog.at_level(logging.INFO, logger='oanda_stream.streaming.session'):
            with pytest.raises(StreamReadError):
                _session(http).run(lambda tick: None)

        assert "Connecting to stream" in caplog.text
        assert ACCOUNT_ID not in caplog.text
        assert TOKEN not in caplog.text


# ============================================================
# Streaming
# ============================================================

class TestRunLoop:
    """Test the STREAMING state."""

    def test_dispatches_accepted_records(self, stream_http):
        http = stream_http(price_line(instrument="EUR_USD"), price_line(instrument="GBP_USD"))
        received = []

        with pytest.raises(StreamReadError):
            _session(http).run(received.append)

        assert [tick.instrument for tick in received] == ["EUR_USD", "GBP_USD"]

    def test_rejected_records_are_dropped(self, stream_http):
        http = stream_http(HEARTBEAT_LINE, price_line(status="non-tradeable"))
        handler = MagicMock()

        with pytest.raises(StreamReadError):
            _session(http).run(handler)

        handler.assert_not_called()

    def test_handler_runs_before_next_read(self, stream_http):
        events = []

        def chunks():
            events.append('read 1')
            yield price_line(instrument="EUR_USD")
            events.append('read 2')
            yield price_line(instrument="GBP_USD")

        http = stream_http()
        http.get.return_value.iter_content.return_value = chunks()

        with pytest.raises(StreamReadError):
            _session(http).run(lambda tick: events.append(f"handle {tick.instrument}"))

        assert events == ['read 1', 'handle EUR_USD', 'read 2', 'handle GBP_USD']

    def test_end_of_stream_is_an_error(self, stream_http):
        http = stream_http(price_line())
        session = _session(http)

        with pytest.raises(StreamReadError, match="Stream ended"):
            session.run(lambda tick: None)

        assert session.state is SessionState.TERMINATED_ERROR
        http.get.return_value.close.assert_called()

    def test_unterminated_last_line_not_dispatched(self, stream_http):
        http = stream_http(price_line(instrument="EUR_USD"), price_line(instrument="GBP_USD").rstrip(b'\n'))
        received = []

        with pytest.raises(StreamReadError):
            _session(http).run(received.append)

        assert [tick.instrument for tick in received] == ["EUR_USD"]

    def test_malformed_line_stops_loop(self, stream_http):
        http = stream_http(
            price_line(instrument="EUR_USD"),
            b'{"instrument": "GBP_USD", "status": "trade\n',
            price_line(instrument="AUD_USD"),
        )
        received = []
        session = _session(http)

        with pytest.raises(DecodeError):
            session.run(received.append)

        assert [tick.instrument for tick in received] == ["EUR_USD"]
        assert session.state is SessionState.TERMINATED_ERROR

    def test_handler_exception_propagates(self, stream_http):
        http = stream_http(price_line())
        session = _session(http)

        def handler(tick):
            raise RuntimeError("handler failed")

        with pytest.raises(RuntimeError, match="handler failed"):
            session.run(handler)

        assert session.state is SessionState.TERMINATED_ERROR
        http.get.return_value.close.assert_called()

    def test_session_runs_once(self, stream_http):
        session = _session(stream_http())

        with pytest.raises(StreamReadError):
            session.run(lambda tick: None)
        with pytest.raises(RuntimeError, match="already used"):
            session.run(lambda tick: None)


# ============================================================
# Stopping
# ============================================================

class TestStop:
    """Test clean shutdown."""

    def test_stop_from_handler_ends_cleanly(self, stream_http):
        http = stream_http(price_line(instrument="EUR_USD"), price_line(instrument="GBP_USD"))
        session = _session(http)
        received = []

        def handler(tick):
            received.append(tick)
            session.stop()

        assert session.run(handler) is None
        assert [tick.instrument for tick in received] == ["EUR_USD"]
        assert session.state is SessionState.TERMINATED_OK
        http.get.return_value.close.assert_called()

    def test_read_error_after_stop_is_not_raised(self, stream_http):
        """A read interrupted by stop() closing the response ends cleanly."""
        session = None

        def chunks():
            session.stop()
            raise requests.exceptions.ConnectionError("response closed")
            yield b''

        http = stream_http()
        http.get.return_value.iter_content.return_value = chunks()
        session = _session(http)

        session.run(lambda tick: None)

        assert session.state is SessionState.TERMINATED_OK

    def test_state_starts_idle(self):
        assert _session(MagicMock()).state is SessionState.IDLE
