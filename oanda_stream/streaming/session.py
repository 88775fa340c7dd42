"""
Streaming Session
=================
One long-lived HTTP GET against a newline-delimited JSON feed.

For every line read from the body the session decodes a record, asks the
feed's accept policy whether to forward it, and calls the handler before
reading the next line. The first connection, read, or decode failure ends the
run and is raised to the caller. There is no reconnect.

States:
    IDLE -> CONNECTING -> STREAMING -> TERMINATED_OK | TERMINATED_ERROR

TERMINATED_OK is only reached through stop(); the feed itself never ends
cleanly (end of stream is a read error).
"""

import threading
from enum import Enum
from typing import Callable, Generic, Iterable, Optional, Type, TypeVar

import requests

from oanda_stream.errors import StreamConnectionError, StreamReadError
from oanda_stream.streaming.models import decode_line
from oanda_stream.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)

R = TypeVar('R')


class SessionState(Enum):
    """Run loop states"""
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    TERMINATED_OK = "terminated_ok"
    TERMINATED_ERROR = "terminated_error"


class LineReader:
    """
    Buffered line reader over an iterator of body chunks.

    readline() returns one line including its trailing newline. Bytes left
    over when the chunks run out are never returned.
    """

    def __init__(self, chunks: Iterable[bytes]):
        self._chunks = iter(chunks)
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Bytes buffered but not yet returned"""
        return len(self._buffer)

    def readline(self) -> bytes:
        """
        Read up to and including the next newline.

        Raises:
            StreamReadError: the body ended or the underlying read failed
        """
        while True:
            index = self._buffer.find(b'\n')
            if index >= 0:
                line = bytes(self._buffer[:index + 1])
                del self._buffer[:index + 1]
                return line

            try:
                chunk = next(self._chunks)
            except StopIteration:
                raise StreamReadError(
                    f"Stream ended with {len(self._buffer)} unterminated bytes",
                    details={'pending_bytes': len(self._buffer)},
                ) from None
            except Exception as e:
                raise StreamReadError(f"Read failed: {e}") from e

            self._buffer.extend(chunk)


class StreamingSession(Generic[R]):
    """
    Run loop for a single streaming connection.

    A session runs once. Build a new one to connect again.

    Example:
        session = StreamingSession(url, token, Tick, accept=lambda t: t.is_tradeable)
        session.run(print)   # blocks; raises when the stream fails
    """

    def __init__(
        self,
        url: str,
        token: str,
        record_type: Type[R],
        accept: Callable[[R], bool],
        http: Optional[requests.Session] = None,
    ):
        """
        Args:
            url: Full stream URL
            token: Bearer token, sent as-is
            record_type: StreamRecord subclass to decode each line into
            accept: Dispatch policy; records it rejects are dropped
            http: requests.Session to use (a private one is created otherwise)
        """
        self.url = url
        self.token = token
        self.record_type = record_type
        self.accept = accept

        self._http = http
        self._owns_http = http is None
        self._response: Optional[requests.Response] = None
        self._state = SessionState.IDLE
        self._stop_requested = threading.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    def _headers(self) -> dict:
        return {
            'Authorization': f'Bearer {self.token}',
            'Accept': 'application/json',
        }

    def _connect(self) -> requests.Response:
        """Open the stream and return the response with its body unread."""
        logger.info("Connecting to stream", url=self.url)

        try:
            response = self._http.get(self.url, headers=self._headers(), stream=True)
        except requests.RequestException as e:
            raise StreamConnectionError(f"Stream request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            body = response.text[:200]
            response.close()
            raise StreamConnectionError(
                f"Stream request failed: {response.status_code} - {body}",
                status_code=response.status_code,
            )

        logger.info("Connected to stream", status=response.status_code)
        return response

    def _stream(self, response: requests.Response, handler: Callable[[R], None]) -> None:
        # chunked feed: take each chunk as it arrives
        reader = LineReader(response.iter_content(chunk_size=None))

        while not self._stop_requested.is_set():
            try:
                line = reader.readline()
            except StreamReadError:
                if self._stop_requested.is_set():
                    return
                raise

            record = decode_line(self.record_type, line)

            if self.accept(record):
                handler(record)
            else:
                logger.debug("Dropped record", record_type=self.record_type.__name__)

    def run(self, handler: Callable[[R], None]) -> None:
        """
        Connect and dispatch accepted records to handler until the stream fails.

        Handler exceptions propagate unchanged.

        Raises:
            StreamConnectionError: the request could not be made or was refused
            StreamReadError: reading the next line failed, including end of stream
            DecodeError: a line did not decode into the record type
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"Session already used (state: {self._state.value})")

        if self._http is None:
            self._http = requests.Session()

        self._state = SessionState.CONNECTING
        try:
            self._response = self._connect()
            try:
                self._state = SessionState.STREAMING
                self._stream(self._response, handler)
            finally:
                self._response.close()
        except Exception as e:
            self._state = SessionState.TERMINATED_ERROR
            logger.error("Stream terminated", error=type(e).__name__)
            raise
        finally:
            if self._owns_http:
                self._http.close()

        self._state = SessionState.TERMINATED_OK
        logger.info("Stream stopped")

    def stop(self) -> None:
        """
        Ask the run loop to finish.

        Checked before every read. The open response is closed so a blocked
        read returns.
        """
        logger.info("Stopping stream...")
        self._stop_requested.set()
        if self._response is not None:
            self._response.close()
