import asyncio
import codecs
import logging
from enum import Enum
from typing import Optional

from protocols.HTTP import HTTPRequest
from protocols.exceptions import HTTPClientError, ConnectError, WriteError, ReadError
from utils.utils import Utils

logger = logging.getLogger(__name__)


class SessionState(Enum):
    NOT_INITIALIZED = 0
    CONNECTING = 1
    SENDING = 2
    RECEIVING = 3
    CLOSED = 4
    FAILED = 5


class ResponseResult:
    """Outcome of one exchange: the full response text, or the error that stopped it."""
    def __init__(self, response: Optional[str] = None, error: Optional[HTTPClientError] = None,
                 request: Optional[bytes] = None, elapsed: float = 0.0):
        self.response = response
        self.error = error
        self.request = request    # bytes actually written, None if nothing was sent
        self.elapsed = elapsed

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> str:
        if self.error is not None:
            raise self.error
        return self.response

    def __repr__(self):
        if self.ok:
            return f"ResponseResult(ok, {len(self.response)} chars, {self.elapsed:.3f}s)"
        return f"ResponseResult(failed, {self.error!r})"


class TCPSession:
    """
    One request/response exchange over a plain TCP connection

    NOT_INITIALIZED -> CONNECTING -> SENDING -> RECEIVING -> CLOSED
                 \\__________\\___________\\__________\\--> FAILED

    * The response ends when the server closes the connection
    * No timeout while receiving, a keep-alive server keeps the session waiting
    * No retries, no connection reuse
    """
    incoming_buffer_size = 4096

    def __init__(self, request: HTTPRequest, connect_timeout: Optional[float] = None,
                 buffer_size: Optional[int] = None):
        self.request = request
        self.connect_timeout = connect_timeout
        self.buffer_size = buffer_size or self.incoming_buffer_size
        self.state = SessionState.NOT_INITIALIZED

        self.receive_buffer = []
        self.bytes_received = 0
        self.request_bytes = None

        self._reader = None
        self._writer = None

    def _set_state(self, state: SessionState):
        logger.debug(f"{self.request.hostname}:{self.request.port} {self.state.name} -> {state.name}")
        self.state = state

    async def send(self) -> ResponseResult:
        if self.state != SessionState.NOT_INITIALIZED:
            raise RuntimeError("A session can only be used for one request")

        start_time = Utils.get_current_time()
        try:
            response = await self._exchange()
            error = None

        except HTTPClientError as e:
            self._set_state(SessionState.FAILED)
            logger.warning(f"Request to {self.request.hostname}:{self.request.port} failed: {e}")
            # all or nothing, partial data is dropped
            self.receive_buffer = []
            response = None
            error = e

        finally:
            await self._close()

        elapsed = Utils.get_current_time() - start_time
        return ResponseResult(response=response, error=error,
                              request=self.request_bytes, elapsed=elapsed)

    async def _exchange(self) -> str:
        # fail on a bad path before touching the network
        self.request.resolve_target()

        await self._connect()

        self._set_state(SessionState.SENDING)
        await self._write(self.request.build_request())

        self._set_state(SessionState.RECEIVING)
        response = await self._receive()

        self._set_state(SessionState.CLOSED)
        return response

    async def _connect(self):
        host, port = self.request.hostname, self.request.port
        self._set_state(SessionState.CONNECTING)

        try:
            connection = asyncio.open_connection(host, port)
            if self.connect_timeout is not None:
                connection = asyncio.wait_for(connection, self.connect_timeout)
            self._reader, self._writer = await connection

        except asyncio.TimeoutError as e:
            raise ConnectError(f"Timed out connecting to {host}:{port}",
                               cause=e, host=host, port=port) from e

        except (OSError, ValueError) as e:
            # socket.gaierror (DNS), ConnectionRefusedError, unreachable network,
            # UnicodeError for hostnames IDNA can't encode, embedded null bytes...
            raise ConnectError(f"Failed connecting to {host}:{port}",
                               cause=e, host=host, port=port) from e

    async def _write(self, data: bytes):
        try:
            self._writer.write(data)
            await self._writer.drain()

        except OSError as e:
            raise WriteError(f"Failed sending data to {self.request.hostname}",
                             cause=e, host=self.request.hostname, port=self.request.port) from e

        self.request_bytes = data
        logger.debug(f"Sent {len(data)} bytes")

    async def _receive(self) -> str:
        # keeps multi-byte characters split across two reads intact
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

        try:
            while True:
                chunk = await self._reader.read(self.buffer_size)
                if not chunk:
                    # EOF, server closed the connection
                    break

                self.bytes_received += len(chunk)
                self.receive_buffer.append(decoder.decode(chunk))

        except OSError as e:
            raise ReadError(f"Connection to {self.request.hostname} broke while reading",
                            cause=e, host=self.request.hostname, port=self.request.port) from e

        self.receive_buffer.append(decoder.decode(b"", final=True))
        logger.debug(f"Received {self.bytes_received} bytes")

        return "".join(self.receive_buffer)

    async def _close(self):
        if self._writer is None:
            return

        self._writer.close()
        try:
            await self._writer.wait_closed()

        except OSError as e:
            logger.debug(f"Error while closing connection: {e}")

        self._writer = None
        self._reader = None


async def http_request(request: HTTPRequest, connect_timeout: Optional[float] = None) -> str:
    """Send the request and return the raw response text, raises HTTPClientError on failure."""
    result = await TCPSession(request, connect_timeout=connect_timeout).send()
    return result.unwrap()
