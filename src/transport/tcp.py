"""Non-blocking TCP socket polled by its owner."""

import socket
from types import TracebackType

import structlog

from src.transport.constants import COMPONENT_TRANSPORT, DEFAULT_READ_CHUNK_SIZE
from src.transport.metrics import TransportMetrics
from src.transport.state import (
    ByteStream,
    Connected,
    Disconnected,
    SocketState,
    disconnect,
    tick,
)


logger = structlog.get_logger()


class TcpSocket:
    """A TCP connection exchanging zero-byte terminated messages.

    No background thread is involved: the owner calls ``poll`` on its
    own cadence. Failures never raise; they move the socket to the
    Disconnected state, which is permanent.
    """

    def __init__(
        self,
        state: SocketState,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        peer: str | None = None,
    ) -> None:
        """Initialize the socket around an existing state.

        Args:
            state: Initial state.
            chunk_size: Maximum bytes read per poll.
            peer: Peer description for logging.
        """
        self._state = state
        self._chunk_size = chunk_size
        self._log = logger.bind(component=COMPONENT_TRANSPORT, peer=peer)

    @classmethod
    def connect(
        cls,
        host: str,
        port: int,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> "TcpSocket":
        """Connect to a peer, blocking until the attempt completes.

        Args:
            host: Host name or address.
            port: TCP port.
            chunk_size: Maximum bytes read per poll.

        Returns:
            A socket that is Connected, or Disconnected if either the
            connect or the switch to non-blocking mode failed.
        """
        peer = f"{host}:{port}"
        log = logger.bind(component=COMPONENT_TRANSPORT, peer=peer)
        metrics = TransportMetrics.get_instance()

        try:
            sock = socket.create_connection((host, port))
        except (OSError, UnicodeError) as e:
            metrics.record_connect(success=False)
            log.warning("socket_connect_failed", error=str(e))
            return cls(Disconnected(), chunk_size, peer)

        try:
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            metrics.record_connect(success=False)
            log.warning("socket_nonblocking_failed", error=str(e))
            return cls(Disconnected(), chunk_size, peer)

        metrics.record_connect(success=True)
        log.info("socket_connected")
        return cls(Connected(sock), chunk_size, peer)

    @classmethod
    def from_stream(
        cls,
        stream: ByteStream,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
        peer: str | None = None,
    ) -> "TcpSocket":
        """Wrap an already connected, non-blocking stream."""
        return cls(Connected(stream), chunk_size, peer)

    @property
    def state(self) -> SocketState:
        """Get the current state."""
        return self._state

    def is_connected(self) -> bool:
        """Report the last known state without doing any I/O."""
        return isinstance(self._state, Connected)

    def send(self, data: bytes) -> None:
        """Queue bytes for writing on the next poll.

        No terminator is appended. Ignored once disconnected.

        Args:
            data: Bytes to send.
        """
        if isinstance(self._state, Connected):
            self._state.pending_write.extend(data)

    def poll(self) -> bytes | None:
        """Flush writes and return at most one received message.

        Returns:
            The next message, or None if none is complete yet or the
            socket is disconnected.
        """
        self._state, message = tick(self._state, self._chunk_size, self._log)
        return message

    def close(self) -> None:
        """Disconnect, discarding any buffered bytes."""
        if isinstance(self._state, Connected):
            self._state = disconnect(self._state, "closed_by_owner", self._log)

    def __enter__(self) -> "TcpSocket":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
