"""Socket lifecycle states and the poll transition function.

A socket is either Connected, holding its stream and both buffers, or
Disconnected, holding nothing. Connected is only entered at creation;
Disconnected is terminal.
"""

from dataclasses import dataclass, field
from typing import NamedTuple, Protocol, TypeAlias

import structlog

from src.transport.constants import COMPONENT_TRANSPORT, DEFAULT_READ_CHUNK_SIZE
from src.transport.framing import extract_message
from src.transport.metrics import TransportMetrics


logger = structlog.get_logger()


class ByteStream(Protocol):
    """Non-blocking duplex byte stream, as provided by ``socket.socket``.

    ``send`` and ``recv`` raise BlockingIOError when they would block.
    """

    def send(self, data: bytes | bytearray, /) -> int: ...

    def recv(self, bufsize: int, /) -> bytes: ...

    def close(self) -> None: ...


@dataclass
class Connected:
    """Live connection with its pending write and read buffers."""

    stream: ByteStream
    pending_write: bytearray = field(default_factory=bytearray)
    pending_read: bytearray = field(default_factory=bytearray)


@dataclass(frozen=True)
class Disconnected:
    """Terminal state; no stream, no buffers."""


SocketState: TypeAlias = Connected | Disconnected


class TickResult(NamedTuple):
    """Outcome of one poll tick."""

    state: SocketState
    message: bytes | None


def tick(
    state: SocketState,
    chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    log: structlog.stdlib.BoundLogger | None = None,
) -> TickResult:
    """Advance a socket by one non-blocking step.

    1. Flush pending writes once; would-block is retried next tick, an
       error or a zero-byte write disconnects.
    2. Return an already buffered message if there is one.
    3. Read one chunk; would-block yields nothing, an error or EOF
       disconnects, otherwise extraction is retried once.

    Args:
        state: Current socket state. Connected buffers are updated in place.
        chunk_size: Maximum bytes to read.
        log: Logger to report disconnects on.

    Returns:
        The next state and at most one message.
    """
    if isinstance(state, Disconnected):
        return TickResult(state, None)

    log = log or logger.bind(component=COMPONENT_TRANSPORT)
    metrics = TransportMetrics.get_instance()

    if state.pending_write:
        try:
            written = state.stream.send(state.pending_write)
        except BlockingIOError:
            written = None
        except OSError as e:
            return TickResult(disconnect(state, "write_failed", log, str(e)), None)

        if written == 0:
            return TickResult(disconnect(state, "write_returned_zero", log), None)
        if written:
            del state.pending_write[:written]
            metrics.record_sent(written)

    message = extract_message(state.pending_read)
    if message is not None:
        metrics.record_message()
        return TickResult(state, message)

    try:
        chunk = state.stream.recv(chunk_size)
    except BlockingIOError:
        return TickResult(state, None)
    except OSError as e:
        return TickResult(disconnect(state, "read_failed", log, str(e)), None)

    if not chunk:
        return TickResult(disconnect(state, "peer_closed", log), None)

    state.pending_read.extend(chunk)
    metrics.record_received(len(chunk))

    message = extract_message(state.pending_read)
    if message is not None:
        metrics.record_message()
    return TickResult(state, message)


def disconnect(
    state: Connected,
    reason: str,
    log: structlog.stdlib.BoundLogger,
    error: str | None = None,
) -> Disconnected:
    """Close the stream and drop both buffers."""
    try:
        state.stream.close()
    except OSError as e:
        log.debug("socket_close_failed", error=str(e))

    TransportMetrics.get_instance().record_disconnect()
    log.info(
        "socket_disconnected",
        reason=reason,
        error=error,
        dropped_write_bytes=len(state.pending_write),
        dropped_read_bytes=len(state.pending_read),
    )
    return Disconnected()
