"""Non-blocking socket transport with zero-byte message framing."""

from src.transport.constants import (
    DEFAULT_READ_CHUNK_SIZE,
    MAX_READ_CHUNK_SIZE,
    MESSAGE_TERMINATOR,
)
from src.transport.framing import extract_message, frame_message
from src.transport.metrics import TransportMetrics
from src.transport.state import (
    ByteStream,
    Connected,
    Disconnected,
    SocketState,
    TickResult,
    disconnect,
    tick,
)
from src.transport.tcp import TcpSocket


__all__ = [
    # Socket
    "TcpSocket",
    # State
    "ByteStream",
    "Connected",
    "Disconnected",
    "SocketState",
    "TickResult",
    "disconnect",
    "tick",
    # Framing
    "extract_message",
    "frame_message",
    # Metrics
    "TransportMetrics",
    # Constants
    "DEFAULT_READ_CHUNK_SIZE",
    "MAX_READ_CHUNK_SIZE",
    "MESSAGE_TERMINATOR",
]
