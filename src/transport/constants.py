"""Constants for the socket transport."""

# Single-byte message terminator
MESSAGE_TERMINATOR = 0x00

# Bytes requested per non-blocking read
DEFAULT_READ_CHUNK_SIZE = 2048
MAX_READ_CHUNK_SIZE = 1024 * 1024

# Log component name
COMPONENT_TRANSPORT = "transport"
