"""Zero-byte terminated message framing."""

from src.transport.constants import MESSAGE_TERMINATOR


def extract_message(buffer: bytearray) -> bytes | None:
    """Remove the first complete message from a read buffer.

    Bytes before the first terminator form the message, the terminator
    is consumed and any remaining bytes stay buffered. Two adjacent
    terminators yield an empty message.

    Args:
        buffer: Pending read bytes, modified in place.

    Returns:
        The message, or None if no terminator is buffered.
    """
    index = buffer.find(MESSAGE_TERMINATOR)
    if index < 0:
        return None
    message = bytes(buffer[:index])
    del buffer[: index + 1]
    return message


def frame_message(payload: bytes) -> bytes:
    """Append the terminator to a payload for sending.

    Args:
        payload: Message body; must not contain the terminator.

    Returns:
        The framed bytes.

    Raises:
        ValueError: If the payload contains a terminator byte.
    """
    if MESSAGE_TERMINATOR in payload:
        msg = "Payload contains the message terminator"
        raise ValueError(msg)
    return payload + bytes([MESSAGE_TERMINATOR])
