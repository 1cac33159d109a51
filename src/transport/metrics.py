"""Metrics collection for the socket transport."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class TransportMetrics:
    """Counters for socket connections and traffic.

    Singleton class shared by every TcpSocket.
    """

    connects_total: int = 0
    connect_failures_total: int = 0
    bytes_sent_total: int = 0
    bytes_received_total: int = 0
    messages_received_total: int = 0
    disconnects_total: int = 0

    _instance: ClassVar["TransportMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "TransportMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_connect(self, success: bool) -> None:
        """Record a connection attempt."""
        if success:
            self.connects_total += 1
        else:
            self.connect_failures_total += 1

    def record_sent(self, size: int) -> None:
        """Record bytes written to a socket."""
        self.bytes_sent_total += size

    def record_received(self, size: int) -> None:
        """Record bytes read from a socket."""
        self.bytes_received_total += size

    def record_message(self) -> None:
        """Record a framed message handed to the caller."""
        self.messages_received_total += 1

    def record_disconnect(self) -> None:
        """Record a transition to the disconnected state."""
        self.disconnects_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "connects_total": self.connects_total,
            "connect_failures_total": self.connect_failures_total,
            "bytes_sent_total": self.bytes_sent_total,
            "bytes_received_total": self.bytes_received_total,
            "messages_received_total": self.messages_received_total,
            "disconnects_total": self.disconnects_total,
        }
