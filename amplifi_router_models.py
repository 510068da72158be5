from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

UNKNOWN_DESCRIPTION = "unknown"


class CounterKind(Enum):
    TX = "tx"
    RX = "rx"


@dataclass
class ClientRecord:
    """One connected device as reported in the client tree.

    The description is the identity key across polls; two devices sharing a
    description collapse into one series.
    """
    description: str = UNKNOWN_DESCRIPTION
    tx_bytes: Optional[float] = None
    """Bytes transmitted since the router last reset its counters."""
    rx_bytes: Optional[float] = None
    """Bytes received since the router last reset its counters."""
    signal_quality: Optional[float] = None
    happiness_score: Optional[float] = None

    def counter(self, kind: CounterKind) -> Optional[float]:
        return self.tx_bytes if kind == CounterKind.TX else self.rx_bytes


@dataclass
class GlobalStats:
    tx_bitrate: Optional[float] = None
    rx_bitrate: Optional[float] = None


@dataclass
class RouterSnapshot:
    clients: list[ClientRecord] = field(default_factory=list)
    global_stats: GlobalStats = field(default_factory=GlobalStats)

    @property
    def client_count(self) -> int:
        return len(self.clients)
