from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, Optional

from prometheus_client import CollectorRegistry, Metric
from prometheus_client.registry import Collector

from amplifi_router_models import CounterKind


@dataclass
class ThroughputSample:
    """Last raw counter values seen for one client."""
    tx: Optional[float] = None
    rx: Optional[float] = None

    def get(self, kind: CounterKind) -> Optional[float]:
        return self.tx if kind == CounterKind.TX else self.rx

    def put(self, kind: CounterKind, value: float):
        if kind == CounterKind.TX:
            self.tx = value
        else:
            self.rx = value


class DeltaStore:
    """Turns the router's resettable byte counters into counter increments.

    Entries are keyed by client description and never evicted.
    """

    def __init__(self):
        self.samples: Dict[str, ThroughputSample] = {}

    @staticmethod
    def calculate_delta(current: float, previous: Optional[float]) -> float:
        """
        Increment to export for a counter moving from previous to current.
        - First observation exports the raw value.
        - A flat or decreasing value means the router reset it: export the raw value.
        - Never returns negative.
        """
        if previous is not None:
            delta = current - previous
            if delta > 0:
                return delta
        return max(current, 0)

    def apply_delta(self, description: str, kind: CounterKind, current: float) -> float:
        sample = self.samples.setdefault(description, ThroughputSample())
        delta = self.calculate_delta(current, sample.get(kind))
        sample.put(kind, current)
        return delta


class LabeledCounterFamily(Collector):
    """Counter family exposed under its bare name.

    Samples are named exactly ``name`` (no ``_total`` suffix) and no
    ``_created`` series is emitted.
    """

    def __init__(self, name: str, documentation: str, label_name: str,
                 registry: Optional[CollectorRegistry] = None):
        self.name = name
        self.documentation = documentation
        self.label_name = label_name
        self.totals: Dict[str, float] = {}
        self._lock = threading.Lock()
        if registry is not None:
            registry.register(self)

    def inc(self, label_value: str, amount: float = 1):
        if amount < 0:
            raise ValueError("Counters can only be incremented by non-negative amounts.")
        with self._lock:
            self.totals[label_value] = self.totals.get(label_value, 0.0) + amount

    def describe(self):
        return [Metric(self.name, self.documentation, "counter")]

    def collect(self):
        metric = Metric(self.name, self.documentation, "counter")
        with self._lock:
            totals = sorted(self.totals.items())
        for label_value, total in totals:
            metric.add_sample(self.name, {self.label_name: label_value}, total)
        yield metric
