"""
Tests for delta counter derivation.
"""

import pytest

from amplifi_router_models import CounterKind
from amplifi_router_prometheus_utils import DeltaStore


class TestCalculateDelta:

    @pytest.mark.parametrize("previous, current, expected", [
        (None, 0, 0),
        (None, 1234, 1234),
        (100, 150, 50),
        (100, 100, 100),
        (100, 80, 80),
        (5000, 0, 0),
        (None, -5, 0),
        (100, -5, 0),
    ])
    def test_policy(self, previous, current, expected):
        assert DeltaStore.calculate_delta(current, previous) == expected


class TestApplyDelta:

    def test_first_observation_exports_raw_value(self):
        store = DeltaStore()

        assert store.apply_delta("phone", CounterKind.TX, 100) == 100

    def test_increase_exports_difference(self):
        store = DeltaStore()
        store.apply_delta("phone", CounterKind.TX, 100)

        assert store.apply_delta("phone", CounterKind.TX, 130) == 30

    def test_reset_then_increase(self):
        store = DeltaStore()
        store.apply_delta("phone", CounterKind.TX, 100)

        assert store.apply_delta("phone", CounterKind.TX, 80) == 80
        assert store.apply_delta("phone", CounterKind.TX, 95) == 15

    def test_previous_value_is_always_overwritten(self):
        store = DeltaStore()
        for value in (100, 100, 40, 60):
            store.apply_delta("phone", CounterKind.RX, value)
            assert store.samples["phone"].rx == value

    def test_kinds_and_clients_are_independent(self):
        store = DeltaStore()
        store.apply_delta("phone", CounterKind.TX, 100)

        assert store.apply_delta("phone", CounterKind.RX, 10) == 10
        assert store.apply_delta("laptop", CounterKind.TX, 7) == 7
        assert store.samples["laptop"].rx is None
        assert sorted(store.samples) == ["laptop", "phone"]
