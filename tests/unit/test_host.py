"""
Unit tests for the page-load simulation and load ordering.
"""
import logging

import pytest

from impl_registry.core import (
    INSTALL_REGISTRAR,
    Capability,
    Contribution,
    ContributorUnit,
    ImplementorRegistry,
    LoadOrder,
    PageLoad,
    order_units,
    with_registrar_at,
)
from impl_registry.core.telemetry import TelemetryRecorder


def unit(capability, source, **entries):
    return ContributorUnit(Contribution.from_mapping(capability, entries), source=source)


@pytest.fixture
def units():
    return [
        unit("core::ops::Not", "core/ops/trait.Not.js", mio=["N1"]),
        unit("core::hash::Hasher", "core/hash/trait.Hasher.js", bytes=[]),
        unit("futures_spawn::Spawn", "futures_spawn/trait.Spawn.js", sirpent=[]),
    ]


@pytest.fixture
def registry():
    return ImplementorRegistry(recorder=TelemetryRecorder())


class TestOrderUnits:
    """Test host load orders."""

    def test_as_given(self, units):
        assert order_units(units) == units

    def test_sorted_by_capability(self, units):
        ordered = order_units(units, LoadOrder.SORTED)

        assert [str(u.capability) for u in ordered] == [
            "core::hash::Hasher",
            "core::ops::Not",
            "futures_spawn::Spawn",
        ]

    def test_shuffled_is_reproducible(self, units):
        """Test the same seed gives the same order."""
        first = order_units(units, LoadOrder.SHUFFLED, seed=3)
        second = order_units(units, LoadOrder.SHUFFLED, seed=3)

        assert first == second
        assert sorted(first, key=lambda u: u.source) == sorted(units, key=lambda u: u.source)

    def test_does_not_mutate_input(self, units):
        original = list(units)
        order_units(units, LoadOrder.SORTED)

        assert units == original


class TestWithRegistrarAt:
    """Test registrar placement."""

    def test_insert_positions(self, units):
        assert with_registrar_at(units, 0)[0] is INSTALL_REGISTRAR
        assert with_registrar_at(units, 3)[-1] is INSTALL_REGISTRAR
        assert len(with_registrar_at(units, 1)) == 4

    @pytest.mark.parametrize("position", [-1, 4])
    def test_rejects_out_of_range(self, units, position):
        with pytest.raises(ValueError, match="Registrar position"):
            with_registrar_at(units, position)


class TestPageLoad:
    """Test running load steps."""

    def test_registrar_first(self, units, registry):
        """Test every unit takes the immediate path."""
        report = PageLoad(registry).run(with_registrar_at(units, 0))

        assert report.immediate == 3
        assert report.deferred == 0
        assert report.drained == 0
        assert report.registrar_installed
        assert report.lost == []

    def test_registrar_last(self, units, registry):
        """Test every unit is buffered and then drained."""
        report = PageLoad(registry).run(with_registrar_at(units, 3))

        assert report.immediate == 0
        assert report.deferred == 3
        assert report.drained == 3
        assert registry.pending_implementors == []

    def test_registrar_in_the_middle(self, units, registry):
        report = PageLoad(registry).run(with_registrar_at(units, 1))

        assert report.deferred == 1
        assert report.drained == 1
        assert report.immediate == 2
        assert registry.units("core::ops::Not") == ["mio"]

    def test_registrar_never_loads(self, units, registry, caplog):
        """Test contributions stay buffered and are reported lost."""
        with caplog.at_level(logging.WARNING):
            report = PageLoad(registry).run(units)

        assert not report.registrar_installed
        assert len(report.lost) == 3
        assert registry.capabilities() == []
        assert "No registrar installed" in caplog.text

    def test_step_by_step(self, units, registry):
        """Test a host driving the load one step at a time."""
        load = PageLoad(registry)
        load.step(units[0])
        load.step(INSTALL_REGISTRAR)
        load.step(units[1])

        assert registry.capabilities() == [
            Capability.parse("core::ops::Not"),
            Capability.parse("core::hash::Hasher"),
        ]
        assert load.report.deferred == 1
        assert load.report.immediate == 1
