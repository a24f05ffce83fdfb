"""
Hosting environment simulation.

A page load runs contributor units and the registrar installation one at a
time, to completion, in whatever order the host picked. `order_units`
reproduces the orders a host can produce, including a seeded shuffle.
"""
import logging
import random
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .contributor import ContributorUnit, SubmitPath
from .model import Contribution
from .registry import ImplementorRegistry

logger = logging.getLogger(__name__)


class LoadOrder(Enum):
    """How a host orders contributor units."""
    AS_GIVEN = "as_given"
    SORTED = "sorted"
    SHUFFLED = "shuffled"


class _InstallRegistrar:
    """Load step that installs the registrar."""

    def __repr__(self) -> str:
        return "INSTALL_REGISTRAR"


INSTALL_REGISTRAR = _InstallRegistrar()

LoadStep = Union[ContributorUnit, _InstallRegistrar]


@dataclass
class LoadReport:
    """
    Summary of one page load.

    Attributes:
        immediate: Units merged straight into the index
        deferred: Units parked in the pending buffer
        drained: Contributions merged at registrar installation
        registrar_installed: Whether the registrar loaded during this run
        lost: Contributions still buffered after `finish()`
    """
    immediate: int = 0
    deferred: int = 0
    drained: int = 0
    registrar_installed: bool = False
    lost: list[Contribution] = field(default_factory=list)


def order_units(
    units: Iterable[ContributorUnit],
    order: LoadOrder = LoadOrder.AS_GIVEN,
    seed: Optional[int] = None,
) -> list[ContributorUnit]:
    """
    Arrange units the way a host might load them.

    Args:
        units: Contributor units
        order: Ordering policy
        seed: Seed for LoadOrder.SHUFFLED, for reproducible runs

    Returns:
        A new list in load order
    """
    ordered = list(units)
    if order is LoadOrder.SORTED:
        ordered.sort(key=lambda unit: (unit.capability, unit.source or ""))
    elif order is LoadOrder.SHUFFLED:
        random.Random(seed).shuffle(ordered)
    return ordered


def with_registrar_at(
    units: Sequence[ContributorUnit],
    position: int,
) -> list[LoadStep]:
    """Interleave the registrar installation before units[position]."""
    if not 0 <= position <= len(units):
        raise ValueError(f"Registrar position {position} outside 0..{len(units)}")
    steps: list[LoadStep] = list(units)
    steps.insert(position, INSTALL_REGISTRAR)
    return steps


class PageLoad:
    """
    Runs load steps against one registry, one step at a time.

    The registry is passed in explicitly; a page load never reaches for the
    process default.
    """

    def __init__(self, registry: ImplementorRegistry):
        self.registry = registry
        self.report = LoadReport()

    def step(self, step: LoadStep) -> None:
        """Run a single load step to completion."""
        if step is INSTALL_REGISTRAR:
            self.report.drained += self.registry.install()
            self.report.registrar_installed = True
            return

        path = step.submit(self.registry)
        if path is SubmitPath.IMMEDIATE:
            self.report.immediate += 1
        else:
            self.report.deferred += 1

    def run(self, steps: Iterable[LoadStep]) -> LoadReport:
        """Run all steps in order, then finish the load."""
        for step in steps:
            self.step(step)
        return self.finish()

    def finish(self) -> LoadReport:
        """
        End the load. Contributions still buffered are reported as lost.
        """
        if not self.registry.installed:
            self.report.lost = self.registry.report_unmerged()
        logger.info(
            f"Page load finished: immediate={self.report.immediate} "
            f"deferred={self.report.deferred} drained={self.report.drained} "
            f"lost={len(self.report.lost)}"
        )
        return self.report
