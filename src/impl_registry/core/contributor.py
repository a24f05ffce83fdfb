"""
Contributor units: one generated file's fixed contribution and its submit path.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .model import Contribution
from .registry import ImplementorRegistry, get_registry

logger = logging.getLogger(__name__)


class SubmitPath(Enum):
    """Which branch a submission took."""
    IMMEDIATE = "immediate"  # Registrar present, merged before submit returned
    DEFERRED = "deferred"    # Registrar absent, parked in the pending buffer


@dataclass(frozen=True)
class ContributorUnit:
    """
    A contributor unit with its compile-time-fixed payload.

    Attributes:
        contribution: The unit's {unit -> descriptors} payload for one capability
        source: Where the unit came from (e.g. a script path), for logging
    """
    contribution: Contribution
    source: Optional[str] = None

    @property
    def capability(self):
        return self.contribution.capability

    def submit(self, registry: Optional[ImplementorRegistry] = None) -> SubmitPath:
        """
        Hand the contribution to the registrar, or buffer it if there is none.

        Fire-and-forget: never raises for contribution content. Touches either
        the index or the pending buffer, never both.

        Args:
            registry: Registry to submit to (defaults to the process registry)

        Returns:
            The path the submission took
        """
        registry = registry or get_registry()

        with registry.lock:
            register = registry.register_implementors
            if register is not None:
                register(self.contribution, source=self.source)
                return SubmitPath.IMMEDIATE

            registry.pending_implementors.append(self.contribution)
            registry.record_buffered(self.contribution, source=self.source)

        logger.debug(f"Registrar absent, buffered {self.capability} from {self.source or '<inline>'}")
        return SubmitPath.DEFERRED


def submit_all(
    units: Iterable[ContributorUnit],
    registry: Optional[ImplementorRegistry] = None,
) -> list[SubmitPath]:
    """Submit units one at a time in the given order."""
    registry = registry or get_registry()
    return [unit.submit(registry) for unit in units]
