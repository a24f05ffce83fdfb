"""
Implementor registry with deferred registration.

Contributor units may run before the registrar exists. Instead of assuming
the registrar is present, a unit checks the registry's well-known binding
`register_implementors`: when it is set the contribution is merged at once,
otherwise it is appended to `pending_implementors`. Installing the registrar
drains that buffer in FIFO order exactly once and then exposes the binding,
so every later unit takes the immediate path.

The check-then-merge-or-buffer sequence, `register` and `install` all run
under one re-entrant lock, which keeps at-most-once merge and
no-lost-contribution on a multi-threaded host.
"""
import logging
import threading
from contextlib import AbstractContextManager, nullcontext
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from .model import Capability, Contribution, ImplementorDescriptor, Unit
from .telemetry import (
    RegistrationOutcome,
    TelemetryRecorder,
    create_event,
    get_recorder,
)

logger = logging.getLogger(__name__)


class RegistryError(RuntimeError):
    """Base class for registry lifecycle errors."""


class RegistrarInstalledError(RegistryError):
    """Raised when the registrar is installed a second time."""


class RegistrarAbsentError(RegistryError):
    """Raised when registering before the registrar is installed."""


class RegistrarState(Enum):
    """Lifecycle of the registrar binding."""
    ABSENT = "absent"
    INSTALLED = "installed"


class MergeStatus(Enum):
    """Effect of merging one (capability, unit) entry."""
    ADDED = "added"
    UNCHANGED = "unchanged"
    REPLACED = "replaced"


@dataclass(frozen=True)
class MergeResult:
    """Outcome for one unit entry of a merged contribution."""
    capability: Capability
    unit: Unit
    status: MergeStatus


Descriptors = tuple[ImplementorDescriptor, ...]


def _as_capability(capability: Capability | str) -> Capability:
    if isinstance(capability, Capability):
        return capability
    return Capability.parse(capability)


class ImplementorIndex:
    """
    The global index: capability -> {unit -> descriptors}.

    Capabilities are only ever added. Within a capability, units keep the
    position of their first merge; a later contribution for the same unit
    replaces its descriptors in place.
    """

    def __init__(self):
        self._capabilities: Dict[Capability, Dict[Unit, Descriptors]] = {}

    def merge(self, contribution: Contribution) -> List[MergeResult]:
        """Merge a contribution, last write wins per unit."""
        capability = contribution.capability
        units = self._capabilities.setdefault(capability, {})
        results = []

        for unit, descriptors in contribution.items():
            existing = units.get(unit)
            if existing is None:
                status = MergeStatus.ADDED
            elif existing == descriptors:
                results.append(MergeResult(capability, unit, MergeStatus.UNCHANGED))
                continue
            else:
                status = MergeStatus.REPLACED

            units[unit] = descriptors
            results.append(MergeResult(capability, unit, status))

        return results

    def capabilities(self) -> List[Capability]:
        return list(self._capabilities)

    def units(self, capability: Capability | str) -> List[Unit]:
        return list(self._capabilities.get(_as_capability(capability), {}))

    def implementors(
        self,
        capability: Capability | str,
        unit: Unit,
    ) -> Optional[Descriptors]:
        """
        Descriptors a unit contributed for a capability.

        Returns None when the unit never contributed, and an empty tuple when
        it contributed "no implementors".
        """
        return self._capabilities.get(_as_capability(capability), {}).get(unit)

    def has_entry(self, capability: Capability | str, unit: Unit) -> bool:
        return self.implementors(capability, unit) is not None

    def to_dict(self) -> Dict[str, Dict[Unit, List[ImplementorDescriptor]]]:
        """Plain snapshot keyed by capability string, for export."""
        return {
            str(capability): {unit: list(descriptors) for unit, descriptors in units.items()}
            for capability, units in self._capabilities.items()
        }

    def __contains__(self, capability: object) -> bool:
        if isinstance(capability, str):
            try:
                capability = Capability.parse(capability)
            except ValueError:
                return False
        return capability in self._capabilities

    def __len__(self) -> int:
        return len(self._capabilities)


class ImplementorRegistry:
    """
    Process-scoped service owning the index, the pending buffer and the
    registrar lifecycle.

    Features:
    - `register_implementors` binding, None until the registrar is installed
    - `pending_implementors` FIFO buffer for contributions submitted early
    - One-shot `install()` that drains the buffer
    - Query methods for the documentation UI
    """

    def __init__(
        self,
        recorder: Optional[TelemetryRecorder] = None,
        thread_safe: bool = True,
    ):
        """
        Initialize an empty registry with the registrar absent.

        Args:
            recorder: Telemetry recorder (defaults to the global recorder)
            thread_safe: Guard check-and-branch sequences with a lock
        """
        self._recorder = recorder
        self._index = ImplementorIndex()
        self._state = RegistrarState.ABSENT
        self._lock: AbstractContextManager = threading.RLock() if thread_safe else nullcontext()
        self.pending_implementors: List[Contribution] = []

    @property
    def recorder(self) -> TelemetryRecorder:
        return self._recorder or get_recorder()

    @property
    def lock(self) -> AbstractContextManager:
        """Guard held across "check registrar -> merge or buffer"."""
        return self._lock

    @property
    def state(self) -> RegistrarState:
        return self._state

    @property
    def installed(self) -> bool:
        return self._state is RegistrarState.INSTALLED

    @property
    def register_implementors(self) -> Optional[Callable[..., List[MergeResult]]]:
        """The registration entry point, reachable only once installed."""
        if self._state is RegistrarState.INSTALLED:
            return self.register
        return None

    @property
    def index(self) -> ImplementorIndex:
        return self._index

    def register(
        self,
        contribution: Contribution,
        source: Optional[str] = None,
    ) -> List[MergeResult]:
        """
        Merge a contribution into the global index.

        Idempotent per (capability, unit): registering the same payload again
        leaves the index unchanged. A different payload for a unit already
        present replaces it (last write wins).

        Raises:
            RegistrarAbsentError: If the registrar is not installed yet; early
                contributions go through the pending buffer instead
        """
        with self._lock:
            if self._state is RegistrarState.ABSENT:
                raise RegistrarAbsentError(
                    f"Registrar not installed, cannot register {contribution.capability}"
                )
            return self._merge(contribution, source=source, drained=False)

    def install(self) -> int:
        """
        Install the registrar: drain pending contributions, then expose
        `register_implementors`.

        Returns:
            Number of contributions drained from the pending buffer

        Raises:
            RegistrarInstalledError: If the registrar is already installed
        """
        with self._lock:
            if self._state is RegistrarState.INSTALLED:
                raise RegistrarInstalledError("Registrar is already installed")

            pending = list(self.pending_implementors)
            self.pending_implementors.clear()
            for contribution in pending:
                self._merge(contribution, source=None, drained=True)

            self._state = RegistrarState.INSTALLED
            self.recorder.record(create_event(
                capability="",
                outcome=RegistrationOutcome.INSTALLED,
                pending_depth=0,
            ))
            logger.info(f"Registrar installed, drained {len(pending)} pending contribution(s)")
            return len(pending)

    def record_buffered(self, contribution: Contribution, source: Optional[str] = None) -> None:
        """Emit telemetry for a contribution parked in the pending buffer."""
        self.recorder.record(create_event(
            capability=str(contribution.capability),
            outcome=RegistrationOutcome.BUFFERED,
            units=contribution.units,
            path="deferred",
            pending_depth=len(self.pending_implementors),
            source=source,
        ))

    def unmerged(self) -> List[Contribution]:
        """Contributions still waiting for a registrar."""
        with self._lock:
            return list(self.pending_implementors)

    def report_unmerged(self) -> List[Contribution]:
        """
        Log contributions that never reached the index.

        Called when the host is done loading. A registrar that never loaded
        only degrades the rendered lists, so this warns instead of raising.
        """
        lost = self.unmerged()
        for contribution in lost:
            logger.warning(
                f"No registrar installed; implementors of {contribution.capability} "
                f"from {len(contribution)} unit(s) were never merged"
            )
            self.recorder.record(create_event(
                capability=str(contribution.capability),
                outcome=RegistrationOutcome.LOST,
                units=contribution.units,
                pending_depth=len(lost),
            ))
        return lost

    # Consumer queries

    def capabilities(self) -> List[Capability]:
        with self._lock:
            return self._index.capabilities()

    def units(self, capability: Capability | str) -> List[Unit]:
        with self._lock:
            return self._index.units(capability)

    def implementors(self, capability: Capability | str, unit: Unit) -> Optional[Descriptors]:
        with self._lock:
            return self._index.implementors(capability, unit)

    def has_entry(self, capability: Capability | str, unit: Unit) -> bool:
        with self._lock:
            return self._index.has_entry(capability, unit)

    def to_dict(self) -> Dict[str, Dict[Unit, List[ImplementorDescriptor]]]:
        with self._lock:
            return self._index.to_dict()

    def _merge(
        self,
        contribution: Contribution,
        source: Optional[str],
        drained: bool,
    ) -> List[MergeResult]:
        results = self._index.merge(contribution)
        capability = str(contribution.capability)

        added = [r.unit for r in results if r.status is MergeStatus.ADDED]
        unchanged = [r.unit for r in results if r.status is MergeStatus.UNCHANGED]
        replaced = [r.unit for r in results if r.status is MergeStatus.REPLACED]

        if drained:
            self._record(RegistrationOutcome.DRAINED, capability, contribution.units, "deferred", source)
        else:
            if added or not results:
                self._record(RegistrationOutcome.MERGED, capability, added, "immediate", source)
            if unchanged:
                self._record(RegistrationOutcome.UNCHANGED, capability, unchanged, "immediate", source)

        if replaced:
            logger.info(f"Replaced implementors of {capability} for {', '.join(replaced)}")
            self._record(
                RegistrationOutcome.REPLACED,
                capability,
                replaced,
                "deferred" if drained else "immediate",
                source,
            )

        return results

    def _record(
        self,
        outcome: RegistrationOutcome,
        capability: str,
        units: List[Unit],
        path: str,
        source: Optional[str],
    ) -> None:
        self.recorder.record(create_event(
            capability=capability,
            outcome=outcome,
            units=units,
            path=path,
            pending_depth=len(self.pending_implementors),
            source=source,
        ))


_global_registry: Optional[ImplementorRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> ImplementorRegistry:
    """
    Get the process-wide registry.

    Creates an empty registry (registrar absent) if none exists.
    """
    global _global_registry

    if _global_registry is None:
        with _registry_lock:
            if _global_registry is None:
                _global_registry = ImplementorRegistry()

    return _global_registry


def set_registry(registry: ImplementorRegistry) -> None:
    """
    Replace the process-wide registry.

    Args:
        registry: Registry instance to use globally
    """
    global _global_registry

    with _registry_lock:
        _global_registry = registry
