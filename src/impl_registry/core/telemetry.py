"""
Structured telemetry for registry operations.

This module provides structured logging for understanding:
- Which contributions were merged immediately and which were buffered
- When the registrar was installed and how much it drained
- Replaced entries (two contributions for the same unit)
- Registrations lost because no registrar ever loaded
"""
import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class TelemetryLevel(Enum):
    """Telemetry verbosity levels."""
    INFO = "info"
    DEBUG = "debug"


class RegistrationOutcome(Enum):
    """What happened to a contribution or to the registrar."""
    MERGED = "merged"        # New (capability, unit) entries added
    UNCHANGED = "unchanged"  # Identical payload registered again
    REPLACED = "replaced"    # Different payload for an existing unit
    BUFFERED = "buffered"    # Registrar absent, parked in pending buffer
    DRAINED = "drained"      # Merged from the pending buffer at install
    INSTALLED = "installed"  # Registrar binding became available
    LOST = "lost"            # Still buffered when the host finished


# Outcomes worth seeing at INFO level
NOTABLE_OUTCOMES = frozenset({
    RegistrationOutcome.REPLACED.value,
    RegistrationOutcome.INSTALLED.value,
    RegistrationOutcome.LOST.value,
})


@dataclass
class TelemetryEvent:
    """
    A single telemetry event capturing registry activity.

    Attributes:
        timestamp: ISO 8601 timestamp of event
        capability: Capability identifier (empty for registrar events)
        outcome: Registration outcome (merged, buffered, drained, ...)
        units: Units touched by the event, in contribution order
        path: Submit path taken ("immediate" or "deferred"), if any
        pending_depth: Pending buffer length after the event
        source: Where the contribution came from (script path), if known
    """
    timestamp: str
    capability: str
    outcome: str
    units: List[str] = field(default_factory=list)
    path: Optional[str] = None
    pending_depth: int = 0
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for logging."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_keyvalue(self) -> str:
        """Convert event to key=value format."""
        pairs = []
        for key, value in self.to_dict().items():
            if isinstance(value, list):
                pairs.append(f"{key}={','.join(str(item) for item in value)}")
            else:
                pairs.append(f"{key}={value}")
        return " ".join(pairs)


@dataclass
class TelemetryStats:
    """
    Aggregated statistics for telemetry analysis.

    Useful for tests and for the build tool's summary line.
    """
    total_events: int = 0
    contributions_buffered: int = 0
    contributions_drained: int = 0
    entries_replaced: int = 0
    registrations_lost: int = 0
    outcomes_by_type: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert stats to dictionary."""
        return {
            "total_events": self.total_events,
            "contributions_buffered": self.contributions_buffered,
            "contributions_drained": self.contributions_drained,
            "entries_replaced": self.entries_replaced,
            "registrations_lost": self.registrations_lost,
            "outcomes_by_type": self.outcomes_by_type,
        }


class TelemetryRecorder:
    """
    Records and emits structured telemetry for registry operations.

    Features:
    - Structured logging in JSON or key=value format
    - Configurable verbosity (info/debug)
    - Optional in-memory statistics collection
    - Thread-safe operation
    """

    def __init__(
        self,
        level: TelemetryLevel = TelemetryLevel.INFO,
        format_json: bool = True,
        collect_stats: bool = False
    ):
        """
        Initialize telemetry recorder.

        Args:
            level: Logging verbosity level
            format_json: If True, log as JSON; otherwise use key=value
            collect_stats: If True, collect in-memory statistics
        """
        self.level = level
        self.format_json = format_json
        self.collect_stats = collect_stats

        self._stats = TelemetryStats()
        self._stats_lock = threading.Lock()

        # Event history (for testing)
        self._events: List[TelemetryEvent] = []
        self._events_lock = threading.Lock()

    def record(self, event: TelemetryEvent) -> None:
        """
        Record a telemetry event.

        Args:
            event: Event to record
        """
        if self.format_json:
            log_message = f"[registry] {event.to_json()}"
        else:
            log_message = f"[registry] {event.to_keyvalue()}"

        if self.level == TelemetryLevel.DEBUG:
            logger.debug(log_message)
        elif event.outcome in NOTABLE_OUTCOMES:
            logger.info(log_message)
        else:
            logger.debug(log_message)

        if self.collect_stats:
            with self._stats_lock:
                self._stats.total_events += 1

                if event.outcome == RegistrationOutcome.BUFFERED.value:
                    self._stats.contributions_buffered += 1
                elif event.outcome == RegistrationOutcome.DRAINED.value:
                    self._stats.contributions_drained += 1
                elif event.outcome == RegistrationOutcome.REPLACED.value:
                    self._stats.entries_replaced += len(event.units)
                elif event.outcome == RegistrationOutcome.LOST.value:
                    self._stats.registrations_lost += 1

                self._stats.outcomes_by_type[event.outcome] = (
                    self._stats.outcomes_by_type.get(event.outcome, 0) + 1
                )

        with self._events_lock:
            self._events.append(event)

    def get_stats(self) -> TelemetryStats:
        """Get current statistics snapshot."""
        with self._stats_lock:
            return TelemetryStats(
                total_events=self._stats.total_events,
                contributions_buffered=self._stats.contributions_buffered,
                contributions_drained=self._stats.contributions_drained,
                entries_replaced=self._stats.entries_replaced,
                registrations_lost=self._stats.registrations_lost,
                outcomes_by_type=self._stats.outcomes_by_type.copy(),
            )

    def reset_stats(self) -> None:
        """Reset statistics."""
        with self._stats_lock:
            self._stats = TelemetryStats()

    def get_events(self) -> List[TelemetryEvent]:
        """Get all recorded events (for testing)."""
        with self._events_lock:
            return self._events.copy()

    def clear_events(self) -> None:
        """Clear event history."""
        with self._events_lock:
            self._events.clear()


_global_recorder: Optional[TelemetryRecorder] = None
_recorder_lock = threading.Lock()


def get_recorder() -> TelemetryRecorder:
    """
    Get the global telemetry recorder instance.

    Creates a default recorder if none exists.
    """
    global _global_recorder

    if _global_recorder is None:
        with _recorder_lock:
            if _global_recorder is None:
                _global_recorder = TelemetryRecorder()

    return _global_recorder


def set_recorder(recorder: TelemetryRecorder) -> None:
    """
    Set the global telemetry recorder instance.

    Args:
        recorder: Recorder instance to use globally
    """
    global _global_recorder

    with _recorder_lock:
        _global_recorder = recorder


def create_event(
    capability: str,
    outcome: RegistrationOutcome,
    units: Optional[List[str]] = None,
    path: Optional[str] = None,
    pending_depth: int = 0,
    source: Optional[str] = None,
) -> TelemetryEvent:
    """
    Helper to create a telemetry event with current timestamp.

    Args:
        capability: Capability identifier
        outcome: Registration outcome
        units: Units touched by the event
        path: Submit path taken
        pending_depth: Pending buffer length after the event
        source: Contribution origin

    Returns:
        TelemetryEvent ready for recording
    """
    return TelemetryEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        capability=capability,
        outcome=outcome.value,
        units=list(units or []),
        path=path,
        pending_depth=pending_depth,
        source=source,
    )
