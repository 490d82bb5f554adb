"""Append-only crisis event log.

Every write appends a new version; nothing is overwritten. Resolution
changes (unresolved -> monitoring -> resolved) are appended as new
versions of the same event, so the full follow-up history stays
available for audit. In-memory for dev; document store in prod.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from mannmitra.shared.models import CrisisEvent, CrisisResolution

logger = logging.getLogger(__name__)


class CrisisLogError(Exception):
    """Base exception for crisis log errors."""
    pass


class CrisisEventNotFoundError(CrisisLogError):
    """No event with the given id has been logged."""
    pass


class InvalidResolutionTransitionError(CrisisLogError):
    """Requested resolution is not reachable from the current one."""
    pass


@dataclass(frozen=True)
class CrisisLogEntry:
    """One immutable version of a logged crisis event."""
    event_id: str
    version: int
    event: CrisisEvent
    recorded_at: datetime = field(default_factory=datetime.utcnow)
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses.

        The raw trigger message stays in the log; listings only carry
        the categories that fired.
        """
        event = self.event.to_dict()
        del event["trigger_message"]
        return {
            "event_id": self.event_id,
            "version": self.version,
            "recorded_at": self.recorded_at.isoformat(),
            "notes": self.notes,
            "event": event,
        }


class CrisisEventLog:
    """Stores crisis events keyed by user and timestamp."""

    def __init__(self):
        self._entries: List[CrisisLogEntry] = []
        self._latest: Dict[str, CrisisLogEntry] = {}
        self._lock = threading.Lock()

        logger.info("CRISIS_EVENT_LOG_INITIALIZED")

    def append(self, event: CrisisEvent) -> str:
        """Log a new crisis event.

        Args:
            event: Event built by the escalation policy

        Returns:
            Generated event id

        Raises:
            TypeError: If event is not a CrisisEvent
        """
        if not isinstance(event, CrisisEvent):
            raise TypeError(f"append() requires a CrisisEvent, got {type(event).__name__}")

        event_id = f"crisis_{uuid.uuid4().hex[:12]}"
        entry = CrisisLogEntry(event_id=event_id, version=1, event=event)
        with self._lock:
            self._entries.append(entry)
            self._latest[event_id] = entry

        logger.info(
            "CRISIS_EVENT_LOGGED",
            extra={
                "event_id": event_id,
                "severity": event.severity.value,
                "indicator_count": len(event.detected_indicators),
            }
        )
        return event_id

    def get(self, event_id: str) -> Optional[CrisisLogEntry]:
        """Latest version of an event, or None."""
        with self._lock:
            return self._latest.get(event_id)

    def history(self, event_id: str) -> List[CrisisLogEntry]:
        """All versions of an event, oldest first."""
        with self._lock:
            return [e for e in self._entries if e.event_id == event_id]

    def events_for_user(self, user_id: str) -> List[CrisisLogEntry]:
        """Latest version of each of a user's events, ordered by event timestamp."""
        with self._lock:
            entries = [e for e in self._latest.values() if e.event.user_id == user_id]
        return sorted(entries, key=lambda e: (e.event.timestamp, e.event_id))

    def active(self) -> List[CrisisLogEntry]:
        """Latest versions of all events not yet resolved."""
        with self._lock:
            entries = [
                e for e in self._latest.values()
                if e.event.resolution != CrisisResolution.RESOLVED
            ]
        return sorted(entries, key=lambda e: (e.event.timestamp, e.event_id))

    def update_resolution(
        self,
        event_id: str,
        resolution: CrisisResolution,
        notes: Optional[str] = None,
    ) -> CrisisLogEntry:
        """Append a new version with a changed resolution.

        Args:
            event_id: Logged event id
            resolution: Target resolution
            notes: Follow-up notes recorded with the new version

        Returns:
            The new latest entry

        Raises:
            CrisisEventNotFoundError: If event_id is unknown
            InvalidResolutionTransitionError: If the transition is not allowed
        """
        with self._lock:
            current = self._latest.get(event_id)
            if current is None:
                raise CrisisEventNotFoundError(f"Crisis event not found: {event_id}")

            previous = current.event.resolution
            if not previous.can_transition_to(resolution):
                raise InvalidResolutionTransitionError(
                    f"Cannot move crisis event {event_id} from "
                    f"{previous.value} to {resolution.value}"
                )

            entry = CrisisLogEntry(
                event_id=event_id,
                version=current.version + 1,
                event=replace(current.event, resolution=resolution),
                notes=notes,
            )
            self._entries.append(entry)
            self._latest[event_id] = entry

        logger.info(
            "CRISIS_EVENT_RESOLUTION_UPDATED",
            extra={
                "event_id": event_id,
                "from": previous.value,
                "to": resolution.value,
                "version": entry.version,
                "time_since_event_seconds": (
                    entry.recorded_at - entry.event.timestamp
                ).total_seconds(),
            }
        )
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._latest)
