"""Risk level, indicator and crisis event domain models.

This file defines the core enums and data structures for crisis-risk
assessment. Assessments are produced for every message; crisis events
only for the levels that warrant a persisted record.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, FrozenSet, Optional, Tuple


@total_ordering
class RiskLevel(Enum):
    """Ordered risk classification for a single message.

    Declaration order is severity order: NONE < LOW < MODERATE < HIGH < SEVERE.
    Escalation rules compare levels, so the ordering is part of the contract.
    """
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        """Position of this level in severity order (NONE is 0)."""
        return list(RiskLevel).index(self)

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def parse(cls, value) -> "RiskLevel":
        """Coerce a member or its string value into a RiskLevel.

        Raises:
            ValueError: If the value names no level
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(f"Unknown risk level: {value!r}")


# Only these severities may ever be written to the crisis event log
LOGGABLE_LEVELS: FrozenSet[RiskLevel] = frozenset({
    RiskLevel.MODERATE,
    RiskLevel.HIGH,
    RiskLevel.SEVERE,
})


class CrisisResolution(Enum):
    """Lifecycle of a logged crisis event.

    unresolved -> monitoring -> resolved, or unresolved -> resolved.
    RESOLVED is terminal.
    """
    UNRESOLVED = "unresolved"
    MONITORING = "monitoring"
    RESOLVED = "resolved"

    def can_transition_to(self, target: "CrisisResolution") -> bool:
        return target in _RESOLUTION_TRANSITIONS[self]


_RESOLUTION_TRANSITIONS = {
    CrisisResolution.UNRESOLVED: frozenset({
        CrisisResolution.MONITORING,
        CrisisResolution.RESOLVED,
    }),
    CrisisResolution.MONITORING: frozenset({CrisisResolution.RESOLVED}),
    CrisisResolution.RESOLVED: frozenset(),
}


@dataclass(frozen=True)
class Indicator:
    """A distress signal detected in a message.

    matched_text is the phrase as it appears in the normalized message,
    position its offset there.
    """
    category: str
    matched_text: str
    weight: int
    position: int = 0

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(f"Indicator weight must be >= 0, got {self.weight}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "matched_text": self.matched_text,
            "weight": self.weight,
            "position": self.position,
        }


@dataclass(frozen=True)
class RiskAssessment:
    """Result of scoring one inbound message.

    Immutable - one assessment per message, never updated afterwards.
    The timestamp is excluded from equality so that assessing the same
    text twice yields equal objects.
    """
    level: RiskLevel
    score: int
    triggered_indicators: Tuple[Indicator, ...] = ()
    timestamp: datetime = field(default_factory=datetime.utcnow, compare=False)
    message_text: str = field(default="", repr=False)
    table_version: str = ""

    def __post_init__(self):
        if self.score < 0:
            raise ValueError(f"Risk score must be >= 0, got {self.score}")
        weight_total = sum(i.weight for i in self.triggered_indicators)
        if weight_total != self.score:
            raise ValueError(
                f"Risk score {self.score} does not match indicator weights {weight_total}"
            )
        categories = [i.category for i in self.triggered_indicators]
        if len(categories) != len(set(categories)):
            raise ValueError("Each category may contribute at most one indicator")

    @property
    def categories(self) -> Tuple[str, ...]:
        """Indicator categories in match order."""
        return tuple(i.category for i in self.triggered_indicators)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses (no raw message text)."""
        return {
            "level": self.level.value,
            "score": self.score,
            "triggered_indicators": [i.to_dict() for i in self.triggered_indicators],
            "timestamp": self.timestamp.isoformat(),
            "table_version": self.table_version,
        }


@dataclass(frozen=True)
class CrisisEvent:
    """Persisted record of an escalation that warranted logging.

    Created by the escalation policy, never by the assessor. Severity is
    restricted to MODERATE and above. detected_indicators holds categories
    only; weights and matched text stay out of the audit record.
    """
    user_id: str
    timestamp: datetime
    severity: RiskLevel
    trigger_message: str
    detected_indicators: FrozenSet[str]
    session_id: Optional[str] = None
    professional_referral: bool = False
    follow_up_scheduled: bool = False
    resolution: CrisisResolution = CrisisResolution.UNRESOLVED

    def __post_init__(self):
        if not isinstance(self.user_id, str) or not self.user_id:
            raise ValueError("CrisisEvent requires a non-empty user_id")
        if not isinstance(self.severity, RiskLevel):
            raise ValueError(f"Severity must be a RiskLevel, got {self.severity!r}")
        if self.severity not in LOGGABLE_LEVELS:
            raise ValueError(
                f"Crisis events are only logged for moderate or higher, got {self.severity.value}"
            )
        if not isinstance(self.detected_indicators, frozenset):
            raise ValueError("detected_indicators must be a frozenset of categories")
        if not self.detected_indicators:
            raise ValueError("Crisis events require at least one detected indicator")
        if not all(isinstance(c, str) and c for c in self.detected_indicators):
            raise ValueError("Indicator categories must be non-empty strings")
        if not isinstance(self.resolution, CrisisResolution):
            raise ValueError(f"Resolution must be a CrisisResolution, got {self.resolution!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage; indicators sorted for a stable record."""
        return {
            "user_id": self.user_id,
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "severity": self.severity.value,
            "trigger_message": self.trigger_message,
            "detected_indicators": sorted(self.detected_indicators),
            "professional_referral": self.professional_referral,
            "follow_up_scheduled": self.follow_up_scheduled,
            "resolution": self.resolution.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrisisEvent":
        """Rebuild an event from to_dict() output.

        Raises:
            ValueError: On unknown severity/resolution or invalid shape
            KeyError: If a required field is missing
        """
        timestamp = data["timestamp"]
        if isinstance(timestamp, str):
            timestamp = datetime.fromisoformat(timestamp)
        return cls(
            user_id=data["user_id"],
            session_id=data.get("session_id"),
            timestamp=timestamp,
            severity=RiskLevel.parse(data["severity"]),
            trigger_message=data.get("trigger_message", ""),
            detected_indicators=frozenset(data["detected_indicators"]),
            professional_referral=bool(data.get("professional_referral", False)),
            follow_up_scheduled=bool(data.get("follow_up_scheduled", False)),
            resolution=CrisisResolution(
                data.get("resolution", CrisisResolution.UNRESOLVED.value)
            ),
        )
