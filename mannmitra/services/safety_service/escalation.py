"""Escalation policy: assessment + session window -> escalation decision.

The policy holds no session state. The caller passes the levels of the
session's prior messages explicitly (most recent last) and owns storing
them; see session_window.SessionWindowStore.

Rules:
- Crisis resources are shown when the level is MODERATE or above, or when
  the last `pattern_length` prior levels and the current one are all LOW
  or above.
- A crisis event is logged only when the level is MODERATE or above.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from mannmitra.shared.models import CrisisEvent, RiskAssessment, RiskLevel
from .config import EscalationConfig, FOLLOW_UP_TIMEFRAMES, IMMEDIATE_ACTIONS

logger = logging.getLogger(__name__)


REASON_LEVEL = "level_at_or_above_moderate"
REASON_PATTERN = "sustained_low_pattern"


@dataclass(frozen=True)
class EscalationDecision:
    """What the chat-turn handler should do for one message."""
    show_crisis_resources: bool
    log_crisis_event: bool
    event_payload: Optional[CrisisEvent] = None
    reasons: Tuple[str, ...] = ()
    immediate_actions: Tuple[str, ...] = ()
    follow_up: str = "as needed"

    def __post_init__(self):
        if self.log_crisis_event != (self.event_payload is not None):
            raise ValueError("event_payload must be present exactly when logging")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "show_crisis_resources": self.show_crisis_resources,
            "log_crisis_event": self.log_crisis_event,
            "reasons": list(self.reasons),
            "immediate_actions": list(self.immediate_actions),
            "follow_up": self.follow_up,
        }


class EscalationPolicy:
    """Decides whether to surface crisis resources and log a crisis event."""

    def __init__(self, config: Optional[EscalationConfig] = None):
        self.config = config or EscalationConfig()

    def decide(
        self,
        assessment: RiskAssessment,
        recent_levels: Sequence[RiskLevel],
        user_id: str,
        session_id: Optional[str] = None,
    ) -> EscalationDecision:
        """Decide escalation for one assessed message.

        Args:
            assessment: Assessment of the current message
            recent_levels: Levels of the session's prior messages, most
                recent last; only the last window_size are considered
            user_id: Owner of the message, recorded on the crisis event
            session_id: Session identifier, recorded on the crisis event

        Returns:
            EscalationDecision, with a CrisisEvent payload when logging

        Raises:
            TypeError: If assessment or a recent level has the wrong type
            ValueError: If an event must be built and user_id is empty
        """
        if not isinstance(assessment, RiskAssessment):
            raise TypeError(f"decide() requires a RiskAssessment, got {type(assessment).__name__}")
        window = tuple(recent_levels)[-self.config.window_size:]
        for level in window:
            if not isinstance(level, RiskLevel):
                raise TypeError(f"recent_levels must hold RiskLevel values, got {level!r}")

        level = assessment.level
        reasons = []
        if level >= RiskLevel.MODERATE:
            reasons.append(REASON_LEVEL)
        if self._sustained_pattern(level, window):
            reasons.append(REASON_PATTERN)

        show_resources = bool(reasons)
        log_event = level >= RiskLevel.MODERATE
        payload = self._build_event(assessment, user_id, session_id) if log_event else None

        decision = EscalationDecision(
            show_crisis_resources=show_resources,
            log_crisis_event=log_event,
            event_payload=payload,
            reasons=tuple(reasons),
            immediate_actions=IMMEDIATE_ACTIONS.get(level, ()),
            follow_up=FOLLOW_UP_TIMEFRAMES.get(level, "as needed"),
        )

        logger.info(
            "ESCALATION_DECIDED",
            extra={
                "risk_level": level.value,
                "window_size": len(window),
                "show_crisis_resources": show_resources,
                "log_crisis_event": log_event,
                "reasons": list(reasons),
            }
        )
        return decision

    def _sustained_pattern(self, level: RiskLevel, window: Tuple[RiskLevel, ...]) -> bool:
        """True when the current and the last pattern_length prior levels are LOW or above."""
        needed = self.config.pattern_length
        if level < RiskLevel.LOW or len(window) < needed:
            return False
        return all(prior >= RiskLevel.LOW for prior in window[-needed:])

    def _build_event(
        self,
        assessment: RiskAssessment,
        user_id: str,
        session_id: Optional[str],
    ) -> CrisisEvent:
        """Build the crisis event payload; categories only, no weights."""
        severity = assessment.level
        return CrisisEvent(
            user_id=user_id,
            session_id=session_id,
            timestamp=assessment.timestamp,
            severity=severity,
            trigger_message=assessment.message_text,
            detected_indicators=frozenset(assessment.categories),
            professional_referral=severity == RiskLevel.SEVERE,
            follow_up_scheduled=severity > RiskLevel.MODERATE,
        )
