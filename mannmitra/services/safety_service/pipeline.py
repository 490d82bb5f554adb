"""Per-message safety pipeline for the chat turn.

Runs synchronously before the message goes to the AI companion:

    assess -> decide -> record level in session window
           -> log crisis event (if decided) -> publish (if enabled)

Logging and publishing are I/O and may fail. Their failures are reported
on the result but never change the decision to show crisis resources.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

from mannmitra.shared.models import RiskAssessment
from mannmitra.shared.utils import hash_pii
from .assessor import RiskAssessor
from .config import HELPLINES, Helpline
from .crisis_log import CrisisEventLog
from .crisis_publisher import CrisisEventPublisher
from .escalation import EscalationDecision, EscalationPolicy
from .session_window import SessionWindowStore

logger = logging.getLogger(__name__)


WARNING_EVENT_NOT_LOGGED = "crisis_event_not_logged"
WARNING_EVENT_NOT_PUBLISHED = "crisis_event_not_published"


def _user_id_hash(user_id: str) -> Optional[str]:
    """Hashed user id for log context, or None when no salt is configured.

    Only used for log lines; a missing salt must not stop the pipeline
    from returning its decision.
    """
    try:
        return hash_pii(user_id)
    except RuntimeError:
        return None


@dataclass(frozen=True)
class TurnSafetyResult:
    """Outcome of the safety pipeline for one message."""
    session_id: str
    assessment: RiskAssessment
    decision: EscalationDecision
    event_id: Optional[str] = None
    event_logged: bool = False
    event_published: bool = False
    helplines: Tuple[Helpline, ...] = ()
    warnings: Tuple[str, ...] = ()

    @property
    def show_crisis_resources(self) -> bool:
        return self.decision.show_crisis_resources

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "session_id": self.session_id,
            "risk_level": self.assessment.level.value,
            "score": self.assessment.score,
            "assessment": self.assessment.to_dict(),
            **self.decision.to_dict(),
            "event_id": self.event_id,
            "event_logged": self.event_logged,
            "event_published": self.event_published,
            "helplines": [h.to_dict() for h in self.helplines],
            "warnings": list(self.warnings),
        }


class SafetyPipeline:
    """Wires assessor, policy and the stateful collaborators together."""

    def __init__(
        self,
        assessor: Optional[RiskAssessor] = None,
        policy: Optional[EscalationPolicy] = None,
        session_store: Optional[SessionWindowStore] = None,
        event_log: Optional[CrisisEventLog] = None,
        publisher: Optional[CrisisEventPublisher] = None,
        helplines: Sequence[Helpline] = HELPLINES,
    ):
        """Initialize pipeline with dependencies.

        Args:
            assessor: Risk assessor
            policy: Escalation policy
            session_store: Per-session window of prior levels; sized from
                the policy's config when omitted
            event_log: Crisis event log
            publisher: Optional Kinesis publisher for logged events
            helplines: Helplines attached when resources are shown
        """
        self.assessor = assessor or RiskAssessor()
        self.policy = policy or EscalationPolicy()
        self.session_store = (
            session_store if session_store is not None
            else SessionWindowStore(self.policy.config)
        )
        self.event_log = event_log if event_log is not None else CrisisEventLog()
        self.publisher = publisher
        self.helplines = tuple(helplines)

    def process_message(self, user_id: str, session_id: str, text: str) -> TurnSafetyResult:
        """Run the safety pipeline for one inbound message.

        Args:
            user_id: Message author
            session_id: Chat session the message belongs to
            text: Raw message text

        Returns:
            TurnSafetyResult with the decision, helplines and log outcome

        Raises:
            TypeError: If text is not a string
            ValueError: If a crisis event must be built and user_id is empty
        """
        recent_levels = self.session_store.recent_levels(session_id)

        assessment = self.assessor.assess(text)
        decision = self.policy.decide(
            assessment,
            recent_levels,
            user_id=user_id,
            session_id=session_id,
        )
        self.session_store.record(session_id, assessment.level)
        user_id_hash = _user_id_hash(user_id)

        event_id = None
        event_logged = False
        event_published = False
        warnings = []

        if decision.log_crisis_event:
            try:
                event_id = self.event_log.append(decision.event_payload)
                event_logged = True
            except Exception as e:
                logger.error(
                    "CRISIS_EVENT_LOG_FAILED",
                    extra={
                        "user_id_hash": user_id_hash,
                        "session_id": session_id,
                        "severity": assessment.level.value,
                        "error": str(e),
                        "error_type": type(e).__name__,
                        "action": "CONTINUING_WITHOUT_LOG",
                    }
                )
                warnings.append(WARNING_EVENT_NOT_LOGGED)

            if event_logged and self.publisher is not None:
                try:
                    event_published = self.publisher.publish(event_id, decision.event_payload)
                except Exception as e:
                    logger.error(
                        "CRISIS_EVENT_PUBLISH_ERROR",
                        extra={
                            "event_id": event_id,
                            "error": str(e),
                            "error_type": type(e).__name__,
                        }
                    )
                    warnings.append(WARNING_EVENT_NOT_PUBLISHED)

        if decision.show_crisis_resources:
            logger.warning(
                "CRISIS_RESOURCES_SHOWN",
                extra={
                    "user_id_hash": user_id_hash,
                    "session_id": session_id,
                    "risk_level": assessment.level.value,
                    "reasons": list(decision.reasons),
                    "event_id": event_id,
                }
            )

        return TurnSafetyResult(
            session_id=session_id,
            assessment=assessment,
            decision=decision,
            event_id=event_id,
            event_logged=event_logged,
            event_published=event_published,
            helplines=self.helplines if decision.show_crisis_resources else (),
            warnings=tuple(warnings),
        )
