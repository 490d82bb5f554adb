"""Safety Service: crisis-risk assessment and escalation.

Every chat message passes through here BEFORE the AI companion replies.
The assessor and escalation policy are pure; the session window, crisis
event log and publisher hold the state and I/O around them.

Components:
- assessor.py: RiskAssessor, table-driven indicator scoring
- escalation.py: EscalationPolicy, show-resources / log-event decision
- config.py: Thresholds, indicator table, helplines
- text_normalizer.py: Case, diacritic and Hinglish spelling folding
- session_window.py: Per-session window of prior levels
- crisis_log.py: Append-only crisis event log
- crisis_publisher.py: Kinesis publishing of logged events
- pipeline.py: SafetyPipeline for the chat turn
- handler.py: Flask HTTP endpoints (/health, /ready, /assess, /crisis-events)

Usage:
    from mannmitra.services.safety_service import RiskAssessor, EscalationPolicy
    assessment = RiskAssessor().assess(text)
    decision = EscalationPolicy().decide(assessment, recent_levels, user_id)
"""

from .assessor import RiskAssessor
from .config import (
    EscalationConfig,
    HELPLINES,
    INDICATOR_RULES,
    IndicatorRule,
    PublisherConfig,
    RiskThresholds,
    SafetyConfig,
    ServiceConfig,
)
from .crisis_log import (
    CrisisEventLog,
    CrisisEventNotFoundError,
    CrisisLogError,
    InvalidResolutionTransitionError,
)
from .crisis_publisher import CrisisEventPublisher
from .escalation import EscalationDecision, EscalationPolicy
from .pipeline import SafetyPipeline, TurnSafetyResult
from .session_window import SessionWindowStore

__all__ = [
    "RiskAssessor",
    "EscalationPolicy",
    "EscalationDecision",
    "EscalationConfig",
    "HELPLINES",
    "INDICATOR_RULES",
    "IndicatorRule",
    "PublisherConfig",
    "RiskThresholds",
    "SafetyConfig",
    "ServiceConfig",
    "CrisisEventLog",
    "CrisisLogError",
    "CrisisEventNotFoundError",
    "InvalidResolutionTransitionError",
    "CrisisEventPublisher",
    "SafetyPipeline",
    "TurnSafetyResult",
    "SessionWindowStore",
]
