"""Safety Service configuration: thresholds, indicator table and helplines.

The indicator table is data, not code. Adding a phrase or a category is a
change to INDICATOR_RULES; the assessor evaluates every rule with the same
matching routine.
"""
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from mannmitra.shared.models import RiskLevel


@dataclass(frozen=True)
class RiskThresholds:
    """Ordered score -> level table.

    Each entry is (minimum score, level). A score maps to the last entry
    whose minimum it reaches. The default table:

        0      none
        1-2    low
        3-5    moderate
        6-9    high
        10+    severe
    """
    table: Tuple[Tuple[int, RiskLevel], ...] = (
        (0, RiskLevel.NONE),
        (1, RiskLevel.LOW),
        (3, RiskLevel.MODERATE),
        (6, RiskLevel.HIGH),
        (10, RiskLevel.SEVERE),
    )

    def __post_init__(self):
        if not self.table:
            raise ValueError("Threshold table must not be empty")
        if self.table[0] != (0, RiskLevel.NONE):
            raise ValueError("Threshold table must start at (0, RiskLevel.NONE)")
        for (low_score, low_level), (high_score, high_level) in zip(self.table, self.table[1:]):
            if high_score <= low_score:
                raise ValueError(
                    f"Threshold scores must be strictly increasing: {low_score} -> {high_score}"
                )
            if high_level <= low_level:
                raise ValueError(
                    f"Threshold levels must be strictly increasing: "
                    f"{low_level.value} -> {high_level.value}"
                )

    def level_for(self, score: int) -> RiskLevel:
        """Map a non-negative score to its risk level."""
        if score < 0:
            raise ValueError(f"Score must be >= 0, got {score}")
        level = RiskLevel.NONE
        for minimum, candidate in self.table:
            if score < minimum:
                break
            level = candidate
        return level

    def minimum_score(self, level: RiskLevel) -> Optional[int]:
        """Lowest score yielding the given level, or None if unreachable."""
        for minimum, candidate in self.table:
            if candidate == level:
                return minimum
        return None


@dataclass(frozen=True)
class IndicatorRule:
    """One row of the indicator table: a category, its phrases and weight."""
    category: str
    weight: int
    phrases: Tuple[str, ...]

    def __post_init__(self):
        if not self.category:
            raise ValueError("Indicator category must not be empty")
        if self.weight <= 0:
            raise ValueError(f"Indicator weight must be positive, got {self.weight}")
        if not self.phrases or not all(p.strip() for p in self.phrases):
            raise ValueError(f"Indicator '{self.category}' needs non-empty phrases")


# Phrases are matched against normalized text (see text_normalizer), so
# spelling variants folded there need not be listed twice.
# Updated: 2026-10-01 - merged phrase lists from chat, journal and
# assessment flows into one table
INDICATOR_RULES: Tuple[IndicatorRule, ...] = (
    IndicatorRule(
        category="self-harm",
        weight=6,
        phrases=(
            # English
            "kill myself",
            "end my life",
            "take my life",
            "want to die",
            "wanna die",
            "feel like dying",
            "suicide",
            "suicidal",
            "hurt myself",
            "harm myself",
            "cut myself",
            "self harm",
            "self-harm",
            "hang myself",
            "overdose",
            "better off dead",
            "not worth living",
            "no point in living",
            "end it all",
            "want to give up",
            "unalive",
            # Hinglish
            "marna chahta hoon",
            "marna chahti hoon",
            "mar jana chahta",
            "mar jana chahti",
            "jeena nahi chahta",
            "jeena nahi chahti",
            "khud ko nuksan",
            "khudkushi",
            "aatmahatya",
            # Devanagari
            "आत्महत्या",
            "मरना चाहता",
            "मरना चाहती",
            "जीना नहीं चाहता",
            "जीना नहीं चाहती",
            "खुद को नुकसान",
        ),
    ),
    IndicatorRule(
        category="hopelessness",
        weight=4,
        phrases=(
            "hopeless",
            "no hope",
            "no future",
            "pointless",
            "give up",
            "can't go on",
            "cant go on",
            "nothing matters",
            "no way out",
            "koi umeed nahi",
            "sab bekar hai",
            "kuch nahi ho sakta",
            "कोई उम्मीद नहीं",
            "निराश",
        ),
    ),
    IndicatorRule(
        category="worthlessness",
        weight=3,
        phrases=(
            "worthless",
            "burden",
            "hate myself",
            "useless",
            "failure",
            "kisi kaam ka nahi",
            "kisi kaam ki nahi",
            "bojh hoon",
            "बोझ",
        ),
    ),
    IndicatorRule(
        category="substance-use",
        weight=2,
        phrases=(
            "drinking to forget",
            "getting drunk",
            "drugs",
            "nasha",
            "sharab",
            "नशा",
            "शराब",
        ),
    ),
    IndicatorRule(
        category="isolation",
        weight=2,
        phrases=(
            "alone",
            "lonely",
            "nobody cares",
            "no one cares",
            "no one understands",
            "akela",
            "akeli",
            "koi nahi samajhta",
            "अकेला",
            "अकेली",
        ),
    ),
    IndicatorRule(
        category="distress",
        weight=1,
        phrases=(
            "overwhelmed",
            "can't handle",
            "cant handle",
            "breaking down",
            "falling apart",
            "exhausted",
            "bahut pareshan",
            "thak gaya",
            "thak gayi",
            "बहुत परेशान",
            "टूट गया",
        ),
    ),
)


@dataclass(frozen=True)
class SafetyConfig:
    """Configuration for risk assessment behaviour."""

    # Recorded on every assessment for the audit trail
    table_version: str = "2026.10.01"

    @classmethod
    def from_env(cls) -> "SafetyConfig":
        """Create config from environment variables.

        Environment variables:
            INDICATOR_TABLE_VERSION: Version tag for the indicator table
        """
        return cls(
            table_version=os.getenv("INDICATOR_TABLE_VERSION", cls.table_version),
        )


@dataclass(frozen=True)
class EscalationConfig:
    """Configuration for the escalation policy.

    window_size: how many prior levels from the session are considered
    pattern_length: consecutive prior levels at LOW or above that, with a
        current level at LOW or above, surface crisis resources
    max_sessions: sessions whose windows are held in memory; the least
        recently active session is dropped beyond this
    """
    window_size: int = 5
    pattern_length: int = 2
    max_sessions: int = 10000

    def __post_init__(self):
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if not 1 <= self.pattern_length <= self.window_size:
            raise ValueError(
                f"pattern_length must be between 1 and window_size, got {self.pattern_length}"
            )
        if self.max_sessions < 1:
            raise ValueError(f"max_sessions must be >= 1, got {self.max_sessions}")

    @classmethod
    def from_env(cls) -> "EscalationConfig":
        """Create config from environment variables.

        Environment variables:
            RISK_WINDOW_SIZE: Prior levels kept per session (default 5)
            RISK_PATTERN_LENGTH: Prior low levels that trigger resources (default 2)
            RISK_MAX_SESSIONS: Session windows held in memory (default 10000)
        """
        return cls(
            window_size=int(os.getenv("RISK_WINDOW_SIZE", "5")),
            pattern_length=int(os.getenv("RISK_PATTERN_LENGTH", "2")),
            max_sessions=int(os.getenv("RISK_MAX_SESSIONS", "10000")),
        )


@dataclass(frozen=True)
class PublisherConfig:
    """Kinesis publishing configuration for logged crisis events."""
    stream_name: str = "mannmitra-crisis-events"
    enabled: bool = False
    region: str = "ap-south-1"

    @classmethod
    def from_env(cls) -> "PublisherConfig":
        """Create config from environment variables.

        Environment variables:
            KINESIS_STREAM_NAME: Target stream
            CRISIS_PUBLISHING_ENABLED: "true" to publish (default false)
            AWS_REGION: AWS region (default ap-south-1)
        """
        return cls(
            stream_name=os.getenv("KINESIS_STREAM_NAME", cls.stream_name),
            enabled=os.getenv("CRISIS_PUBLISHING_ENABLED", "false").lower() == "true",
            region=os.getenv("AWS_REGION", cls.region),
        )


@dataclass(frozen=True)
class Helpline:
    """A crisis helpline shown to the user."""
    name: str
    number: str
    availability: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "name": self.name,
            "number": self.number,
            "availability": self.availability,
        }


HELPLINES: Tuple[Helpline, ...] = (
    Helpline("Vandrevala Foundation", "9999 666 555", "24/7"),
    Helpline("AASRA", "91-22-27546669", "24/7"),
    Helpline("Sneha Foundation", "044-24640050", "24/7"),
    Helpline("iCall", "9152987821", "Mon-Sat, 8AM-10PM"),
)


IMMEDIATE_ACTIONS: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.SEVERE: (
        "contact_crisis_helpline",
        "reach_out_to_trusted_person",
        "ensure_safety",
    ),
    RiskLevel.HIGH: ("seek_professional_help", "inform_support_system"),
    RiskLevel.MODERATE: ("practice_self_care", "monitor_mood"),
}


FOLLOW_UP_TIMEFRAMES: Dict[RiskLevel, str] = {
    RiskLevel.SEVERE: "immediately",
    RiskLevel.HIGH: "within 24 hours",
    RiskLevel.MODERATE: "within a week",
    RiskLevel.LOW: "as needed",
    RiskLevel.NONE: "as needed",
}


@dataclass(frozen=True)
class ServiceConfig:
    """Top-level wiring for the HTTP service and CLI."""
    safety: SafetyConfig = field(default_factory=SafetyConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)
    publisher: PublisherConfig = field(default_factory=PublisherConfig)
    helplines: Tuple[Helpline, ...] = HELPLINES

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        return cls(
            safety=SafetyConfig.from_env(),
            escalation=EscalationConfig.from_env(),
            publisher=PublisherConfig.from_env(),
        )
