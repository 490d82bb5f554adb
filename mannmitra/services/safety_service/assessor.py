"""Risk assessor: message text -> RiskAssessment.

Deterministic and stateless. Every rule in the indicator table is
evaluated by the same matching routine over the normalized message; each
matched category contributes its weight once and the summed score is
mapped to a level through the threshold table.
"""
import logging
import re
import time
from typing import Dict, List, Optional, Sequence, Tuple

from mannmitra.shared.models import Indicator, RiskAssessment, RiskLevel
from mannmitra.shared.utils import hash_text_for_audit
from .config import INDICATOR_RULES, IndicatorRule, RiskThresholds, SafetyConfig
from .text_normalizer import TextNormalizer

logger = logging.getLogger(__name__)


class RiskAssessor:
    """Scores a single message for crisis risk.

    Holds only immutable, precompiled state, so one instance can be
    shared across threads or built fresh per test.
    """

    def __init__(
        self,
        config: Optional[SafetyConfig] = None,
        thresholds: Optional[RiskThresholds] = None,
        rules: Optional[Sequence[IndicatorRule]] = None,
        normalizer: Optional[TextNormalizer] = None,
    ):
        """Initialize assessor with configuration.

        Args:
            config: Assessment behaviour configuration
            thresholds: Score -> level table
            rules: Indicator table, defaults to INDICATOR_RULES
            normalizer: Text normalizer applied to both phrases and messages

        Raises:
            ValueError: If two rules share a category
        """
        self.config = config or SafetyConfig()
        self.thresholds = thresholds or RiskThresholds()
        self.rules: Tuple[IndicatorRule, ...] = tuple(INDICATOR_RULES if rules is None else rules)
        self._normalizer = normalizer or TextNormalizer()

        # Pre-compile one pattern per category for performance
        self._category_patterns = self._compile_rules(self.rules)
        self._weights: Dict[str, int] = {rule.category: rule.weight for rule in self.rules}

        logger.info(
            "RISK_ASSESSOR_INITIALIZED",
            extra={
                "table_version": self.config.table_version,
                "category_count": len(self.rules),
                "phrase_count": sum(len(rule.phrases) for rule in self.rules),
            }
        )

    def _compile_rules(self, rules: Sequence[IndicatorRule]) -> List[Tuple[str, re.Pattern]]:
        """Compile each rule's phrases into a single alternation.

        Phrases are normalized first so they live in the same space as the
        messages they are matched against. Alternatives are ordered longest
        first: at the earliest match position the longest phrase wins.
        Phrases match anywhere in the text, so "hopelessness" counts as
        "hopeless".

        Returns:
            (category, pattern) pairs in table order
        """
        compiled = []
        seen = set()
        for rule in rules:
            if rule.category in seen:
                raise ValueError(f"Duplicate indicator category: {rule.category}")
            seen.add(rule.category)

            phrases = {self._normalizer.normalize(p) for p in rule.phrases}
            phrases.discard("")
            if not phrases:
                raise ValueError(f"Indicator '{rule.category}' has no matchable phrases")
            ordered = sorted(phrases, key=lambda p: (-len(p), p))
            pattern = re.compile("|".join(re.escape(p) for p in ordered))
            compiled.append((rule.category, pattern))
        return compiled

    def assess(self, text: str) -> RiskAssessment:
        """Assess one message.

        Args:
            text: Raw message text; may be empty

        Returns:
            RiskAssessment with level, score and ordered indicators

        Raises:
            TypeError: If text is not a string (None included)

        Logs:
            - RISK_ASSESSMENT_ELEVATED: If level is moderate or above
            - RISK_ASSESSMENT_COMPLETED: After every assessment
        """
        if not isinstance(text, str):
            raise TypeError(f"assess() requires a str, got {type(text).__name__}")

        start_time = time.perf_counter()
        normalized = self._normalizer.normalize(text)
        indicators = self._match_indicators(normalized) if normalized else []

        score = sum(indicator.weight for indicator in indicators)
        level = self.thresholds.level_for(score)

        assessment = RiskAssessment(
            level=level,
            score=score,
            triggered_indicators=tuple(indicators),
            message_text=text,
            table_version=self.config.table_version,
        )

        latency_ms = (time.perf_counter() - start_time) * 1000

        if level >= RiskLevel.MODERATE:
            logger.warning(
                "RISK_ASSESSMENT_ELEVATED",
                extra={
                    "text_hash": hash_text_for_audit(text),
                    "risk_level": level.value,
                    "score": score,
                    "categories": list(assessment.categories),
                }
            )

        logger.info(
            "RISK_ASSESSMENT_COMPLETED",
            extra={
                "text_length": len(text),
                "risk_level": level.value,
                "score": score,
                "indicator_count": len(indicators),
                "latency_ms": latency_ms,
            }
        )

        return assessment

    def _match_indicators(self, normalized: str) -> List[Indicator]:
        """Find at most one indicator per category.

        Args:
            normalized: Normalized message text

        Returns:
            Indicators ordered by first match position, ties by category
        """
        indicators = []
        for category, pattern in self._category_patterns:
            match = pattern.search(normalized)
            if match is None:
                continue
            indicators.append(Indicator(
                category=category,
                matched_text=match.group(0),
                weight=self._weights[category],
                position=match.start(),
            ))
        indicators.sort(key=lambda i: (i.position, i.category))
        return indicators
