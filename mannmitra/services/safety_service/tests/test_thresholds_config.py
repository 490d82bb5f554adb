"""Tests for safety service configuration."""
import pytest

from mannmitra.shared.models import RiskLevel
from mannmitra.services.safety_service.config import (
    EscalationConfig,
    FOLLOW_UP_TIMEFRAMES,
    HELPLINES,
    IMMEDIATE_ACTIONS,
    INDICATOR_RULES,
    IndicatorRule,
    PublisherConfig,
    RiskThresholds,
    SafetyConfig,
    ServiceConfig,
)


class TestRiskThresholds:
    """Tests for the score -> level table."""

    @pytest.mark.parametrize("score,level", [
        (0, RiskLevel.NONE),
        (1, RiskLevel.LOW),
        (2, RiskLevel.LOW),
        (3, RiskLevel.MODERATE),
        (5, RiskLevel.MODERATE),
        (6, RiskLevel.HIGH),
        (9, RiskLevel.HIGH),
        (10, RiskLevel.SEVERE),
        (47, RiskLevel.SEVERE),
    ])
    def test_level_for(self, score, level):
        assert RiskThresholds().level_for(score) == level

    def test_levels_non_decreasing_in_score(self):
        thresholds = RiskThresholds()
        levels = [thresholds.level_for(score) for score in range(30)]
        assert levels == sorted(levels)

    def test_negative_score_rejected(self):
        with pytest.raises(ValueError):
            RiskThresholds().level_for(-1)

    def test_minimum_score(self):
        thresholds = RiskThresholds()
        assert thresholds.minimum_score(RiskLevel.MODERATE) == 3
        assert thresholds.minimum_score(RiskLevel.SEVERE) == 10

    def test_minimum_score_for_level_not_in_table(self):
        thresholds = RiskThresholds(table=((0, RiskLevel.NONE), (4, RiskLevel.HIGH)))
        assert thresholds.minimum_score(RiskLevel.LOW) is None
        assert thresholds.level_for(3) == RiskLevel.NONE

    @pytest.mark.parametrize("table", [
        (),
        ((1, RiskLevel.LOW),),
        ((0, RiskLevel.NONE), (3, RiskLevel.MODERATE), (3, RiskLevel.HIGH)),
        ((0, RiskLevel.NONE), (3, RiskLevel.HIGH), (6, RiskLevel.MODERATE)),
    ])
    def test_invalid_tables_rejected(self, table):
        with pytest.raises(ValueError):
            RiskThresholds(table=table)


class TestIndicatorRule:

    def test_zero_weight_rejected(self):
        with pytest.raises(ValueError):
            IndicatorRule("gloom", 0, ("sad",))

    def test_empty_category_rejected(self):
        with pytest.raises(ValueError):
            IndicatorRule("", 1, ("sad",))

    @pytest.mark.parametrize("phrases", [(), ("sad", "  ")])
    def test_blank_phrases_rejected(self, phrases):
        with pytest.raises(ValueError):
            IndicatorRule("gloom", 1, phrases)

    def test_default_weights(self):
        weights = {rule.category: rule.weight for rule in INDICATOR_RULES}
        assert weights == {
            "self-harm": 6,
            "hopelessness": 4,
            "worthlessness": 3,
            "substance-use": 2,
            "isolation": 2,
            "distress": 1,
        }


class TestEscalationConfig:

    def test_defaults(self):
        config = EscalationConfig()
        assert config.window_size == 5
        assert config.pattern_length == 2

    @pytest.mark.parametrize("window_size,pattern_length", [(0, 1), (3, 0), (2, 3)])
    def test_invalid_values_rejected(self, window_size, pattern_length):
        with pytest.raises(ValueError):
            EscalationConfig(window_size=window_size, pattern_length=pattern_length)

    def test_max_sessions_must_be_positive(self):
        with pytest.raises(ValueError):
            EscalationConfig(max_sessions=0)


class TestFromEnv:
    """Tests for environment-driven configuration."""

    def test_service_config_defaults(self, monkeypatch):
        for name in (
            "INDICATOR_TABLE_VERSION", "RISK_WINDOW_SIZE", "RISK_PATTERN_LENGTH", "RISK_MAX_SESSIONS",
            "KINESIS_STREAM_NAME", "CRISIS_PUBLISHING_ENABLED", "AWS_REGION",
        ):
            monkeypatch.delenv(name, raising=False)

        config = ServiceConfig.from_env()

        assert config.safety == SafetyConfig()
        assert config.escalation == EscalationConfig()
        assert config.publisher == PublisherConfig()
        assert config.publisher.enabled is False
        assert config.helplines == HELPLINES

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("INDICATOR_TABLE_VERSION", "2027.01.01")
        monkeypatch.setenv("RISK_WINDOW_SIZE", "8")
        monkeypatch.setenv("RISK_PATTERN_LENGTH", "3")
        monkeypatch.setenv("RISK_MAX_SESSIONS", "500")
        monkeypatch.setenv("KINESIS_STREAM_NAME", "crisis-test")
        monkeypatch.setenv("CRISIS_PUBLISHING_ENABLED", "TRUE")
        monkeypatch.setenv("AWS_REGION", "us-east-1")

        config = ServiceConfig.from_env()

        assert config.safety.table_version == "2027.01.01"
        assert config.escalation.window_size == 8
        assert config.escalation.pattern_length == 3
        assert config.escalation.max_sessions == 500
        assert config.publisher.stream_name == "crisis-test"
        assert config.publisher.enabled is True
        assert config.publisher.region == "us-east-1"

    def test_invalid_window_from_env(self, monkeypatch):
        monkeypatch.setenv("RISK_WINDOW_SIZE", "1")
        monkeypatch.setenv("RISK_PATTERN_LENGTH", "2")
        with pytest.raises(ValueError):
            EscalationConfig.from_env()


class TestSupportResources:
    """Tests for helplines and per-level guidance."""

    def test_helplines(self):
        names = [h.name for h in HELPLINES]
        assert names == ["Vandrevala Foundation", "AASRA", "Sneha Foundation", "iCall"]
        assert HELPLINES[0].to_dict() == {
            "name": "Vandrevala Foundation",
            "number": "9999 666 555",
            "availability": "24/7",
        }

    def test_immediate_actions_only_for_elevated_levels(self):
        assert set(IMMEDIATE_ACTIONS) == {RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.SEVERE}
        assert "contact_crisis_helpline" in IMMEDIATE_ACTIONS[RiskLevel.SEVERE]

    def test_follow_up_for_every_level(self):
        assert set(FOLLOW_UP_TIMEFRAMES) == set(RiskLevel)
        assert FOLLOW_UP_TIMEFRAMES[RiskLevel.SEVERE] == "immediately"
