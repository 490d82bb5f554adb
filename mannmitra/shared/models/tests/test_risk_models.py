"""Tests for risk domain models - ordering, immutability and event validation."""
import dataclasses
from datetime import datetime

import pytest

from mannmitra.shared.models import (
    CrisisEvent,
    CrisisResolution,
    Indicator,
    LOGGABLE_LEVELS,
    RiskAssessment,
    RiskLevel,
)


def make_event(**overrides):
    fields = {
        "user_id": "user_123",
        "timestamp": datetime(2026, 10, 1, 9, 30),
        "severity": RiskLevel.HIGH,
        "trigger_message": "I want to die",
        "detected_indicators": frozenset({"self-harm"}),
    }
    fields.update(overrides)
    return CrisisEvent(**fields)


class TestRiskLevel:
    """Tests for RiskLevel ordering."""

    def test_total_order(self):
        """Levels must be ordered none < low < moderate < high < severe."""
        assert RiskLevel.NONE < RiskLevel.LOW < RiskLevel.MODERATE < RiskLevel.HIGH < RiskLevel.SEVERE

    def test_sorting_uses_severity_not_name(self):
        levels = [RiskLevel.SEVERE, RiskLevel.NONE, RiskLevel.HIGH, RiskLevel.LOW, RiskLevel.MODERATE]
        assert sorted(levels) == list(RiskLevel)

    def test_comparison_operators(self):
        assert RiskLevel.MODERATE >= RiskLevel.MODERATE
        assert RiskLevel.HIGH >= RiskLevel.MODERATE
        assert RiskLevel.LOW <= RiskLevel.MODERATE
        assert not RiskLevel.LOW >= RiskLevel.MODERATE

    def test_rank(self):
        assert RiskLevel.NONE.rank == 0
        assert RiskLevel.SEVERE.rank == 4

    def test_comparison_with_other_types_fails(self):
        with pytest.raises(TypeError):
            RiskLevel.LOW < 3

    @pytest.mark.parametrize("value,expected", [
        ("high", RiskLevel.HIGH),
        ("SEVERE", RiskLevel.SEVERE),
        (" low ", RiskLevel.LOW),
        (RiskLevel.NONE, RiskLevel.NONE),
    ])
    def test_parse(self, value, expected):
        assert RiskLevel.parse(value) is expected

    @pytest.mark.parametrize("value", ["critical", "", None, 3])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            RiskLevel.parse(value)

    def test_loggable_levels(self):
        assert LOGGABLE_LEVELS == {RiskLevel.MODERATE, RiskLevel.HIGH, RiskLevel.SEVERE}


class TestCrisisResolution:
    """Tests for the resolution lifecycle."""

    def test_forward_transitions_allowed(self):
        assert CrisisResolution.UNRESOLVED.can_transition_to(CrisisResolution.MONITORING)
        assert CrisisResolution.MONITORING.can_transition_to(CrisisResolution.RESOLVED)
        assert CrisisResolution.UNRESOLVED.can_transition_to(CrisisResolution.RESOLVED)

    def test_resolved_is_terminal(self):
        for target in CrisisResolution:
            assert not CrisisResolution.RESOLVED.can_transition_to(target)

    def test_no_backward_transition(self):
        assert not CrisisResolution.MONITORING.can_transition_to(CrisisResolution.UNRESOLVED)


class TestRiskAssessment:
    """Tests for RiskAssessment invariants."""

    def test_empty_assessment(self):
        assessment = RiskAssessment(level=RiskLevel.NONE, score=0)
        assert assessment.triggered_indicators == ()
        assert assessment.categories == ()

    def test_score_must_match_indicator_weights(self):
        with pytest.raises(ValueError):
            RiskAssessment(
                level=RiskLevel.LOW,
                score=2,
                triggered_indicators=(Indicator("distress", "overwhelmed", 1),),
            )

    def test_negative_score_rejected(self):
        with pytest.raises(ValueError):
            RiskAssessment(level=RiskLevel.NONE, score=-1)

    def test_one_indicator_per_category(self):
        with pytest.raises(ValueError):
            RiskAssessment(
                level=RiskLevel.MODERATE,
                score=8,
                triggered_indicators=(
                    Indicator("hopelessness", "hopeless", 4, 0),
                    Indicator("hopelessness", "no hope", 4, 12),
                ),
            )

    def test_equality_ignores_timestamp(self):
        """Two assessments of the same text compare equal."""
        first = RiskAssessment(level=RiskLevel.NONE, score=0, timestamp=datetime(2026, 1, 1))
        second = RiskAssessment(level=RiskLevel.NONE, score=0, timestamp=datetime(2026, 6, 1))
        assert first == second

    def test_is_immutable(self):
        assessment = RiskAssessment(level=RiskLevel.NONE, score=0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            assessment.level = RiskLevel.SEVERE

    def test_to_dict_omits_message_text(self):
        assessment = RiskAssessment(
            level=RiskLevel.LOW,
            score=1,
            triggered_indicators=(Indicator("distress", "overwhelmed", 1, 7),),
            message_text="I am overwhelmed",
        )
        data = assessment.to_dict()
        assert data["level"] == "low"
        assert data["triggered_indicators"][0]["category"] == "distress"
        assert "I am overwhelmed" not in str(data)

    def test_repr_omits_message_text(self):
        assessment = RiskAssessment(level=RiskLevel.NONE, score=0, message_text="private words")
        assert "private words" not in repr(assessment)


class TestIndicator:

    def test_negative_weight_rejected(self):
        with pytest.raises(ValueError):
            Indicator("distress", "overwhelmed", -1)


class TestCrisisEvent:
    """Tests for crisis event shape validation."""

    def test_valid_event_defaults(self):
        event = make_event()
        assert event.resolution == CrisisResolution.UNRESOLVED
        assert event.session_id is None

    @pytest.mark.parametrize("severity", [RiskLevel.NONE, RiskLevel.LOW])
    def test_low_severities_never_logged(self, severity):
        """none/low levels must never produce a crisis event."""
        with pytest.raises(ValueError):
            make_event(severity=severity)

    def test_severity_must_be_risk_level(self):
        with pytest.raises(ValueError):
            make_event(severity="high")

    def test_requires_indicators(self):
        with pytest.raises(ValueError):
            make_event(detected_indicators=frozenset())

    def test_indicators_must_be_frozenset(self):
        with pytest.raises(ValueError):
            make_event(detected_indicators={"self-harm"})

    def test_indicator_categories_must_be_strings(self):
        with pytest.raises(ValueError):
            make_event(detected_indicators=frozenset({""}))

    def test_requires_user_id(self):
        with pytest.raises(ValueError):
            make_event(user_id="")

    def test_is_immutable(self):
        event = make_event()
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.severity = RiskLevel.SEVERE

    def test_to_dict_sorts_indicators(self):
        event = make_event(detected_indicators=frozenset({"self-harm", "hopelessness", "isolation"}))
        data = event.to_dict()
        assert data["detected_indicators"] == ["hopelessness", "isolation", "self-harm"]
        assert data["severity"] == "high"
        assert data["resolution"] == "unresolved"
        assert data["timestamp"] == "2026-10-01T09:30:00"

    def test_from_dict_rebuilds_event(self):
        event = make_event(
            session_id="sess_1",
            professional_referral=True,
            resolution=CrisisResolution.MONITORING,
        )
        assert CrisisEvent.from_dict(event.to_dict()) == event

    def test_from_dict_rejects_unknown_severity(self):
        data = make_event().to_dict()
        data["severity"] = "catastrophic"
        with pytest.raises(ValueError):
            CrisisEvent.from_dict(data)

    def test_from_dict_rejects_unknown_resolution(self):
        data = make_event().to_dict()
        data["resolution"] = "escalated"
        with pytest.raises(ValueError):
            CrisisEvent.from_dict(data)

    def test_from_dict_requires_user_id(self):
        data = make_event().to_dict()
        del data["user_id"]
        with pytest.raises(KeyError):
            CrisisEvent.from_dict(data)
