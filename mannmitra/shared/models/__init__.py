"""Shared domain models for the MannMitra safety core."""
from .risk import (
    RiskLevel,
    LOGGABLE_LEVELS,
    CrisisResolution,
    Indicator,
    RiskAssessment,
    CrisisEvent,
)

__all__ = [
    "RiskLevel",
    "LOGGABLE_LEVELS",
    "CrisisResolution",
    "Indicator",
    "RiskAssessment",
    "CrisisEvent",
]
