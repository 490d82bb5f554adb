#!/usr/bin/env python3
"""Command-line interface for the risk assessor.

Usage:
    python -m mannmitra.services.safety_service.cli --help
    python -m mannmitra.services.safety_service.cli assess "I feel hopeless"
    python -m mannmitra.services.safety_service.cli assess "thak gaya hoon" --recent low low
    python -m mannmitra.services.safety_service.cli thresholds
    python -m mannmitra.services.safety_service.cli indicators
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from mannmitra.shared.models import RiskLevel
from .assessor import RiskAssessor
from .config import INDICATOR_RULES, RiskThresholds, SafetyConfig
from .escalation import EscalationPolicy

logger = logging.getLogger(__name__)


def setup_parser() -> argparse.ArgumentParser:
    """Set up argument parser."""
    parser = argparse.ArgumentParser(
        description="MannMitra crisis-risk assessment CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    assess_parser = subparsers.add_parser("assess", help="Assess one message")
    assess_parser.add_argument("text", help="Message text to assess")
    assess_parser.add_argument(
        "--recent", nargs="*", default=[],
        choices=[level.value for level in RiskLevel],
        help="Prior levels in the session, most recent last"
    )
    assess_parser.add_argument(
        "--user-id", default="cli-user",
        help="User id recorded on a crisis event payload"
    )

    subparsers.add_parser("thresholds", help="Print the score -> level table")
    subparsers.add_parser("indicators", help="Print the indicator table")

    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable INFO logging"
    )
    return parser


def cmd_assess(args: argparse.Namespace) -> dict:
    """Assess a message and decide escalation against the given history."""
    assessor = RiskAssessor(config=SafetyConfig.from_env())
    policy = EscalationPolicy()

    assessment = assessor.assess(args.text)
    decision = policy.decide(
        assessment,
        [RiskLevel.parse(level) for level in args.recent],
        user_id=args.user_id,
    )

    output = {
        "assessment": assessment.to_dict(),
        "decision": decision.to_dict(),
    }
    if decision.event_payload is not None:
        output["event_payload"] = decision.event_payload.to_dict()
    return output


def cmd_thresholds(args: argparse.Namespace) -> dict:
    """Describe the threshold table."""
    return {
        "thresholds": [
            {"min_score": minimum, "level": level.value}
            for minimum, level in RiskThresholds().table
        ]
    }


def cmd_indicators(args: argparse.Namespace) -> dict:
    """Describe the indicator table."""
    return {
        "table_version": SafetyConfig.from_env().table_version,
        "indicators": [
            {"category": rule.category, "weight": rule.weight, "phrases": list(rule.phrases)}
            for rule in INDICATOR_RULES
        ],
    }


COMMANDS = {
    "assess": cmd_assess,
    "thresholds": cmd_thresholds,
    "indicators": cmd_indicators,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = setup_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    output = COMMANDS[args.command](args)
    print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
