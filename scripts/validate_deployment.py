#!/usr/bin/env python3
"""
Validate Deployment

Checks safe-proposal.json against the rules in .zerokey/policy.rego
before the proposal is handed to signers.

Usage:  python scripts/validate_deployment.py [--proposal PATH] [--policy PATH]

Exit codes:
    0 - proposal passed every policy check
    1 - policy violated (each violation is logged)
    3 - proposal missing or unreadable
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

# Ensure the project root is importable so zerokey resolves
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from zerokey.config import POLICY_PATH, PROPOSAL_PATH, configure_logging
from zerokey.errors import ConfigurationError, PolicyValidationError
from zerokey.policy import ValidationResult
from zerokey.policy_validator import PolicyValidator

logger = logging.getLogger("validate_deployment")


def report(result: ValidationResult) -> None:
    for warning in result.warnings:
        logger.warning(warning)
    for violation in result.violations:
        logger.error("Policy violation: [%s] (%s) %s",
                     violation.rule, violation.severity, violation.message)


def check(validator: PolicyValidator) -> ValidationResult:
    """Validate and raise PolicyValidationError on a failing verdict."""
    result = validator.validate()
    report(result)
    if not result.valid:
        raise PolicyValidationError(
            "Policy validation failed",
            violations=[v.message for v in result.violations],
            proposal_data={
                "safeAddress": validator.proposal.get("safeAddress"),
                "chainId": validator.proposal.get("chainId"),
            },
        )
    return result


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    parser = argparse.ArgumentParser(description="Validate a Safe proposal against policy")
    parser.add_argument("--proposal", type=Path, default=PROPOSAL_PATH)
    parser.add_argument("--policy", type=Path, default=POLICY_PATH)
    args = parser.parse_args(argv)

    logger.info("Starting deployment validation")
    if not args.proposal.exists():
        logger.error("Proposal file not found: %s", args.proposal)
        return 3

    try:
        validator = PolicyValidator(args.proposal, args.policy)
        check(validator)
    except ConfigurationError as exc:
        logger.error("Validation error: %s", exc.message)
        return 3
    except PolicyValidationError as exc:
        logger.error("Proposal failed policy validation: %d violation(s)",
                     len(exc.violations))
        return 1

    logger.info("Proposal passed all policy checks")
    return 0


if __name__ == "__main__":
    sys.exit(main())
