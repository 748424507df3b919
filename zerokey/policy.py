"""
Policy Rules
Rule-set, violation and verdict types, plus the rule-document parser.

The rule document is free-form text (a Rego-style file). Three values are
extracted by pattern matching: ``min_signers``, ``allowed_networks`` and
``max_gas_limit``. Anything absent stays unset and the validator falls
back to its documented defaults.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

from zerokey.networks import NETWORK_CONFIGS

logger = logging.getLogger(__name__)

DEFAULT_MAX_GAS_LIMIT = 10_000_000

MIN_SIGNERS_PATTERN = re.compile(r"min_signers\s*:=\s*(\d+)")
ALLOWED_NETWORKS_PATTERN = re.compile(r"allowed_networks\s*:=\s*\[(.*?)\]", re.DOTALL)
MAX_GAS_LIMIT_PATTERN = re.compile(r"max_gas_limit\s*:=\s*(\d+)")


# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

@dataclass
class PolicyRuleSet:
    min_signers: Optional[int] = None
    allowed_networks: Optional[list[str]] = None
    max_gas_limit: Optional[int] = None

    @property
    def effective_max_gas_limit(self) -> int:
        return self.max_gas_limit or DEFAULT_MAX_GAS_LIMIT

    def to_dict(self) -> dict[str, Any]:
        """Nested view: {signers: {...}, network: {...}, security: {}}."""
        signers: dict[str, Any] = {}
        network: dict[str, Any] = {}
        if self.min_signers is not None:
            signers["minThreshold"] = self.min_signers
        if self.allowed_networks is not None:
            network["allowed"] = list(self.allowed_networks)
        if self.max_gas_limit is not None:
            network["maxGasLimit"] = self.max_gas_limit
        return {"signers": signers, "network": network, "security": {}}


@dataclass
class PolicyViolation:
    rule: str          # dotted path, e.g. "network.allowed"
    message: str
    severity: str = "error"   # error | warning


@dataclass
class ValidationResult:
    valid: bool
    violations: list[PolicyViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def errors(self) -> list[PolicyViolation]:
        return [v for v in self.violations if v.severity == "error"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "violations": [asdict(v) for v in self.violations],
            "warnings": list(self.warnings),
        }

    def summary(self) -> str:
        lines = [f"Valid:      {self.valid}"]
        if self.violations:
            lines.append("Violations:")
            for v in self.violations:
                lines.append(f"  [{v.rule}] ({v.severity}) {v.message}")
        if self.warnings:
            lines.append("Warnings:")
            for w in self.warnings:
                lines.append(f"  - {w}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_policy(text: str) -> PolicyRuleSet:
    """Extract the known rules from a rule document. Never raises."""
    rules = PolicyRuleSet()

    match = MIN_SIGNERS_PATTERN.search(text)
    if match:
        rules.min_signers = int(match.group(1))

    match = ALLOWED_NETWORKS_PATTERN.search(text)
    if match:
        names = [
            n.strip().strip("\"'")
            for n in match.group(1).split(",")
        ]
        rules.allowed_networks = [n for n in names if n]
        unknown = [n for n in rules.allowed_networks if n not in NETWORK_CONFIGS]
        if unknown:
            logger.warning("Policy names networks with no built-in chain id: %s",
                           ", ".join(unknown))

    match = MAX_GAS_LIMIT_PATTERN.search(text)
    if match:
        rules.max_gas_limit = int(match.group(1))

    logger.debug("Policy rules extracted: %s", rules.to_dict())
    return rules


def load_policy(path: Union[str, Path]) -> PolicyRuleSet:
    """
    Read and parse a policy file.

    A missing or unreadable policy is not fatal: an empty rule set is
    returned and validation proceeds with defaults.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.warning("Policy file not found, using default rules: %s", path)
        return PolicyRuleSet()
    return parse_policy(text)
