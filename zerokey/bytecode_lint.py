"""
Heuristic Textual Lint
Case-insensitive text patterns over a transaction's data field.

This is a lint, not bytecode analysis: a compiled SELFDESTRUCT opcode never
contains the ASCII text "selfdestruct". It catches proposals whose data
carries source-like or annotated payloads. Real disassembly would be a
separate stage with its own module.
"""

from __future__ import annotations

import re
from typing import Any

from zerokey.policy import PolicyViolation

LINT_RULE = "security.pattern"

SUSPICIOUS_PATTERNS = [
    (re.compile(r"selfdestruct", re.IGNORECASE), "self-destruct"),
    (re.compile(r"delegatecall.*0x0", re.IGNORECASE), "delegatecall to a null-like target"),
    (re.compile(r"tx\.origin", re.IGNORECASE), "tx.origin used for authorization"),
]


def lint_transaction_data(data: Any) -> list[PolicyViolation]:
    """One error per matching pattern; non-string data is skipped."""
    violations: list[PolicyViolation] = []
    if not isinstance(data, str) or not data:
        return violations

    for pattern, description in SUSPICIOUS_PATTERNS:
        if pattern.search(data):
            violations.append(PolicyViolation(
                rule=LINT_RULE,
                message=f"Suspicious pattern detected: {description} (/{pattern.pattern}/i)",
                severity="error",
            ))
    return violations
