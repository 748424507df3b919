"""
Textual Lint Test Suite

Usage:  pytest tests/test_bytecode_lint.py
"""

from __future__ import annotations

import pytest

from zerokey.bytecode_lint import LINT_RULE, lint_transaction_data

from conftest import BYTECODE


def test_clean_bytecode_passes():
    assert lint_transaction_data(BYTECODE) == []


@pytest.mark.parametrize("data", [
    "0x6080selfdestruct",
    "0x6080SELFDESTRUCT",
    "0xdelegatecall_to_0x0",
    "0xrequire(tx.origin == owner)",
])
def test_suspicious_text_is_flagged(data):
    violations = lint_transaction_data(data)
    assert len(violations) == 1
    assert violations[0].rule == LINT_RULE
    assert violations[0].severity == "error"


def test_each_pattern_reports_separately():
    violations = lint_transaction_data("selfdestruct tx.origin")
    assert len(violations) == 2


def test_tx_origin_dot_is_literal():
    assert lint_transaction_data("0xtxXorigin") == []


@pytest.mark.parametrize("data", [None, "", 123])
def test_non_string_data_is_skipped(data):
    assert lint_transaction_data(data) == []
