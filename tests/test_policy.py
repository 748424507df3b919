"""
Policy Rules Test Suite
Rule extraction from the policy document and the verdict types.

Usage:  pytest tests/test_policy.py
"""

from __future__ import annotations

from zerokey.policy import (
    DEFAULT_MAX_GAS_LIMIT,
    PolicyRuleSet,
    PolicyViolation,
    ValidationResult,
    load_policy,
    parse_policy,
)

from conftest import POLICY_TEXT


def test_parse_all_rules():
    rules = parse_policy(POLICY_TEXT)
    assert rules.min_signers == 2
    assert rules.allowed_networks == ["sepolia", "mainnet", "polygon"]
    assert rules.max_gas_limit == 5000000
    assert rules.effective_max_gas_limit == 5000000


def test_parse_empty_document_leaves_rules_unset():
    rules = parse_policy("package zerokey.deployment\n")
    assert rules == PolicyRuleSet()
    assert rules.effective_max_gas_limit == DEFAULT_MAX_GAS_LIMIT


def test_parse_multiline_and_single_quoted_networks():
    rules = parse_policy("allowed_networks := [\n  'base',\n  \"optimism\",\n]\n")
    assert rules.allowed_networks == ["base", "optimism"]


def test_parse_empty_network_list_is_declared():
    rules = parse_policy("allowed_networks := []")
    assert rules.allowed_networks == []


def test_unknown_network_names_are_kept(caplog):
    rules = parse_policy('allowed_networks := ["sepolia", "atlantis"]')
    assert rules.allowed_networks == ["sepolia", "atlantis"]
    assert "atlantis" in caplog.text


def test_rule_set_nested_view():
    assert parse_policy(POLICY_TEXT).to_dict() == {
        "signers": {"minThreshold": 2},
        "network": {"allowed": ["sepolia", "mainnet", "polygon"], "maxGasLimit": 5000000},
        "security": {},
    }
    assert PolicyRuleSet().to_dict() == {"signers": {}, "network": {}, "security": {}}


def test_load_policy_from_file(policy_file):
    assert load_policy(policy_file).min_signers == 2


def test_load_missing_policy_falls_back(tmp_path):
    assert load_policy(tmp_path / "absent.rego") == PolicyRuleSet()


def test_validation_result_helpers():
    result = ValidationResult(
        valid=False,
        violations=[
            PolicyViolation("network.allowed", "Chain ID 5 is not allowed"),
            PolicyViolation("security.pattern", "advisory", severity="warning"),
        ],
        warnings=["Proposal missing timestamp metadata"],
    )
    assert [v.rule for v in result.errors] == ["network.allowed"]
    assert result.to_dict()["violations"][0] == {
        "rule": "network.allowed",
        "message": "Chain ID 5 is not allowed",
        "severity": "error",
    }
    summary = result.summary()
    assert "[network.allowed] (error)" in summary
    assert "Proposal missing timestamp metadata" in summary
