"""
Policy Validator Test Suite
Runs serialized proposals through every policy check: envelope fields,
per-transaction rules, network allow-list, hash binding, proxy
configuration and the textual lint.

Usage:  pytest tests/test_policy_validator.py
"""

from __future__ import annotations

import pytest

from zerokey.codec import ZERO_ADDRESS
from zerokey.errors import ConfigurationError
from zerokey.policy import PolicyRuleSet, parse_policy
from zerokey.policy_validator import (
    PolicyValidator,
    allowed_chain_ids,
    evaluate_proposal,
    load_proposal_document,
)
from zerokey.proposal_builder import validation_hash

from conftest import BYTECODE, POLICY_TEXT, PROXY, SAFE

POLICY = parse_policy(POLICY_TEXT)
DEFAULTS = PolicyRuleSet()


def rehash(envelope: dict) -> dict:
    envelope["validationHash"] = validation_hash(envelope["proposal"])
    return envelope


def rules(result) -> list[str]:
    return [v.rule for v in result.violations]


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

def test_builder_output_passes(envelope):
    result = evaluate_proposal(envelope, POLICY)
    assert result.valid
    assert result.violations == []
    assert result.warnings == []


def test_file_backed_validator(envelope, write_json, policy_file):
    validator = PolicyValidator(write_json("safe-proposal.json", envelope), policy_file)
    result = validator.validate()
    assert result.valid
    assert validator.policy.min_signers == 2


def test_missing_policy_file_uses_defaults(envelope, write_json, tmp_path):
    envelope["chainId"] = 8453
    validator = PolicyValidator(write_json("p.json", envelope), tmp_path / "missing.rego")
    assert validator.policy == PolicyRuleSet()
    assert validator.validate().valid


# ---------------------------------------------------------------------------
# Envelope checks
# ---------------------------------------------------------------------------

def test_missing_safe_address(envelope):
    del envelope["safeAddress"]
    result = evaluate_proposal(envelope, POLICY)
    assert not result.valid
    assert rules(result) == ["safe.required"]
    assert result.violations[0].message == "Safe address is required"


def test_missing_proposal_body(envelope):
    del envelope["proposal"]
    result = evaluate_proposal(envelope, POLICY)
    assert not result.valid
    assert rules(result) == ["proposal.structure"]


def test_null_proposal_body(envelope):
    envelope["proposal"] = None
    assert rules(evaluate_proposal(envelope, POLICY)) == ["proposal.structure"]


def test_empty_proposal_body_is_present(envelope):
    envelope["proposal"] = {}
    result = evaluate_proposal(envelope, POLICY)
    assert "proposal.structure" not in rules(result)
    assert any("does not match" in w for w in result.warnings)


def test_missing_validation_hash(envelope):
    del envelope["validationHash"]
    result = evaluate_proposal(envelope, POLICY)
    assert rules(result) == ["security.hash"]
    assert result.violations[0].message == "Proposal must include validation hash"


def test_hash_mismatch_is_only_a_warning(envelope):
    envelope["validationHash"] = "0x" + "ab" * 32
    result = evaluate_proposal(envelope, POLICY)
    assert result.valid
    assert any("does not match" in w for w in result.warnings)


def test_unpaired_surrogate_in_data_still_validates(envelope, write_json, tmp_path):
    envelope["proposal"]["data"] = "0x\ud800"
    validator = PolicyValidator(write_json("p.json", rehash(envelope)), tmp_path / "missing.rego")
    result = validator.validate()
    assert result.valid
    assert result.warnings == []


def test_missing_timestamp_warns(envelope):
    envelope["metadata"].pop("timestamp")
    result = evaluate_proposal(envelope, POLICY)
    assert result.valid
    assert result.warnings == ["Proposal missing timestamp metadata"]


def test_every_violation_is_reported(envelope):
    envelope.pop("safeAddress")
    envelope.pop("validationHash")
    envelope["chainId"] = 5
    result = evaluate_proposal(envelope, POLICY)
    assert set(rules(result)) == {"safe.required", "network.allowed", "security.hash"}


# ---------------------------------------------------------------------------
# Network allow-list
# ---------------------------------------------------------------------------

def test_unknown_chain_rejected(envelope):
    envelope["chainId"] = 5
    result = evaluate_proposal(envelope, DEFAULTS)
    assert rules(result) == ["network.allowed"]
    assert result.violations[0].message == "Chain ID 5 is not allowed"


def test_builtin_chain_outside_policy_list_rejected(envelope):
    envelope["chainId"] = 8453
    assert rules(evaluate_proposal(envelope, POLICY)) == ["network.allowed"]
    assert evaluate_proposal(envelope, DEFAULTS).valid


def test_policy_cannot_widen_builtin_list():
    policy = parse_policy('allowed_networks := ["sepolia", "polygon-amoy"]')
    assert allowed_chain_ids(policy) == frozenset({11155111})


def test_empty_policy_list_denies_everything(envelope):
    policy = parse_policy("allowed_networks := []")
    assert allowed_chain_ids(policy) == frozenset()
    assert rules(evaluate_proposal(envelope, policy)) == ["network.allowed"]


@pytest.mark.parametrize("chain_id", ["11155111", 11155111.0, True])
def test_non_integer_chain_id_rejected(envelope, chain_id):
    envelope["chainId"] = chain_id
    assert rules(evaluate_proposal(envelope, POLICY)) == ["network.allowed"]


# ---------------------------------------------------------------------------
# Transaction checks
# ---------------------------------------------------------------------------

def test_deployment_requires_bytecode(envelope):
    envelope["proposal"]["data"] = "0x"
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert rules(result) == ["deployment.bytecode"]


def test_call_with_empty_data_is_not_a_deployment(envelope):
    envelope["proposal"].update(to=PROXY, data="0x")
    assert evaluate_proposal(rehash(envelope), POLICY).valid


def test_value_transfer_warns(envelope):
    envelope["proposal"]["value"] = "1000"
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert result.valid
    assert result.warnings == ["Transaction includes ETH transfer: 1000 wei"]


def test_gas_limit_over_policy_maximum(envelope):
    envelope["proposal"]["gasLimit"] = "6000000"
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert rules(result) == ["network.gasLimit"]
    assert result.violations[0].message == "Gas limit 6000000 exceeds maximum 5000000"


def test_gas_limit_default_maximum(envelope):
    envelope["proposal"]["gasLimit"] = 6000000
    assert evaluate_proposal(rehash(envelope), DEFAULTS).valid
    envelope["proposal"]["gasLimit"] = 10000001
    assert rules(evaluate_proposal(rehash(envelope), DEFAULTS)) == ["network.gasLimit"]


def test_unparseable_gas_limit_is_an_error(envelope):
    envelope["proposal"]["gasLimit"] = "lots"
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert rules(result) == ["network.gasLimit"]


def test_suspicious_data_is_flagged(envelope):
    envelope["proposal"]["data"] = BYTECODE + "selfdestruct"
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert not result.valid
    assert rules(result) == ["security.pattern"]


def test_batch_checks_every_transaction(envelope):
    deploy = dict(envelope["proposal"])
    envelope["proposal"] = {
        "transactions": [
            deploy,
            {"to": ZERO_ADDRESS, "value": "5", "data": "0x", "operation": 0},
            {"to": PROXY, "value": "0", "data": "0x", "operation": 0, "gasLimit": "99999999"},
        ],
    }
    result = evaluate_proposal(rehash(envelope), POLICY)
    assert rules(result) == ["deployment.bytecode", "network.gasLimit"]
    assert result.warnings == ["Transaction includes ETH transfer: 5 wei"]


# ---------------------------------------------------------------------------
# Proxy configuration
# ---------------------------------------------------------------------------

def with_proxy(envelope: dict, proxy: dict, **deployment) -> dict:
    envelope["deployment"] = {"contract": "Box", "proxy": proxy, **deployment}
    return envelope


def test_valid_new_proxy(envelope):
    result = evaluate_proposal(
        with_proxy(envelope, {"type": "uups", "initializeArgs": [SAFE]}), POLICY,
    )
    assert result.valid


def test_invalid_proxy_type(envelope):
    result = evaluate_proposal(
        with_proxy(envelope, {"type": "beacon", "initializeArgs": []}), POLICY,
    )
    assert rules(result) == ["proxy.type"]


def test_new_proxy_needs_initialize_args(envelope):
    result = evaluate_proposal(with_proxy(envelope, {"type": "uups"}), POLICY)
    assert rules(result) == ["proxy.initialization"]


def test_upgrade_proxy_address_must_be_valid(envelope):
    result = evaluate_proposal(
        with_proxy(envelope, {"type": "uups", "proxyAddress": "0x1234"}), POLICY,
    )
    assert rules(result) == ["proxy.address"]


def test_transparent_admin_must_be_valid(envelope):
    result = evaluate_proposal(
        with_proxy(envelope, {"type": "transparent", "initializeArgs": [], "admin": "admin"}),
        POLICY,
    )
    assert rules(result) == ["proxy.admin"]


def test_constructor_args_on_upgradeable_warn(envelope):
    result = evaluate_proposal(
        with_proxy(envelope, {"type": "uups", "initializeArgs": []}, constructorArgs=[1]),
        POLICY,
    )
    assert result.valid
    assert any("initialize()" in w for w in result.warnings)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def test_missing_proposal_file(tmp_path, policy_file):
    with pytest.raises(ConfigurationError) as exc:
        PolicyValidator(tmp_path / "absent.json", policy_file)
    assert exc.value.config_key == "proposalPath"


def test_unparseable_proposal(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_proposal_document(path)


def test_non_object_proposal(write_json):
    with pytest.raises(ConfigurationError, match="JSON object"):
        load_proposal_document(write_json("list.json", [1, 2]))


def test_from_documents(envelope):
    validator = PolicyValidator.from_documents(envelope, POLICY_TEXT)
    assert validator.validate().valid
    assert PolicyValidator.from_documents(envelope).policy == PolicyRuleSet()
    with pytest.raises(ConfigurationError):
        PolicyValidator.from_documents(["not", "a", "dict"])


# ---------------------------------------------------------------------------
# Reference scenarios
# ---------------------------------------------------------------------------

SCENARIO_POLICY = parse_policy(
    'allowed_networks := ["sepolia","mainnet","polygon"]\n'
    "min_signers := 2\n"
    "max_gas_limit := 10000000\n"
)


def test_scenario_sepolia_passes(envelope):
    assert "gasLimit" not in envelope["proposal"]
    result = evaluate_proposal(envelope, SCENARIO_POLICY)
    assert result.valid and result.violations == []


def test_scenario_unknown_chain(envelope):
    envelope["chainId"] = 999999
    result = evaluate_proposal(envelope, SCENARIO_POLICY)
    assert len(result.violations) == 1
    assert result.violations[0].rule == "network.allowed"


def test_scenario_tx_origin(envelope):
    envelope["proposal"]["data"] = BYTECODE + "tx.origin"
    result = evaluate_proposal(rehash(envelope), SCENARIO_POLICY)
    assert not result.valid
    assert rules(result) == ["security.pattern"]


def test_scenario_one_ether_transfer(envelope):
    envelope["proposal"]["value"] = "1000000000000000000"
    result = evaluate_proposal(rehash(envelope), SCENARIO_POLICY)
    assert result.valid
    assert any("1000000000000000000" in w for w in result.warnings)
