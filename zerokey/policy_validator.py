"""
Deployment Policy Validator
Evaluates a serialized Safe proposal against a declarative rule set.

Every check runs unconditionally so one call surfaces every violation.
Findings come back as data (errors and advisory warnings); only loading
an unreadable proposal raises. A missing policy file falls back to
defaults: fail open on missing policy, fail closed on missing proposal.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from zerokey.bytecode_lint import lint_transaction_data
from zerokey.codec import content_hash, is_address, is_zero_address
from zerokey.errors import ConfigurationError
from zerokey.networks import BUILTIN_ALLOWED_CHAIN_IDS, chain_id_for
from zerokey.policy import (
    PolicyRuleSet,
    PolicyViolation,
    ValidationResult,
    load_policy,
    parse_policy,
)

logger = logging.getLogger(__name__)

PROXY_TYPES = ("uups", "transparent")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_proposal_document(path: Union[str, Path]) -> dict[str, Any]:
    """Read a serialized proposal. Raises ConfigurationError with path context."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigurationError(
            f"Failed to load proposal: {exc}",
            config_key="proposalPath",
            expected_format="JSON file",
            context={"proposalPath": str(path)},
        ) from exc

    if not isinstance(document, dict):
        raise ConfigurationError(
            "Proposal must be a JSON object",
            config_key="proposalPath",
            expected_format="JSON object",
            context={"proposalPath": str(path)},
        )
    return document


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _transactions(body: Any) -> list[dict[str, Any]]:
    """The transaction objects in a single or batch proposal body."""
    if not isinstance(body, dict):
        return []
    if isinstance(body.get("transactions"), list):
        return [tx for tx in body["transactions"] if isinstance(tx, dict)]
    return [body]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def allowed_chain_ids(policy: PolicyRuleSet) -> frozenset[int]:
    """
    Built-in ids are authoritative. When the policy names networks, the
    effective list is the intersection with the chain ids of those names.
    """
    if policy.allowed_networks is None:
        return BUILTIN_ALLOWED_CHAIN_IDS
    named = {chain_id_for(name) for name in policy.allowed_networks}
    return BUILTIN_ALLOWED_CHAIN_IDS & frozenset(i for i in named if i is not None)


# ---------------------------------------------------------------------------
# Envelope checks
# ---------------------------------------------------------------------------

def _check_safe_address(document: dict) -> list[PolicyViolation]:
    if not document.get("safeAddress"):
        return [PolicyViolation("safe.required", "Safe address is required")]
    return []


def _check_structure(document: dict) -> list[PolicyViolation]:
    # an empty object is present; only a missing or null body is flagged
    if document.get("proposal") is None:
        return [PolicyViolation("proposal.structure", "Invalid proposal structure")]
    return []


def _check_network(document: dict, policy: PolicyRuleSet) -> list[PolicyViolation]:
    chain_id = document.get("chainId")
    if not chain_id:
        return []
    # chain ids are JSON integers; "11155111" is not allowed
    if (isinstance(chain_id, bool) or not isinstance(chain_id, int)
            or chain_id not in allowed_chain_ids(policy)):
        return [PolicyViolation("network.allowed", f"Chain ID {chain_id} is not allowed")]
    return []


def _check_timestamp(document: dict) -> list[str]:
    metadata = document.get("metadata")
    if not isinstance(metadata, dict) or not metadata.get("timestamp"):
        return ["Proposal missing timestamp metadata"]
    return []


def _check_validation_hash(document: dict) -> tuple[list[PolicyViolation], list[str]]:
    declared = document.get("validationHash")
    if not declared:
        return [PolicyViolation("security.hash", "Proposal must include validation hash")], []

    body = document.get("proposal")
    if isinstance(body, dict) and str(declared).lower() != content_hash(body).lower():
        return [], ["Validation hash does not match the canonical hash of the proposal"]
    return [], []


# ---------------------------------------------------------------------------
# Transaction checks
# ---------------------------------------------------------------------------

def _check_deployment_bytecode(tx: dict) -> list[PolicyViolation]:
    operation = tx.get("operation")
    is_deployment = (
        is_zero_address(tx.get("to"))
        and not isinstance(operation, bool)
        and operation == 0
    )
    if is_deployment:
        data = tx.get("data")
        if not data or data == "0x":
            return [PolicyViolation("deployment.bytecode", "Deployment requires bytecode")]
    return []


def _check_value_transfer(tx: dict) -> list[str]:
    value = tx.get("value")
    if value and str(value) != "0":
        return [f"Transaction includes ETH transfer: {value} wei"]
    return []


def _check_gas_limit(tx: dict, policy: PolicyRuleSet) -> list[PolicyViolation]:
    gas_limit = tx.get("gasLimit")
    if not gas_limit:
        return []
    max_gas = policy.effective_max_gas_limit
    parsed = _as_int(gas_limit)
    if parsed is None:
        return [PolicyViolation(
            "network.gasLimit", f"Gas limit {gas_limit} is not a valid integer",
        )]
    if parsed > max_gas:
        return [PolicyViolation(
            "network.gasLimit", f"Gas limit {gas_limit} exceeds maximum {max_gas}",
        )]
    return []


# ---------------------------------------------------------------------------
# Proxy configuration
# ---------------------------------------------------------------------------

def _check_proxy_config(document: dict) -> tuple[list[PolicyViolation], list[str]]:
    """Checks the ``deployment.proxy`` section written by the deploy CLI."""
    violations: list[PolicyViolation] = []
    warnings: list[str] = []

    deployment = document.get("deployment")
    if not isinstance(deployment, dict):
        return violations, warnings
    proxy = deployment.get("proxy")
    if not isinstance(proxy, dict):
        return violations, warnings

    proxy_type = proxy.get("type")
    if proxy_type not in PROXY_TYPES:
        violations.append(PolicyViolation(
            "proxy.type",
            f'Invalid proxy type: {proxy_type}. Must be "uups" or "transparent"',
        ))

    if proxy.get("proxyAddress"):
        if not is_address(proxy["proxyAddress"]):
            violations.append(PolicyViolation(
                "proxy.address",
                f"Invalid proxy address: {proxy['proxyAddress']}. "
                "Must be valid Ethereum address (0x + 40 hex chars)",
            ))
    else:
        if not isinstance(proxy.get("initializeArgs"), list):
            violations.append(PolicyViolation(
                "proxy.initialization",
                "Proxy deployments must provide initializeArgs array (can be empty)",
            ))
        admin = proxy.get("admin")
        if proxy_type == "transparent" and admin and not is_address(admin):
            violations.append(PolicyViolation(
                "proxy.admin",
                f"Invalid admin address: {admin}. Must be valid Ethereum address",
            ))

    if deployment.get("constructorArgs"):
        warnings.append(
            "Upgradeable contracts should use initialize() instead of constructor. "
            "Constructor args detected."
        )
    return violations, warnings


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------

def evaluate_proposal(document: dict[str, Any], policy: PolicyRuleSet) -> ValidationResult:
    """Run every check against a parsed proposal envelope."""
    violations: list[PolicyViolation] = []
    warnings: list[str] = []

    violations.extend(_check_safe_address(document))
    violations.extend(_check_structure(document))

    proxy_violations, proxy_warnings = _check_proxy_config(document)
    violations.extend(proxy_violations)
    warnings.extend(proxy_warnings)

    transactions = _transactions(document.get("proposal"))
    for tx in transactions:
        violations.extend(_check_deployment_bytecode(tx))
        warnings.extend(_check_value_transfer(tx))
        violations.extend(_check_gas_limit(tx, policy))

    violations.extend(_check_network(document, policy))
    warnings.extend(_check_timestamp(document))

    hash_violations, hash_warnings = _check_validation_hash(document)
    violations.extend(hash_violations)
    warnings.extend(hash_warnings)

    # Heuristic textual lint stage
    for tx in transactions:
        violations.extend(lint_transaction_data(tx.get("data")))

    return ValidationResult(
        valid=not any(v.severity == "error" for v in violations),
        violations=violations,
        warnings=warnings,
    )


class PolicyValidator:
    """
    File-backed validator: reads the proposal and the policy once at
    construction, then evaluates on demand.
    """

    def __init__(self, proposal_path: Union[str, Path], policy_path: Union[str, Path]):
        logger.debug("Initializing PolicyValidator (proposal=%s, policy=%s)",
                     proposal_path, policy_path)
        self._bind(load_proposal_document(proposal_path), load_policy(policy_path))
        logger.debug("Proposal loaded: safe=%s chain=%s",
                     self.proposal.get("safeAddress"), self.proposal.get("chainId"))

    @classmethod
    def from_documents(
        cls,
        document: dict[str, Any],
        policy_text: Optional[str] = None,
    ) -> "PolicyValidator":
        """Build a validator from an in-memory proposal and rule text."""
        if not isinstance(document, dict):
            raise ConfigurationError(
                "Proposal must be a JSON object",
                config_key="proposal", expected_format="JSON object",
            )
        validator = cls.__new__(cls)
        validator._bind(
            document,
            parse_policy(policy_text) if policy_text else PolicyRuleSet(),
        )
        return validator

    def _bind(self, document: dict[str, Any], policy: PolicyRuleSet) -> None:
        self.proposal = document
        self.policy = policy

    def validate(self) -> ValidationResult:
        logger.info("Starting policy validation: safe=%s chain=%s",
                    self.proposal.get("safeAddress"), self.proposal.get("chainId"))
        result = evaluate_proposal(self.proposal, self.policy)
        logger.info("Policy validation completed: valid=%s violations=%d warnings=%d",
                    result.valid, len(result.violations), len(result.warnings))
        return result
