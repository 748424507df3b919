"""
ZeroKey: unsigned Safe deployment proposals and policy validation for CI.
"""

from zerokey.errors import ConfigurationError, PolicyValidationError, ValidationError, ZeroKeyError
from zerokey.models import (
    BatchProposal,
    DeploymentRequest,
    GasSettings,
    SerializedProposal,
    TransactionProposal,
    UpgradeRequest,
)
from zerokey.policy import PolicyRuleSet, PolicyViolation, ValidationResult, parse_policy
from zerokey.policy_validator import PolicyValidator, evaluate_proposal
from zerokey.proposal_builder import ProposalBuilder, validation_hash

__all__ = [
    "BatchProposal",
    "ConfigurationError",
    "DeploymentRequest",
    "GasSettings",
    "PolicyRuleSet",
    "PolicyValidationError",
    "PolicyValidator",
    "PolicyViolation",
    "ProposalBuilder",
    "SerializedProposal",
    "TransactionProposal",
    "UpgradeRequest",
    "ValidationError",
    "ValidationResult",
    "ZeroKeyError",
    "evaluate_proposal",
    "parse_policy",
    "validation_hash",
]
