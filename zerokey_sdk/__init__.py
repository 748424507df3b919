"""
ZeroKey SDK
Client for the proposal gateway.
"""

from zerokey_sdk.client import ProposalClient
from zerokey_sdk.models import CreateResult, ProposalPage, StatusResult, ValidateResult

__all__ = ["CreateResult", "ProposalClient", "ProposalPage", "StatusResult", "ValidateResult"]
