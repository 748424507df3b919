"""
ZeroKey SDK - Client
Thin synchronous wrapper over the proposal gateway.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from zerokey_sdk.models import CreateResult, ProposalPage, StatusResult, ValidateResult


class ProposalClient:
    """
    Client for the proposal gateway.

    Creates deployment proposals, tracks their status as signers act on
    them, and validates serialized proposals against the gateway's policy.
    """

    def __init__(
        self,
        gateway_url: str,
        timeout: float = 10.0,
        http_client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            gateway_url: Base URL of the gateway (e.g. "http://localhost:8000")
            timeout: HTTP request timeout in seconds
            http_client: Pre-built client to reuse (tests pass a TestClient)
        """
        self.gateway_url = gateway_url.rstrip("/")
        self._client = http_client or httpx.Client(timeout=timeout)

    def create_proposal(
        self,
        contract_name: str,
        bytecode: str,
        network: str,
        constructor_args: Optional[list[Any]] = None,
        value: str = "0",
        metadata: Optional[dict[str, Any]] = None,
    ) -> CreateResult:
        """
        Ask the gateway to build and store a deployment proposal.

        Returns:
            CreateResult with the proposal id and validation hash on success,
            or the gateway's error message.
        """
        resp = self._client.post(
            f"{self.gateway_url}/proposals",
            json={
                "contractName": contract_name,
                "bytecode": bytecode,
                "network": network,
                "constructorArgs": constructor_args or [],
                "value": value,
                "metadata": metadata or {},
            },
        )

        body = resp.json()

        return CreateResult(
            success=resp.status_code == 201,
            proposal_id=body.get("proposalId"),
            safe_address=body.get("safeAddress"),
            validation_hash=body.get("validationHash"),
            proposal=body.get("proposal") or {},
            error=body.get("error"),
            raw=body,
        )

    def list_proposals(
        self,
        network: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> ProposalPage:
        params: dict[str, Any] = {"limit": limit, "offset": offset}
        if network:
            params["network"] = network
        if status:
            params["status"] = status

        resp = self._client.get(f"{self.gateway_url}/proposals", params=params)
        body = resp.json()
        return ProposalPage(
            proposals=body.get("proposals", []),
            total=body.get("total", 0),
            raw=body,
        )

    def get_proposal(self, proposal_id: str) -> StatusResult:
        resp = self._client.get(f"{self.gateway_url}/proposals/{proposal_id}")
        return self._status_result(resp)

    def update_status(
        self,
        proposal_id: str,
        status: str,
        tx_hash: Optional[str] = None,
        error: Optional[str] = None,
    ) -> StatusResult:
        """Record a status transition, e.g. "executed" with its tx hash."""
        payload: dict[str, Any] = {"status": status}
        if tx_hash:
            payload["txHash"] = tx_hash
        if error:
            payload["error"] = error

        resp = self._client.patch(
            f"{self.gateway_url}/proposals/{proposal_id}", json=payload,
        )
        return self._status_result(resp)

    def delete_proposal(self, proposal_id: str) -> StatusResult:
        resp = self._client.delete(f"{self.gateway_url}/proposals/{proposal_id}")
        return self._status_result(resp)

    def validate(
        self,
        proposal: dict[str, Any],
        policy: Optional[str] = None,
    ) -> ValidateResult:
        """
        Validate a serialized proposal envelope.

        Args:
            proposal: The parsed contents of a safe-proposal.json file
            policy: Rule text; the gateway's policy file is used when omitted
        """
        payload: dict[str, Any] = {"proposal": proposal}
        if policy is not None:
            payload["policy"] = policy

        resp = self._client.post(f"{self.gateway_url}/validate", json=payload)
        body = resp.json()
        return ValidateResult(
            valid=body.get("valid", False),
            violations=body.get("violations", []),
            warnings=body.get("warnings", []),
            raw=body,
        )

    def health(self) -> dict:
        """Check gateway health via GET /health."""
        resp = self._client.get(f"{self.gateway_url}/health")
        return resp.json()

    @staticmethod
    def _status_result(resp: httpx.Response) -> StatusResult:
        body = resp.json()
        return StatusResult(
            success=resp.status_code == 200 and body.get("success", False),
            proposal=body.get("proposal"),
            error=body.get("error"),
            raw=body,
        )
