"""
Proposal Gateway
HTTP front end for building, storing and validating unsigned Safe proposals.

The gateway never holds a signing key. It builds deployment proposals
against the configured Safe, records them for the signing UI, and runs
the policy validator over serialized proposals submitted by CI.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from zerokey.config import GATEWAY_GAS_SETTINGS, POLICY_PATH, configure_logging, get_safe_address
from zerokey.errors import ConfigurationError, ValidationError
from zerokey.networks import chain_id_for
from zerokey.policy import load_policy, parse_policy
from zerokey.policy_validator import evaluate_proposal
from zerokey.proposal_builder import ProposalBuilder
from zerokey.storage import (
    ProposalRecord,
    ProposalStatus,
    get_store,
    new_proposal_id,
    query_records,
    utc_now_iso,
)

configure_logging()
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="ZeroKey Proposal Gateway",
    version="1.0.0",
)

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class CreateProposalRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contract_name: str = Field(default="", alias="contractName")
    bytecode: str = ""
    constructor_args: list[Any] = Field(default_factory=list, alias="constructorArgs")
    constructor_arg_types: Optional[list[Optional[str]]] = Field(
        default=None, alias="constructorArgTypes",
    )
    value: Union[str, int] = "0"
    network: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpdateStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[ProposalStatus] = None
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    error: Optional[str] = None


class ValidateRequest(BaseModel):
    proposal: dict[str, Any]          # a serialized proposal envelope
    policy: Optional[str] = None      # rule text; defaults to POLICY_PATH


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message, **extra},
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/health")
def health():
    return {"status": "operational", "service": "proposal-gateway"}


@app.get("/proposals")
def list_proposals(
    network: Optional[str] = None,
    status: Optional[ProposalStatus] = None,
    limit: int = 10,
    offset: int = 0,
):
    page, total = query_records(get_store().get_all(), network, status, limit, offset)
    return {
        "success": True,
        "proposals": [r.to_dict() for r in page],
        "total": total,
    }


@app.post("/proposals")
def create_proposal(request: CreateProposalRequest):
    """
    Build and store an unsigned deployment proposal.

    Flow:
      1. Resolve the Safe and the chain id for the requested network.
      2. Build the deployment transaction and sanity-check its structure.
      3. Store a pending record carrying the validation hash.
    """
    if not request.contract_name or not request.bytecode or not request.network:
        return _error(400, "Missing required fields: contractName, bytecode, network")

    try:
        safe_address = get_safe_address()
    except ConfigurationError as exc:
        logger.error("Gateway misconfigured: %s", exc.message)
        return _error(500, exc.message)

    chain_id = chain_id_for(request.network)
    if chain_id is None:
        return _error(400, f"Unsupported network: {request.network}")

    # --- Step 2: Build ---
    try:
        builder = ProposalBuilder(
            safe_address, chain_id, default_gas_settings=GATEWAY_GAS_SETTINGS,
        )
        proposal, metadata = builder.build_deployment({
            "contractName": request.contract_name,
            "bytecode": request.bytecode,
            "constructorArgs": request.constructor_args,
            "constructorArgTypes": request.constructor_arg_types,
            "value": request.value,
            "metadata": {**request.metadata, "network": request.network},
        })
    except ValidationError as exc:
        return _error(400, exc.message, field=exc.field)

    if not builder.validate_proposal(proposal):
        return _error(400, "Proposal validation failed")

    envelope = builder.build_envelope(proposal, metadata)

    # --- Step 3: Store ---
    now = utc_now_iso()
    record = ProposalRecord(
        id=new_proposal_id(),
        proposal=envelope.proposal,
        safe_address=safe_address,
        chain_id=chain_id,
        network=request.network,
        contract_name=request.contract_name,
        validation_hash=envelope.validation_hash,
        status=ProposalStatus.PENDING,
        created_at=now,
        updated_at=now,
        metadata=request.metadata,
    )
    get_store().create(record)
    logger.info("Proposal %s stored for %s on %s", record.id,
                request.contract_name, request.network)

    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "proposalId": record.id,
            "proposal": envelope.proposal,
            "safeAddress": safe_address,
            "validationHash": envelope.validation_hash,
        },
    )


@app.get("/proposals/{proposal_id}")
def get_proposal(proposal_id: str):
    record = get_store().get_by_id(proposal_id)
    if record is None:
        return _error(404, "Proposal not found")
    return {"success": True, "proposal": record.to_dict()}


@app.patch("/proposals/{proposal_id}")
def update_proposal(proposal_id: str, request: UpdateStatusRequest):
    """Record a status transition; txHash and error are folded into metadata."""
    store = get_store()
    record = store.get_by_id(proposal_id)
    if record is None:
        return _error(404, "Proposal not found")

    metadata = dict(record.metadata)
    if request.tx_hash:
        metadata["txHash"] = request.tx_hash
    if request.error:
        metadata["error"] = request.error

    updated = record.model_copy(update={
        "status": request.status or record.status,
        "metadata": metadata,
        "updated_at": utc_now_iso(),
    })
    store.update(proposal_id, updated)
    return {"success": True, "proposal": updated.to_dict()}


@app.delete("/proposals/{proposal_id}")
def delete_proposal(proposal_id: str):
    store = get_store()
    record = store.get_by_id(proposal_id)
    if record is None:
        return _error(404, "Proposal not found")
    if record.status != ProposalStatus.PENDING:
        return _error(400, f"Cannot delete proposal with status: {record.status.value}")
    store.delete(proposal_id)
    return {"success": True}


@app.post("/validate")
def validate(request: ValidateRequest):
    """
    Evaluate a serialized proposal against the policy.

    Returns 200 with the verdict when valid, 422 with the same body when
    any error-severity violation is present.
    """
    policy = parse_policy(request.policy) if request.policy else load_policy(POLICY_PATH)
    result = evaluate_proposal(request.proposal, policy)
    logger.info("Validation via gateway: valid=%s violations=%d",
                result.valid, len(result.violations))
    return JSONResponse(
        status_code=200 if result.valid else 422,
        content=result.to_dict(),
    )
