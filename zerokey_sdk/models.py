"""
ZeroKey SDK - Data Models
"""

from __future__ import annotations

from pydantic import BaseModel


class CreateResult(BaseModel):
    """Result of a POST /proposals call."""
    success: bool
    proposal_id: str | None = None
    safe_address: str | None = None
    validation_hash: str | None = None
    proposal: dict = {}
    error: str | None = None
    raw: dict               # full response body


class ProposalPage(BaseModel):
    """Result of a GET /proposals call."""
    proposals: list[dict] = []
    total: int = 0
    raw: dict


class StatusResult(BaseModel):
    """Result of GET, PATCH or DELETE on /proposals/{id}."""
    success: bool
    proposal: dict | None = None
    error: str | None = None
    raw: dict


class ValidateResult(BaseModel):
    """Result of a POST /validate call."""
    valid: bool
    violations: list[dict] = []
    warnings: list[str] = []
    raw: dict
