"""
Proposal Wire Models
Value objects exchanged between the builder, the validator, the gateway
and downstream signing tooling.

Field names are snake_case in Python and camelCase on the wire
(``safeTxGas``, ``validationHash``); dump with ``to_dict()``.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

GasValue = Union[int, str]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class GasSettings(WireModel):
    """Opaque pass-through gas fields merged into every built transaction."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    gas_limit: Optional[GasValue] = Field(default=None, alias="gasLimit")
    gas_price: Optional[GasValue] = Field(default=None, alias="gasPrice")
    safe_tx_gas: Optional[GasValue] = Field(default=None, alias="safeTxGas")
    base_gas: Optional[GasValue] = Field(default=None, alias="baseGas")
    gas_token: Optional[str] = Field(default=None, alias="gasToken")
    refund_receiver: Optional[str] = Field(default=None, alias="refundReceiver")
    nonce: Optional[int] = None


class TransactionProposal(WireModel):
    to: str
    value: str = "0"
    data: str = "0x"
    operation: int = 0              # 0 = call, 1 = delegatecall (never built)
    gas_limit: Optional[GasValue] = Field(default=None, alias="gasLimit")
    gas_price: Optional[GasValue] = Field(default=None, alias="gasPrice")
    safe_tx_gas: Optional[GasValue] = Field(default=None, alias="safeTxGas")
    base_gas: Optional[GasValue] = Field(default=None, alias="baseGas")
    gas_token: Optional[str] = Field(default=None, alias="gasToken")
    refund_receiver: Optional[str] = Field(default=None, alias="refundReceiver")
    nonce: Optional[int] = None


class BatchProposal(WireModel):
    """Ordered transactions. Atomicity is the executor's job, not ours."""
    transactions: list[TransactionProposal] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None


class DeploymentRequest(WireModel):
    contract_name: str = Field(alias="contractName")
    bytecode: str
    constructor_args: list[Any] = Field(default_factory=list, alias="constructorArgs")
    # Optional per-argument ABI types; None entries fall back to inference.
    constructor_arg_types: Optional[list[Optional[str]]] = Field(
        default=None, alias="constructorArgTypes",
    )
    value: Optional[Union[str, int]] = "0"
    metadata: dict[str, Any] = Field(default_factory=dict)


class UpgradeRequest(WireModel):
    proxy_address: str = Field(alias="proxyAddress")
    new_implementation: str = Field(alias="newImplementation")
    function_selector: str = Field(alias="functionSelector")
    upgrade_args: list[Any] = Field(default_factory=list, alias="upgradeArgs")


class SerializedProposal(WireModel):
    proposal: dict[str, Any]
    metadata: dict[str, Any] = Field(default_factory=dict)
    safe_address: str = Field(alias="safeAddress")
    chain_id: int = Field(alias="chainId")
    validation_hash: str = Field(alias="validationHash")
    timestamp: int
