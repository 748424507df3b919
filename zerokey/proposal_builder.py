"""
Safe Proposal Builder
Creates unsigned multisig transaction proposals without private keys.

Lets a CI pipeline produce deployment, upgrade and batch proposals for a
Safe multisig, computes the CREATE2 address a deployment will occupy, and
serializes proposals with a validation hash that binds the stored file to
the transaction intent. Every method is a pure computation over its inputs.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Optional, Union

from eth_utils import keccak, to_checksum_address

from zerokey.codec import (
    ZERO_ADDRESS,
    content_hash,
    hex_to_bytes,
    is_address,
    is_hex_data,
)
from zerokey.encoding import encode_constructor_args, encode_function_call
from zerokey.errors import ValidationError
from zerokey.models import (
    BatchProposal,
    DeploymentRequest,
    GasSettings,
    SerializedProposal,
    TransactionProposal,
    UpgradeRequest,
)

logger = logging.getLogger(__name__)

CREATE2_PREFIX = b"\xff"
OPERATION_CALL = 0
OPERATION_DELEGATECALL = 1

DECIMAL_VALUE = re.compile(r"[0-9]+")
HEX_VALUE = re.compile(r"0[xX][0-9a-fA-F]+")

ProposalLike = Union[TransactionProposal, BatchProposal, dict]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _proposal_dict(proposal: ProposalLike) -> dict[str, Any]:
    if isinstance(proposal, (TransactionProposal, BatchProposal)):
        return proposal.to_dict()
    return dict(proposal)


def validation_hash(proposal: ProposalLike) -> str:
    """Keccak-256 over the canonical encoding of the proposal sub-object."""
    return content_hash(_proposal_dict(proposal))


class ProposalBuilder:
    """
    Builds canonical, reproducible Safe transaction payloads.

    The configured Safe is modelled as the deploying account, which is
    what makes CREATE2 addresses predictable before any signature exists.
    One instance is owned by one logical deployment request at a time.
    """

    def __init__(
        self,
        safe_address: str,
        chain_id: int,
        default_gas_settings: Optional[Union[GasSettings, dict[str, Any]]] = None,
    ):
        if not is_address(safe_address):
            raise ValidationError(
                "Invalid safe address", field="safeAddress", value=safe_address,
            )
        if isinstance(chain_id, bool) or not isinstance(chain_id, int) or chain_id <= 0:
            raise ValidationError("Invalid chain ID", field="chainId", value=chain_id)

        if isinstance(default_gas_settings, dict):
            default_gas_settings = GasSettings(**default_gas_settings)

        self.safe_address = safe_address
        self.chain_id = chain_id
        self.default_gas_settings = default_gas_settings
        self._metadata: dict[str, Any] = {}

        logger.debug("ProposalBuilder initialised for safe %s on chain %d",
                     safe_address, chain_id)

    # -- accessors ---------------------------------------------------------

    def get_safe_address(self) -> str:
        return self.safe_address

    def get_chain_id(self) -> int:
        return self.chain_id

    def get_metadata(self) -> dict[str, Any]:
        """Metadata recorded by the last create_deployment_proposal call."""
        return dict(self._metadata)

    def _gas_fields(self) -> dict[str, Any]:
        if self.default_gas_settings is None:
            return {}
        return self.default_gas_settings.model_dump(exclude_none=True)

    # -- deployment --------------------------------------------------------

    def build_deployment(
        self, request: Union[DeploymentRequest, dict[str, Any]],
    ) -> tuple[TransactionProposal, dict[str, Any]]:
        """
        Build a CREATE-style deployment and its metadata without touching
        builder state.

        Constructor args are ABI-encoded (explicit types win over inference)
        and appended to the bytecode. The transaction targets the zero
        address with operation 0.
        """
        if isinstance(request, dict):
            request = DeploymentRequest(**request)

        if not is_hex_data(request.bytecode):
            raise ValidationError(
                "Bytecode must be a 0x-prefixed hex string",
                field="bytecode", value=request.bytecode,
            )

        deploy_bytecode = request.bytecode
        if request.constructor_args:
            deploy_bytecode += encode_constructor_args(
                request.constructor_args, request.constructor_arg_types,
            )

        metadata = {
            **request.metadata,
            "timestamp": _now_ms(),
            "contractName": request.contract_name,
        }

        proposal = TransactionProposal(
            to=ZERO_ADDRESS,
            value=str(request.value or "0"),
            data=deploy_bytecode,
            operation=OPERATION_CALL,
            **self._gas_fields(),
        )
        return proposal, metadata

    def create_deployment_proposal(
        self, request: Union[DeploymentRequest, dict[str, Any]],
    ) -> TransactionProposal:
        proposal, metadata = self.build_deployment(request)
        self._metadata = metadata
        logger.info("Deployment proposal created for %s (%d bytes of calldata)",
                    metadata["contractName"], (len(proposal.data) - 2) // 2)
        return proposal

    # -- upgrade -----------------------------------------------------------

    def create_upgrade_proposal(
        self, request: Union[UpgradeRequest, dict[str, Any]],
    ) -> TransactionProposal:
        """Encode a call to the proxy's upgrade function with [impl, *args]."""
        if isinstance(request, dict):
            request = UpgradeRequest(**request)

        if not is_address(request.proxy_address):
            raise ValidationError(
                "Invalid proxy address",
                field="proxyAddress", value=request.proxy_address,
            )
        if not is_address(request.new_implementation):
            raise ValidationError(
                "Invalid implementation address",
                field="newImplementation", value=request.new_implementation,
            )

        data = encode_function_call(
            request.function_selector,
            [request.new_implementation, *request.upgrade_args],
        )

        logger.info("Upgrade proposal created for proxy %s -> %s",
                    request.proxy_address, request.new_implementation)
        return TransactionProposal(
            to=request.proxy_address,
            value="0",
            data=data,
            operation=OPERATION_CALL,
            **self._gas_fields(),
        )

    # -- batch -------------------------------------------------------------

    def create_batch_proposal(
        self,
        transactions: list[Union[TransactionProposal, dict[str, Any]]],
        metadata: Optional[dict[str, Any]] = None,
    ) -> BatchProposal:
        """Aggregate transactions in the order given."""
        return BatchProposal(
            transactions=[
                tx if isinstance(tx, TransactionProposal) else TransactionProposal(**tx)
                for tx in transactions
            ],
            metadata=dict(self._metadata if metadata is None else metadata),
        )

    # -- CREATE2 -----------------------------------------------------------

    def calculate_deployment_address(
        self, bytecode: Union[str, bytes], salt: Union[str, bytes],
    ) -> str:
        """
        keccak256(0xff ++ safe ++ salt ++ keccak256(bytecode))[12:],
        checksum-cased.
        """
        code = hex_to_bytes(bytecode, field="bytecode")
        salt_bytes = hex_to_bytes(salt, field="salt")
        if len(salt_bytes) != 32:
            raise ValidationError(
                f"Salt must be 32 bytes, got {len(salt_bytes)}",
                field="salt", value=salt if isinstance(salt, str) else salt_bytes.hex(),
            )

        deployer = hex_to_bytes(self.safe_address, field="safeAddress")
        digest = keccak(CREATE2_PREFIX + deployer + salt_bytes + keccak(code))
        return to_checksum_address(digest[12:])

    # -- structural validation ---------------------------------------------

    def validate_proposal(self, proposal: Any) -> bool:
        """
        Structural sanity check, not a policy check. Never raises:
        any malformed field yields False.
        """
        try:
            tx = _proposal_dict(proposal)

            # the zero address is shape-valid, so CREATE targets pass here
            if not is_address(tx.get("to")):
                return False

            value = tx.get("value")
            if isinstance(value, bool):
                return False
            if isinstance(value, str):
                # ASCII decimal or 0x-hex only; int() alone also takes "1_000" and non-ASCII digits
                text = value.strip()
                if HEX_VALUE.fullmatch(text):
                    value = int(text, 16)
                elif DECIMAL_VALUE.fullmatch(text):
                    value = int(text)
                else:
                    return False
            if not isinstance(value, int) or value < 0:
                return False

            operation = tx.get("operation")
            if isinstance(operation, bool) or operation not in (OPERATION_CALL,
                                                                OPERATION_DELEGATECALL):
                return False

            data = tx.get("data")
            if not isinstance(data, str) or not data.startswith("0x"):
                return False

            return True
        except (TypeError, ValueError, AttributeError):
            return False

    # -- serialization -----------------------------------------------------

    def build_envelope(
        self,
        proposal: ProposalLike,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SerializedProposal:
        body = _proposal_dict(proposal)
        return SerializedProposal(
            proposal=body,
            metadata=dict(self._metadata if metadata is None else metadata),
            safe_address=self.safe_address,
            chain_id=self.chain_id,
            validation_hash=content_hash(body),
            timestamp=_now_ms(),
        )

    def serialize_proposal(
        self,
        proposal: ProposalLike,
        metadata: Optional[dict[str, Any]] = None,
    ) -> str:
        """
        Wrap the proposal in a SerializedProposal envelope as pretty JSON.

        The validation hash covers the proposal sub-object only, over its
        canonical (sorted-key, compact) encoding, so pretty-printing or
        reordering the stored file does not change it.
        """
        envelope = self.build_envelope(proposal, metadata)
        return json.dumps(envelope.to_dict(), indent=2)
