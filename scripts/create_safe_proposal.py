#!/usr/bin/env python3
"""
Create Safe Proposal

Builds an unsigned Safe proposal for the deployment described in
.zerokey/deploy.yaml and writes it to safe-proposal.json. Used by CI to
stage deployments without any private key.

Three shapes are produced:
  - plain deployment of the configured contract
  - new proxy deployment (batch: implementation + proxy)
  - UUPS upgrade (batch: implementation + upgradeTo / upgradeToAndCall)

Usage:  python scripts/create_safe_proposal.py [--config PATH]
            [--artifacts DIR] [--output PATH]

Exit codes:
    0 - proposal written
    1 - configuration, artifact, encoding or write error
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

# Ensure the project root is importable so zerokey resolves
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from zerokey.config import (
    ARTIFACTS_DIR,
    DEPLOY_CONFIG_PATH,
    PROPOSAL_PATH,
    DeployConfig,
    configure_logging,
    get_safe_address,
    github_metadata,
    github_run_info,
    load_deploy_config,
)
from zerokey.encoding import encode_function_call, resolve_arg_types
from zerokey.errors import ConfigurationError, ValidationError, ZeroKeyError
from zerokey.networks import chain_id_for, deployable_networks
from zerokey.proposal_builder import ProposalBuilder

logger = logging.getLogger("create_safe_proposal")

DEFAULT_SALT = "0x" + "0" * 64
PROXY_SALT = "0x" + "1" * 64

PROXY_ARTIFACTS = {
    "uups": "ERC1967Proxy",
    "transparent": "TransparentUpgradeableProxy",
}


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------

def load_artifact(path: Path, config_key: str = "contractArtifact") -> dict[str, Any]:
    """Read a Hardhat compilation artifact and check it carries bytecode."""
    if not path.exists():
        raise ConfigurationError(
            "Contract artifact not found",
            config_key=config_key,
            expected_format="Hardhat compilation artifact JSON",
            context={"artifactPath": str(path)},
        )
    try:
        artifact = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(
            f"Contract artifact is not valid JSON: {exc}",
            config_key=config_key,
            context={"artifactPath": str(path)},
        ) from exc

    bytecode = artifact.get("bytecode") if isinstance(artifact, dict) else None
    if not bytecode or bytecode == "0x":
        raise ValidationError(
            "No bytecode found for contract",
            field="bytecode", value=bytecode,
            context={"artifactPath": str(path)},
        )
    return artifact


def contract_artifact_path(artifacts_dir: Path, contract: str) -> Path:
    return artifacts_dir / "contracts" / f"{contract}.sol" / f"{contract}.json"


def proxy_artifact_path(artifacts_dir: Path, proxy_name: str) -> Path:
    return artifacts_dir / "contracts" / "proxies" / f"{proxy_name}.sol" / f"{proxy_name}.json"


def encode_initializer(args: list[Any]) -> str:
    """Calldata for ``initialize(...)`` with argument types inferred."""
    types = resolve_arg_types(args)
    return encode_function_call(f"initialize({','.join(types)})", args)


# ---------------------------------------------------------------------------
# Proposal shapes
# ---------------------------------------------------------------------------

def _implementation_request(config: DeployConfig, bytecode: str, value: Any = "0") -> dict:
    return {
        "contractName": config.contract,
        "bytecode": bytecode,
        "constructorArgs": config.constructor_args,
        "constructorArgTypes": config.constructor_arg_types,
        "value": value,
        "metadata": {**github_metadata(), "network": config.network},
    }


def build_proposal(
    builder: ProposalBuilder,
    config: DeployConfig,
    artifacts_dir: Path,
) -> tuple[Any, str]:
    """
    Build the proposal for ``config``.

    Returns (proposal, deployment_address). For upgrades the deployment
    address is the existing proxy, which does not move.
    """
    artifact = load_artifact(contract_artifact_path(artifacts_dir, config.contract))
    bytecode = artifact["bytecode"]
    proxy = config.proxy

    if proxy is None:
        logger.info("Creating Safe deployment proposal for %s on %s",
                    config.contract, config.network)
        proposal = builder.create_deployment_proposal(
            _implementation_request(config, bytecode, config.value or "0"),
        )
        if not builder.validate_proposal(proposal):
            raise ValidationError(
                "Generated proposal failed validation",
                field="proposal", value=proposal.to_dict(),
            )
        return proposal, builder.calculate_deployment_address(bytecode, DEFAULT_SALT)

    implementation_address = builder.calculate_deployment_address(bytecode, DEFAULT_SALT)

    if proxy.proxy_address:
        logger.info("Creating Safe upgrade proposal: %s -> proxy %s (%s)",
                    config.contract, proxy.proxy_address, proxy.type)
        if proxy.type != "uups":
            raise ValidationError(
                "Transparent proxy upgrades not yet supported",
                field="proxy.type", value=proxy.type,
            )

        implementation = builder.create_deployment_proposal(
            _implementation_request(config, bytecode),
        )
        if proxy.initialize_args is not None:
            selector = "upgradeToAndCall(address,bytes)"
            upgrade_args = [encode_initializer(proxy.initialize_args)]
        else:
            selector = "upgradeTo(address)"
            upgrade_args = []

        upgrade = builder.create_upgrade_proposal({
            "proxyAddress": proxy.proxy_address,
            "newImplementation": implementation_address,
            "functionSelector": selector,
            "upgradeArgs": upgrade_args,
        })
        return builder.create_batch_proposal([implementation, upgrade]), proxy.proxy_address

    # New proxy deployment
    proxy_name = PROXY_ARTIFACTS.get(proxy.type)
    if proxy_name is None:
        raise ValidationError(
            f"Unsupported proxy type: {proxy.type}", field="proxy.type", value=proxy.type,
        )
    logger.info("Creating Safe proxy deployment proposal for %s behind %s",
                config.contract, proxy_name)

    proxy_artifact = load_artifact(
        proxy_artifact_path(artifacts_dir, proxy_name), config_key="proxyArtifact",
    )
    implementation = builder.create_deployment_proposal(
        _implementation_request(config, bytecode),
    )

    initialize_data = (
        encode_initializer(proxy.initialize_args) if proxy.initialize_args else "0x"
    )
    if proxy.type == "uups":
        proxy_args = [implementation_address, initialize_data]
        proxy_types = ["address", "bytes"]
    else:
        proxy_args = [implementation_address, proxy.admin or builder.get_safe_address(),
                      initialize_data]
        proxy_types = ["address", "address", "bytes"]

    proxy_deployment = builder.create_deployment_proposal({
        "contractName": proxy_name,
        "bytecode": proxy_artifact["bytecode"],
        "constructorArgs": proxy_args,
        "constructorArgTypes": proxy_types,
        "value": config.value or "0",
        "metadata": {**github_metadata(), "network": config.network},
    })

    batch = builder.create_batch_proposal([implementation, proxy_deployment])
    return batch, builder.calculate_deployment_address(proxy_artifact["bytecode"], PROXY_SALT)


def enrich_envelope(
    serialized: str,
    config: DeployConfig,
    chain_id: int,
    deployment_address: str,
) -> dict[str, Any]:
    """Attach the deployment and CI sections read by the policy validator."""
    envelope = json.loads(serialized)
    deployment: dict[str, Any] = {
        "expectedAddress": deployment_address,
        "network": config.network,
        "chainId": chain_id,
        "contract": config.contract,
        "constructorArgs": config.constructor_args,
        "value": config.value or "0",
    }
    if config.proxy is not None:
        deployment["proxy"] = config.proxy.model_dump(by_alias=True, exclude_none=True)
    envelope["deployment"] = deployment
    envelope["ci"] = github_run_info()
    return envelope


def write_github_output(envelope: dict[str, Any], deployment_address: str) -> None:
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return
    lines = [
        f"proposal_hash={envelope['validationHash']}",
        f"safe_address={envelope['safeAddress']}",
        f"chain_id={envelope['chainId']}",
        f"deployment_address={deployment_address}",
    ]
    with open(output_path, "a", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create an unsigned Safe deployment proposal")
    parser.add_argument("--config", type=Path, default=DEPLOY_CONFIG_PATH)
    parser.add_argument("--artifacts", type=Path, default=ARTIFACTS_DIR)
    parser.add_argument("--output", type=Path, default=PROPOSAL_PATH)
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    configure_logging()
    args = parse_args(argv)

    try:
        config = load_deploy_config(args.config)
        safe_address = get_safe_address()

        chain_id = chain_id_for(config.network, include_deploy_testnets=True)
        if chain_id is None:
            raise ValidationError(
                f"Unsupported network: {config.network}",
                field="network", value=config.network,
                context={"supportedNetworks": deployable_networks()},
            )
        logger.info("Configuration validated: network=%s chainId=%d", config.network, chain_id)

        gas_settings = None
        if config.gas_limit:
            gas_settings = {"gasLimit": config.gas_limit, "gasPrice": config.gas_price}

        builder = ProposalBuilder(safe_address, chain_id, default_gas_settings=gas_settings)
        proposal, deployment_address = build_proposal(builder, config, args.artifacts)
        logger.info("Deployment address calculated: %s", deployment_address)

        envelope = enrich_envelope(
            builder.serialize_proposal(proposal), config, chain_id, deployment_address,
        )
        args.output.write_text(json.dumps(envelope, indent=2), encoding="utf-8")
        write_github_output(envelope, deployment_address)
    except ZeroKeyError as exc:
        logger.error("Error creating Safe proposal: %s", exc.message)
        logger.debug("Error detail: %s", exc.to_dict())
        return 1
    except OSError as exc:
        logger.error("Error writing Safe proposal outputs: %s", exc)
        return 1

    logger.info("Safe proposal created: %s (validationHash=%s)",
                args.output, envelope["validationHash"])
    return 0


if __name__ == "__main__":
    sys.exit(main())
