"""
Configuration
Environment settings and the ``.zerokey/deploy.yaml`` deployment record.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from zerokey.codec import is_address
from zerokey.errors import ConfigurationError

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

ZEROKEY_DIR = Path(os.environ.get("ZEROKEY_DIR", ".zerokey"))
DEPLOY_CONFIG_PATH = Path(os.environ.get("DEPLOY_CONFIG_PATH", str(ZEROKEY_DIR / "deploy.yaml")))
POLICY_PATH = Path(os.environ.get("POLICY_PATH", str(ZEROKEY_DIR / "policy.rego")))
PROPOSAL_PATH = Path(os.environ.get("PROPOSAL_PATH", "safe-proposal.json"))
ARTIFACTS_DIR = Path(os.environ.get("ARTIFACTS_DIR", "artifacts"))

DB_CONFIG = {
    "host": os.environ.get("ZEROKEY_DB_HOST", "localhost"),
    "port": int(os.environ.get("ZEROKEY_DB_PORT", "5432")),
    "dbname": os.environ.get("ZEROKEY_DB_NAME", "zerokey"),
    "user": os.environ.get("ZEROKEY_DB_USER", "zerokey"),
    "password": os.environ.get("ZEROKEY_DB_PASSWORD", ""),
}

# Default gas settings the gateway attaches to proposals it builds
GATEWAY_GAS_SETTINGS = {
    "safeTxGas": os.environ.get("GATEWAY_SAFE_TX_GAS", "5000000"),
    "gasPrice": os.environ.get("GATEWAY_GAS_PRICE", "20000000000"),
}


def configure_logging(level: Optional[str] = None) -> None:
    """Entrypoints only; library modules never add handlers."""
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)


def get_safe_address() -> str:
    """SAFE_ADDRESS from the environment. Raises ConfigurationError."""
    safe_address = os.environ.get("SAFE_ADDRESS", "")
    if not safe_address:
        raise ConfigurationError(
            "Safe address not configured",
            config_key="SAFE_ADDRESS",
            expected_format="0x-prefixed Ethereum address",
        )
    if not is_address(safe_address):
        raise ConfigurationError(
            f"Invalid SAFE_ADDRESS format: {safe_address}",
            config_key="SAFE_ADDRESS",
            expected_format="0x-prefixed Ethereum address",
        )
    return safe_address


def github_metadata() -> dict[str, str]:
    """CI provenance attached to every proposal built by the deploy CLI."""
    return {
        "pr": os.environ.get("GITHUB_PR_NUMBER", "local"),
        "commit": os.environ.get("GITHUB_SHA", "local"),
        "deployer": os.environ.get("GITHUB_ACTOR", "local"),
        "author": os.environ.get("GITHUB_PR_AUTHOR", "local"),
    }


def github_run_info() -> dict[str, str]:
    return {
        "workflow": os.environ.get("GITHUB_WORKFLOW", "local"),
        "runId": os.environ.get("GITHUB_RUN_ID", "local"),
        "runNumber": os.environ.get("GITHUB_RUN_NUMBER", "local"),
        "repository": os.environ.get("GITHUB_REPOSITORY", "local"),
    }


# ---------------------------------------------------------------------------
# deploy.yaml
# ---------------------------------------------------------------------------

class ProxyConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    initialize_args: Optional[list[Any]] = Field(default=None, alias="initializeArgs")
    proxy_address: Optional[str] = Field(default=None, alias="proxyAddress")
    admin: Optional[str] = None


class SignersConfig(BaseModel):
    threshold: int
    addresses: list[str] = []


class DeployConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    network: str
    contract: str
    constructor_args: list[Any] = Field(default_factory=list, alias="constructorArgs")
    constructor_arg_types: Optional[list[Optional[str]]] = Field(
        default=None, alias="constructorArgTypes",
    )
    value: Union[str, int] = "0"
    gas_limit: Optional[Union[int, str]] = Field(default=None, alias="gasLimit")
    gas_price: Optional[Union[int, str]] = Field(default=None, alias="gasPrice")
    proxy: Optional[ProxyConfig] = None
    signers: Optional[SignersConfig] = None


def load_deploy_config(path: Union[str, Path] = DEPLOY_CONFIG_PATH) -> DeployConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            "Deployment configuration not found",
            config_key="deployConfig",
            expected_format="YAML file at .zerokey/deploy.yaml",
            context={"configPath": str(path)},
        )
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        return DeployConfig(**(raw or {}))
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Deployment configuration is not valid YAML: {exc}",
            config_key="deployConfig",
            context={"configPath": str(path)},
        ) from exc
    except (PydanticValidationError, TypeError) as exc:
        raise ConfigurationError(
            f"Deployment configuration is invalid: {exc}",
            config_key="deployConfig",
            context={"configPath": str(path)},
        ) from exc
