"""
Shared fixtures: a builder bound to a test Safe, temporary proposal and
policy files, and an isolated in-memory proposal store.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from zerokey.proposal_builder import ProposalBuilder
from zerokey.storage import InMemoryProposalStore, reset_store, set_store

SAFE = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
PROXY = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
IMPL = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BYTECODE = "0x6080604052348015600f57600080fd5b50"

POLICY_TEXT = """
package zerokey.deployment

min_signers := 2
allowed_networks := ["sepolia", "mainnet", "polygon"]
max_gas_limit := 5000000
"""


@pytest.fixture
def builder() -> ProposalBuilder:
    return ProposalBuilder(SAFE, 11155111)


@pytest.fixture
def envelope(builder) -> dict:
    """A valid serialized deployment envelope, parsed."""
    proposal = builder.create_deployment_proposal({
        "contractName": "Counter",
        "bytecode": BYTECODE,
    })
    return json.loads(builder.serialize_proposal(proposal))


@pytest.fixture
def write_json(tmp_path):
    def _write(name: str, payload) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def policy_file(tmp_path) -> Path:
    path = tmp_path / "policy.rego"
    path.write_text(POLICY_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def memory_store():
    store = InMemoryProposalStore()
    set_store(store)
    yield store
    reset_store()
