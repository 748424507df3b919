"""
Proposal Store
Persistence for proposals created through the gateway.

Three interchangeable backends share one interface: in-memory (tests),
a JSON file (development and small deployments) and PostgreSQL.
The backend is chosen by ``STORAGE_TYPE``.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union
from uuid import uuid4

import psycopg2
from pydantic import Field

from zerokey.config import DB_CONFIG, ZEROKEY_DIR
from zerokey.errors import ConfigurationError
from zerokey.models import WireModel

logger = logging.getLogger(__name__)

STORAGE_TYPE = os.environ.get("STORAGE_TYPE", "file")
STORAGE_DIR = os.environ.get("STORAGE_DIR", str(ZEROKEY_DIR / "storage"))


# ---------------------------------------------------------------------------
# Domain types
# ---------------------------------------------------------------------------

class ProposalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    EXECUTED = "executed"
    REJECTED = "rejected"
    FAILED = "failed"


class ProposalRecord(WireModel):
    id: str
    proposal: dict[str, Any]
    safe_address: str = Field(alias="safeAddress")
    chain_id: int = Field(alias="chainId")
    network: str
    contract_name: str = Field(alias="contractName")
    validation_hash: str = Field(alias="validationHash")
    status: ProposalStatus = ProposalStatus.PENDING
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    metadata: dict[str, Any] = Field(default_factory=dict)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_proposal_id() -> str:
    return f"prop_{int(datetime.now(timezone.utc).timestamp() * 1000)}_{uuid4().hex[:9]}"


def query_records(
    records: list[ProposalRecord],
    network: Optional[str] = None,
    status: Optional[ProposalStatus] = None,
    limit: int = 10,
    offset: int = 0,
) -> tuple[list[ProposalRecord], int]:
    """Filter, sort newest first, paginate. Returns (page, total matching)."""
    filtered = [
        r for r in records
        if (network is None or r.network == network)
        and (status is None or r.status == status)
    ]
    filtered.sort(key=lambda r: r.created_at, reverse=True)
    return filtered[offset:offset + limit], len(filtered)


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class ProposalStore:
    """Interface shared by every backend."""

    def get_all(self) -> list[ProposalRecord]:
        raise NotImplementedError

    def get_by_id(self, proposal_id: str) -> Optional[ProposalRecord]:
        raise NotImplementedError

    def create(self, record: ProposalRecord) -> None:
        raise NotImplementedError

    def update(self, proposal_id: str, record: ProposalRecord) -> None:
        raise NotImplementedError

    def delete(self, proposal_id: str) -> None:
        raise NotImplementedError


class InMemoryProposalStore(ProposalStore):

    def __init__(self):
        self._records: dict[str, ProposalRecord] = {}

    def get_all(self) -> list[ProposalRecord]:
        return list(self._records.values())

    def get_by_id(self, proposal_id: str) -> Optional[ProposalRecord]:
        return self._records.get(proposal_id)

    def create(self, record: ProposalRecord) -> None:
        self._records[record.id] = record

    def update(self, proposal_id: str, record: ProposalRecord) -> None:
        if proposal_id in self._records:
            self._records[proposal_id] = record

    def delete(self, proposal_id: str) -> None:
        self._records.pop(proposal_id, None)

    def clear(self) -> None:
        self._records.clear()


class FileProposalStore(ProposalStore):
    """All records in one ``proposals.json`` array."""

    def __init__(self, storage_dir: Union[str, Path, None] = None):
        self.storage_dir = Path(storage_dir or STORAGE_DIR)
        self.storage_file = self.storage_dir / "proposals.json"
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        if not self.storage_file.exists():
            self.storage_file.write_text("[]", encoding="utf-8")

    def _read(self) -> list[ProposalRecord]:
        try:
            raw = json.loads(self.storage_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                f"Proposal storage file is corrupt: {exc}",
                config_key="STORAGE_DIR",
                context={"storageFile": str(self.storage_file)},
            ) from exc
        return [ProposalRecord(**item) for item in raw]

    def _write(self, records: list[ProposalRecord]) -> None:
        self.storage_file.write_text(
            json.dumps([r.to_dict() for r in records], indent=2), encoding="utf-8",
        )

    def get_all(self) -> list[ProposalRecord]:
        return self._read()

    def get_by_id(self, proposal_id: str) -> Optional[ProposalRecord]:
        for record in self._read():
            if record.id == proposal_id:
                return record
        return None

    def create(self, record: ProposalRecord) -> None:
        records = self._read()
        records.append(record)
        self._write(records)

    def update(self, proposal_id: str, record: ProposalRecord) -> None:
        records = self._read()
        for i, existing in enumerate(records):
            if existing.id == proposal_id:
                records[i] = record
                self._write(records)
                return

    def delete(self, proposal_id: str) -> None:
        self._write([r for r in self._read() if r.id != proposal_id])


class PostgresProposalStore(ProposalStore):
    """
    Records in a ``safe_proposals`` table, one JSONB document per row.
    Opens a connection per call.
    """

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS safe_proposals (
            id          TEXT PRIMARY KEY,
            network     TEXT NOT NULL,
            status      TEXT NOT NULL,
            created_at  TIMESTAMPTZ NOT NULL,
            record      JSONB NOT NULL
        )
    """

    def __init__(self, db_config: dict | None = None):
        self._db_config = db_config or DB_CONFIG

    def _connect(self):
        return psycopg2.connect(**self._db_config)

    @staticmethod
    def _to_record(raw: Any) -> ProposalRecord:
        if isinstance(raw, str):
            raw = json.loads(raw)
        return ProposalRecord(**raw)

    def ensure_schema(self) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(self.SCHEMA)
            conn.commit()
            cur.close()
        finally:
            conn.close()

    def get_all(self) -> list[ProposalRecord]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("SELECT record FROM safe_proposals ORDER BY created_at DESC")
            rows = cur.fetchall()
            cur.close()
            return [self._to_record(row[0]) for row in rows]
        finally:
            conn.close()

    def get_by_id(self, proposal_id: str) -> Optional[ProposalRecord]:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("SELECT record FROM safe_proposals WHERE id = %s", (proposal_id,))
            row = cur.fetchone()
            cur.close()
            return self._to_record(row[0]) if row else None
        finally:
            conn.close()

    def create(self, record: ProposalRecord) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                "INSERT INTO safe_proposals (id, network, status, created_at, record) "
                "VALUES (%s, %s, %s, %s, %s)",
                (
                    record.id,
                    record.network,
                    record.status.value,
                    record.created_at,
                    json.dumps(record.to_dict()),
                ),
            )
            conn.commit()
            cur.close()
        finally:
            conn.close()

    def update(self, proposal_id: str, record: ProposalRecord) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                "UPDATE safe_proposals SET status = %s, record = %s WHERE id = %s",
                (record.status.value, json.dumps(record.to_dict()), proposal_id),
            )
            conn.commit()
            cur.close()
        finally:
            conn.close()

    def delete(self, proposal_id: str) -> None:
        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute("DELETE FROM safe_proposals WHERE id = %s", (proposal_id,))
            conn.commit()
            cur.close()
        finally:
            conn.close()


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_store: ProposalStore | None = None


def get_store() -> ProposalStore:
    global _store
    if _store is None:
        if STORAGE_TYPE == "memory":
            _store = InMemoryProposalStore()
        elif STORAGE_TYPE == "postgres":
            _store = PostgresProposalStore()
        else:
            _store = FileProposalStore()
        logger.info("Proposal store initialised: %s", type(_store).__name__)
    return _store


def set_store(store: ProposalStore) -> None:
    global _store
    _store = store


def reset_store() -> None:
    global _store
    _store = None
