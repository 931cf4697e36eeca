"""
Client records.
"""

from __future__ import annotations

import logging
from typing import Optional

from legalflow.dates import utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError
from legalflow.recycle_bin import RecycleBinResult, move_to_recycle_bin
from legalflow.schemas import Client, ClientPayload
from legalflow.types import ClientStatus

logger = logging.getLogger(__name__)

TABLE = "clients"
SEARCH_FIELDS = ("name", "email")


def _clean_payload(payload: ClientPayload) -> dict:
    values = payload.model_dump(mode="json")
    return {key: (value if value != "" else None) for key, value in values.items()}


def list_clients(db: DbClient, search: str = "") -> list[Client]:
    rows = db.select(
        TABLE,
        deleted=False,
        search=search or None,
        search_fields=SEARCH_FIELDS,
        order_by=[("created_at", True)],
    )
    return [Client(**row) for row in rows]


def list_deleted_clients(db: DbClient) -> list[Client]:
    rows = db.select(TABLE, deleted=True, order_by=[("deleted_at", True)])
    return [Client(**row) for row in rows]


def get_client(db: DbClient, client_id: str) -> Optional[Client]:
    row = db.get(TABLE, client_id)
    return Client(**row) if row else None


def create_client(db: DbClient, payload: ClientPayload, user_id: Optional[str]) -> Client:
    values = _clean_payload(payload)
    now = utc_now_iso()
    values.update(
        status=values.get("status") or ClientStatus.ACTIVE.value,
        created_by=user_id,
        created_at=now,
        updated_at=now,
        deleted_at=None,
    )
    row = db.insert(TABLE, values)
    logger.info("Created client %s", row["id"])
    return Client(**row)


def update_client(db: DbClient, client_id: str, payload: ClientPayload) -> Client:
    values = _clean_payload(payload)
    if values.get("status") is None:
        values.pop("status", None)
    values["updated_at"] = utc_now_iso()
    row = db.update(TABLE, client_id, values)
    if row is None:
        raise BackendError(f"client {client_id} not found", code="PGRST116")
    return Client(**row)


def delete_client(
    db: DbClient,
    client_id: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> RecycleBinResult:
    """Move a client (and its active cases) to the recycle bin."""
    return move_to_recycle_bin(db, TABLE, client_id, reason=reason, deleted_by=user_id)
