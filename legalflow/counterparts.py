"""
Opposing parties (people, companies, public bodies) referenced by cases.
"""

from __future__ import annotations

from typing import Optional

from legalflow.dates import utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError
from legalflow.recycle_bin import (
    RecycleBinResult,
    move_to_recycle_bin,
    permanent_delete_from_recycle_bin,
    restore_from_recycle_bin,
)
from legalflow.schemas import Counterpart, CounterpartPayload

TABLE = "counterparts"
SEARCH_FIELDS = ("name", "email", "cpf_cnpj")


def _values(payload: CounterpartPayload) -> dict:
    values = payload.model_dump(mode="json")
    return {key: (value if value != "" else None) for key, value in values.items()}


def list_counterparts(db: DbClient, search: str = "") -> list[Counterpart]:
    rows = db.select(
        TABLE,
        deleted=False,
        search=search or None,
        search_fields=SEARCH_FIELDS,
        order_by=[("name", False)],
    )
    return [Counterpart(**row) for row in rows]


def list_deleted_counterparts(db: DbClient) -> list[Counterpart]:
    rows = db.select(TABLE, deleted=True, order_by=[("deleted_at", True)])
    return [Counterpart(**row) for row in rows]


def create_counterpart(db: DbClient, payload: CounterpartPayload) -> Counterpart:
    now = utc_now_iso()
    values = _values(payload)
    values.update(created_at=now, updated_at=now)
    return Counterpart(**db.insert(TABLE, values))


def update_counterpart(
    db: DbClient, counterpart_id: str, payload: CounterpartPayload
) -> Counterpart:
    values = _values(payload)
    values["updated_at"] = utc_now_iso()
    row = db.update(TABLE, counterpart_id, values)
    if row is None:
        raise BackendError(f"counterpart {counterpart_id} not found", code="PGRST116")
    return Counterpart(**row)


def delete_counterpart(
    db: DbClient,
    counterpart_id: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> RecycleBinResult:
    return move_to_recycle_bin(db, TABLE, counterpart_id, reason=reason, deleted_by=user_id)


def restore_counterpart(db: DbClient, counterpart_id: str) -> RecycleBinResult:
    return restore_from_recycle_bin(db, counterpart_id, table_name=TABLE)


def permanent_delete_counterpart(db: DbClient, counterpart_id: str) -> bool:
    return permanent_delete_from_recycle_bin(db, counterpart_id, TABLE)
