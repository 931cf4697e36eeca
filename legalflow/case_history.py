"""
Manual entries of a case's history (petitions, hearings, notes...).
"""

from __future__ import annotations

import logging
from typing import Optional

from legalflow.dates import utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError, is_missing_table
from legalflow.schemas import CaseHistoryItem, CaseHistoryPayload

logger = logging.getLogger(__name__)

TABLE = "case_history"


def _to_item(row: dict) -> CaseHistoryItem:
    values = dict(row)
    values["is_system_event"] = bool(values.get("is_system_event"))
    return CaseHistoryItem(**values)


def list_history(db: DbClient, case_id: str) -> list[CaseHistoryItem]:
    try:
        rows = db.select(
            TABLE,
            equals={"case_id": case_id},
            order_by=[("date", True), ("created_at", True)],
        )
    except BackendError as exc:
        if is_missing_table(exc):
            logger.warning("case_history table is missing; returning an empty history")
            return []
        raise
    return [_to_item(row) for row in rows]


def add_history_item(
    db: DbClient, case_id: str, payload: CaseHistoryPayload, user_id: Optional[str]
) -> CaseHistoryItem:
    values = payload.model_dump(mode="json")
    values.update(
        case_id=case_id,
        created_by=user_id,
        created_at=utc_now_iso(),
        is_system_event=False,
    )
    return _to_item(db.insert(TABLE, values))


def delete_history_item(db: DbClient, item_id: str) -> bool:
    return db.delete(TABLE, item_id)
