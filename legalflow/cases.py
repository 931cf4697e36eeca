"""
Legal cases and the unified case timeline.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from legalflow import case_history
from legalflow.dates import parse_timestamp, utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError
from legalflow.recycle_bin import RecycleBinResult, move_to_recycle_bin
from legalflow.schemas import CaseHistoryItem, CasePayload, LegalCase
from legalflow.types import CaseOutcome, HistoryType

logger = logging.getLogger(__name__)

TABLE = "legal_cases"
SEARCH_FIELDS = ("case_number", "title")

# Older rows kept value/fee/outcome as JSON appended to the description.
META_MARKER = "\n\n__META_DATA__"

OUTCOME_LABELS = {
    CaseOutcome.WON.value: "Procedente (Ganho)",
    CaseOutcome.LOST.value: "Improcedente (Perdido)",
    CaseOutcome.SETTLED.value: "Acordo Consensual",
}


def split_case_description(description: Optional[str]) -> tuple[Optional[str], dict]:
    """Split a stored description into the free text and the legacy metadata."""
    if not description or META_MARKER not in description:
        return description, {}
    text, _, raw_meta = description.partition(META_MARKER)
    try:
        meta = json.loads(raw_meta)
    except ValueError:
        logger.warning("Could not parse legacy case metadata")
        return text, {}
    return text, meta if isinstance(meta, dict) else {}


def _to_case(row: dict, client_name: Optional[str] = None) -> LegalCase:
    values = dict(row)
    description, meta = split_case_description(values.get("description"))
    values["description"] = description
    for key in ("value", "fee"):
        if values.get(key) is None and isinstance(meta.get(key), (int, float)):
            values[key] = meta[key]
    legacy_outcome = meta.get("outcome")
    if (
        values.get("outcome") is None
        and isinstance(legacy_outcome, str)
        and legacy_outcome in OUTCOME_LABELS
    ):
        values["outcome"] = legacy_outcome
    values["client_name"] = client_name
    return LegalCase(**values)


def _client_names(db: DbClient) -> dict[str, str]:
    return {row["id"]: row["name"] for row in db.select("clients")}


def _case_values(payload: CasePayload) -> dict:
    values = payload.model_dump(mode="json")
    values["next_hearing"] = values.get("next_hearing") or None
    values["description"] = values.get("description") or ""
    return values


def list_cases(db: DbClient, search: str = "") -> list[LegalCase]:
    rows = db.select(
        TABLE,
        deleted=False,
        search=search or None,
        search_fields=SEARCH_FIELDS,
        order_by=[("created_at", True)],
    )
    names = _client_names(db)
    return [_to_case(row, names.get(row["client_id"])) for row in rows]


def get_case(db: DbClient, case_id: str) -> Optional[LegalCase]:
    row = db.get(TABLE, case_id)
    if row is None:
        return None
    client = db.get("clients", row["client_id"])
    return _to_case(row, client["name"] if client else None)


def create_case(db: DbClient, payload: CasePayload, user_id: Optional[str]) -> LegalCase:
    now = utc_now_iso()
    values = _case_values(payload)
    values.update(created_by=user_id, created_at=now, updated_at=now)
    row = db.insert(TABLE, values)
    logger.info("Created case %s for client %s", row["id"], row["client_id"])
    return get_case(db, row["id"])


def update_case(db: DbClient, case_id: str, payload: CasePayload) -> LegalCase:
    values = _case_values(payload)
    values["updated_at"] = utc_now_iso()
    if db.update(TABLE, case_id, values) is None:
        raise BackendError(f"case {case_id} not found", code="PGRST116")
    return get_case(db, case_id)


def delete_case(
    db: DbClient,
    case_id: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> RecycleBinResult:
    return move_to_recycle_bin(db, TABLE, case_id, reason=reason, deleted_by=user_id)


def _hour_minute(value: Optional[str]) -> str:
    parsed = parse_timestamp(value)
    return parsed.strftime("%H:%M") if parsed else ""


def case_timeline(db: DbClient, case_id: str) -> list[CaseHistoryItem]:
    """
    Stored history merged with events derived from the case itself: client
    onboarding, case opening, the scheduled hearing and the outcome.
    Oldest first.
    """
    legal_case = get_case(db, case_id)
    if legal_case is None:
        raise BackendError(f"case {case_id} not found", code="PGRST116")

    events = list(case_history.list_history(db, case_id))
    client = db.get("clients", legal_case.client_id)
    if client and client.get("created_at"):
        events.append(
            CaseHistoryItem(
                id="auto-client-creation",
                case_id=case_id,
                title="Início do Relacionamento",
                description=f"Cadastro inicial do cliente {client['name']}.",
                type=HistoryType.SYSTEM,
                date=client["created_at"],
                created_at=client["created_at"],
                is_system_event=True,
            )
        )

    events.append(
        CaseHistoryItem(
            id="auto-case-creation",
            case_id=case_id,
            title="Distribuição / Abertura",
            description="Processo registrado no sistema.",
            type=HistoryType.PETITION,
            date=legal_case.created_at,
            created_at=legal_case.created_at,
            is_system_event=True,
        )
    )

    if legal_case.next_hearing:
        events.append(
            CaseHistoryItem(
                id="auto-hearing-scheduled",
                case_id=case_id,
                title="Audiência / Reunião",
                description=f"Agendada para {_hour_minute(legal_case.next_hearing)}.",
                type=HistoryType.HEARING,
                date=legal_case.next_hearing,
                created_at=legal_case.next_hearing,
                is_system_event=True,
            )
        )

    if legal_case.outcome:
        settled = legal_case.outcome == CaseOutcome.SETTLED
        events.append(
            CaseHistoryItem(
                id="auto-case-outcome",
                case_id=case_id,
                title="Acordo Formalizado" if settled else "Sentença Proferida",
                description=f"Desfecho: {OUTCOME_LABELS[legal_case.outcome.value]}.",
                type=HistoryType.SETTLEMENT if settled else HistoryType.SENTENCE,
                date=legal_case.updated_at,
                created_at=legal_case.updated_at,
                is_system_event=True,
            )
        )

    def sort_key(item: CaseHistoryItem) -> float:
        parsed = parse_timestamp(item.date)
        return parsed.timestamp() if parsed else 0.0

    return sorted(events, key=sort_key)
