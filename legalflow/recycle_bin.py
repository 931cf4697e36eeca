"""
Recycle bin: soft deletion, restoration and listing of removed records.

Every operation first tries the server-side function (``move_to_recycle_bin``
/ ``restore_from_recycle_bin``), which keeps an audit row in ``recycle_bin``.
When the function is unavailable it falls back to touching ``deleted_at``
directly, so listing has to reconcile the audit table with a scan of the
soft-deleted rows of every table.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from legalflow.dates import parse_timestamp, utc_now_iso
from legalflow.db import SOFT_DELETE_TABLES, DbClient
from legalflow.errors import BackendError, describe_error
from legalflow.schemas import RecycleBinItem
from legalflow.storage import StorageClient
from legalflow.types import RecycleSource

logger = logging.getLogger(__name__)

RECYCLE_BIN_TABLE = "recycle_bin"


@dataclass
class RecycleBinResult:
    success: bool
    message: str
    error: Optional[str] = None


def _deleted_at_key(value) -> float:
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed else 0.0


def move_to_recycle_bin(
    db: DbClient,
    table_name: str,
    record_id: str,
    reason: Optional[str] = None,
    deleted_by: Optional[str] = None,
) -> RecycleBinResult:
    """
    Soft-delete a record. Clients take their active cases with them.
    """
    if table_name not in SOFT_DELETE_TABLES:
        return RecycleBinResult(
            success=False,
            message="Erro ao excluir item",
            error="Tabela inválida para a lixeira",
        )

    try:
        try:
            db.rpc(
                "move_to_recycle_bin",
                {
                    "p_table_name": table_name,
                    "p_record_id": record_id,
                    "p_reason": reason or None,
                    "p_deleted_by": deleted_by,
                },
            )
            result = RecycleBinResult(success=True, message="Item arquivado com sucesso")
        except BackendError as rpc_error:
            logger.warning(
                "move_to_recycle_bin RPC failed (code=%s), falling back to soft delete of %s/%s",
                rpc_error.code,
                table_name,
                record_id,
            )
            updated = db.update(table_name, record_id, {"deleted_at": utc_now_iso()})
            if updated is None:
                raise BackendError(
                    f"{table_name} record {record_id} not found", code="PGRST116"
                )
            result = RecycleBinResult(success=True, message="Item movido para a lixeira")

        if table_name == "clients":
            _cascade_client_cases(db, record_id, reason, deleted_by)
        return result
    except BackendError as exc:
        return RecycleBinResult(
            success=False, message="Erro ao excluir item", error=describe_error(exc)
        )


def _cascade_client_cases(
    db: DbClient, client_id: str, reason: Optional[str], deleted_by: Optional[str]
) -> None:
    try:
        cases = db.select("legal_cases", equals={"client_id": client_id}, deleted=False)
    except BackendError as exc:
        logger.error("Could not list cases of client %s (code=%s)", client_id, exc.code)
        return
    for legal_case in cases:
        outcome = move_to_recycle_bin(
            db, "legal_cases", legal_case["id"], reason=reason, deleted_by=deleted_by
        )
        if not outcome.success:
            logger.error(
                "Failed to move case %s of client %s to the recycle bin: %s",
                legal_case["id"],
                client_id,
                outcome.error,
            )


def restore_from_recycle_bin(
    db: DbClient,
    record_id: str,
    table_name: Optional[str] = None,
    recycle_bin_id: Optional[str] = None,
) -> RecycleBinResult:
    """
    Bring a record back. The manual path clears ``deleted_at`` and removes
    every audit row pointing at the record, by bin id and by original id.
    """
    try:
        if recycle_bin_id:
            try:
                db.rpc("restore_from_recycle_bin", {"p_recycle_bin_id": recycle_bin_id})
                return RecycleBinResult(success=True, message="Item restaurado com sucesso")
            except BackendError as rpc_error:
                logger.warning(
                    "restore_from_recycle_bin RPC failed (code=%s), restoring %s manually",
                    rpc_error.code,
                    record_id,
                )

        if not table_name:
            return RecycleBinResult(
                success=False,
                message="Identificação da tabela necessária para restauração manual.",
            )
        if table_name not in SOFT_DELETE_TABLES:
            return RecycleBinResult(
                success=False,
                message="Erro ao restaurar",
                error="Tabela inválida para a lixeira",
            )

        if db.update(table_name, record_id, {"deleted_at": None}) is None:
            raise BackendError(
                f"{table_name} record {record_id} no longer exists", code="PGRST116"
            )
        if recycle_bin_id:
            db.delete(RECYCLE_BIN_TABLE, recycle_bin_id)
        db.delete_where(
            RECYCLE_BIN_TABLE, original_id=record_id, original_table=table_name
        )
        return RecycleBinResult(success=True, message="Item restaurado com sucesso")
    except BackendError as exc:
        return RecycleBinResult(
            success=False, message="Erro ao restaurar", error=describe_error(exc)
        )


def get_recycle_bin_items(db: DbClient) -> list[RecycleBinItem]:
    """
    List soft-deleted records, newest deletion first.

    Rows found by scanning ``deleted_at`` come first; audit rows then replace
    them, keyed by original id, but only while the original is still deleted
    (an audit row left behind by a manual restore is ignored).
    """
    items: dict[str, RecycleBinItem] = {}

    try:
        bin_rows = db.select(RECYCLE_BIN_TABLE)
    except BackendError as exc:
        logger.warning("Could not read the recycle_bin table (code=%s)", exc.code)
        bin_rows = []

    for table in SOFT_DELETE_TABLES:
        try:
            rows = db.select(table, deleted=True)
        except BackendError as exc:
            logger.warning("Could not scan %s for deleted rows (code=%s)", table, exc.code)
            continue
        for row in rows:
            items[row["id"]] = RecycleBinItem(
                id=row["id"],
                original_table=table,
                original_id=row["id"],
                data=row,
                deleted_at=row["deleted_at"],
                source=RecycleSource.SOFT_DELETE,
            )

    for row in sorted(bin_rows, key=lambda r: _deleted_at_key(r.get("deleted_at"))):
        if row.get("original_id") not in items:
            continue
        items[row["original_id"]] = RecycleBinItem(
            id=row["id"],
            recycle_bin_id=row["id"],
            original_table=row["original_table"],
            original_id=row["original_id"],
            data=row.get("data") or {"name": row.get("item_name") or "Sem nome"},
            deleted_by=row.get("deleted_by"),
            deleted_at=row["deleted_at"],
            source=RecycleSource.RPC,
        )

    return sorted(
        (item for item in items.values() if item.deleted_at is not None),
        key=lambda item: _deleted_at_key(item.deleted_at),
        reverse=True,
    )


def permanent_delete_from_recycle_bin(
    db: DbClient,
    record_id: str,
    table_name: str,
    storage: Optional[StorageClient] = None,
) -> bool:
    """Delete a record for good, with its audit rows and, for documents, its file."""
    if table_name not in SOFT_DELETE_TABLES:
        logger.error("Refusing permanent delete from unknown table %s", table_name)
        return False
    try:
        file_path = None
        if table_name == "documents" and storage is not None:
            row = db.get(table_name, record_id)
            file_path = row.get("file_path") if row else None
        cascaded_case_ids = []
        if table_name == "clients":
            cascaded_case_ids = [
                row["id"]
                for row in db.select("legal_cases", equals={"client_id": record_id})
            ]
        db.delete(table_name, record_id)
        db.delete_where(
            RECYCLE_BIN_TABLE, original_id=record_id, original_table=table_name
        )
        for case_id in cascaded_case_ids:
            db.delete_where(
                RECYCLE_BIN_TABLE, original_id=case_id, original_table="legal_cases"
            )
        if file_path:
            storage.delete(file_path)
        return True
    except BackendError:
        logger.exception("Permanent delete of %s/%s failed", table_name, record_id)
        return False


def item_display_name(item: RecycleBinItem) -> str:
    data = item.data
    if not data:
        return "Item sem nome"
    if item.original_table == "legal_cases":
        return f"{data.get('case_number') or ''} - {data.get('title') or 'Processo sem título'}"
    if item.original_table == "documents":
        return (
            data.get("title")
            or data.get("file_name")
            or data.get("name")
            or "Documento sem nome"
        )
    return data.get("name") or "Item sem nome"


def filter_recycle_bin_items(
    items: Iterable[RecycleBinItem],
    search: str = "",
    table: Optional[str] = None,
) -> list[RecycleBinItem]:
    needle = (search or "").lower()
    return [
        item
        for item in items
        if needle in item_display_name(item).lower()
        and (not table or table == "all" or item.original_table == table)
    ]


def count_by_table(items: Iterable[RecycleBinItem]) -> dict[str, int]:
    items = list(items)
    counts = {"all": len(items)}
    for table in SOFT_DELETE_TABLES:
        counts[table] = sum(1 for item in items if item.original_table == table)
    return counts
