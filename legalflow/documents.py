"""
Document repository: metadata rows in ``documents`` and file bodies in the
``documents`` bucket.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from werkzeug.utils import secure_filename

from legalflow.dates import utc_now_iso
from legalflow.db import DbClient
from legalflow.errors import BackendError
from legalflow.recycle_bin import RecycleBinResult, move_to_recycle_bin
from legalflow.schemas import AppDocument
from legalflow.storage import StorageClient

logger = logging.getLogger(__name__)

TABLE = "documents"
SEARCH_FIELDS = ("title", "file_name")
UNNAMED = "Sem Nome"


def to_app_document(row: dict, storage: StorageClient) -> AppDocument:
    url = row.get("url")
    if not url and row.get("file_path"):
        url = storage.public_url(row["file_path"])
    title = row.get("title") or row.get("file_name") or UNNAMED
    return AppDocument(
        id=row["id"],
        title=title,
        name=title,
        file_path=row.get("file_path") or "",
        file_name=row.get("file_name"),
        size=row.get("file_size"),
        type=row.get("file_type") or row.get("mime_type"),
        mime_type=row.get("mime_type"),
        url=url or "",
        created_at=row["created_at"],
        case_id=row.get("case_id"),
        client_id=row.get("client_id"),
        description=row.get("description"),
    )


def list_documents(
    db: DbClient, storage: StorageClient, search: str = ""
) -> list[AppDocument]:
    rows = db.select(
        TABLE,
        deleted=False,
        search=search or None,
        search_fields=SEARCH_FIELDS,
        order_by=[("created_at", True)],
    )
    return [to_app_document(row, storage) for row in rows]


def build_storage_path(user_id: str, file_name: str) -> str:
    safe_name = secure_filename(file_name) or "arquivo"
    return f"{user_id}/{int(time.time() * 1000)}_{safe_name}"


def upload_documents(
    db: DbClient,
    storage: StorageClient,
    files: Iterable[tuple[str, bytes, Optional[str]]],
    user_id: str,
    case_id: Optional[str] = None,
    client_id: Optional[str] = None,
) -> list[AppDocument]:
    """
    Store each ``(file_name, data, content_type)`` in the bucket and record
    its metadata. Stops at the first failure.
    """
    uploaded = []
    for file_name, data, content_type in files:
        path = build_storage_path(user_id, file_name)
        storage.upload_bytes(path, data, content_type=content_type)
        extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else None
        row = db.insert(
            TABLE,
            {
                "title": file_name,
                "file_name": file_name,
                "file_path": path,
                "file_size": len(data),
                "file_type": extension,
                "mime_type": content_type,
                "url": storage.public_url(path),
                "case_id": case_id,
                "client_id": client_id,
                "created_by": user_id,
                "created_at": utc_now_iso(),
            },
        )
        logger.info("Uploaded document %s to %s", row["id"], path)
        uploaded.append(to_app_document(row, storage))
    return uploaded


def delete_document(
    db: DbClient,
    document_id: str,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> RecycleBinResult:
    return move_to_recycle_bin(db, TABLE, document_id, reason=reason, deleted_by=user_id)


def document_download_url(
    db: DbClient, storage: StorageClient, document_id: str, expires_in: int = 3600
) -> str:
    row = db.get(TABLE, document_id)
    if row is None or not row.get("file_path"):
        raise BackendError(f"document {document_id} not found", code="PGRST116")
    return storage.presign_get(row["file_path"], expires_in=expires_in)
