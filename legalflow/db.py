"""
Database abstraction for Postgres and an in-memory test implementation.

Both clients expose the same row-oriented operations over the tables declared
at the bottom of this module, plus the two server-side functions used by the
recycle bin (``move_to_recycle_bin`` and ``restore_from_recycle_bin``).
"""

from __future__ import annotations

import copy
import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterable, Optional, Protocol, Sequence

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    create_engine,
    delete,
    event,
    insert,
    or_,
    select,
    text,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from legalflow.dates import utc_now_iso
from legalflow.errors import BackendError

logger = logging.getLogger(__name__)

SOFT_DELETE_TABLES = ("clients", "legal_cases", "counterparts", "documents")
RPC_FUNCTIONS = ("move_to_recycle_bin", "restore_from_recycle_bin")

# Tables whose display name lives in ``title`` rather than ``name``.
TITLED_TABLES = ("legal_cases", "documents")

OrderBy = Sequence[tuple[str, bool]]


def new_id() -> str:
    return str(uuid.uuid4())


class DbClient(Protocol):
    """Interface for database access."""

    def insert(self, table: str, row: dict) -> dict:
        ...

    def get(self, table: str, record_id: str) -> Optional[dict]:
        ...

    def update(self, table: str, record_id: str, values: dict) -> Optional[dict]:
        ...

    def delete(self, table: str, record_id: str) -> bool:
        ...

    def delete_where(self, table: str, **equals: Any) -> int:
        ...

    def select(
        self,
        table: str,
        *,
        equals: Optional[dict] = None,
        deleted: Optional[bool] = None,
        search: Optional[str] = None,
        search_fields: Iterable[str] = (),
        order_by: OrderBy = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        ...

    def rpc(self, name: str, params: dict) -> Any:
        ...


def _schema_table(name: str) -> Table:
    table = Base.metadata.tables.get(name)
    if table is None:
        raise BackendError(f'relation "public.{name}" does not exist', code="42P01")
    return table


def _check_columns(table: Table, names: Iterable[str]) -> None:
    for name in names:
        if name not in table.c:
            raise BackendError(
                f"Could not find the '{name}' column of '{table.name}' in the schema cache",
                code="PGRST204",
            )


class InMemoryDbClient:
    """
    Simple in-memory database for development and tests.

    Enforces the declared schema (columns, NOT NULL, UNIQUE, foreign keys and
    ON DELETE CASCADE) so callers see the same error codes as with Postgres.
    """

    def __init__(self, *, enable_rpc: bool = True):
        self.tables: Dict[str, Dict[str, dict]] = {
            name: {} for name in Base.metadata.tables
        }
        self.functions: Dict[str, Callable[..., Any]] = {}
        self.rpc_calls: list[tuple[str, dict]] = []
        if enable_rpc:
            self.functions["move_to_recycle_bin"] = self._move_to_recycle_bin
            self.functions["restore_from_recycle_bin"] = self._restore_from_recycle_bin

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        for rows in self.tables.values():
            rows.clear()
        self.rpc_calls.clear()

    def drop_table(self, table: str) -> None:
        """Forget a table entirely, as if it was never provisioned."""
        self.tables.pop(table, None)

    def _rows(self, table: str) -> Dict[str, dict]:
        rows = self.tables.get(table)
        if rows is None:
            raise BackendError(f'relation "public.{table}" does not exist', code="42P01")
        return rows

    def _check_constraints(self, schema: Table, record: dict, *, is_new: bool) -> None:
        rows = self.tables[schema.name]
        record_id = record.get("id")
        if is_new and record_id in rows:
            raise BackendError(
                f'duplicate key value violates unique constraint "{schema.name}_pkey"',
                code="23505",
            )
        for column in schema.c:
            value = record.get(column.key)
            if value is None:
                if not column.nullable:
                    raise BackendError(
                        f'null value in column "{column.name}" of relation "{schema.name}" '
                        "violates not-null constraint",
                        code="23502",
                    )
                continue
            if column.unique:
                for other_id, other in rows.items():
                    if other_id != record_id and other.get(column.key) == value:
                        raise BackendError(
                            f'duplicate key value violates unique constraint "{schema.name}_{column.name}_key"',
                            code="23505",
                        )
            for fk in column.foreign_keys:
                target = self.tables.get(fk.column.table.name, {})
                if not any(row.get(fk.column.key) == value for row in target.values()):
                    raise BackendError(
                        f'insert or update on table "{schema.name}" violates foreign key constraint',
                        code="23503",
                    )

    def insert(self, table: str, row: dict) -> dict:
        rows = self._rows(table)
        schema = _schema_table(table)
        _check_columns(schema, row.keys())
        record = {name: None for name in schema.c.keys()}
        record.update(copy.deepcopy(row))
        if not record.get("id"):
            record["id"] = new_id()
        self._check_constraints(schema, record, is_new=True)
        rows[record["id"]] = record
        return copy.deepcopy(record)

    def get(self, table: str, record_id: str) -> Optional[dict]:
        row = self._rows(table).get(record_id)
        return copy.deepcopy(row) if row is not None else None

    def update(self, table: str, record_id: str, values: dict) -> Optional[dict]:
        rows = self._rows(table)
        schema = _schema_table(table)
        _check_columns(schema, values.keys())
        existing = rows.get(record_id)
        if existing is None:
            return None
        merged = {**existing, **copy.deepcopy(values)}
        self._check_constraints(schema, merged, is_new=False)
        rows[record_id] = merged
        return copy.deepcopy(merged)

    def _delete_dependants(self, table: str, record_id: str) -> None:
        for child in Base.metadata.sorted_tables:
            for column in child.c:
                for fk in column.foreign_keys:
                    if fk.column.table.name != table:
                        continue
                    child_rows = self.tables.get(child.name) or {}
                    dependants = [
                        rid
                        for rid, row in child_rows.items()
                        if row.get(column.key) == record_id
                    ]
                    if not dependants:
                        continue
                    if (fk.ondelete or "").upper() != "CASCADE":
                        raise BackendError(
                            f'update or delete on table "{table}" violates foreign key constraint',
                            code="23503",
                        )
                    for rid in dependants:
                        self.delete(child.name, rid)

    def delete(self, table: str, record_id: str) -> bool:
        rows = self._rows(table)
        if record_id not in rows:
            return False
        self._delete_dependants(table, record_id)
        del rows[record_id]
        return True

    def delete_where(self, table: str, **equals: Any) -> int:
        rows = self._rows(table)
        _check_columns(_schema_table(table), equals.keys())
        matches = [
            rid
            for rid, row in rows.items()
            if all(row.get(key) == value for key, value in equals.items())
        ]
        for rid in matches:
            self.delete(table, rid)
        return len(matches)

    def select(
        self,
        table: str,
        *,
        equals: Optional[dict] = None,
        deleted: Optional[bool] = None,
        search: Optional[str] = None,
        search_fields: Iterable[str] = (),
        order_by: OrderBy = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        rows = list(self._rows(table).values())
        schema = _schema_table(table)
        equals = equals or {}
        search_fields = tuple(search_fields)
        _check_columns(schema, [*equals.keys(), *search_fields, *(f for f, _ in order_by)])

        rows = [
            row
            for row in rows
            if all(row.get(key) == value for key, value in equals.items())
        ]
        if deleted is not None and "deleted_at" in schema.c:
            rows = [row for row in rows if (row.get("deleted_at") is not None) == deleted]
        if search and search_fields:
            needle = search.lower()
            rows = [
                row
                for row in rows
                if any(needle in str(row.get(field) or "").lower() for field in search_fields)
            ]
        for field, descending in reversed(list(order_by)):
            rows.sort(
                key=lambda row: (
                    row.get(field) is None,
                    row.get(field) if row.get(field) is not None else 0,
                ),
                reverse=descending,
            )
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    def rpc(self, name: str, params: dict) -> Any:
        func = self.functions.get(name)
        if func is None:
            raise BackendError(
                f"Could not find the function public.{name} in the schema cache",
                code="PGRST202",
            )
        self.rpc_calls.append((name, dict(params)))
        return func(**params)

    def _move_to_recycle_bin(
        self,
        p_table_name: str,
        p_record_id: str,
        p_reason: Optional[str] = None,
        p_deleted_by: Optional[str] = None,
    ) -> None:
        if p_table_name not in SOFT_DELETE_TABLES:
            raise BackendError(f"invalid table: {p_table_name}", code="22023")
        row = self.get(p_table_name, p_record_id)
        if row is None:
            raise BackendError(f"record {p_record_id} not found", code="P0002")
        name_field = "title" if p_table_name in TITLED_TABLES else "name"
        now = utc_now_iso()
        self.insert(
            "recycle_bin",
            {
                "original_table": p_table_name,
                "original_id": p_record_id,
                "item_name": row.get(name_field),
                "data": row,
                "reason": p_reason,
                "deleted_by": p_deleted_by,
                "deleted_at": now,
            },
        )
        self.update(p_table_name, p_record_id, {"deleted_at": now})

    def _restore_from_recycle_bin(self, p_recycle_bin_id: str) -> None:
        entry = self.get("recycle_bin", p_recycle_bin_id)
        if entry is None:
            raise BackendError(f"recycle bin entry {p_recycle_bin_id} not found", code="P0002")
        self.update(entry["original_table"], entry["original_id"], {"deleted_at": None})
        self.delete("recycle_bin", p_recycle_bin_id)


# SQLite reports errors as text only; infer the Postgres SQLSTATE from it.
_SQLITE_ERROR_CODES = (
    ("no such table", "42P01"),
    ("no such column", "42703"),
    ("has no column named", "42703"),
    ("unique constraint failed", "23505"),
    ("not null constraint failed", "23502"),
    ("foreign key constraint failed", "23503"),
    ("no such function", "42883"),
)


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _translate_error(exc: SQLAlchemyError) -> BackendError:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    lines = str(orig if orig is not None else exc).strip().splitlines()
    message = lines[0] if lines else exc.__class__.__name__
    if not code:
        lowered = message.lower()
        for needle, candidate in _SQLITE_ERROR_CODES:
            if needle in lowered:
                code = candidate
                break
    return BackendError(message, code=code, details=str(exc))


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    @contextmanager
    def _session(self):
        session = self.Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            raise _translate_error(exc) from exc
        finally:
            session.close()

    def insert(self, table: str, row: dict) -> dict:
        schema = _schema_table(table)
        values = dict(row)
        if not values.get("id"):
            values["id"] = new_id()
        _check_columns(schema, values.keys())
        with self._session() as session:
            session.execute(insert(schema).values(**values))
        return self.get(table, values["id"])

    def get(self, table: str, record_id: str) -> Optional[dict]:
        schema = _schema_table(table)
        with self._session() as session:
            row = session.execute(
                select(schema).where(schema.c.id == record_id)
            ).mappings().first()
            return dict(row) if row is not None else None

    def update(self, table: str, record_id: str, values: dict) -> Optional[dict]:
        schema = _schema_table(table)
        _check_columns(schema, values.keys())
        with self._session() as session:
            result = session.execute(
                update(schema).where(schema.c.id == record_id).values(**values)
            )
            if not result.rowcount:
                return None
        return self.get(table, record_id)

    def delete(self, table: str, record_id: str) -> bool:
        schema = _schema_table(table)
        with self._session() as session:
            result = session.execute(delete(schema).where(schema.c.id == record_id))
            return bool(result.rowcount)

    def delete_where(self, table: str, **equals: Any) -> int:
        schema = _schema_table(table)
        _check_columns(schema, equals.keys())
        stmt = delete(schema)
        for key, value in equals.items():
            stmt = stmt.where(schema.c[key] == value)
        with self._session() as session:
            result = session.execute(stmt)
            return result.rowcount or 0

    def select(
        self,
        table: str,
        *,
        equals: Optional[dict] = None,
        deleted: Optional[bool] = None,
        search: Optional[str] = None,
        search_fields: Iterable[str] = (),
        order_by: OrderBy = (),
        limit: Optional[int] = None,
    ) -> list[dict]:
        schema = _schema_table(table)
        equals = equals or {}
        search_fields = tuple(search_fields)
        _check_columns(schema, [*equals.keys(), *search_fields, *(f for f, _ in order_by)])

        stmt = select(schema)
        for key, value in equals.items():
            stmt = stmt.where(schema.c[key] == value)
        if deleted is not None and "deleted_at" in schema.c:
            column = schema.c.deleted_at
            stmt = stmt.where(column.is_not(None) if deleted else column.is_(None))
        if search and search_fields:
            pattern = f"%{_escape_like(search)}%"
            stmt = stmt.where(
                or_(
                    *(
                        schema.c[field].ilike(pattern, escape="\\")
                        for field in search_fields
                    )
                )
            )
        for field, descending in order_by:
            column = schema.c[field]
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [dict(row) for row in session.execute(stmt).mappings().all()]

    def rpc(self, name: str, params: dict) -> Any:
        if name not in RPC_FUNCTIONS:
            raise BackendError(
                f"Could not find the function public.{name} in the schema cache",
                code="PGRST202",
            )
        placeholders = ", ".join(f":{key}" for key in params)
        with self._session() as session:
            return session.execute(
                text(f"SELECT {name}({placeholders})"), params
            ).scalar()


Base = declarative_base()


class ClientRow(Base):
    __tablename__ = "clients"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    cpf_cnpj = Column(String, nullable=True)
    rg = Column(String, nullable=True)
    birth_date = Column(String, nullable=True)
    marital_status = Column(String, nullable=True)
    address = Column(String, nullable=True)
    number = Column(String, nullable=True)
    complement = Column(String, nullable=True)
    neighborhood = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    cep = Column(String, nullable=True)
    profession = Column(String, nullable=True)
    company = Column(String, nullable=True)
    income_range = Column(String, nullable=True)
    observations = Column(String, nullable=True)
    status = Column(String, nullable=False)
    identification_doc_path = Column(String, nullable=True)
    identification_doc_name = Column(String, nullable=True)
    cpf_doc_path = Column(String, nullable=True)
    cpf_doc_name = Column(String, nullable=True)
    birth_marriage_doc_path = Column(String, nullable=True)
    birth_marriage_doc_name = Column(String, nullable=True)
    comprovant_residente_doc_path = Column(String, nullable=True)
    comprovant_residente_doc_name = Column(String, nullable=True)
    other_doc_path = Column(String, nullable=True)
    other_doc_name = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    deleted_at = Column(String, nullable=True, index=True)


class LegalCaseRow(Base):
    __tablename__ = "legal_cases"

    id = Column(String, primary_key=True)
    client_id = Column(
        String, ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    case_number = Column(String, nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    status = Column(String, nullable=False)
    case_type = Column(String, nullable=True)
    priority = Column(String, nullable=False)
    court = Column(String, nullable=True)
    judge = Column(String, nullable=True)
    jurisdiction = Column(String, nullable=True)
    court_room = Column(String, nullable=True)
    assigned_to = Column(String, nullable=True)
    next_hearing = Column(String, nullable=True)
    value = Column(Float, nullable=True)
    fee = Column(Float, nullable=True)
    outcome = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    deleted_at = Column(String, nullable=True, index=True)


class CounterpartRow(Base):
    __tablename__ = "counterparts"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    cpf_cnpj = Column(String, nullable=True)
    type = Column(String, nullable=False)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
    deleted_at = Column(String, nullable=True, index=True)


class DocumentRow(Base):
    __tablename__ = "documents"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    file_name = Column(String, nullable=True)
    file_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=True)
    file_type = Column(String, nullable=True)
    mime_type = Column(String, nullable=True)
    url = Column(String, nullable=True)
    description = Column(String, nullable=True)
    case_id = Column(String, nullable=True, index=True)
    client_id = Column(String, nullable=True, index=True)
    created_by = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=True)
    deleted_at = Column(String, nullable=True, index=True)


class AgendaEventRow(Base):
    __tablename__ = "agenda_events"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    event_date = Column(String, nullable=False)
    event_type = Column(String, nullable=True)
    location = Column(String, nullable=True)
    client = Column(String, nullable=True)
    client_id = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(String, nullable=False)


class CaseHistoryRow(Base):
    __tablename__ = "case_history"

    id = Column(String, primary_key=True)
    case_id = Column(
        String, ForeignKey("legal_cases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String, nullable=False)
    description = Column(String, nullable=True)
    type = Column(String, nullable=False)
    date = Column(String, nullable=False)
    is_system_event = Column(Boolean, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(String, nullable=False)


class RecycleBinRow(Base):
    __tablename__ = "recycle_bin"

    id = Column(String, primary_key=True)
    original_table = Column(String, nullable=False)
    original_id = Column(String, nullable=False, index=True)
    item_name = Column(String, nullable=True)
    data = Column(JSON, nullable=True)
    reason = Column(String, nullable=True)
    deleted_by = Column(String, nullable=True)
    deleted_at = Column(String, nullable=False)


class ProfileRow(Base):
    __tablename__ = "profiles"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    full_name = Column(String, nullable=True)
    role = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    logo_url = Column(String, nullable=True)
    oab = Column(String, nullable=True)
    cpf = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)


class AuthSessionRow(Base):
    __tablename__ = "auth_sessions"

    id = Column(String, primary_key=True)
    user_id = Column(
        String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(String, nullable=False)
