"""
SQL that provisions the recycle bin on Postgres: the audit table, the two
server-side functions and the ``deleted_at`` columns.

The tables themselves are created from the SQLAlchemy metadata; this script
only adds what metadata cannot express. Ids are TEXT and timestamps are
ISO-8601 UTC strings, matching the columns declared in ``legalflow.db``.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

ISO_NOW = """to_char(now() AT TIME ZONE 'utc', 'YYYY-MM-DD"T"HH24:MI:SS.US"+00:00"')"""

RECYCLE_BIN_SQL = f"""
-- Recycle bin audit table
CREATE TABLE IF NOT EXISTS recycle_bin (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    original_table TEXT NOT NULL,
    original_id TEXT NOT NULL,
    item_name TEXT,
    data JSON,
    reason TEXT,
    deleted_by TEXT,
    deleted_at TEXT NOT NULL DEFAULT {ISO_NOW}
);
CREATE INDEX IF NOT EXISTS ix_recycle_bin_original_id ON recycle_bin (original_id);

-- Soft delete a record and keep a snapshot of it
CREATE OR REPLACE FUNCTION move_to_recycle_bin(
    p_table_name TEXT,
    p_record_id TEXT,
    p_reason TEXT DEFAULT NULL,
    p_deleted_by TEXT DEFAULT NULL
)
RETURNS VOID AS $$
DECLARE
    v_item_name TEXT;
    v_data JSON;
    v_now TEXT := {ISO_NOW};
BEGIN
    IF p_table_name NOT IN ('clients', 'legal_cases', 'counterparts', 'documents') THEN
        RAISE EXCEPTION 'invalid table: %', p_table_name USING ERRCODE = '22023';
    END IF;

    EXECUTE format('SELECT row_to_json(t) FROM %I t WHERE id = %L', p_table_name, p_record_id)
        INTO v_data;
    IF v_data IS NULL THEN
        RAISE EXCEPTION 'record % not found', p_record_id USING ERRCODE = 'P0002';
    END IF;

    IF p_table_name IN ('legal_cases', 'documents') THEN
        v_item_name := v_data->>'title';
    ELSE
        v_item_name := v_data->>'name';
    END IF;

    INSERT INTO recycle_bin (id, original_table, original_id, item_name, data, reason, deleted_by, deleted_at)
    VALUES (gen_random_uuid()::text, p_table_name, p_record_id, v_item_name, v_data, p_reason, p_deleted_by, v_now);

    EXECUTE format('UPDATE %I SET deleted_at = %L WHERE id = %L', p_table_name, v_now, p_record_id);
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;

-- Undo a move using its audit row
CREATE OR REPLACE FUNCTION restore_from_recycle_bin(p_recycle_bin_id TEXT)
RETURNS VOID AS $$
DECLARE
    v_table TEXT;
    v_id TEXT;
BEGIN
    SELECT original_table, original_id INTO v_table, v_id
    FROM recycle_bin WHERE id = p_recycle_bin_id;
    IF v_table IS NULL THEN
        RAISE EXCEPTION 'recycle bin entry % not found', p_recycle_bin_id USING ERRCODE = 'P0002';
    END IF;

    EXECUTE format('UPDATE %I SET deleted_at = NULL WHERE id = %L', v_table, v_id);
    DELETE FROM recycle_bin WHERE id = p_recycle_bin_id;
END;
$$ LANGUAGE plpgsql SECURITY DEFINER;

-- deleted_at on every soft-deletable table
ALTER TABLE clients ADD COLUMN IF NOT EXISTS deleted_at TEXT;
ALTER TABLE legal_cases ADD COLUMN IF NOT EXISTS deleted_at TEXT;
ALTER TABLE counterparts ADD COLUMN IF NOT EXISTS deleted_at TEXT;
ALTER TABLE documents ADD COLUMN IF NOT EXISTS deleted_at TEXT;
"""


def apply_recycle_bin_sql(engine: Engine) -> None:
    """
    Run the script on a Postgres engine.

    Goes through the raw DBAPI cursor so the ``%`` and ``:`` sequences in the
    function bodies are not taken for bind parameters.
    """
    if engine.dialect.name != "postgresql":
        raise ValueError(
            f"the recycle bin functions need PostgreSQL, not {engine.dialect.name}"
        )
    connection = engine.raw_connection()
    try:
        cursor = connection.cursor()
        cursor.execute(RECYCLE_BIN_SQL)
        cursor.close()
        connection.commit()
    finally:
        connection.close()
