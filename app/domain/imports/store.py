"""
Persistence for data imports and their per-row import records.
"""
from __future__ import annotations

import json
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.exc import ProgrammingError

from app.db.session import get_engine

_table_initialized = False
_table_init_lock = threading.Lock()

# Columns callers may change through update_data_import.
_UPDATABLE_IMPORT_COLUMNS = {
    "status",
    "total_records",
    "successful_records",
    "failed_records",
    "field_mapping",
    "error_summary",
    "processing_started_at",
    "processing_completed_at",
}
_JSON_COLUMNS = {"field_mapping"}


def ensure_import_tables() -> None:
    """Create the data_imports and import_records tables on-demand."""
    global _table_initialized
    if _table_initialized:
        return

    with _table_init_lock:
        if _table_initialized:
            return
        _create_import_tables()
        _table_initialized = True


def _reset_table_flag() -> None:
    global _table_initialized
    with _table_init_lock:
        _table_initialized = False


def _is_missing_table_error(error: ProgrammingError) -> bool:
    origin = getattr(error, "orig", None)
    return getattr(origin, "pgcode", None) == "42P01"


def _run_with_table_retry(operation: Callable[[], Any]) -> Any:
    try:
        return operation()
    except ProgrammingError as error:
        if not _is_missing_table_error(error):
            raise
        _reset_table_flag()
        ensure_import_tables()
        return operation()


def _create_import_tables() -> None:
    engine = get_engine()
    create_sql = """
    CREATE TABLE IF NOT EXISTS data_imports (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        org_id UUID NOT NULL,
        user_id UUID NOT NULL,
        import_type VARCHAR(20) NOT NULL,
        file_name TEXT NOT NULL,
        file_size INTEGER NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'pending',
        total_records INTEGER DEFAULT 0,
        successful_records INTEGER DEFAULT 0,
        failed_records INTEGER DEFAULT 0,
        field_mapping JSONB DEFAULT '{}'::jsonb,
        error_summary TEXT,
        processing_started_at TIMESTAMP,
        processing_completed_at TIMESTAMP,
        created_at TIMESTAMP NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_data_imports_org ON data_imports(org_id, created_at DESC);

    CREATE TABLE IF NOT EXISTS import_records (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        import_id UUID NOT NULL REFERENCES data_imports(id) ON DELETE CASCADE,
        row_number INTEGER NOT NULL,
        original_data JSONB NOT NULL,
        processed_data JSONB,
        status VARCHAR(20) NOT NULL,
        error_message TEXT,
        entity_id UUID,
        entity_type VARCHAR(20),
        created_at TIMESTAMP NOT NULL DEFAULT NOW()
    );
    CREATE INDEX IF NOT EXISTS idx_import_records_import ON import_records(import_id, row_number);
    CREATE INDEX IF NOT EXISTS idx_import_records_status ON import_records(import_id, status);
    """

    with engine.begin() as conn:
        conn.execute(text(create_sql))


def _json_payload(value: Optional[Dict[str, Any]]) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value, default=str)


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _row_to_import(row: Any) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "org_id": str(row["org_id"]),
        "user_id": str(row["user_id"]),
        "import_type": row["import_type"],
        "file_name": row["file_name"],
        "file_size": row["file_size"],
        "status": row["status"],
        "total_records": row["total_records"] or 0,
        "successful_records": row["successful_records"] or 0,
        "failed_records": row["failed_records"] or 0,
        "field_mapping": row["field_mapping"] or {},
        "error_summary": row["error_summary"],
        "processing_started_at": row["processing_started_at"],
        "processing_completed_at": row["processing_completed_at"],
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def _row_to_record(row: Any) -> Dict[str, Any]:
    return {
        "id": str(row["id"]),
        "import_id": str(row["import_id"]),
        "row_number": row["row_number"],
        "original_data": row["original_data"],
        "processed_data": row["processed_data"],
        "status": row["status"],
        "error_message": row["error_message"],
        "entity_id": _optional_str(row["entity_id"]),
        "entity_type": row["entity_type"],
        "created_at": row["created_at"],
    }


def create_data_import(
    *,
    org_id: str,
    user_id: str,
    import_type: str,
    file_name: str,
    file_size: int,
    field_mapping: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """Persist a new import in 'pending' status."""
    ensure_import_tables()
    engine = get_engine()

    insert_sql = """
    INSERT INTO data_imports (
        id, org_id, user_id, import_type, file_name, file_size, status, field_mapping
    )
    VALUES (
        :id, :org_id, :user_id, :import_type, :file_name, :file_size, 'pending',
        CAST(:field_mapping AS jsonb)
    )
    RETURNING *
    """
    params = {
        "id": str(uuid.uuid4()),
        "org_id": org_id,
        "user_id": user_id,
        "import_type": import_type,
        "file_name": file_name,
        "file_size": file_size,
        "field_mapping": _json_payload(field_mapping or {}),
    }

    def _insert() -> Dict[str, Any]:
        with engine.connect() as conn:
            result = conn.execute(text(insert_sql), params)
            conn.commit()
            row = result.mappings().first()
            if not row:
                raise RuntimeError("Failed to create data import")
            return _row_to_import(row)

    return _run_with_table_retry(_insert)


def update_data_import(import_id: str, **changes: Any) -> Optional[Dict[str, Any]]:
    """
    Apply a partial update to an import.

    Only keyword arguments that are passed are written; pass a value of None
    explicitly to clear a nullable column.
    """
    unknown = set(changes) - _UPDATABLE_IMPORT_COLUMNS
    if unknown:
        raise ValueError(f"Cannot update data import columns: {sorted(unknown)}")

    ensure_import_tables()
    engine = get_engine()

    update_parts = ["updated_at = NOW()"]
    params: Dict[str, Any] = {"import_id": import_id}

    for column, value in changes.items():
        if column in _JSON_COLUMNS:
            update_parts.append(f"{column} = CAST(:{column} AS jsonb)")
            params[column] = _json_payload(value)
        else:
            update_parts.append(f"{column} = :{column}")
            params[column] = value

    update_sql = f"""
    UPDATE data_imports
    SET {", ".join(update_parts)}
    WHERE id = :import_id
    RETURNING *
    """

    def _update() -> Optional[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(text(update_sql), params)
            conn.commit()
            row = result.mappings().first()
            return _row_to_import(row) if row else None

    return _run_with_table_retry(_update)


def get_data_import(import_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a single import by ID."""
    ensure_import_tables()
    engine = get_engine()

    def _fetch() -> Optional[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(
                text("SELECT * FROM data_imports WHERE id = :import_id"),
                {"import_id": import_id},
            )
            row = result.mappings().first()
            return _row_to_import(row) if row else None

    return _run_with_table_retry(_fetch)


def list_data_imports(org_id: str, *, limit: int = 50, offset: int = 0) -> List[Dict[str, Any]]:
    """List an organization's imports, newest first."""
    ensure_import_tables()
    engine = get_engine()

    query_sql = """
    SELECT *
    FROM data_imports
    WHERE org_id = :org_id
    ORDER BY created_at DESC
    LIMIT :limit OFFSET :offset
    """

    def _fetch() -> List[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(
                text(query_sql),
                {"org_id": org_id, "limit": limit, "offset": offset},
            )
            return [_row_to_import(row) for row in result.mappings().all()]

    return _run_with_table_retry(_fetch)


def delete_data_import(import_id: str) -> bool:
    """Delete an import; its import records go with it. Returns False if it did not exist."""
    ensure_import_tables()
    engine = get_engine()

    def _delete() -> bool:
        with engine.begin() as conn:
            result = conn.execute(
                text("DELETE FROM data_imports WHERE id = :import_id"),
                {"import_id": import_id},
            )
            return result.rowcount > 0

    return _run_with_table_retry(_delete)


def create_import_record(
    *,
    import_id: str,
    row_number: int,
    original_data: Dict[str, Any],
    processed_data: Optional[Dict[str, Any]],
    status: str,
    error_message: Optional[str],
    entity_id: Optional[str],
    entity_type: Optional[str],
) -> Dict[str, Any]:
    """Write the audit record for one source row. Records are never updated afterwards."""
    ensure_import_tables()
    engine = get_engine()

    insert_sql = """
    INSERT INTO import_records (
        id, import_id, row_number, original_data, processed_data,
        status, error_message, entity_id, entity_type
    )
    VALUES (
        :id, :import_id, :row_number, CAST(:original_data AS jsonb),
        CAST(:processed_data AS jsonb), :status, :error_message, :entity_id, :entity_type
    )
    RETURNING *
    """
    params = {
        "id": str(uuid.uuid4()),
        "import_id": import_id,
        "row_number": row_number,
        "original_data": _json_payload(original_data),
        "processed_data": _json_payload(processed_data),
        "status": status,
        "error_message": error_message,
        "entity_id": entity_id,
        "entity_type": entity_type,
    }

    def _insert() -> Dict[str, Any]:
        with engine.connect() as conn:
            result = conn.execute(text(insert_sql), params)
            conn.commit()
            row = result.mappings().first()
            if not row:
                raise RuntimeError("Failed to create import record")
            return _row_to_record(row)

    return _run_with_table_retry(_insert)


def get_import_record(record_id: str) -> Optional[Dict[str, Any]]:
    """Fetch a single import record by ID."""
    ensure_import_tables()
    engine = get_engine()

    def _fetch() -> Optional[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(
                text("SELECT * FROM import_records WHERE id = :record_id"),
                {"record_id": record_id},
            )
            row = result.mappings().first()
            return _row_to_record(row) if row else None

    return _run_with_table_retry(_fetch)


def get_import_records(import_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
    """List an import's records in source row order, optionally filtered by status."""
    ensure_import_tables()
    engine = get_engine()

    where_clause = "WHERE import_id = :import_id"
    params: Dict[str, Any] = {"import_id": import_id}
    if status:
        where_clause += " AND status = :status"
        params["status"] = status

    query_sql = f"""
    SELECT *
    FROM import_records
    {where_clause}
    ORDER BY row_number ASC
    """

    def _fetch() -> List[Dict[str, Any]]:
        with engine.connect() as conn:
            result = conn.execute(text(query_sql), params)
            return [_row_to_record(row) for row in result.mappings().all()]

    return _run_with_table_retry(_fetch)

