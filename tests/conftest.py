"""
Pytest configuration and fixtures for the import pipeline tests.

The suite runs against in-memory stand-ins for the import store and the
entity repositories, so no database is needed by default. Export
SKIP_DB_INIT=0 to also bootstrap the real tables before the session.
"""

import os

os.environ.setdefault("SKIP_DB_INIT", "1")

import copy
import uuid
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from app.api.schemas.imports import DataImport
from tests.utils.import_files import ORG_ID, USER_ID


@pytest.fixture(scope="session", autouse=True)
def initialize_test_database():
    """Create the import and entity tables once per session unless SKIP_DB_INIT=1."""
    if os.getenv("SKIP_DB_INIT") == "1":
        yield
        return

    from app.db.entities import ensure_entity_tables
    from app.domain.imports.store import ensure_import_tables

    try:
        ensure_import_tables()
        ensure_entity_tables()
    except OperationalError as exc:
        print(f"  WARNING: Database unavailable, skipping table init: {exc}")

    yield


@pytest.fixture
def in_memory_state(monkeypatch):
    """
    Replace the import store and entity repositories with dict-backed fakes.

    Returns the backing state so tests can inspect what the pipeline wrote.
    Emails listed in state["rejected_emails"] make create_candidate raise,
    mimicking a database constraint violation.
    """
    imports = {}
    records = []
    candidates = {}
    jobs = {}
    updates = []
    rejected_emails = set()

    def create_data_import(*, org_id, user_id, import_type, file_name, file_size, field_mapping=None):
        now = datetime.now()
        row = {
            "id": str(uuid.uuid4()),
            "org_id": org_id,
            "user_id": user_id,
            "import_type": import_type,
            "file_name": file_name,
            "file_size": file_size,
            "status": "pending",
            "total_records": 0,
            "successful_records": 0,
            "failed_records": 0,
            "field_mapping": dict(field_mapping or {}),
            "error_summary": None,
            "processing_started_at": None,
            "processing_completed_at": None,
            "created_at": now,
            "updated_at": now,
        }
        imports[row["id"]] = row
        return copy.deepcopy(row)

    def update_data_import(import_id, **changes):
        updates.append((import_id, dict(changes)))
        row = imports.get(import_id)
        if row is None:
            return None
        row.update(changes)
        row["updated_at"] = datetime.now()
        return copy.deepcopy(row)

    def get_data_import(import_id):
        row = imports.get(import_id)
        return copy.deepcopy(row) if row else None

    def list_data_imports(org_id, *, limit=50, offset=0):
        rows = [row for row in imports.values() if row["org_id"] == org_id]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return [copy.deepcopy(row) for row in rows[offset:offset + limit]]

    def delete_data_import(import_id):
        if imports.pop(import_id, None) is None:
            return False
        records[:] = [record for record in records if record["import_id"] != import_id]
        return True

    def create_import_record(**fields):
        record = dict(fields, id=str(uuid.uuid4()), created_at=datetime.now())
        records.append(record)
        return copy.deepcopy(record)

    def get_import_records(import_id, status=None):
        selected = [
            record for record in records
            if record["import_id"] == import_id and (status is None or record["status"] == status)
        ]
        return [copy.deepcopy(record) for record in sorted(selected, key=lambda r: r["row_number"])]

    def create_candidate(candidate):
        if candidate.email in rejected_emails:
            raise RuntimeError(
                'duplicate key value violates unique constraint "candidates_org_email_key"'
            )
        entity_id = str(uuid.uuid4())
        candidates[entity_id] = candidate
        return entity_id

    def create_job(job):
        entity_id = str(uuid.uuid4())
        jobs[entity_id] = job
        return entity_id

    monkeypatch.setattr("app.domain.imports.orchestrator.update_data_import", update_data_import)
    monkeypatch.setattr("app.domain.imports.orchestrator.create_import_record", create_import_record)
    monkeypatch.setattr("app.domain.imports.orchestrator.create_candidate", create_candidate)
    monkeypatch.setattr("app.domain.imports.orchestrator.create_job", create_job)

    monkeypatch.setattr("app.api.routers.imports.create_data_import", create_data_import)
    monkeypatch.setattr("app.api.routers.imports.get_data_import", get_data_import)
    monkeypatch.setattr("app.api.routers.imports.list_data_imports", list_data_imports)
    monkeypatch.setattr("app.api.routers.imports.delete_data_import", delete_data_import)
    monkeypatch.setattr("app.api.routers.imports.get_import_records", get_import_records)

    return {
        "imports": imports,
        "records": records,
        "candidates": candidates,
        "jobs": jobs,
        "updates": updates,
        "rejected_emails": rejected_emails,
        "create_data_import": create_data_import,
    }


@pytest.fixture
def new_import(in_memory_state):
    """Factory for a pending DataImport registered in the in-memory store."""

    def _new_import(import_type="candidates", file_name="upload.csv", field_mapping=None):
        row = in_memory_state["create_data_import"](
            org_id=ORG_ID,
            user_id=USER_ID,
            import_type=import_type,
            file_name=file_name,
            file_size=0,
            field_mapping=field_mapping,
        )
        return DataImport(**row)

    return _new_import
