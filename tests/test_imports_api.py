import json

import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.main import app
from tests.utils.import_files import (
    ORG_ID,
    OTHER_ORG_ID,
    USER_ID,
    candidate_csv,
    csv_bytes,
    xlsx_bytes,
)


client = TestClient(app)

HEADERS = {"X-Org-Id": ORG_ID, "X-User-Id": USER_ID}


def _upload(content, file_name="people.csv", import_type="candidates", field_mapping=None, headers=HEADERS):
    data = {"import_type": import_type}
    if field_mapping is not None:
        data["field_mapping"] = field_mapping
    return client.post(
        "/api/imports",
        files={"file": (file_name, content, "application/octet-stream")},
        data=data,
        headers=headers,
    )


def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_upload_queues_and_processes_import(in_memory_state):
    response = _upload(candidate_csv(2, 1))

    assert response.status_code == 202
    body = response.json()
    assert body["success"] is True
    queued = body["data_import"]
    assert queued["status"] == "pending"
    assert queued["import_type"] == "candidates"
    assert queued["org_id"] == ORG_ID
    assert queued["user_id"] == USER_ID
    assert queued["file_name"] == "people.csv"

    # TestClient runs background tasks before returning
    detail = client.get(f"/api/imports/{queued['id']}", headers=HEADERS)
    assert detail.status_code == 200
    data_import = detail.json()["data_import"]
    assert data_import["status"] == "completed"
    assert data_import["total_records"] == 3
    assert data_import["successful_records"] == 2
    assert data_import["failed_records"] == 1
    assert data_import["error_summary"] == "1 out of 3 records failed to import"


def test_upload_rejects_unsupported_extension(in_memory_state):
    response = _upload(b"first_name\nJane\n", file_name="people.txt")

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Unsupported file format")
    assert in_memory_state["imports"] == {}


def test_upload_rejects_oversized_file(in_memory_state, monkeypatch):
    monkeypatch.setattr(settings, "upload_max_file_size_mb", 0)

    response = _upload(candidate_csv(1, 0))

    assert response.status_code == 413
    assert response.json()["detail"] == "File too large. Maximum size is 0MB."
    assert in_memory_state["imports"] == {}


def test_upload_rejects_unknown_import_type(in_memory_state):
    response = _upload(candidate_csv(1, 0), import_type="both")

    assert response.status_code == 422


def test_upload_requires_org_header(in_memory_state):
    response = _upload(candidate_csv(1, 0), headers={"X-User-Id": USER_ID})

    assert response.status_code == 422


@pytest.mark.parametrize("field_mapping", ["{not json", json.dumps(["email"]), json.dumps({"Correo": 1})])
def test_upload_rejects_bad_field_mapping(in_memory_state, field_mapping):
    response = _upload(candidate_csv(1, 0), field_mapping=field_mapping)

    assert response.status_code == 400


def test_upload_with_field_mapping(in_memory_state):
    content = csv_bytes(["first_name,Correo", "Ana,ana@example.com"])

    response = _upload(content, field_mapping=json.dumps({"Correo": "email"}))

    import_id = response.json()["data_import"]["id"]
    assert response.json()["data_import"]["field_mapping"] == {"Correo": "email"}
    records = client.get(f"/api/imports/{import_id}/records", headers=HEADERS).json()["records"]
    assert records[0]["status"] == "success"
    assert records[0]["processed_data"]["email"] == "ana@example.com"


def test_list_only_returns_own_organization(in_memory_state):
    _upload(candidate_csv(1, 0))
    _upload(candidate_csv(1, 0), headers={"X-Org-Id": OTHER_ORG_ID, "X-User-Id": USER_ID})

    response = client.get("/api/imports", headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["total_count"] == 1
    assert body["imports"][0]["org_id"] == ORG_ID


def test_import_of_another_organization_is_not_found(in_memory_state):
    import_id = _upload(candidate_csv(1, 0)).json()["data_import"]["id"]

    response = client.get(f"/api/imports/{import_id}", headers={"X-Org-Id": OTHER_ORG_ID})

    assert response.status_code == 404


def test_records_can_be_filtered_by_status(in_memory_state):
    import_id = _upload(candidate_csv(2, 2)).json()["data_import"]["id"]

    all_records = client.get(f"/api/imports/{import_id}/records", headers=HEADERS).json()
    failed = client.get(
        f"/api/imports/{import_id}/records", params={"status": "failed"}, headers=HEADERS
    ).json()

    assert all_records["total_count"] == 4
    assert [record["row_number"] for record in all_records["records"]] == [1, 2, 3, 4]
    assert failed["total_count"] == 2
    assert all(record["status"] == "failed" for record in failed["records"])
    assert all("Email is required" in record["error_message"] for record in failed["records"])


def test_records_reject_unknown_status_filter(in_memory_state):
    import_id = _upload(candidate_csv(1, 0)).json()["data_import"]["id"]

    response = client.get(
        f"/api/imports/{import_id}/records", params={"status": "pending"}, headers=HEADERS
    )

    assert response.status_code == 422


def test_delete_import(in_memory_state):
    import_id = _upload(candidate_csv(1, 0)).json()["data_import"]["id"]

    response = client.delete(f"/api/imports/{import_id}", headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"success": True, "import_id": import_id}
    assert client.get(f"/api/imports/{import_id}", headers=HEADERS).status_code == 404
    assert in_memory_state["records"] == []
    # Created entities are not rolled back
    assert len(in_memory_state["candidates"]) == 1


def test_suggested_mappings():
    response = client.post(
        "/api/imports/suggested-mappings",
        json={"headers": ["Email Address", "Phone Number", "Shoe Size"], "import_type": "candidates"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["mappings"] == {"Email Address": "email", "Phone Number": "phone"}
    assert body["unmapped_headers"] == ["Shoe Size"]


def test_preview_reports_mappings_without_importing(in_memory_state):
    content = xlsx_bytes(
        ["Job Title", "Description", "Cost Center"],
        [[f"Role {index}", "Does things", 100 + index] for index in range(8)],
    )

    response = client.post(
        "/api/imports/preview",
        files={"file": ("jobs.xlsx", content, "application/octet-stream")},
        data={"import_type": "jobs"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["headers"] == ["job title", "description", "cost center"]
    assert body["suggested_mappings"] == {"job title": "title", "description": "description"}
    assert body["unmapped_headers"] == ["cost center"]
    assert body["total_rows"] == 8
    assert len(body["sample_rows"]) == settings.import_preview_rows
    assert body["sample_rows"][0] == {"job title": "Role 0", "description": "Does things", "cost center": 100}
    assert in_memory_state["imports"] == {}
    assert in_memory_state["jobs"] == {}


def test_preview_reports_parse_errors(in_memory_state):
    response = client.post(
        "/api/imports/preview",
        files={"file": ("jobs.xlsx", xlsx_bytes(["Title"]), "application/octet-stream")},
        data={"import_type": "jobs"},
    )

    assert response.status_code == 400
    assert "at least a header row and one data row" in response.json()["detail"]
