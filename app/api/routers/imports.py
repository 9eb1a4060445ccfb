"""
Candidate and job import endpoints: upload, progress, and per-row results.
"""
import json
import logging
from typing import Dict, Optional

from fastapi import APIRouter, BackgroundTasks, File, Form, Header, HTTPException, UploadFile

from app.api.schemas.imports import (
    DataImport,
    DataImportDetailResponse,
    DataImportListResponse,
    ImportPreviewResponse,
    ImportRecord,
    ImportRecordListResponse,
    ImportType,
    RecordStatus,
    SuggestedMappingsRequest,
    SuggestedMappingsResponse,
)
from app.core.config import settings
from app.domain.imports.exceptions import ImportProcessingError
from app.domain.imports.field_mapping import get_suggested_mappings, get_unmapped_headers
from app.domain.imports.orchestrator import process_import
from app.domain.imports.processors.file_parser import collect_headers, detect_file_type, parse_file
from app.domain.imports.store import (
    create_data_import,
    delete_data_import,
    get_data_import,
    get_import_records,
    list_data_imports,
)

router = APIRouter(prefix="/api/imports", tags=["imports"])

logger = logging.getLogger(__name__)


async def _read_upload(file: UploadFile) -> bytes:
    """Read an upload, enforcing the extension allow-list and size limit."""
    file_name = file.filename or ""
    try:
        detect_file_type(file_name)
    except ImportProcessingError as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    content = await file.read()
    max_bytes = settings.upload_max_file_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size is {settings.upload_max_file_size_mb}MB.",
        )
    return content


def _parse_field_mapping(field_mapping: Optional[str]) -> Dict[str, str]:
    if not field_mapping:
        return {}
    try:
        parsed = json.loads(field_mapping)
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=400, detail=f"field_mapping is not valid JSON: {exc}")
    if not isinstance(parsed, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in parsed.items()
    ):
        raise HTTPException(status_code=400, detail="field_mapping must map column headers to field names")
    return parsed


def _load_import(import_id: str, org_id: str) -> DataImport:
    row = get_data_import(import_id)
    if not row or row["org_id"] != org_id:
        raise HTTPException(status_code=404, detail=f"Import {import_id} not found")
    return DataImport(**row)


@router.post("", response_model=DataImportDetailResponse, status_code=202)
async def create_import(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    import_type: ImportType = Form(...),
    field_mapping: Optional[str] = Form(None),
    x_org_id: str = Header(...),
    x_user_id: str = Header(...),
):
    """
    Upload a spreadsheet and start importing it in the background.

    Parameters:
    - file: CSV, XLS, or XLSX file
    - import_type: 'candidates' or 'jobs'
    - field_mapping: Optional JSON object confirming header -> field mappings

    Returns the pending import; poll GET /api/imports/{id} for progress.
    """
    content = await _read_upload(file)
    overrides = _parse_field_mapping(field_mapping)

    try:
        row = create_data_import(
            org_id=x_org_id,
            user_id=x_user_id,
            import_type=import_type.value,
            file_name=file.filename,
            file_size=len(content),
            field_mapping=overrides,
        )
    except Exception as e:
        logger.error(f"Failed to create import for '{file.filename}': {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create import: {str(e)}")

    data_import = DataImport(**row)
    background_tasks.add_task(process_import, data_import, content, file.filename)
    logger.info(f"Queued import {data_import.id} for '{file.filename}' ({len(content)} bytes)")

    return DataImportDetailResponse(success=True, data_import=data_import)


@router.get("", response_model=DataImportListResponse)
async def list_imports(
    limit: int = 50,
    offset: int = 0,
    x_org_id: str = Header(...),
):
    """List the organization's imports, newest first."""
    try:
        rows = list_data_imports(x_org_id, limit=limit, offset=offset)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to retrieve imports: {str(e)}")

    imports = [DataImport(**row) for row in rows]
    return DataImportListResponse(success=True, imports=imports, total_count=len(imports))


@router.post("/suggested-mappings", response_model=SuggestedMappingsResponse)
async def suggest_mappings(request: SuggestedMappingsRequest):
    """Show which column headers would be recognized automatically."""
    return SuggestedMappingsResponse(
        success=True,
        import_type=request.import_type,
        mappings=get_suggested_mappings(request.headers, request.import_type),
        unmapped_headers=get_unmapped_headers(request.headers, request.import_type),
    )


@router.post("/preview", response_model=ImportPreviewResponse)
async def preview_import(
    file: UploadFile = File(...),
    import_type: ImportType = Form(...),
):
    """Parse an upload without importing it and report how its columns would map."""
    content = await _read_upload(file)

    try:
        records = parse_file(content, file.filename)
    except ImportProcessingError as exc:
        raise HTTPException(status_code=400, detail=exc.message)

    headers = collect_headers(records)
    return ImportPreviewResponse(
        success=True,
        file_name=file.filename,
        import_type=import_type,
        headers=headers,
        suggested_mappings=get_suggested_mappings(headers, import_type),
        unmapped_headers=get_unmapped_headers(headers, import_type),
        total_rows=len(records),
        sample_rows=records[: settings.import_preview_rows],
    )


@router.get("/{import_id}", response_model=DataImportDetailResponse)
async def get_import(import_id: str, x_org_id: str = Header(...)):
    """Get one import with its current status and counters."""
    try:
        data_import = _load_import(import_id, x_org_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to retrieve import: {str(e)}")
    return DataImportDetailResponse(success=True, data_import=data_import)


@router.get("/{import_id}/records", response_model=ImportRecordListResponse)
async def list_import_records(
    import_id: str,
    status: Optional[RecordStatus] = None,
    x_org_id: str = Header(...),
):
    """List an import's per-row results in source order, optionally only successes or failures."""
    try:
        _load_import(import_id, x_org_id)
        rows = get_import_records(import_id, status=status.value if status else None)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to retrieve import records: {str(e)}")

    records = [ImportRecord(**row) for row in rows]
    return ImportRecordListResponse(
        success=True,
        import_id=import_id,
        records=records,
        total_count=len(records),
    )


@router.delete("/{import_id}")
async def remove_import(import_id: str, x_org_id: str = Header(...)):
    """Delete an import and its records. Entities it created are left in place."""
    try:
        _load_import(import_id, x_org_id)
        delete_data_import(import_id)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete import: {str(e)}")
    return {"success": True, "import_id": import_id}
