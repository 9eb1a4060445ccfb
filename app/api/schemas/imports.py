from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# A single spreadsheet cell after parsing. Values are resolved to concrete
# entity field types only during record validation.
CellValue = Union[str, int, float, bool, None]
RawRow = Dict[str, CellValue]


class ImportType(str, Enum):
    CANDIDATES = "candidates"
    JOBS = "jobs"

    @property
    def entity_type(self) -> str:
        """Name of the entity each row of this import becomes."""
        return "candidate" if self is ImportType.CANDIDATES else "job"


class ImportStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RecordStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class DataImport(BaseModel):
    """One user-initiated bulk import of candidates or jobs."""
    id: str
    org_id: str
    user_id: str
    # Kept as a plain string so unknown types reach the orchestrator and fail there.
    import_type: str
    file_name: str
    file_size: int
    status: ImportStatus = ImportStatus.PENDING
    total_records: int = 0
    successful_records: int = 0
    failed_records: int = 0
    field_mapping: Dict[str, str] = Field(default_factory=dict)
    error_summary: Optional[str] = None
    processing_started_at: Optional[datetime] = None
    processing_completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ImportRecord(BaseModel):
    """Audit row for a single source row of an import."""
    id: str
    import_id: str
    row_number: int
    original_data: Dict[str, Any]
    processed_data: Optional[Dict[str, Any]] = None
    status: RecordStatus
    error_message: Optional[str] = None
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    created_at: Optional[datetime] = None


class DataImportListResponse(BaseModel):
    success: bool
    imports: List[DataImport]
    total_count: int


class DataImportDetailResponse(BaseModel):
    success: bool
    data_import: DataImport


class ImportRecordListResponse(BaseModel):
    success: bool
    import_id: str
    records: List[ImportRecord]
    total_count: int


class SuggestedMappingsRequest(BaseModel):
    headers: List[str]
    import_type: ImportType


class SuggestedMappingsResponse(BaseModel):
    success: bool
    import_type: ImportType
    mappings: Dict[str, str]
    unmapped_headers: List[str] = Field(default_factory=list)


class ImportPreviewResponse(BaseModel):
    """What an upload would import, before committing to it."""
    success: bool
    file_name: str
    import_type: ImportType
    headers: List[str]
    suggested_mappings: Dict[str, str]
    unmapped_headers: List[str]
    total_rows: int
    sample_rows: List[Dict[str, Any]]
