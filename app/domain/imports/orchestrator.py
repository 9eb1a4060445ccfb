"""
End-to-end execution of a candidate or job import.

`process_import` parses the uploaded file, validates every row, creates the
entities that pass, and leaves one import record per source row so the
outcome of each row can be audited later. Rows are processed strictly in
source order, one at a time, in fixed-size batches; the import's running
counters are persisted after every batch so progress is visible while the
import runs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Mapping, Optional, Tuple, Union

from app.api.schemas.entities import CandidateCreate, JobCreate
from app.api.schemas.imports import (
    DataImport,
    ImportStatus,
    ImportType,
    RawRow,
    RecordStatus,
)
from app.core.config import settings
from app.db.entities import create_candidate, create_job
from app.domain.imports.exceptions import (
    EmptyFileError,
    ImportProcessingError,
    RowPersistenceError,
    UnknownImportTypeError,
)
from app.domain.imports.field_mapping import normalize_fields
from app.domain.imports.processors.file_parser import parse_file
from app.domain.imports.record_validation import validate_record
from app.domain.imports.store import create_import_record, update_data_import

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    success: bool
    message: str


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _resolve_import_type(import_type: str) -> ImportType:
    try:
        return ImportType(import_type)
    except ValueError:
        raise UnknownImportTypeError(import_type) from None


def _create_entity(
    import_type: ImportType,
    entity: Union[CandidateCreate, JobCreate],
    row_number: int,
) -> str:
    """Hand a validated entity to its repository and return the new id."""
    try:
        if import_type is ImportType.CANDIDATES:
            return create_candidate(entity)
        return create_job(entity)
    except Exception as exc:
        raise RowPersistenceError(row_number, str(exc) or exc.__class__.__name__) from exc


def _process_row(
    data_import: DataImport,
    import_type: ImportType,
    row_number: int,
    record: RawRow,
    overrides: Mapping[str, str],
) -> bool:
    """
    Validate and persist one row, then write its import record.

    Returns True when the row produced an entity. Validation and entity
    creation errors are recorded against the row and never escape; a failure
    to write the import record itself propagates and fails the import.
    """
    entity_id: Optional[str] = None
    processed_data = None

    try:
        normalized = normalize_fields(record, import_type, overrides)
        validation = validate_record(import_type, normalized, data_import.org_id)
        error_message = validation.error_message

        if validation.is_valid:
            entity_id = _create_entity(import_type, validation.data, row_number)
            processed_data = validation.processed_data
        else:
            logger.debug(f"Row {row_number} failed validation: {error_message}")

    except Exception as exc:
        error_message = getattr(exc, "message", None) or str(exc) or "Unknown processing error"
        logger.warning(f"Row {row_number} of import {data_import.id} failed: {error_message}")

    succeeded = entity_id is not None
    create_import_record(
        import_id=data_import.id,
        row_number=row_number,
        original_data=record,
        processed_data=processed_data,
        status=(RecordStatus.SUCCESS if succeeded else RecordStatus.FAILED).value,
        error_message=None if succeeded else error_message,
        entity_id=entity_id,
        entity_type=import_type.entity_type,
    )
    return succeeded


def _process_rows(
    data_import: DataImport,
    import_type: ImportType,
    records: List[RawRow],
) -> Tuple[int, int]:
    """Run every row through validation and persistence in batches; returns (successes, failures)."""
    batch_size = max(1, settings.import_batch_size)
    overrides = data_import.field_mapping or {}
    success_count = 0
    failure_count = 0

    for batch_number, start in enumerate(range(0, len(records), batch_size), start=1):
        batch = records[start:start + batch_size]

        for offset, record in enumerate(batch):
            row_number = start + offset + 1
            if _process_row(data_import, import_type, row_number, record, overrides):
                success_count += 1
            else:
                failure_count += 1

        update_data_import(
            data_import.id,
            successful_records=success_count,
            failed_records=failure_count,
        )
        logger.info(
            f"Import {data_import.id}: processed batch {batch_number}, "
            f"Success: {success_count}, Failed: {failure_count}"
        )

    return success_count, failure_count


def _mark_import_failed(import_id: str, error_message: str) -> None:
    """Best-effort terminal update; the caller still gets a structured result if this fails."""
    try:
        update_data_import(
            import_id,
            status=ImportStatus.FAILED.value,
            error_summary=error_message,
            processing_completed_at=_now(),
        )
    except Exception as exc:
        logger.error(f"Unable to mark import {import_id} as failed: {exc}")


def process_import(data_import: DataImport, file_content: bytes, file_name: str) -> ImportResult:
    """
    Run one import from start to finish.

    Args:
        data_import: The pending import being processed
        file_content: Raw bytes of the uploaded CSV/XLS/XLSX file
        file_name: Original file name; its extension selects the parser

    Returns:
        ImportResult with a message suitable for display. Never raises:
        unsupported formats, parse failures, empty files, unknown import
        types, and audit-trail write failures mark the import 'failed' and
        return success=False.
    """
    import_id = data_import.id
    logger.info(f"Starting import {import_id} ({data_import.import_type}) from '{file_name}'")

    try:
        update_data_import(
            import_id,
            status=ImportStatus.PROCESSING.value,
            processing_started_at=_now(),
        )

        import_type = _resolve_import_type(data_import.import_type)

        records = parse_file(file_content, file_name)
        if not records:
            raise EmptyFileError()

        total = len(records)
        logger.info(f"Parsed {total} records from '{file_name}'")
        update_data_import(import_id, total_records=total)

        success_count, failure_count = _process_rows(data_import, import_type, records)

    except ImportProcessingError as exc:
        logger.error(f"Import {import_id} failed: {exc.message}")
        _mark_import_failed(import_id, exc.message)
        return ImportResult(success=False, message=exc.message)
    except Exception as exc:
        logger.exception(f"Import {import_id} failed unexpectedly")
        message = str(exc) or "Import processing failed"
        _mark_import_failed(import_id, message)
        return ImportResult(success=False, message=message)

    # Partial success still completes the import; only an import where no row
    # succeeded is marked failed.
    if success_count == 0 and failure_count > 0:
        final_status = ImportStatus.FAILED
    else:
        final_status = ImportStatus.COMPLETED

    error_summary = (
        f"{failure_count} out of {total} records failed to import" if failure_count > 0 else None
    )

    try:
        update_data_import(
            import_id,
            status=final_status.value,
            successful_records=success_count,
            failed_records=failure_count,
            error_summary=error_summary,
            processing_completed_at=_now(),
        )
    except Exception as exc:
        logger.error(f"Unable to record completion of import {import_id}: {exc}")
        return ImportResult(success=False, message=str(exc) or "Import processing failed")

    logger.info(
        f"Import {import_id} {final_status.value}. "
        f"Success: {success_count}, Failed: {failure_count}"
    )

    return ImportResult(
        success=True,
        message=(
            f"Import completed. {success_count} records imported successfully, "
            f"{failure_count} failed."
        ),
    )
