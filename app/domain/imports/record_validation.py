"""
Row-level validation for candidate and job imports.

Each validator takes one spreadsheet row plus the tenant id and returns a
ValidationResult: either an insertable entity model or the list of reasons
the row cannot be imported. Hand-written rules produce friendly messages for
the common problems; the entity schema then runs as the final gate and its
field-level messages are appended to the same list.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type, Union

from pydantic import BaseModel, ValidationError

from app.api.schemas.entities import CandidateCreate, JobCreate
from app.api.schemas.imports import ImportType, RawRow
from app.domain.imports.exceptions import UnknownImportTypeError
from app.domain.imports.field_mapping import normalize_fields
from app.domain.imports.validators import (
    optional_text,
    to_bool,
    to_list,
    to_text,
    validate_with_preset,
)

logger = logging.getLogger(__name__)

EntityModel = Union[CandidateCreate, JobCreate]


@dataclass
class ValidationResult:
    is_valid: bool
    data: Optional[EntityModel] = None
    errors: List[str] = field(default_factory=list)

    @property
    def processed_data(self) -> Optional[Dict[str, Any]]:
        """Validated payload keyed by canonical field names, for the audit trail."""
        if self.data is None:
            return None
        return self.data.model_dump(mode="json", by_alias=True)

    @property
    def error_message(self) -> Optional[str]:
        return "; ".join(self.errors) if self.errors else None


def _validate_schema(
    model: Type[BaseModel],
    payload: Dict[str, Any],
) -> Tuple[Optional[BaseModel], List[str]]:
    try:
        return model.model_validate(payload), []
    except ValidationError as exc:
        messages = []
        for error in exc.errors():
            path = ".".join(str(part) for part in error["loc"])
            messages.append(f"{path}: {error['msg']}" if path else error["msg"])
        return None, messages


def _finish(entity: Optional[BaseModel], errors: List[str]) -> ValidationResult:
    if errors or entity is None:
        return ValidationResult(is_valid=False, data=None, errors=errors)
    return ValidationResult(is_valid=True, data=entity, errors=[])


def _choice(value: Any, default: str, separator: str) -> str:
    """Lower-case an enum-like cell ("Full Time" -> "full-time") or fall back to the default."""
    text = to_text(value).lower()
    if not text:
        return default
    return separator.join(text.replace("_", " ").replace("-", " ").split())


def validate_candidate_record(
    record: RawRow,
    org_id: str,
    overrides: Optional[Mapping[str, str]] = None,
) -> ValidationResult:
    """Validate one candidate row (raw or already normalized)."""
    errors: List[str] = []

    try:
        normalized = normalize_fields(record, ImportType.CANDIDATES, overrides)

        first_name = to_text(normalized.get("firstName"))
        last_name = to_text(normalized.get("lastName"))
        email = to_text(normalized.get("email"))

        if not first_name and not last_name:
            errors.append("Either first name or last name is required")

        if not email:
            errors.append("Email is required")
        else:
            email_ok, _ = validate_with_preset(email, "email")
            if not email_ok:
                errors.append("Invalid email format")

        payload = {
            "orgId": org_id,
            "firstName": first_name,
            "lastName": last_name,
            "email": email or None,
            "phone": optional_text(normalized.get("phone")),
            "location": optional_text(normalized.get("location")),
            "skills": to_list(normalized.get("skills")),
            "experienceLevel": optional_text(normalized.get("experienceLevel")),
            "salaryExpectation": optional_text(normalized.get("salaryExpectation")),
            "availability": optional_text(normalized.get("availability")),
            "source": optional_text(normalized.get("source")) or "import",
            "notes": optional_text(normalized.get("notes")),
            "resumeUrl": None,
            "linkedinUrl": None,
            "githubUrl": None,
            "portfolioUrl": None,
        }

        candidate, schema_errors = _validate_schema(CandidateCreate, payload)
        errors.extend(schema_errors)
        return _finish(candidate, errors)

    except Exception as exc:
        logger.error(f"Unexpected error validating candidate row: {exc}")
        errors.append(f"Validation error: {exc}")
        return ValidationResult(is_valid=False, data=None, errors=errors)


def validate_job_record(
    record: RawRow,
    org_id: str,
    overrides: Optional[Mapping[str, str]] = None,
) -> ValidationResult:
    """Validate one job posting row (raw or already normalized)."""
    errors: List[str] = []

    try:
        normalized = normalize_fields(record, ImportType.JOBS, overrides)

        title = to_text(normalized.get("title"))
        description = to_text(normalized.get("description"))

        if not title:
            errors.append("Job title is required")

        if not description:
            errors.append("Job description is required")

        payload = {
            "orgId": org_id,
            "title": title or None,
            "description": description or None,
            "location": optional_text(normalized.get("location")),
            "salaryRange": optional_text(normalized.get("salaryRange")),
            "employmentType": _choice(normalized.get("employmentType"), "full-time", "-"),
            "experienceLevel": optional_text(normalized.get("experienceLevel")),
            "requirements": to_list(normalized.get("requirements")),
            "isRemote": to_bool(normalized.get("isRemote")),
            "status": _choice(normalized.get("status"), "draft", "_"),
            "priority": _choice(normalized.get("priority"), "medium", "_"),
        }

        job, schema_errors = _validate_schema(JobCreate, payload)
        errors.extend(schema_errors)
        return _finish(job, errors)

    except Exception as exc:
        logger.error(f"Unexpected error validating job row: {exc}")
        errors.append(f"Validation error: {exc}")
        return ValidationResult(is_valid=False, data=None, errors=errors)


def validate_record(
    import_type: Union[ImportType, str],
    record: RawRow,
    org_id: str,
    overrides: Optional[Mapping[str, str]] = None,
) -> ValidationResult:
    """Dispatch to the validator for the import type."""
    try:
        resolved = ImportType(import_type)
    except ValueError:
        raise UnknownImportTypeError(str(import_type)) from None

    if resolved is ImportType.CANDIDATES:
        return validate_candidate_record(record, org_id, overrides)
    return validate_job_record(record, org_id, overrides)
