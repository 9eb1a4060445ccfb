"""
Spreadsheet header normalization for candidate and job imports.

Column headers in uploaded files vary wildly ("First Name", "first_name",
"FIRSTNAME"). Each import type has a static synonym table that resolves the
normalized header to a canonical entity field name. Headers that are not
recognized pass through unchanged so they remain visible in the import
record and can be mapped manually later.
"""
import re
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Union

from app.api.schemas.imports import ImportType, RawRow


_SEPARATOR_RUNS = re.compile(r"[_\s]+")


CANDIDATE_FIELD_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "first_name": "firstName",
    "firstname": "firstName",
    "first name": "firstName",
    "last_name": "lastName",
    "lastname": "lastName",
    "last name": "lastName",
    "email": "email",
    "email_address": "email",
    "email address": "email",
    "phone": "phone",
    "phone_number": "phone",
    "phone number": "phone",
    "mobile": "phone",
    "location": "location",
    "city": "location",
    "address": "location",
    "skills": "skills",
    "skill": "skills",
    "technologies": "skills",
    "experience": "experienceLevel",
    "experience_level": "experienceLevel",
    "experience level": "experienceLevel",
    "years_experience": "experienceLevel",
    "years experience": "experienceLevel",
    "salary": "salaryExpectation",
    "salary_expectation": "salaryExpectation",
    "salary expectation": "salaryExpectation",
    "expected_salary": "salaryExpectation",
    "expected salary": "salaryExpectation",
    "availability": "availability",
    "available": "availability",
    "start_date": "availability",
    "start date": "availability",
    "source": "source",
    "how_did_you_hear": "source",
    "how did you hear": "source",
    "referral": "source",
    "notes": "notes",
    "note": "notes",
    "comments": "notes",
    "comment": "notes",
})

JOB_FIELD_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "title": "title",
    "job_title": "title",
    "job title": "title",
    "position": "title",
    "role": "title",
    "description": "description",
    "job_description": "description",
    "job description": "description",
    "responsibilities": "description",
    "location": "location",
    "city": "location",
    "office": "location",
    "work_location": "location",
    "work location": "location",
    "salary": "salaryRange",
    "salary_range": "salaryRange",
    "salary range": "salaryRange",
    "compensation": "salaryRange",
    "pay": "salaryRange",
    "type": "employmentType",
    "employment_type": "employmentType",
    "employment type": "employmentType",
    "job_type": "employmentType",
    "job type": "employmentType",
    "level": "experienceLevel",
    "experience_level": "experienceLevel",
    "experience level": "experienceLevel",
    "seniority": "experienceLevel",
    "requirements": "requirements",
    "requirement": "requirements",
    "qualifications": "requirements",
    "qualification": "requirements",
    "skills": "requirements",
    "skill": "requirements",
    "remote": "isRemote",
    "remote_work": "isRemote",
    "remote work": "isRemote",
    "work_from_home": "isRemote",
    "work from home": "isRemote",
    "status": "status",
    "job_status": "status",
    "job status": "status",
    "priority": "priority",
    "urgency": "priority",
})

_SYNONYMS_BY_TYPE: Mapping[ImportType, Mapping[str, str]] = MappingProxyType({
    ImportType.CANDIDATES: CANDIDATE_FIELD_SYNONYMS,
    ImportType.JOBS: JOB_FIELD_SYNONYMS,
})


def synonyms_for(import_type: Union[ImportType, str]) -> Mapping[str, str]:
    """Return the synonym table for an import type (raises ValueError if unknown)."""
    return _SYNONYMS_BY_TYPE[ImportType(import_type)]


def normalize_header(header: str) -> str:
    """Lower-case, trim, and collapse whitespace/underscore runs into one underscore."""
    return _SEPARATOR_RUNS.sub("_", header.lower().strip())


def resolve_field(header: str, synonyms: Mapping[str, str]) -> Optional[str]:
    """
    Resolve a raw header to its canonical field name, or None if unrecognized.

    The underscore-collapsed form is tried first, then the lower-cased,
    trimmed header as written (covers table keys containing spaces).
    """
    return synonyms.get(normalize_header(header)) or synonyms.get(header.lower().strip())


def normalize_fields(
    record: RawRow,
    import_type: Union[ImportType, str],
    overrides: Optional[Mapping[str, str]] = None,
) -> RawRow:
    """
    Rename the keys of one parsed row to canonical field names.

    Args:
        record: Row as parsed from the file (raw header -> cell value)
        import_type: Which synonym table to use
        overrides: Optional user-confirmed mapping (raw header -> canonical
            field) that takes precedence over the synonym table

    Returns:
        New row keyed by canonical field names; unrecognized headers are kept as-is.
    """
    synonyms = synonyms_for(import_type)
    overrides = overrides or {}
    normalized: RawRow = {}

    for key, value in record.items():
        target = overrides.get(key) or resolve_field(key, synonyms)
        normalized[target or key] = value

    return normalized


def get_suggested_mappings(
    headers: Iterable[str],
    import_type: Union[ImportType, str],
) -> Dict[str, str]:
    """
    Suggest canonical fields for the given headers without touching any data.

    Only recognized headers appear in the result, keyed by the header exactly
    as supplied.
    """
    synonyms = synonyms_for(import_type)
    suggestions: Dict[str, str] = {}
    for header in headers:
        mapped = resolve_field(header, synonyms)
        if mapped:
            suggestions[header] = mapped
    return suggestions


def get_unmapped_headers(headers: Iterable[str], import_type: Union[ImportType, str]) -> List[str]:
    """Headers that no synonym recognizes, in their original order."""
    synonyms = synonyms_for(import_type)
    return [header for header in headers if not resolve_field(header, synonyms)]
