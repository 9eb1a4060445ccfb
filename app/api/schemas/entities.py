"""
Insert schemas for the entities an import creates.

These are the authoritative shape of a candidate or job row. Record
validation builds a payload keyed by canonical (camelCase) field names and
runs it through these models as the final gate.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


EmploymentType = Literal["full-time", "part-time", "contract", "freelance", "internship"]
JobStatus = Literal["draft", "open", "closed", "on_hold", "filled", "archived"]
JobPriority = Literal["low", "medium", "high", "urgent"]


class _EntityModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class CandidateCreate(_EntityModel):
    org_id: str = Field(min_length=1)
    first_name: str = Field(default="", max_length=255)
    last_name: str = Field(default="", max_length=255)
    email: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=255)
    skills: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = Field(default=None, max_length=100)
    salary_expectation: Optional[str] = Field(default=None, max_length=100)
    availability: Optional[str] = Field(default=None, max_length=100)
    source: str = Field(default="import", max_length=100)
    notes: Optional[str] = None
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None


class JobCreate(_EntityModel):
    org_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    location: Optional[str] = Field(default=None, max_length=255)
    salary_range: Optional[str] = Field(default=None, max_length=100)
    employment_type: EmploymentType = "full-time"
    experience_level: Optional[str] = Field(default=None, max_length=100)
    requirements: List[str] = Field(default_factory=list)
    is_remote: bool = False
    status: JobStatus = "draft"
    priority: JobPriority = "medium"
