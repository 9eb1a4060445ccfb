"""
Candidate and job inserts used by the import pipeline.

Only the columns an import can populate are written; the rest of each
entity's lifecycle is owned by other services.
"""
import json
import logging
import threading
import uuid

from sqlalchemy import text

from app.api.schemas.entities import CandidateCreate, JobCreate
from app.db.session import get_engine

logger = logging.getLogger(__name__)

_tables_initialized = False
_tables_init_lock = threading.Lock()


def ensure_entity_tables() -> None:
    """Create the candidates and jobs tables if they don't exist."""
    global _tables_initialized
    if _tables_initialized:
        return

    with _tables_init_lock:
        if _tables_initialized:
            return

        create_sql = """
        CREATE TABLE IF NOT EXISTS candidates (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            org_id UUID NOT NULL,
            first_name VARCHAR(255) NOT NULL DEFAULT '',
            last_name VARCHAR(255) NOT NULL DEFAULT '',
            email VARCHAR(255) NOT NULL,
            phone VARCHAR(50),
            location VARCHAR(255),
            skills TEXT[],
            experience_level VARCHAR(100),
            salary_expectation VARCHAR(100),
            availability VARCHAR(100),
            source VARCHAR(100),
            notes TEXT,
            resume_url TEXT,
            linkedin_url TEXT,
            github_url TEXT,
            portfolio_url TEXT,
            status VARCHAR(20) NOT NULL DEFAULT 'active',
            created_at TIMESTAMP NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP NOT NULL DEFAULT NOW()
        );
        CREATE INDEX IF NOT EXISTS idx_candidates_org_email ON candidates(org_id, email);

        CREATE TABLE IF NOT EXISTS jobs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            org_id UUID NOT NULL,
            title VARCHAR(255) NOT NULL,
            description TEXT,
            location VARCHAR(255),
            salary_range VARCHAR(100),
            employment_type VARCHAR(20) NOT NULL DEFAULT 'full-time',
            experience_level VARCHAR(100),
            requirements JSONB DEFAULT '[]'::jsonb,
            is_remote BOOLEAN NOT NULL DEFAULT FALSE,
            status VARCHAR(20) NOT NULL DEFAULT 'draft',
            priority VARCHAR(20) NOT NULL DEFAULT 'medium',
            created_at TIMESTAMP NOT NULL DEFAULT NOW(),
            updated_at TIMESTAMP NOT NULL DEFAULT NOW()
        );
        CREATE INDEX IF NOT EXISTS idx_jobs_org ON jobs(org_id);
        """

        with get_engine().begin() as conn:
            conn.execute(text(create_sql))
        logger.info("candidates and jobs tables created/verified successfully")
        _tables_initialized = True


def create_candidate(candidate: CandidateCreate) -> str:
    """Insert a candidate and return its generated id."""
    ensure_entity_tables()
    params = candidate.model_dump()
    params["id"] = str(uuid.uuid4())

    insert_sql = """
    INSERT INTO candidates (
        id, org_id, first_name, last_name, email, phone, location, skills,
        experience_level, salary_expectation, availability, source, notes,
        resume_url, linkedin_url, github_url, portfolio_url
    )
    VALUES (
        :id, :org_id, :first_name, :last_name, :email, :phone, :location, :skills,
        :experience_level, :salary_expectation, :availability, :source, :notes,
        :resume_url, :linkedin_url, :github_url, :portfolio_url
    )
    RETURNING id
    """

    with get_engine().begin() as conn:
        return str(conn.execute(text(insert_sql), params).scalar_one())


def create_job(job: JobCreate) -> str:
    """Insert a job posting and return its generated id."""
    ensure_entity_tables()
    params = job.model_dump()
    params["id"] = str(uuid.uuid4())
    params["requirements"] = json.dumps(params["requirements"])

    insert_sql = """
    INSERT INTO jobs (
        id, org_id, title, description, location, salary_range, employment_type,
        experience_level, requirements, is_remote, status, priority
    )
    VALUES (
        :id, :org_id, :title, :description, :location, :salary_range, :employment_type,
        :experience_level, CAST(:requirements AS jsonb), :is_remote, :status, :priority
    )
    RETURNING id
    """

    with get_engine().begin() as conn:
        return str(conn.execute(text(insert_sql), params).scalar_one())
