# uxlyze/services/store_service.py
"""
Job store. Jobs live in the `reports` table, results in `report_results`.
"""
import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional, Protocol

from uxlyze.core.config import settings
from uxlyze.core.exceptions import StoreError
from uxlyze.models import JobRecord, JobStatus, Report, ReportConfig

logger = logging.getLogger(__name__)

JOBS_TABLE = "reports"
RESULTS_TABLE = "report_results"


class JobStore(Protocol):
    async def create_job(self, url: str, config: ReportConfig, project_id: Optional[str] = None) -> JobRecord: ...

    async def get_job(self, job_id: str) -> Optional[JobRecord]: ...

    async def save_result(self, job: JobRecord, report: Report) -> None: ...

    async def update_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> None: ...


def _record_from_row(row: Dict[str, Any]) -> JobRecord:
    return JobRecord(
        id=str(row["id"]),
        project_id=row.get("project_id"),
        web_url=row.get("web_url") or "",
        report_config=ReportConfig.model_validate(row.get("report_config") or {}),
        status=row.get("status") or JobStatus.PENDING,
        error=row.get("error"),
    )


class SupabaseJobStore:
    """Job store backed by Supabase tables."""

    def __init__(self, url: str, key: str):
        if not url or not key:
            raise StoreError("SUPABASE_URL and SUPABASE_KEY must be set in .env")
        from supabase import create_client
        self.client = create_client(url, key)

    async def _execute(self, query) -> List[Dict[str, Any]]:
        # supabase-py is synchronous; keep it off the event loop
        try:
            result = await asyncio.to_thread(query.execute)
        except Exception as exc:
            raise StoreError(str(exc)) from exc
        return result.data or []

    async def create_job(self, url: str, config: ReportConfig, project_id: Optional[str] = None) -> JobRecord:
        row = {
            "project_id": project_id,
            "web_url": url,
            "report_config": config.model_dump(mode="json", by_alias=True),
            "status": JobStatus.PENDING.value,
        }
        rows = await self._execute(self.client.table(JOBS_TABLE).insert(row))
        if not rows:
            raise StoreError("Insert into reports returned no row")
        return _record_from_row(rows[0])

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        rows = await self._execute(
            self.client.table(JOBS_TABLE)
            .select("id, project_id, web_url, report_config, status, error")
            .eq("id", job_id)
            .limit(1)
        )
        return _record_from_row(rows[0]) if rows else None

    async def save_result(self, job: JobRecord, report: Report) -> None:
        await self._execute(
            self.client.table(RESULTS_TABLE).insert({
                "report_id": job.id,
                "project_id": job.project_id,
                "result": report.model_dump(mode="json"),
            })
        )

    async def update_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> None:
        await self._execute(
            self.client.table(JOBS_TABLE)
            .update({"status": status.value, "error": error})
            .eq("id", job_id)
        )


class InMemoryJobStore:
    """Process-local job store, used when Supabase is not configured."""

    def __init__(self):
        self.jobs: Dict[str, JobRecord] = {}
        self.results: Dict[str, Report] = {}

    async def create_job(self, url: str, config: ReportConfig, project_id: Optional[str] = None) -> JobRecord:
        job = JobRecord(id=str(uuid.uuid4()), project_id=project_id, web_url=url, report_config=config)
        self.jobs[job.id] = job
        return job.model_copy()

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        job = self.jobs.get(job_id)
        return job.model_copy() if job else None

    async def save_result(self, job: JobRecord, report: Report) -> None:
        self.results[job.id] = report

    async def update_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> None:
        if job_id not in self.jobs:
            raise StoreError(f"No job with ID {job_id}")
        self.jobs[job_id] = self.jobs[job_id].model_copy(update={"status": status, "error": error})


def get_job_store() -> JobStore:
    if settings.SUPABASE_URL and settings.SUPABASE_KEY:
        return SupabaseJobStore(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    logger.warning("Supabase is not configured, jobs are kept in memory")
    return InMemoryJobStore()
