# uxlyze/main.py
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response

from uxlyze.core.config import settings
from uxlyze.core.exceptions import (
    InvalidURLError,
    NavigationError,
    PipelineTimeoutError,
    QueueFullError,
    StoreError,
)
from uxlyze.core.log_config import configure_logging
from uxlyze.models import AnalysisRequest, JobRecord, JobStatus, JobSubmission, Report, SubmissionResponse
from uxlyze.services import processing_service, report_service
from uxlyze.services.queue_service import JobQueue, is_valid_url
from uxlyze.services.store_service import get_job_store

# --- Application State ---
class AppState:
    last_report: Optional[Report] = None

app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    job_queue = JobQueue(get_job_store())
    job_queue.start()
    app.state.job_queue = job_queue
    yield
    await job_queue.stop()


# --- FastAPI App Initialization ---
app = FastAPI(
    title="Uxlyze",
    description="An API that audits a website's UI/UX with a headless browser, optional AI visual analysis and PageSpeed scores.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_job_queue(request: Request) -> JobQueue:
    return request.app.state.job_queue


# --- API Endpoints ---
@app.post("/api/analyze", response_model=Report)
async def analyze_website(request: AnalysisRequest):
    """
    Runs the report pipeline for a URL and returns the report.
    The report is kept in memory for subsequent download requests.
    """
    if not is_valid_url(request.url):
        raise HTTPException(status_code=400, detail=f"Invalid URL: {request.url}")
    try:
        report = await report_service.generate_report(request.url, request.config)
    except NavigationError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except PipelineTimeoutError as e:
        raise HTTPException(status_code=504, detail=str(e))

    app_state.last_report = report
    return report


@app.get("/api/download-report")
async def download_report(format: Literal["json", "html"] = "json"):
    """
    Allows the user to download the last generated report as JSON or HTML.
    """
    report = app_state.last_report
    if not report:
        raise HTTPException(status_code=400, detail="No report available to download. Please analyze a website first.")

    if format == "html":
        return HTMLResponse(
            content=processing_service.render_report_html(report),
            headers={"Content-Disposition": f"attachment; filename={processing_service.report_filename(report, '.html')}"},
        )
    return Response(
        content=processing_service.report_to_json(report),
        media_type="application/json",
        headers={"Content-Disposition": f"attachment; filename={processing_service.report_filename(report)}"},
    )


@app.post("/api/jobs", response_model=SubmissionResponse, status_code=202)
async def submit_job(submission: JobSubmission, job_queue: JobQueue = Depends(get_job_queue)):
    """
    Queues a report job. Returns immediately with the assigned job identifier.
    """
    request = AnalysisRequest(url=submission.url, config=submission.config)
    try:
        job = await job_queue.submit(request, submission.project_id)
    except InvalidURLError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except QueueFullError as e:
        raise HTTPException(status_code=429, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Job store unavailable: {e}")

    return SubmissionResponse(job_id=job.job_id, report_id=job.report_id, status=JobStatus.PENDING)


@app.get("/api/jobs/{report_id}", response_model=JobRecord)
async def get_job(report_id: str, job_queue: JobQueue = Depends(get_job_queue)):
    try:
        record = await job_queue.store.get_job(report_id)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=f"Job store unavailable: {e}")
    if record is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return record


# A simple root endpoint to confirm the API is running
@app.get("/")
def read_root():
    return {"message": "Welcome to the Uxlyze API"}
