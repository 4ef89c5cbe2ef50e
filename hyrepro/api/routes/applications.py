"""
Job Application API Endpoints
Paged application lists, counts, activity timeline and resume downloads
"""
import logging
from typing import Optional
from urllib.parse import quote, urlparse

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hyrepro.api.params import MAX_PAGE_SIZE, MAX_START_INDEX, bad_request, clamp_window, extract_count, parse_int
from hyrepro.core.auth import CurrentAdmin, get_current_admin, get_current_user
from hyrepro.core.database import get_db
from hyrepro.core.session import AuthUser
from hyrepro.models.job import ApplicantInfo, JobApplication
from hyrepro.services.procedures import ProcedureError, procedures
from hyrepro.services.storage_service import DownloadError, sanitize_filename, storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Applications"])

APPLICATION_STATUSES = [
    "ALL", "in_progress", "application_submitted", "assessment_in_progress",
    "assessment_in_evaluation", "assessment_evaluated", "assessment_ready",
    "assessment_failed", "demo_creation", "demo_ready", "demo_in_progress",
    "demo_in_evaluation", "demo_evaluated", "demo_failed", "interview_in_progress",
    "interview_ready", "interview_scheduled", "paused", "completed", "suspended",
    "appealed", "withdrawn", "offered", "panelist_review_in_progress",
]
MAX_SEARCH_LENGTH = 100


def count_job_applications(db: Session, job_id: str, search: str) -> Optional[int]:
    """Total applications for the job matching `search`, None when the count fails"""
    query = db.query(func.count(JobApplication.id)).filter(JobApplication.job_id == job_id)
    if search:
        pattern = f"%{search}%"
        query = query.join(ApplicantInfo, ApplicantInfo.id == JobApplication.applicant_id).filter(
            or_(
                ApplicantInfo.first_name.ilike(pattern),
                ApplicantInfo.last_name.ilike(pattern),
                ApplicantInfo.email.ilike(pattern),
            )
        )
    try:
        return query.scalar() or 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Application count unavailable for job %s: %s", job_id, e)
        return None


@router.get("/job-applications")
def get_job_applications(
    jobId: Optional[str] = None,
    startIndex: Optional[str] = None,
    endIndex: Optional[str] = None,
    search: str = "",
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """
    Applications for one job, offset paged

    Start must be within [0, 10000]; the window may not exceed 100 rows.
    """
    if not jobId:
        raise bad_request("Missing required parameter: jobId")

    start = parse_int(startIndex, 0)
    end = parse_int(endIndex, 10)

    if start < 0 or start > MAX_START_INDEX:
        raise bad_request(f"Start index must be between 0 and {MAX_START_INDEX}")
    end = max(start + 1, end)
    if end - start > MAX_PAGE_SIZE:
        raise bad_request(f"Maximum page size is {MAX_PAGE_SIZE} items")
    end = min(end, MAX_START_INDEX)

    if search and len(search) > MAX_SEARCH_LENGTH:
        raise bad_request("Search text too long. Maximum 100 characters allowed.")

    try:
        applications = procedures.call(db, "get_job_applications", {
            "p_job_id": jobId,
            "p_start_index": start,
            "p_end_index": end,
            "p_search": search.strip(),
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch job applications: {e.message}")

    total = count_job_applications(db, jobId, search)
    if total is None:
        return {
            "applications": applications or [],
            "total": 0,
            "message": "Applications fetched successfully (count unavailable)",
        }
    return {
        "applications": applications or [],
        "total": total,
        "message": "Applications fetched successfully",
    }


@router.get("/applications-sorted")
def get_applications_sorted(
    status_filter: str = Query("ALL", alias="status"),
    search: str = "",
    sort: str = "created_at",
    asc: str = "false",
    startIndex: Optional[str] = None,
    endIndex: Optional[str] = None,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """All applications of the caller's school, sorted server side"""
    start, end = clamp_window(startIndex, endIndex)

    try:
        data = procedures.call(db, "get_applications_by_school_sorted", {
            "p_school_id": admin.school_id,
            "p_start_index": start,
            "p_end_index": end,
            "p_search": search.strip() or "ALL",
            "p_status": status_filter or "ALL",
            "p_sort": sort,
            "p_asc": asc.lower() == "true",
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch applications: {e.message}")

    return {"applications": data or [], "message": "Applications fetched successfully"}


@router.get("/get-applications-count")
def get_applications_count(
    status_filter: str = Query("ALL", alias="status"),
    search: str = "",
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    valid = {s.lower() for s in APPLICATION_STATUSES}
    if (status_filter or "ALL").lower() not in valid:
        raise bad_request(f"Invalid status. Valid values are: {', '.join(APPLICATION_STATUSES)}")

    try:
        data = procedures.call(db, "get_applications_count_by_school", {
            "p_school_id": admin.school_id,
            "p_status": status_filter or "ALL",
            "p_search": search or None,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to count applications: {e.message}")

    return {"count": extract_count(data), "message": "Applications count fetched successfully"}


@router.get("/application-activity")
def get_application_activity(
    applicationId: Optional[str] = None,
    startIndex: Optional[str] = "0",
    endIndex: Optional[str] = "9",
    db: Session = Depends(get_db)
):
    if not applicationId:
        raise bad_request("applicationId is required")
    try:
        start = int(startIndex or 0)
        end = int(endIndex or 9)
    except ValueError:
        raise bad_request("Invalid pagination parameters")
    if start < 0 or end < start:
        raise bad_request("Invalid pagination parameters")
    if end - start + 1 > MAX_PAGE_SIZE:
        raise bad_request("Page size too large")

    try:
        data = procedures.call(db, "get_application_activity", {
            "p_application_id": applicationId,
            "p_start_index": start,
            "p_end_index": end,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or "Failed to fetch activity")

    return {"items": data or []}


@router.get("/download-resume")
def download_resume(
    url: Optional[str] = None,
    filename: str = "resume.pdf",
    user: AuthUser = Depends(get_current_user)
):
    """Proxy a resume file so the browser downloads instead of previewing it"""
    if not url:
        raise bad_request("File URL is required")
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise bad_request("Invalid URL format")
    if not storage_service.is_allowed_url(url):
        logger.warning("Refused resume download from %s for user %s", parsed.hostname, user.id)
        raise HTTPException(status_code=403, detail="File host not allowed")

    try:
        content = storage_service.download(url)
    except DownloadError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except httpx.HTTPError as e:
        logger.error("Resume download failed for %s: %s", url, e)
        raise HTTPException(status_code=500, detail="Internal server error during file download")

    safe_name = sanitize_filename(filename or "resume.pdf")
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename=\"{safe_name}\"; filename*=UTF-8''{quote(safe_name)}",
            "Cache-Control": "no-cache, no-store, must-revalidate, private",
            "Pragma": "no-cache",
            "Expires": "0",
            "X-Content-Type-Options": "nosniff",
            "Content-Transfer-Encoding": "binary",
            "X-Download-Options": "noopen",
            "X-Frame-Options": "DENY",
        },
    )
