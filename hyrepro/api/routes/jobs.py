"""
Job Post API Endpoints
Admin dashboard uses these to create, list and configure job posts
"""
import logging
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import String, cast, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from hyrepro.api.params import bad_request, clamp_window, extract_count, missing_fields, row_dict
from hyrepro.core.auth import CurrentAdmin, get_current_admin
from hyrepro.core.database import get_db
from hyrepro.models.job import Job, JobInvitation, JobMeetingSettings, JobStatus
from hyrepro.schemas.job import JobCreate, JobInterviewSettingsRequest, JobInvitationRequest, JobUpdate
from hyrepro.services.procedures import ProcedureError, first_row, procedures

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])

JOB_STATUSES = ["ALL"] + [s.value for s in JobStatus]
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
NON_NUMERIC = re.compile(r"[^\d.]")


def format_amount(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def parse_salary(raw) -> Optional[float]:
    """Strips currency symbols and separators; blank or zero means not given"""
    if raw is None or raw == "" or raw == 0:
        return None
    cleaned = NON_NUMERIC.sub("", str(raw))
    if not cleaned:
        return 0.0
    try:
        return float(cleaned)
    except ValueError:
        raise bad_request("salaryMin/salaryMax must be numbers")


def salary_range(salary_min: Optional[float], salary_max: Optional[float]) -> str:
    if salary_min is not None and salary_max is not None:
        return f"₹{format_amount(salary_min)} - ₹{format_amount(salary_max)}"
    if salary_min is not None:
        return f"₹{format_amount(salary_min)}+"
    if salary_max is not None:
        return f"Up to ₹{format_amount(salary_max)}"
    return ""


def assessment_config(job: JobCreate) -> dict:
    """Assessment settings stored on the job; subject test fields only when the test is on"""
    questions = [q.model_dump() for q in job.interviewQuestions] if job.interviewQuestions is not None else None
    config = {
        "subjectScreening": job.includeSubjectTest or False,
        "includeVideoAssessment": bool(job.demoVideoDuration),
        "includeInterview": job.includeInterview or False,
        "includeSubjectTest": job.includeSubjectTest,
        "subjectTestDuration": job.subjectTestDuration,
        "demoVideoDuration": job.demoVideoDuration,
        "interviewFormat": job.interviewFormat,
        "interviewDuration": job.interviewDuration,
        "interviewQuestions": questions,
    }
    if job.includeSubjectTest:
        config.update({
            "assessmentDifficulty": job.assessmentDifficulty,
            "numberOfQuestions": job.numberOfQuestions,
            "minimumPassingMarks": job.minimumPassingMarks,
        })
    return {k: v for k, v in config.items() if v is not None}


# ============== JOB POSTS ==============

@router.get("/jobs")
def list_jobs(
    status_filter: str = Query("ALL", alias="status"),
    search: str = "",
    startIndex: Optional[str] = None,
    endIndex: Optional[str] = None,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Job posts of the caller's school with per-job analytics"""
    start, end = clamp_window(startIndex, endIndex)

    job_status = (status_filter or "ALL").upper()
    if job_status not in JOB_STATUSES:
        raise bad_request(f"Invalid status. Valid values are: {', '.join(JOB_STATUSES)}")

    try:
        data = procedures.call(db, "get_jobs_with_analytics", {
            "p_school_id": admin.school_id,
            "p_start_index": start,
            "p_end_index": end,
            "p_status": job_status,
            "p_search": search,
        })
    except ProcedureError:
        raise HTTPException(status_code=500, detail="Failed to fetch jobs")

    return {"jobs": data or [], "message": "Jobs fetched successfully"}


@router.post("/create-job", status_code=status.HTTP_201_CREATED)
def create_job(
    job_data: JobCreate,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    if missing_fields(job_data, ("jobTitle", "subjects", "gradeLevel", "employmentType")):
        raise bad_request("Missing required fields: jobTitle, subjects, gradeLevel, employmentType")

    salary_min = parse_salary(job_data.salaryMin)
    salary_max = parse_salary(job_data.salaryMax)

    if job_data.demoVideoDuration is not None and not 0 <= job_data.demoVideoDuration <= 10:
        raise bad_request("demoVideoDuration must be between 0 and 10 minutes")
    if job_data.numberOfQuestions is not None and not 0 <= job_data.numberOfQuestions <= 30:
        raise bad_request("numberOfQuestions must be between 0 and 30")
    if salary_min is not None and salary_max is not None and salary_min > salary_max:
        raise bad_request("salaryMin cannot exceed salaryMax")

    job = Job(
        school_id=admin.school_id,
        title=job_data.jobTitle,
        job_type=job_data.employmentType,
        location=job_data.location,
        mode=job_data.experience,
        grade_levels=job_data.gradeLevel,
        subjects=job_data.subjects,
        salary_range=salary_range(salary_min, salary_max),
        openings=job_data.numberOfOpenings or 1,
        job_description=job_data.jobDescription,
        responsibilities="",
        requirements="\n".join(job_data.requirements or []),
        assessment_difficulty=assessment_config(job_data),
        number_of_questions=job_data.numberOfQuestions if job_data.includeSubjectTest else 10,
        minimum_passing_marks=job_data.minimumPassingMarks if job_data.includeSubjectTest else 0,
        created_by=admin.id,
    )
    try:
        db.add(job)
        db.commit()
        db.refresh(job)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to create job: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create job")

    logger.info("Created job %s for school %s", job.id, admin.school_id)
    return {"data": {"id": job.id}, "message": "Job created successfully"}


@router.put("/update-job")
def update_job(
    job_update: JobUpdate,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Update whitelisted columns of a job owned by the caller's school"""
    if not job_update.jobId:
        raise bad_request("Job ID is required")

    job = db.query(Job).filter(Job.id == job_update.jobId, Job.school_id == admin.school_id).first()
    if not job:
        raise HTTPException(
            status_code=404,
            detail="Job not found or you do not have permission to update it"
        )

    for field, value in job_update.changes().items():
        setattr(job, field, value)
    job.updated_at = datetime.utcnow()

    try:
        db.commit()
        db.refresh(job)
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Failed to update job: {e}")

    return {"job": job.to_dict(), "message": "Job updated successfully"}


@router.get("/school-jobs")
def get_school_jobs(
    limit: Optional[int] = None,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    try:
        data = procedures.call(db, "get_school_jobs_data", {"p_school_id": admin.school_id})
    except ProcedureError:
        raise HTTPException(status_code=500, detail="Failed to fetch school jobs data")

    data = data or []
    if limit and isinstance(data, list):
        data = data[:limit]
    return data


@router.get("/get-job-count")
def get_job_count(
    status_filter: str = Query("ALL", alias="status"),
    search: str = "",
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    job_status = status_filter or "ALL"
    if job_status != "ALL" and job_status.upper() not in JOB_STATUSES:
        valid = [s for s in JOB_STATUSES if s != "ALL"]
        raise bad_request(f"Invalid status. Valid values are: {', '.join(valid)}")

    query = db.query(func.count(Job.id)).filter(Job.school_id == admin.school_id)
    if job_status != "ALL":
        query = query.filter(Job.status == job_status)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Job.title.ilike(pattern), cast(Job.grade_levels, String).ilike(pattern)))

    return {"count": query.scalar() or 0, "message": "Job count fetched successfully"}


@router.get("/get-total-job-count")
def get_total_job_count(
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    try:
        data = procedures.call(db, "get_jobs_count", {
            "p_school_id": admin.school_id,
            "p_status": "ALL",
            "p_search": None,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch job count: {e.message}")

    return {"totalJobs": extract_count(data), "message": "Job count fetched successfully"}


@router.get("/jobs/{job_id}/assessment-config")
def get_assessment_config(job_id: str, db: Session = Depends(get_db)):
    try:
        data = procedures.call(db, "get_job_assessment_config", {"p_job_id": job_id})
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or "Failed to fetch job assessment config")
    if not data:
        raise HTTPException(status_code=404, detail="Job assessment config not found")
    return data


@router.get("/jobs/{job_id}/job-with-analytics")
def get_job_with_analytics(job_id: str, db: Session = Depends(get_db)):
    try:
        data = procedures.call(db, "get_job_with_analytics", {"p_job_id": job_id})
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or "Failed to fetch job details")
    job = first_row(data)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job


# ============== INTERVIEW SETTINGS ==============

@router.post("/job-interview-settings", status_code=status.HTTP_201_CREATED)
def save_job_interview_settings(
    settings_data: JobInterviewSettingsRequest,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    if missing_fields(settings_data, ("job_id", "school_id")):
        raise bad_request("Missing required fields: job_id, school_id")

    job = db.query(Job).filter(
        Job.id == settings_data.job_id, Job.school_id == admin.school_id
    ).first()
    if not job:
        raise HTTPException(status_code=404, detail="Job not found or does not belong to your school")

    meeting = db.query(JobMeetingSettings).filter(JobMeetingSettings.job_id == settings_data.job_id).first()
    if not meeting:
        meeting = JobMeetingSettings(job_id=settings_data.job_id)
        db.add(meeting)

    meeting.school_id = settings_data.school_id
    meeting.default_interview_type = settings_data.default_interview_type or "in-person"
    meeting.default_duration = settings_data.default_duration or "30"
    meeting.candidate_reminder_hours = settings_data.candidate_reminder_hours or "24"
    meeting.interviewer_reminder_hours = settings_data.interviewer_reminder_hours or "1"
    meeting.custom_instructions = (
        settings_data.custom_instructions or "Please arrive 10 minutes early for your interview."
    )
    meeting.slots = settings_data.slots or None

    try:
        db.commit()
        db.refresh(meeting)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to save interview settings for job %s: %s", settings_data.job_id, e)
        raise HTTPException(status_code=500, detail="Failed to save job interview settings")

    return {"data": meeting.to_dict(), "message": "Job interview settings saved successfully"}


@router.get("/job-interview-settings")
def get_job_interview_settings(job_id: Optional[str] = None, db: Session = Depends(get_db)):
    if not job_id:
        raise bad_request("Missing job_id parameter")

    meeting = db.query(JobMeetingSettings).filter(JobMeetingSettings.job_id == job_id).first()
    if not meeting:
        raise HTTPException(status_code=404, detail="No job interview settings found")

    return {"data": meeting.to_dict(), "message": "Job interview settings fetched successfully"}


# ============== CANDIDATE INVITATIONS ==============

@router.post("/job-invitations", status_code=status.HTTP_201_CREATED)
def create_job_invitations(
    request_data: JobInvitationRequest,
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Invite candidates to apply; duplicate (job, email) pairs are a 409"""
    emails = request_data.emails
    if not emails:
        raise bad_request("Emails array is required and cannot be empty")
    if not request_data.jobId:
        raise bad_request("Job ID is required and must be a string")

    invalid = [e for e in emails if not EMAIL_PATTERN.match(e)]
    if invalid:
        raise bad_request(f"Invalid email addresses: {', '.join(invalid)}")

    invitations = [
        JobInvitation(job_id=request_data.jobId, school_id=admin.school_id, email=email, invited_by=admin.id)
        for email in emails
    ]
    try:
        db.add_all(invitations)
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = [
            row.email for row in db.query(JobInvitation.email).filter(
                JobInvitation.job_id == request_data.jobId,
                JobInvitation.email.in_(emails),
            )
        ]
        raise HTTPException(status_code=409, detail={
            "error": "Some invitations already exist",
            "existingEmails": existing,
            "message": f"Invitations already exist for: {', '.join(existing)}",
        })
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to create job invitations: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create job invitations")

    return {
        "data": [row_dict(invitation) for invitation in invitations],
        "message": f"{len(invitations)} invitation(s) created successfully",
    }
