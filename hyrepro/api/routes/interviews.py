"""
Interview API Endpoints
Scheduling reports, Google Meet creation, RSVP sync and panelist evaluations
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from googleapiclient.errors import HttpError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hyrepro.api.params import bad_request, missing_fields, row_dict
from hyrepro.core.auth import CurrentAdmin, get_current_admin
from hyrepro.core.database import get_db
from hyrepro.core.errors import ConfigurationError
from hyrepro.models.interview import EvaluationToken, PanelistEvaluation
from hyrepro.models.job import ApplicantInfo, Job, JobApplication
from hyrepro.models.school import School
from hyrepro.schemas.interview import (
    CreateMeetRequest, EvaluationSubmission, PanelistAvailabilityRequest, TokenRequest
)
from hyrepro.services.calendar_service import MeetingRequest, Panelist, calendar_service
from hyrepro.services.procedures import ProcedureError, first_row, procedures

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Interviews"])

SCHEDULE_VIEWS = ("day", "week", "month")
SCHEDULE_STATUS_FILTERS = ("all", "scheduled", "overdue", "completed")

CONFIRMATION_PAGE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <style>
    body {{ font-family: Arial, sans-serif; display: flex; justify-content: center;
           align-items: center; min-height: 100vh; margin: 0; background: #f3f4f6; }}
    .card {{ background: white; padding: 40px; border-radius: 12px;
            box-shadow: 0 4px 6px rgba(0,0,0,0.1); text-align: center; max-width: 500px; }}
    .success {{ color: #10B981; font-size: 48px; }}
    h1 {{ color: #1F2937; margin: 20px 0; }}
    p {{ color: #6B7280; line-height: 1.6; }}
  </style>
</head>
<body>
  <div class="card">
    <div class="success">&#10003;</div>
    <h1>Thank You!</h1>
    <p>Interview status has been updated to: <strong>{label}</strong></p>
    <p>You can close this window now.</p>
  </div>
</body>
</html>
"""


# ============== SCHEDULING ==============

@router.post("/check-panelist-availability")
def check_panelist_availability(body: PanelistAvailabilityRequest, db: Session = Depends(get_db)):
    if missing_fields(body, ("panelistEmail", "interviewDate", "startTime", "endTime")):
        raise bad_request("Missing required fields: panelistEmail, interviewDate, startTime, endTime")
    try:
        return procedures.call(db, "check_panelist_availability", {
            "p_panelist_email": body.panelistEmail,
            "p_interview_date": body.interviewDate,
            "p_start_time": body.startTime,
            "p_end_time": body.endTime,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message)


@router.get("/interview-schedule")
def get_interview_schedule(
    p_school_id: Optional[str] = None,
    p_view: Optional[str] = None,
    p_current_date: Optional[str] = None,
    p_status_filter: str = "all",
    p_user_id: Optional[str] = None,
    p_job_id: Optional[str] = None,
    p_jobs_assigned_to_me: Optional[str] = None,
    p_panelist: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Calendar report of interviews for a day, week or month"""
    if not p_school_id:
        raise bad_request("p_school_id is required")
    if not p_view:
        raise bad_request('p_view is required (must be "day", "week", or "month")')
    if not p_current_date:
        raise bad_request("p_current_date is required (format: YYYY-MM-DD)")
    if p_view not in SCHEDULE_VIEWS:
        raise bad_request('p_view must be one of "day", "week", or "month"')
    if p_status_filter not in SCHEDULE_STATUS_FILTERS:
        raise bad_request('p_status_filter must be one of "all", "scheduled", "overdue", or "completed"')

    try:
        return procedures.call(db, "get_interview_schedule_report", {
            "p_school_id": p_school_id,
            "p_view": p_view,
            "p_current_date": p_current_date,
            "p_status_filter": p_status_filter,
            "p_user_id": p_user_id or None,
            "p_job_id": p_job_id or None,
            "p_jobs_assigned_to_me": p_jobs_assigned_to_me == "true",
            "p_panelist": True if p_panelist == "true" else None,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch interview schedule: {e.message}")


@router.get("/interview-rubrics")
def get_interview_rubrics(
    admin: CurrentAdmin = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    try:
        data = procedures.call(db, "get_interview_rubrics", {"p_school_id": admin.school_id})
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=f"Failed to fetch interview rubrics: {e.message}")
    return {"rubrics": data or [], "message": "Interview rubrics fetched successfully"}


@router.get("/interview/confirm", response_class=HTMLResponse)
def confirm_interview(
    id: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Link target in interview reminder emails; renders a plain confirmation page"""
    if not id or not status:
        raise bad_request("Missing parameters")

    try:
        result = procedures.call(db, "update_interview_confirmation_status", {
            "p_interview_id": id,
            "p_status": status,
        })
    except ProcedureError:
        raise HTTPException(status_code=500, detail="Failed to update interview status")

    result = first_row(result) or {}
    if not result.get("success"):
        raise HTTPException(status_code=500, detail=result.get("error") or "Failed to update interview status")

    label = "Completed" if status == "completed" else "Not Completed"
    return HTMLResponse(CONFIRMATION_PAGE.format(label=label))


# ============== GOOGLE CALENDAR ==============

@router.post("/calendar/create-meet")
def create_meet(body: CreateMeetRequest, db: Session = Depends(get_db)):
    """Create a Google Calendar event with a Meet link and track its attendees"""
    if missing_fields(body, ("candidateEmail", "startDateTime", "endDateTime")):
        raise bad_request("Missing required fields: candidateEmail, startDateTime, endDateTime")

    meeting = MeetingRequest(
        candidate_id=body.candidateId,
        candidate_name=body.candidateName or body.candidateEmail,
        candidate_email=body.candidateEmail,
        position=body.position or "",
        start=body.startDateTime,
        end=body.endDateTime,
        panelists=[Panelist(email=p.email, name=p.name, role=p.role) for p in body.panelists],
        summary=body.summary,
        description=body.description,
        time_zone=body.timeZone or "UTC",
    )
    try:
        result = calendar_service.create_meeting(db, meeting)
    except ConfigurationError:
        raise
    except (HttpError, SQLAlchemyError) as e:
        db.rollback()
        logger.error("Failed to create meeting for %s: %s", body.candidateEmail, e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    return {"success": True, **result}


@router.get("/calendar/sync-responses")
def sync_responses(scheduleId: Optional[str] = None, db: Session = Depends(get_db)):
    """Pull attendee RSVPs from Google Calendar for one or all scheduled interviews"""
    if scheduleId:
        try:
            report = calendar_service.sync_schedule(db, scheduleId)
        except LookupError as e:
            return JSONResponse(status_code=404, content={"success": False, "error": str(e)})
        if report.failed:
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": report.errors[0].error, **report.to_dict()},
            )
        return {"success": True, **report.to_dict()}

    report = calendar_service.sync_all(db)
    return {"success": report.failed == 0, **report.to_dict()}


@router.post("/calendar/webhook")
def calendar_webhook(request: Request, db: Session = Depends(get_db)):
    """Google push notification; any change triggers a full RSVP sync"""
    resource_state = request.headers.get("x-goog-resource-state")
    channel_id = request.headers.get("x-goog-channel-id")
    logger.info("Calendar notification on channel %s: %s", channel_id, resource_state)

    if resource_state in ("exists", "updated"):
        try:
            calendar_service.sync_all(db)
        except (ConfigurationError, SQLAlchemyError) as e:
            logger.error("Webhook sync failed: %s", e)
            return Response(status_code=500)
    return Response(status_code=200)


# ============== PANELIST EVALUATION ==============

def load_token(db: Session, token: Optional[str]) -> EvaluationToken:
    if not token:
        raise bad_request("Token is required")
    record = db.query(EvaluationToken).filter(EvaluationToken.token == token).first()
    if not record:
        raise HTTPException(status_code=404, detail={"error": "Invalid token"})
    return record


def require_live_token(record: EvaluationToken) -> EvaluationToken:
    """Evaluation links are single use and time limited"""
    if record.expires_at and datetime.utcnow() > record.expires_at:
        raise HTTPException(status_code=410, detail="Token has expired")
    if record.used:
        raise HTTPException(status_code=410, detail="Token has already been used")
    return record


@router.post("/validate-token")
def validate_token(body: TokenRequest, db: Session = Depends(get_db)):
    """Check a panelist's evaluation link and return what the evaluation form needs"""
    record = require_live_token(load_token(db, body.token))

    application = db.query(JobApplication).filter(JobApplication.id == record.job_application_id).first()
    if not application:
        raise HTTPException(status_code=500, detail="Failed to fetch application details")

    applicant = db.query(ApplicantInfo).filter(ApplicantInfo.id == application.applicant_id).first()
    job = db.query(Job).filter(Job.id == application.job_id).first()
    if not job:
        raise HTTPException(status_code=500, detail="Failed to fetch job details")

    school_id = record.school_id or job.school_id
    rubric = None
    school = None
    if school_id:
        try:
            rubric = procedures.call(db, "get_interview_rubrics", {"p_school_id": school_id})
        except ProcedureError as e:
            logger.warning("Rubrics unavailable for school %s: %s", school_id, e.message)
        school_row = db.query(School).filter(School.id == school_id).first()
        if school_row:
            school = {"id": school_row.id, "name": school_row.name, "logo_url": school_row.logo_url}

    return {
        "valid": True,
        "token": record.to_dict(),
        "application": {
            "id": application.id,
            "job_id": application.job_id,
            "applicant_id": application.applicant_id,
            "user_id": application.user_id,
            "applicant_info": row_dict(applicant),
            "jobs": {
                "id": job.id,
                "title": job.title,
                "job_description": job.job_description,
                "school_id": job.school_id,
            },
        },
        "rubric": rubric,
        "school": school,
        "panelist_email": record.panelist_email,
    }


@router.put("/validate-token")
def submit_evaluation(body: EvaluationSubmission, db: Session = Depends(get_db)):
    """Record a panelist's scores and burn the token"""
    record = require_live_token(load_token(db, body.token))
    evaluation = body.evaluation_data
    if evaluation is None:
        raise bad_request("Missing required fields: evaluation_data")

    scores = evaluation.scores or {}
    overall = sum(scores.values()) / len(scores) if scores else None

    try:
        record.used = True
        record.used_at = datetime.utcnow()
        db.add(PanelistEvaluation(
            job_application_id=record.job_application_id,
            job_id=evaluation.job_id,
            school_id=evaluation.school_id,
            panelist_email=evaluation.panelist_email,
            scores=scores,
            overall_score=overall,
            comments=evaluation.comments,
            strengths=evaluation.strengths,
            areas_for_improvement=evaluation.areas_for_improvement,
            recommendation=evaluation.recommendation,
            token_id=record.id,
        ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to submit evaluation for token %s: %s", record.id, e)
        raise HTTPException(status_code=500, detail="Failed to submit evaluation")

    return {"success": True, "message": "Evaluation submitted successfully"}
