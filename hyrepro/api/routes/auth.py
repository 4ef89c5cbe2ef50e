"""
Auth API Endpoints
Google Calendar OAuth setup, AI job descriptions and the Supabase auth redirects
"""
import logging
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from googleapiclient.errors import HttpError
from sqlalchemy.orm import Session
from supabase import AuthApiError

from hyrepro.api.params import bad_request, client_ip
from hyrepro.core.auth import fetch_school_id, get_current_user
from hyrepro.core.config import settings
from hyrepro.core.database import get_db
from hyrepro.core.redirects import PageState, RedirectHook
from hyrepro.core.session import AuthUser, get_auth_session, get_session_bridge
from hyrepro.schemas.job import JobDescriptionRequest
from hyrepro.services.calendar_service import calendar_service
from hyrepro.services.job_description_service import GenerationError, job_description_writer
from hyrepro.services.procedures import ProcedureError, first_row, procedures

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])

# Mounted without the /api prefix: email links and OAuth providers land here
callback_router = APIRouter(tags=["Auth"])

RATE_LIMIT_MESSAGES = {
    "hourly_limit_exceeded": "You have reached your hourly limit for AI generations. Please try again later.",
    "daily_limit_exceeded": "You have reached your daily limit for AI generations. Please try again tomorrow.",
    "ip_limit_exceeded": "Too many requests from your network. Please try again later.",
}
MAX_TITLE_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 5000


def login_error(code: str, message: str) -> str:
    return f"/login?error={code}&message={quote(message)}"


# ============== GOOGLE CALENDAR OAUTH ==============

@router.get("/auth/google/url")
def google_auth_url():
    """One-time setup: consent URL that yields the calendar refresh token"""
    return {
        "authUrl": calendar_service.authorization_url(),
        "instructions": "Copy the authUrl and open it in your browser to authorize",
    }


@router.get("/auth/google/callback")
def google_auth_callback(code: Optional[str] = None, error: Optional[str] = None):
    if error:
        raise HTTPException(status_code=400, detail={
            "error": "Access denied",
            "message": "You need to grant calendar permissions to use this feature",
        })
    if not code:
        raise bad_request("No authorization code provided")

    try:
        tokens = calendar_service.exchange_code(code)
    except ValueError as e:
        logger.error("Google token exchange failed: %s", e)
        raise HTTPException(status_code=500, detail={
            "error": str(e),
            "details": "Make sure your Google OAuth credentials are correct in the environment",
        })

    return {
        "success": True,
        "message": "Copy the refresh_token below into GOOGLE_REFRESH_TOKEN",
        "refresh_token": tokens.get("refresh_token"),
        "access_token": tokens.get("access_token"),
        "note": "This refresh token never expires unless revoked, so save it securely",
    }


@router.get("/auth/google/test")
def google_auth_test():
    """Check the configured refresh token can read the calendar"""
    if not settings.GOOGLE_REFRESH_TOKEN:
        raise HTTPException(status_code=400, detail={
            "error": "GOOGLE_REFRESH_TOKEN not found in environment variables",
            "instructions": "Please set up your refresh token first",
        })

    try:
        calendars = calendar_service.list_calendars(max_results=1)
    except HttpError as e:
        logger.error("Google Calendar check failed: %s", e)
        raise HTTPException(status_code=500, detail={
            "error": "Failed to connect to Google Calendar",
            "message": str(e),
        })

    return {
        "success": True,
        "message": "Your Google Calendar integration is working!",
        "calendars": calendars,
        "note": "You can now create Google Meet links",
    }


# ============== AI JOB DESCRIPTION ==============

def log_generation(
    db: Session,
    user_id: str,
    operation: str,
    job_title: str,
    ip: Optional[str],
    user_agent: Optional[str],
    error: Optional[str] = None,
):
    try:
        procedures.call(db, "log_ai_generation", {
            "p_user_id": user_id,
            "p_operation_type": operation,
            "p_job_title": job_title,
            "p_ip_address": ip,
            "p_user_agent": user_agent,
            "p_success": error is None,
            "p_error_message": error,
        })
    except ProcedureError as e:
        logger.warning("Could not log AI generation for %s: %s", user_id, e.message)


@router.post("/ai/generate-job-description")
def generate_job_description(
    body: JobDescriptionRequest,
    request: Request,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Draft (or optimize) a job description with Gemini

    Each user is rate limited hourly and daily, and each IP separately; the
    remaining quota is returned with the result.
    """
    ip = client_ip(request)
    try:
        limit = first_row(procedures.call(db, "check_ai_generation_rate_limit", {
            "p_user_id": user.id,
            "p_ip_address": ip,
        })) or {}
    except ProcedureError as e:
        logger.error("Rate limit check failed for %s: %s", user.id, e.message)
        raise HTTPException(status_code=500, detail="Rate limit check failed. Please try again.")

    if not limit.get("allowed"):
        reason = limit.get("reason")
        raise HTTPException(status_code=429, detail={
            "error": "Rate limit exceeded",
            "reason": reason,
            "limit": limit.get("limit"),
            "reset_at": limit.get("reset_at"),
            "message": RATE_LIMIT_MESSAGES.get(reason, "Rate limit exceeded. Please try again later."),
        })

    for field in JobDescriptionRequest.REQUIRED_FIELDS:
        if not getattr(body, field):
            raise bad_request(f"Missing required field: {field}")
    if len(body.job_title) > MAX_TITLE_LENGTH:
        raise bad_request("Job title too long (max 200 characters)")
    if body.existing_job_description and len(body.existing_job_description) > MAX_DESCRIPTION_LENGTH:
        raise bad_request("Job description too long (max 5000 characters)")

    operation = "optimize" if body.existing_job_description else "generate"
    user_agent = request.headers.get("user-agent")

    try:
        result = job_description_writer.generate(
            job_title=body.job_title,
            subjects=body.subjects_to_teach,
            grade=body.grade,
            employment_type=body.employment_type,
            experience=body.experience,
            board=body.board,
            school_type=body.school_type,
            school_name=body.school_name,
            salary_range=body.salary_range,
            existing_job_description=body.existing_job_description,
        )
    except GenerationError as e:
        log_generation(db, user.id, operation, body.job_title, ip, user_agent, error=str(e))
        raise HTTPException(status_code=503, detail="Service temporarily unavailable. Please try again.")

    log_generation(db, user.id, operation, body.job_title, ip, user_agent)
    return {
        **result,
        "quota": {
            "remaining_hour": (limit.get("remaining_hour") or 0) - 1,
            "remaining_day": (limit.get("remaining_day") or 0) - 1,
        },
    }


# ============== PAGE REDIRECTS ==============

@router.get("/auth/redirect-target")
def redirect_target(request: Request, pathname: str = "/", db: Session = Depends(get_db)):
    """Where the page at `pathname` should send the current user, if anywhere"""
    session = get_auth_session(request)
    targets = []
    hook = RedirectHook(navigate=targets.append, fetch_school_id=lambda user_id: fetch_school_id(db, user_id))
    hook.evaluate(PageState(loading=False, user=session.user, pathname=pathname))
    return {"target": targets[0] if targets else None, "school_id": hook.school_id}


def local_path(target: Optional[str], default: str) -> str:
    """Only same-site paths may be redirected to"""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return default
    return target


@callback_router.get("/auth/callback")
def auth_callback(
    request: Request,
    code: Optional[str] = None,
    next: str = "/",
    db: Session = Depends(get_db)
):
    """OAuth / magic link landing: trade the code for session cookies and route the user"""
    if not code:
        return RedirectResponse(
            login_error("missing_code", "Authorization code missing. Please try again."), status_code=307
        )

    try:
        session = get_session_bridge(request).exchange_code(code)
    except AuthApiError as e:
        logger.error("Error exchanging code for session: %s", e.message)
        return RedirectResponse(
            login_error("auth_error", "Authentication failed. Please try again."), status_code=307
        )

    if not session.is_authenticated:
        return RedirectResponse(
            login_error("session_error", "Failed to create session. Please try again."), status_code=307
        )

    # Password reset links skip the confirmation check
    if next != "/auth/reset-password" and not session.user.is_verified:
        return RedirectResponse(
            login_error("email_not_confirmed", "Please check your email and confirm your account."),
            status_code=307,
        )

    if next == "/auth/reset-password":
        target = next
    elif fetch_school_id(db, session.user.id):
        target = "/"
    else:
        target = "/select-organization"
    return session.apply_cookies(RedirectResponse(target, status_code=307))


@callback_router.get("/auth/confirm")
def auth_confirm(
    request: Request,
    token_hash: Optional[str] = None,
    type: Optional[str] = None,
    next: Optional[str] = None
):
    """Email confirmation link: verify the OTP, then continue to `next`"""
    if not token_hash or not type:
        logger.warning("Invalid OTP verification parameters")
        return RedirectResponse("/auth/auth-code-error", status_code=307)

    try:
        session = get_session_bridge(request).verify_otp(token_hash, type)
    except AuthApiError as e:
        logger.error("Error verifying OTP: %s", e.message)
        return RedirectResponse("/auth/auth-code-error", status_code=307)

    target = local_path(next, "/select-organization")
    return session.apply_cookies(RedirectResponse(target, status_code=307))
