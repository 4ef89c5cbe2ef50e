"""
School & Settings API Endpoints
School onboarding, admin profile, settings pages and asset uploads
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from supabase import StorageException

from hyrepro.api.params import bad_request, extract_count, missing_fields, to_int
from hyrepro.core.auth import fetch_school_id, get_current_user
from hyrepro.core.database import get_db
from hyrepro.core.session import AuthUser, get_auth_session, get_session_bridge
from hyrepro.models.interview import InterviewMeetingSettings
from hyrepro.models.school import AdminUserInfo, School
from hyrepro.schemas.school import (
    AccountUpdate, AdminUserCreate, InterviewSettingsUpdate, SchoolRequest, UsersQuery
)
from hyrepro.services.procedures import ProcedureError, procedures
from hyrepro.services.storage_service import storage_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["School"])

SCHOOL_REQUIRED_FIELDS = ("name", "location", "board", "address", "school_type")
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def require_school_id(db: Session, user: AuthUser) -> str:
    school_id = fetch_school_id(db, user.id)
    if not school_id:
        raise HTTPException(status_code=404, detail="No school associated with user")
    return school_id


def school_values(body: SchoolRequest) -> dict:
    return {
        "name": body.name,
        "location": body.location,
        "board": body.board,
        "address": body.address,
        "school_type": body.school_type,
        "num_students": to_int(body.num_students),
        "num_teachers": to_int(body.num_teachers),
        "website": body.website or None,
        "logo_url": body.logo_url or None,
    }


def upsert_admin_profile(db: Session, user: AuthUser, school_id: str) -> AdminUserInfo:
    """Link the auth user to the school, creating the profile row from signup metadata"""
    metadata = user.user_metadata or {}
    admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == user.id).first()
    if not admin:
        admin = AdminUserInfo(id=user.id)
        db.add(admin)
    admin.school_id = school_id
    admin.first_name = metadata.get("name")
    admin.last_name = metadata.get("last_name")
    admin.email = user.email
    admin.phone_no = metadata.get("contact_number")
    admin.avatar = metadata.get("avatar_url")
    admin.role = "admin"
    return admin


def default_interview_settings(school_id: str) -> dict:
    now = datetime.utcnow().isoformat()
    return {
        "id": None,
        "school_id": school_id,
        "default_interview_type": "in-person",
        "default_duration": "30",
        "buffer_time": "0",
        "working_hours_start": "09:00",
        "working_hours_end": "17:00",
        "candidate_reminder_hours": "24",
        "interviewer_reminder_hours": "24",
        "custom_instructions": "",
        "working_days": [
            {
                "day": day,
                "enabled": day not in ("saturday", "sunday"),
                "start_time": "09:00",
                "end_time": "17:00",
                "slot_duration": "30",
            }
            for day in WEEKDAYS
        ],
        "breaks": [],
        "slots": [],
        "created_at": now,
        "updated_at": now,
    }


# ============== SCHOOL ==============

@router.post("/school", status_code=status.HTTP_201_CREATED)
def create_school(
    body: SchoolRequest,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create the caller's school and make them its admin"""
    if missing_fields(body, SCHOOL_REQUIRED_FIELDS):
        raise bad_request("Missing required fields: name, location, board, address, school_type")

    school = School(created_by=user.id, **school_values(body))
    try:
        db.add(school)
        db.commit()
        db.refresh(school)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("School creation failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create school")

    try:
        upsert_admin_profile(db, user, school.id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Admin profile upsert failed for %s, removing school %s: %s", user.id, school.id, e)
        db.query(School).filter(School.id == school.id).delete(synchronize_session=False)
        db.commit()
        raise HTTPException(status_code=500, detail="Failed to create or update user profile")

    logger.info("Created school %s for admin %s", school.id, user.id)
    return {
        "message": "School created and user profile updated successfully",
        "school": school.to_dict(),
    }


@router.put("/school")
def update_school(
    body: SchoolRequest,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if missing_fields(body, SCHOOL_REQUIRED_FIELDS):
        raise bad_request("Missing required fields: name, location, board, address, school_type")

    school_id = fetch_school_id(db, user.id)
    school = db.query(School).filter(School.id == school_id).first() if school_id else None
    if not school:
        raise HTTPException(
            status_code=404,
            detail="User school information not found. Please complete your profile."
        )

    for field, value in school_values(body).items():
        setattr(school, field, value)
    school.updated_at = datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("School update failed for %s: %s", school_id, e)
        raise HTTPException(status_code=500, detail="Failed to update school")

    try:
        upsert_admin_profile(db, user, school.id)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Admin profile upsert failed for %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to update user profile")

    db.refresh(school)
    return {"message": "School updated successfully", "school": school.to_dict()}


# ============== ADMIN PROFILE ==============

@router.post("/admin-user", status_code=status.HTTP_201_CREATED)
def create_admin_user(body: AdminUserCreate, db: Session = Depends(get_db)):
    """Profile row written right after signup"""
    if missing_fields(body, ("first_name", "last_name", "email", "phone_no")):
        raise bad_request("Missing required fields")

    admin = AdminUserInfo(
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        phone_no=body.phone_no,
    )
    try:
        db.add(admin)
        db.commit()
        db.refresh(admin)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to insert admin user info: %s", e)
        raise HTTPException(status_code=500, detail="Failed to insert user info")

    return {"message": "Admin user info created successfully", "data": [admin.to_dict()]}


@router.get("/check-user-info")
def check_user_info(request: Request, db: Session = Depends(get_db)):
    session = get_auth_session(request)
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Not authenticated")

    admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == session.user.id).first()
    return {"data": admin.to_dict() if admin else None}


# ============== SETTINGS ==============

@router.get("/settings/account")
def get_account(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == user.id).first()
    return admin.to_dict() if admin else None


@router.put("/settings/account")
def update_account(
    body: AccountUpdate,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == user.id).first()
    if not admin:
        raise HTTPException(status_code=404, detail="User profile not found")

    admin.first_name = body.first_name
    admin.last_name = body.last_name
    admin.phone_no = body.phone_no
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.get("/settings/school-information")
def get_school_information(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    school_id = require_school_id(db, user)
    school = db.query(School).filter(School.id == school_id).first()
    return school.to_dict() if school else None


@router.put("/settings/school-information")
def update_school_information(
    body: SchoolRequest,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    school_id = require_school_id(db, user)
    school = db.query(School).filter(School.id == school_id).first()
    if not school:
        raise HTTPException(status_code=404, detail="No school associated with user")

    for field, value in school_values(body).items():
        setattr(school, field, value)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.get("/settings/interviews")
def get_interview_settings(user: AuthUser = Depends(get_current_user), db: Session = Depends(get_db)):
    """School interview defaults; a school that never saved any gets the stock week"""
    school_id = require_school_id(db, user)
    settings_row = db.query(InterviewMeetingSettings).filter(
        InterviewMeetingSettings.school_id == school_id
    ).first()
    if not settings_row:
        return default_interview_settings(school_id)
    return settings_row.to_dict()


@router.put("/settings/interviews")
def update_interview_settings(
    body: InterviewSettingsUpdate,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    school_id = require_school_id(db, user)
    settings_row = db.query(InterviewMeetingSettings).filter(
        InterviewMeetingSettings.school_id == school_id
    ).first()
    if not settings_row:
        settings_row = InterviewMeetingSettings(school_id=school_id)
        db.add(settings_row)

    for field, value in body.model_dump(exclude_unset=True).items():
        if field in InterviewMeetingSettings.EDITABLE_FIELDS:
            setattr(settings_row, field, value)
    settings_row.updated_at = datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to save interview settings for school %s: %s", school_id, e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True}


@router.post("/settings/users")
def list_school_users(
    body: UsersQuery,
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Team members of the caller's school, one page at a time"""
    school_id = require_school_id(db, user)
    start = body.page * body.page_size
    end = start + body.page_size - 1

    try:
        users = procedures.call(db, "get_admin_users", {
            "p_asc": body.asc,
            "p_end_index": end,
            "p_school_id": school_id,
            "p_search": body.search,
            "p_sort": body.sort,
            "p_start_index": start,
        }) or []
        total = procedures.call(db, "get_admin_users_count", {
            "p_school_id": school_id,
            "p_search": body.search,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return {
        "users": [{**row, "status": "active", "role": str(row.get("role") or "admin")} for row in users],
        "total": extract_count(total),
    }


# ============== STORAGE ==============

@router.post("/storage/upload")
def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(None),
    bucket: Optional[str] = Form(None),
    fileName: Optional[str] = Form(None),
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Upload a logo or avatar to a whitelisted storage bucket"""
    if not file or not bucket or not fileName:
        raise bad_request("Missing required fields")
    require_school_id(db, user)

    content = file.file.read()
    try:
        stored = storage_service.upload(
            get_session_bridge(request).admin, bucket, fileName, content, file.content_type
        )
    except ValueError as e:
        raise bad_request(str(e))
    except StorageException as e:
        logger.error("Upload to %s failed: %s", bucket, e)
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "publicUrl": stored.public_url, "path": stored.path}
