"""
Team Invitation API Endpoints
Invite colleagues to a school by email or invite code
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hyrepro.api.params import bad_request, missing_fields
from hyrepro.core.auth import get_bearer_user
from hyrepro.core.database import get_db
from hyrepro.core.session import AuthUser, get_auth_session
from hyrepro.models.invitation import Invitation, InvitationStatus
from hyrepro.models.school import School
from hyrepro.schemas.interview import TokenRequest
from hyrepro.schemas.invitation import (
    CreateInvitationRequest, EmailInvitationDelete, InviteDataDelete, RespondInvitationRequest
)
from hyrepro.services.procedures import ProcedureError, first_row, procedures

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invitations"])

CODE_FIELDS = (
    "code_id", "invite_code", "code_role", "code_expires_at", "code_created_by",
    "code_status", "associated_user_id", "associated_user_name", "associated_user_email",
    "user_id", "user_name", "user_email", "user_role", "user_invited_at", "user_status",
)


# ============== INVITATION LIFECYCLE ==============

@router.post("/create-invitation", status_code=status.HTTP_201_CREATED)
def create_invitation(
    body: CreateInvitationRequest,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    if missing_fields(body, ("name", "email", "role", "schoolId")):
        raise bad_request("Missing required fields")

    try:
        data = procedures.call(db, "create_invitation", {
            "p_name": body.name,
            "p_email": body.email,
            "p_role": body.role,
            "p_school_id": body.schoolId,
            "p_invited_by": user.id,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or "Failed to create invitation")

    result = first_row(data)
    if not result:
        raise HTTPException(status_code=500, detail="No data returned from invitation function")
    details = result.get("details") or {}
    if not result.get("success"):
        raise HTTPException(status_code=400, detail={"error": result.get("error_message"), "details": details})

    logger.info("Invitation %s created for %s", result.get("invitation_id"), body.email)
    return {
        "success": True,
        "invitation": {
            "id": result.get("invitation_id"),
            "school_id": body.schoolId,
            "invited_by": user.id,
            "email": body.email,
            "name": body.name,
            "role": body.role,
            "token": result.get("token"),
            "status": InvitationStatus.PENDING.value,
            "expires_at": details.get("expires_at"),
        },
        "email_sent": result.get("email_sent"),
        "details": details,
    }


@router.post("/get-invitation")
def get_invitation(body: TokenRequest, db: Session = Depends(get_db)):
    """Invitation preview for the accept page; expired links are marked on read"""
    if not body.token:
        raise bad_request("Token is required")

    invitation = db.query(Invitation).filter(Invitation.token == body.token).first()
    if not invitation:
        raise HTTPException(status_code=404, detail="Invitation not found")

    if invitation.expires_at and datetime.utcnow() > invitation.expires_at:
        invitation.status = InvitationStatus.EXPIRED.value
        db.commit()
        raise HTTPException(status_code=400, detail={
            "error": "Invitation has expired",
            "message": "This invitation link has expired. Please request a new one.",
        })
    if invitation.status == InvitationStatus.ACCEPTED.value:
        raise HTTPException(status_code=400, detail={
            "error": "Invitation already accepted",
            "message": "This invitation has already been accepted.",
        })

    school = db.query(School).filter(School.id == invitation.school_id).first()
    return {
        "invitation": {
            "id": invitation.id,
            "school_info": {
                "name": school.name if school else None,
                "location": school.location if school else None,
                "logo_url": school.logo_url if school else None,
            },
            "role": invitation.role,
            "email": invitation.email,
            "name": invitation.name,
            "expires_at": invitation.expires_at.isoformat() if invitation.expires_at else None,
        }
    }


@router.post("/respond-invitation")
def respond_invitation(body: RespondInvitationRequest, request: Request, db: Session = Depends(get_db)):
    """Accept/decline an invitation, or confirm moving to the inviting school"""
    if not body.token or not body.action:
        raise bad_request("Token and action are required")

    session = get_auth_session(request)
    user_id = session.user.id if session.is_authenticated else None

    if body.confirmed:
        procedure, params = "confirm_school_switch", {"p_token": body.token, "p_user_id": user_id}
    else:
        procedure = "process_invitation"
        params = {"p_token": body.token, "p_action": body.action, "p_user_id": user_id}

    try:
        result = first_row(procedures.call(db, procedure, params))
    except ProcedureError:
        raise HTTPException(status_code=500, detail="Database error")

    if isinstance(result, dict) and result.get("success") is False:
        return JSONResponse(status_code=400, content=result)
    return result


# ============== INVITE MANAGEMENT ==============

def fetch_invite_rows(db: Session, procedure: str, school_id: Optional[str], failure: str):
    if not school_id:
        raise bad_request("Missing required schoolId parameter")
    try:
        return procedures.call(db, procedure, {"p_school_id": school_id}) or []
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or failure)


@router.get("/invites/codes")
def get_invite_codes(
    schoolId: Optional[str] = None,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    rows = fetch_invite_rows(db, "get_invite_data", schoolId, "Failed to fetch invite codes")
    codes = [
        {name: row.get(name) for name in CODE_FIELDS}
        for row in rows if row.get("code_id") is not None
    ]
    return {"success": True, "data": codes}


@router.get("/invites/data")
def get_invite_data(
    schoolId: Optional[str] = None,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    rows = fetch_invite_rows(db, "get_invite_data", schoolId, "Failed to fetch invite data")
    return {"success": True, "data": rows}


@router.delete("/invites/data/delete")
def delete_invite_data(
    body: InviteDataDelete,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    """Revoke an invite code or remove a user from the school"""
    if missing_fields(body, ("schoolId", "itemId", "itemType")):
        raise bad_request("Missing required fields: schoolId, itemId, and itemType are required")
    if body.itemType not in ("code", "user"):
        raise bad_request('Invalid itemType. Must be "code" or "user"')

    try:
        procedures.call(db, "delete_invite_data", {
            "p_school_id": body.schoolId,
            "p_item_id": body.itemId,
            "p_item_type": body.itemType,
        })
    except ProcedureError as e:
        raise HTTPException(status_code=500, detail=e.message or "Failed to delete invite data")

    return {
        "success": True,
        "message": "Invite code deleted" if body.itemType == "code" else "User removed",
    }


@router.get("/invites/email")
def get_email_invitations(
    schoolId: Optional[str] = None,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    rows = fetch_invite_rows(
        db, "get_email_invitations_by_school", schoolId, "Failed to fetch email invitations"
    )
    invitations = [
        {
            "id": row.get("user_id"),
            "email": row.get("user_email"),
            "name": row.get("user_name"),
            "role": row.get("user_role"),
            "status": row.get("user_status"),
            "created_at": row.get("user_invited_at"),
            "expires_at": None,
            "invited_by": row.get("code_created_by") or "Unknown",
        }
        for row in rows
        if row.get("user_id") is not None and row.get("code_id") is None
    ]
    return {"success": True, "data": invitations}


@router.delete("/invites/email/delete")
def delete_email_invitation(
    body: EmailInvitationDelete,
    user: AuthUser = Depends(get_bearer_user),
    db: Session = Depends(get_db)
):
    if missing_fields(body, ("schoolId", "invitationId")):
        raise bad_request("Missing required fields: schoolId and invitationId are required")

    try:
        db.query(Invitation).filter(
            Invitation.id == body.invitationId,
            Invitation.school_id == body.schoolId,
        ).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to delete invitation %s: %s", body.invitationId, e)
        raise HTTPException(status_code=500, detail="Failed to delete email invitation")

    return {"success": True, "message": "Email invitation deleted"}
