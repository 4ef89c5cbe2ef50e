"""
Caller identity dependencies

Provides:
- school membership lookup for an auth user
- FastAPI dependencies for authenticated and tenant-scoped routes
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from hyrepro.core.database import get_db
from hyrepro.core.session import AuthUser, get_auth_session, get_session_bridge
from hyrepro.models.school import AdminUserInfo


@dataclass
class CurrentAdmin:
    user: AuthUser
    school_id: str

    @property
    def id(self) -> str:
        return self.user.id


def fetch_school_id(db: Session, user_id: str) -> Optional[str]:
    """school_id from admin_user_info, or None when the user has no school yet"""
    admin = db.query(AdminUserInfo).filter(AdminUserInfo.id == user_id).first()
    return admin.school_id if admin else None


def get_current_user(request: Request) -> AuthUser:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        def route(user: AuthUser = Depends(get_current_user)):
            return user
    """
    session = get_auth_session(request)
    if not session.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized. Please log in.")
    return session.user


def get_current_admin(
    user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> CurrentAdmin:
    """Dependency - Require a school membership and expose its school_id."""
    school_id = fetch_school_id(db, user.id)
    if not school_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User school information not found. Please complete your profile."
        )
    return CurrentAdmin(user=user, school_id=school_id)


def get_bearer_user(request: Request) -> AuthUser:
    """Dependency - Authenticate from the Authorization header only (team invite APIs)"""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")

    user = get_session_bridge(request).get_user(auth_header.replace("Bearer ", ""))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user
