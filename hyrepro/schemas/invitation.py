"""
Pydantic schemas for school team invitations
"""
from pydantic import BaseModel
from typing import Optional


class CreateInvitationRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
    schoolId: Optional[str] = None


class RespondInvitationRequest(BaseModel):
    token: Optional[str] = None
    action: Optional[str] = None  # accept / decline
    confirmed: Optional[bool] = None


class InviteDataDelete(BaseModel):
    schoolId: Optional[str] = None
    itemId: Optional[str] = None
    itemType: Optional[str] = None  # code / user


class EmailInvitationDelete(BaseModel):
    schoolId: Optional[str] = None
    invitationId: Optional[str] = None
