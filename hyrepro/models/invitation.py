"""
School membership invitation model
"""
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey
from datetime import datetime
from hyrepro.core.database import Base
from hyrepro.models.school import new_id


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class Invitation(Base):
    __tablename__ = "invitations"

    id = Column(String(36), primary_key=True, default=new_id)
    school_id = Column(String(36), ForeignKey("school_info.id"), index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(200))
    role = Column(String(50))
    token = Column(String(128), unique=True, index=True)
    status = Column(String(30), default=InvitationStatus.PENDING.value)
    user_id = Column(String(36), nullable=True)
    code_id = Column(String(36), nullable=True)
    invited_by = Column(String(36), nullable=True)
    expires_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
