"""
School and admin profile database models
"""
import uuid
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from datetime import datetime
from hyrepro.core.database import Base


def new_id():
    return str(uuid.uuid4())


class School(Base):
    __tablename__ = "school_info"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    location = Column(String(200))
    board = Column(String(100))
    address = Column(Text)
    school_type = Column(String(100))
    num_students = Column(Integer, nullable=True)
    num_teachers = Column(Integer, nullable=True)
    website = Column(String(500), nullable=True)
    logo_url = Column(String(500), nullable=True)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "board": self.board,
            "address": self.address,
            "school_type": self.school_type,
            "num_students": self.num_students,
            "num_teachers": self.num_teachers,
            "website": self.website,
            "logo_url": self.logo_url,
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<School {self.name}>"


class AdminUserInfo(Base):
    """Admin profile keyed by the auth user id; carries the school membership"""
    __tablename__ = "admin_user_info"

    id = Column(String(36), primary_key=True, default=new_id)  # auth.users id
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), index=True)
    phone_no = Column(String(50))
    avatar = Column(String(500), nullable=True)
    role = Column(String(50), default="admin")
    school_id = Column(String(36), ForeignKey("school_info.id"), nullable=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone_no": self.phone_no,
            "avatar": self.avatar,
            "role": self.role,
            "school_id": self.school_id,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<AdminUserInfo {self.email}>"
