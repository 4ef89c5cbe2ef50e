"""
Interview scheduling and evaluation database models
"""
from enum import Enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, JSON, Boolean, Float
from datetime import datetime
from hyrepro.core.database import Base
from hyrepro.models.school import new_id


class ScheduleStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AttendeeResponse(str, Enum):
    NEEDS_ACTION = "needsAction"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    TENTATIVE = "tentative"


class InterviewSchedule(Base):
    __tablename__ = "interview_schedules"

    id = Column(String(36), primary_key=True, default=new_id)
    candidate_id = Column(String(36), index=True)
    candidate_email = Column(String(255))
    candidate_name = Column(String(200))
    position = Column(String(200))
    google_event_id = Column(String(255), index=True)
    google_meet_link = Column(String(500))
    google_calendar_link = Column(String(500))
    start_time = Column(String(64))
    end_time = Column(String(64))
    status = Column(String(30), default=ScheduleStatus.SCHEDULED.value)
    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<InterviewSchedule {self.candidate_email} {self.start_time}>"


class InterviewAttendee(Base):
    __tablename__ = "interview_attendees"

    id = Column(String(36), primary_key=True, default=new_id)
    interview_schedule_id = Column(String(36), ForeignKey("interview_schedules.id"), index=True)
    email = Column(String(255), nullable=False)
    name = Column(String(200))
    role = Column(String(50), default="panelist")
    response_status = Column(String(30), default=AttendeeResponse.NEEDS_ACTION.value)
    responded_at = Column(DateTime, nullable=True)


class InterviewMeetingSettings(Base):
    """School-wide interview defaults (working days, reminders, durations)"""
    __tablename__ = "interview_meeting_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    school_id = Column(String(36), ForeignKey("school_info.id"), unique=True)
    default_interview_type = Column(String(50), default="in-person")
    default_duration = Column(String(10), default="30")
    buffer_time = Column(String(10), default="0")
    working_hours_start = Column(String(10), default="09:00")
    working_hours_end = Column(String(10), default="17:00")
    candidate_reminder_hours = Column(String(10), default="24")
    interviewer_reminder_hours = Column(String(10), default="24")
    custom_instructions = Column(Text, default="")
    working_days = Column(JSON)
    breaks = Column(JSON, default=list)
    slots = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    EDITABLE_FIELDS = (
        "default_interview_type", "default_duration", "buffer_time",
        "working_hours_start", "working_hours_end", "candidate_reminder_hours",
        "interviewer_reminder_hours", "custom_instructions", "working_days",
        "breaks", "slots",
    )

    def to_dict(self):
        data = {"id": self.id, "school_id": self.school_id}
        for field in self.EDITABLE_FIELDS:
            data[field] = getattr(self, field)
        data["created_at"] = self.created_at.isoformat() if self.created_at else None
        data["updated_at"] = self.updated_at.isoformat() if self.updated_at else None
        return data


class EvaluationToken(Base):
    """One-time link a panelist uses to score a candidate"""
    __tablename__ = "evaluation_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(128), unique=True, index=True, nullable=False)
    job_application_id = Column(String(36), ForeignKey("job_applications.id"))
    school_id = Column(String(36), nullable=True)
    panelist_email = Column(String(255))
    expires_at = Column(DateTime, nullable=False)
    used = Column(Boolean, default=False)
    used_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "token": self.token,
            "job_application_id": self.job_application_id,
            "school_id": self.school_id,
            "panelist_email": self.panelist_email,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "used": self.used,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }


class PanelistEvaluation(Base):
    __tablename__ = "panelist_evaluations"

    id = Column(String(36), primary_key=True, default=new_id)
    job_application_id = Column(String(36), ForeignKey("job_applications.id"))
    job_id = Column(String(36))
    school_id = Column(String(36))
    panelist_email = Column(String(255))
    scores = Column(JSON)
    overall_score = Column(Float)
    comments = Column(Text)
    strengths = Column(Text)
    areas_for_improvement = Column(Text)
    recommendation = Column(String(100))
    token_id = Column(String(36), ForeignKey("evaluation_tokens.id"))
    created_at = Column(DateTime, default=datetime.utcnow)
