"""
Job, application and job-level settings database models
"""
from enum import Enum
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, UniqueConstraint
from datetime import datetime
from hyrepro.core.database import Base
from hyrepro.models.school import new_id


class JobStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SUSPENDED = "SUSPENDED"
    PAUSED = "PAUSED"
    APPEALED = "APPEALED"


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)
    school_id = Column(String(36), ForeignKey("school_info.id"), index=True)
    title = Column(String(200), nullable=False)
    job_type = Column(String(50))  # Full-time, Part-time, Contract
    location = Column(String(200))
    mode = Column(String(100))
    status = Column(String(30), default=JobStatus.OPEN.value)
    grade_levels = Column(JSON, default=list)
    subjects = Column(JSON, default=list)
    salary_range = Column(String(100))
    openings = Column(Integer, default=1)
    job_description = Column(Text)
    responsibilities = Column(Text)
    requirements = Column(Text)
    assessment_difficulty = Column(JSON)
    number_of_questions = Column(Integer, default=10)
    minimum_passing_marks = Column(Integer, default=0)
    created_by = Column(String(36), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "school_id": self.school_id,
            "title": self.title,
            "job_type": self.job_type,
            "location": self.location,
            "mode": self.mode,
            "status": self.status,
            "grade_levels": self.grade_levels or [],
            "subjects": self.subjects or [],
            "salary_range": self.salary_range,
            "openings": self.openings,
            "job_description": self.job_description,
            "requirements": self.requirements,
            "assessment_difficulty": self.assessment_difficulty,
            "number_of_questions": self.number_of_questions,
            "minimum_passing_marks": self.minimum_passing_marks,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Job {self.title}>"


class ApplicantInfo(Base):
    __tablename__ = "applicant_info"

    id = Column(String(36), primary_key=True, default=new_id)
    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), index=True)
    phone = Column(String(50))
    resume_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), index=True)
    applicant_id = Column(String(36), ForeignKey("applicant_info.id"))
    user_id = Column(String(36), nullable=True)
    status = Column(String(50), default="application_submitted")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class JobInvitation(Base):
    """Candidate invited by email to apply for a job"""
    __tablename__ = "job_invitations"
    __table_args__ = (UniqueConstraint("job_id", "email", name="uq_job_invitation_email"),)

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), index=True)
    school_id = Column(String(36), ForeignKey("school_info.id"))
    email = Column(String(255), nullable=False)
    invited_by = Column(String(36))
    status = Column(String(30), default="pending")
    created_at = Column(DateTime, default=datetime.utcnow)


class JobMeetingSettings(Base):
    __tablename__ = "job_meeting_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), unique=True)
    school_id = Column(String(36), ForeignKey("school_info.id"))
    default_interview_type = Column(String(50), default="in-person")
    default_duration = Column(String(10), default="30")
    candidate_reminder_hours = Column(String(10), default="24")
    interviewer_reminder_hours = Column(String(10), default="1")
    custom_instructions = Column(Text)
    slots = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "job_id": self.job_id,
            "school_id": self.school_id,
            "default_interview_type": self.default_interview_type,
            "default_duration": self.default_duration,
            "candidate_reminder_hours": self.candidate_reminder_hours,
            "interviewer_reminder_hours": self.interviewer_reminder_hours,
            "custom_instructions": self.custom_instructions,
            "slots": self.slots,
        }
