"""
Pydantic schemas for School, admin profile and settings APIs
"""
from pydantic import BaseModel, ConfigDict
from typing import Any, List, Optional, Union


class SchoolRequest(BaseModel):
    """Create or update the caller's school"""
    name: Optional[str] = None
    location: Optional[str] = None
    board: Optional[str] = None
    address: Optional[str] = None
    school_type: Optional[str] = None
    num_students: Optional[Union[int, str]] = None
    num_teachers: Optional[Union[int, str]] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None


class AdminUserCreate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_no: Optional[str] = None


class AccountUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_no: Optional[str] = None


class InterviewSettingsUpdate(BaseModel):
    """School-wide interview meeting defaults; unknown keys are ignored"""
    model_config = ConfigDict(extra="ignore")

    default_interview_type: Optional[str] = None
    default_duration: Optional[str] = None
    buffer_time: Optional[str] = None
    working_hours_start: Optional[str] = None
    working_hours_end: Optional[str] = None
    candidate_reminder_hours: Optional[str] = None
    interviewer_reminder_hours: Optional[str] = None
    custom_instructions: Optional[str] = None
    working_days: Optional[List[Any]] = None
    breaks: Optional[List[Any]] = None
    slots: Optional[List[Any]] = None


class UsersQuery(BaseModel):
    page: int = 0
    sort: str = "joined_at"
    asc: bool = True
    search: Optional[str] = None
    page_size: int = 20
