"""
Pydantic schemas for Interview API
"""
from pydantic import BaseModel
from typing import Dict, List, Optional


class PanelistAvailabilityRequest(BaseModel):
    panelistEmail: Optional[str] = None
    interviewDate: Optional[str] = None  # YYYY-MM-DD
    startTime: Optional[str] = None  # HH:MM
    endTime: Optional[str] = None  # HH:MM


class PanelistIn(BaseModel):
    email: str
    name: Optional[str] = None
    role: Optional[str] = None


class CreateMeetRequest(BaseModel):
    candidateId: Optional[str] = None
    candidateName: Optional[str] = None
    candidateEmail: Optional[str] = None
    position: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    startDateTime: Optional[str] = None
    endDateTime: Optional[str] = None
    timeZone: Optional[str] = None
    panelists: List[PanelistIn] = []


class TokenRequest(BaseModel):
    token: Optional[str] = None


class EvaluationData(BaseModel):
    scores: Dict[str, float] = {}
    job_id: Optional[str] = None
    school_id: Optional[str] = None
    panelist_email: Optional[str] = None
    comments: Optional[str] = None
    strengths: Optional[str] = None
    areas_for_improvement: Optional[str] = None
    recommendation: Optional[str] = None


class EvaluationSubmission(BaseModel):
    token: Optional[str] = None
    evaluation_data: Optional[EvaluationData] = None
