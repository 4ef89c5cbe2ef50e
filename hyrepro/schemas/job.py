"""
Pydantic schemas for Job API
Field names match the JSON the admin dashboard posts
"""
from pydantic import BaseModel, ConfigDict, field_validator
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union


class InterviewQuestion(BaseModel):
    id: Union[str, int]
    question: str


class JobCreate(BaseModel):
    """Create-job form; presence of required fields is checked by the handler"""
    jobTitle: Optional[str] = None
    schoolName: Optional[str] = None
    location: Optional[str] = None
    experience: Optional[str] = None
    employmentType: Optional[str] = None
    salaryMin: Optional[Union[str, float]] = None
    salaryMax: Optional[Union[str, float]] = None
    subjects: Optional[List[str]] = None
    gradeLevel: Optional[List[str]] = None
    jobDescription: Optional[str] = None
    requirements: Optional[List[str]] = None
    includeSubjectTest: Optional[bool] = None
    subjectTestDuration: Optional[int] = None
    demoVideoDuration: Optional[float] = None
    includeInterview: Optional[bool] = None
    interviewFormat: Optional[str] = None
    interviewDuration: Optional[int] = None
    interviewQuestions: Optional[List[InterviewQuestion]] = None
    assessmentDifficulty: Optional[str] = None
    numberOfQuestions: Optional[int] = None
    minimumPassingMarks: Optional[int] = None
    numberOfOpenings: Optional[int] = None

    @field_validator('requirements', mode='before')
    @classmethod
    def convert_requirements(cls, v):
        """Accept a newline separated string as well as a list"""
        if isinstance(v, str):
            return [line for line in v.split('\n') if line.strip()]
        return v


class JobUpdate(BaseModel):
    """Partial job update; only whitelisted columns are applied"""
    model_config = ConfigDict(extra="allow")

    jobId: Optional[str] = None

    UPDATABLE_FIELDS: ClassVar[Tuple[str, ...]] = (
        "title", "job_type", "mode", "grade_levels", "subjects",
        "salary_range", "openings", "job_description",
    )

    def changes(self) -> Dict[str, Any]:
        data = self.model_extra or {}
        return {k: v for k, v in data.items() if k in self.UPDATABLE_FIELDS}


class JobInterviewSettingsRequest(BaseModel):
    job_id: Optional[str] = None
    school_id: Optional[str] = None
    default_interview_type: Optional[str] = None
    default_duration: Optional[str] = None
    candidate_reminder_hours: Optional[str] = None
    interviewer_reminder_hours: Optional[str] = None
    custom_instructions: Optional[str] = None
    slots: Optional[List[Any]] = None


class JobInvitationRequest(BaseModel):
    emails: Optional[List[str]] = None
    jobId: Optional[str] = None


class JobDescriptionRequest(BaseModel):
    """AI job description form"""
    job_title: Optional[str] = None
    subjects_to_teach: Optional[Union[str, List[str]]] = None
    grade: Optional[str] = None
    employment_type: Optional[str] = None
    experience: Optional[str] = None
    board: Optional[str] = None
    school_type: Optional[str] = None
    school_name: Optional[str] = None
    salary_range: Optional[str] = None
    existing_job_description: Optional[str] = None

    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "job_title", "subjects_to_teach", "grade", "employment_type",
        "experience", "board", "school_type", "school_name",
    )
