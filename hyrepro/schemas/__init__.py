from hyrepro.schemas.job import (
    JobCreate, JobUpdate, JobInterviewSettingsRequest, JobInvitationRequest,
    JobDescriptionRequest
)
from hyrepro.schemas.school import (
    SchoolRequest, AdminUserCreate, AccountUpdate, InterviewSettingsUpdate, UsersQuery
)
from hyrepro.schemas.interview import (
    PanelistAvailabilityRequest, CreateMeetRequest, TokenRequest, EvaluationSubmission
)
from hyrepro.schemas.invitation import (
    CreateInvitationRequest, RespondInvitationRequest, InviteDataDelete, EmailInvitationDelete
)
