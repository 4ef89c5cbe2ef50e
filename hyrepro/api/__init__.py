from fastapi import APIRouter
from hyrepro.api.routes import analytics, applications, auth, interviews, invitations, jobs, school

api_router = APIRouter()

# Include all route modules
api_router.include_router(analytics.router)
api_router.include_router(jobs.router)
api_router.include_router(applications.router)
api_router.include_router(interviews.router)
api_router.include_router(invitations.router)
api_router.include_router(school.router)
api_router.include_router(auth.router)
