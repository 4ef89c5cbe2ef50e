"""
HyrePro Admin API
=================
Backend for the school hiring dashboard

Flow:
1. Admin signs up / logs in through Supabase Auth (cookie session)
2. Admin creates or joins a school
3. Jobs are posted and applications tracked per school
4. Interviews are scheduled on Google Calendar with Meet links
5. Panelists evaluate candidates through one-time token links
6. Dashboards read aggregated analytics from database procedures
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hyrepro.api import api_router
from hyrepro.api.routes.auth import callback_router
from hyrepro.core.config import settings
from hyrepro.core.database import init_db
from hyrepro.core.errors import register_exception_handlers
from hyrepro.core.gate import RequestGateMiddleware
from hyrepro.core.logging_config import setup_logging
from hyrepro.core.session import SessionBridge

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and, for local runs, the database schema"""
    setup_logging()
    logger.info("Starting %s", settings.APP_NAME)
    if settings.AUTO_CREATE_TABLES:
        init_db()
        logger.info("Database tables created")
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## HyrePro Admin API

Backend for schools hiring teachers.

### Features:
- **Session gate**: Supabase cookie sessions with refresh and page redirects
- **Jobs**: Create, update and list job posts per school
- **Applications**: Paged application lists, counts and resume downloads
- **Interviews**: Google Meet scheduling, RSVP sync and panelist evaluation
- **Team**: Email and code based invitations
- **Analytics**: Cached school dashboards and per-job funnels
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.state.session_bridge = SessionBridge()

register_exception_handlers(app)

# Page redirects and session refresh
app.add_middleware(RequestGateMiddleware)

# CORS middleware for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")
app.include_router(callback_router)


# Health check endpoint
@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": settings.APP_NAME}


@app.get("/")
def root():
    """Root endpoint with API info"""
    return {
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "jobs": "/api/jobs",
            "applications": "/api/job-applications",
            "interviews": "/api/interview-schedule",
            "analytics": "/api/school-kpis",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hyrepro.main:app", host="0.0.0.0", port=8000, reload=True)
