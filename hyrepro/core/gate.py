"""
Request Gate
Redirects unauthenticated users away from protected pages and
authenticated users away from the login/signup pages
"""
import logging
from enum import Enum
from typing import Optional
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from hyrepro.core.auth import fetch_school_id
from hyrepro.core.database import SessionLocal
from hyrepro.core.session import get_session_bridge

logger = logging.getLogger(__name__)

PROTECTED_PATHS = ["/", "/jobs", "/settings", "/help", "/create-job-post"]
AUTH_PATHS = ["/login", "/signup"]
PUBLIC_PATHS = ["/auth/callback", "/auth/reset-password"]

# Served by this API, never gated
UNGATED_PREFIXES = ("/api/", "/docs", "/redoc", "/openapi.json", "/health")

SELECT_ORGANIZATION = "/select-organization"


class PathClass(str, Enum):
    PROTECTED = "protected"
    AUTH_ONLY = "auth_only"
    PUBLIC = "public"
    OTHER = "other"


def is_protected(path: str) -> bool:
    return any(path == p or path.startswith(f"{p}/") for p in PROTECTED_PATHS)


def is_auth_only(path: str) -> bool:
    return path in AUTH_PATHS


def is_public(path: str) -> bool:
    return any(path.startswith(p) for p in PUBLIC_PATHS)


def classify_path(path: str) -> PathClass:
    if is_public(path):
        return PathClass.PUBLIC
    if is_auth_only(path):
        return PathClass.AUTH_ONLY
    if is_protected(path):
        return PathClass.PROTECTED
    return PathClass.OTHER


def login_redirect(path: str) -> str:
    return f"/login?{urlencode({'redirect': path})}"


def decide(path: str, has_session: bool) -> Optional[str]:
    """Redirect target for a request, or None to pass through"""
    if has_session and is_auth_only(path):
        return "/"
    if not has_session and is_protected(path) and not is_public(path):
        return login_redirect(path)
    return None


def is_gated(path: str) -> bool:
    return path != "/api" and not path.startswith(UNGATED_PREFIXES)


class RequestGateMiddleware(BaseHTTPMiddleware):
    """
    Resolves the session once per page request, applies the redirect table,
    and copies refreshed session cookies onto whatever response goes out
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not is_gated(path):
            response = await call_next(request)
            # API routes resolve lazily; forward any refresh they triggered
            session = getattr(request.state, "auth", None)
            if session is not None:
                session.apply_cookies(response)
            return response

        session = await run_in_threadpool(get_session_bridge(request).resolve, request)
        request.state.auth = session

        target = decide(path, session.is_authenticated)
        if target is None and session.is_authenticated and path == "/":
            target = await run_in_threadpool(self.organization_redirect, session.user.id)

        if target is not None:
            logger.debug("Gate redirect %s -> %s", path, target)
            return session.apply_cookies(RedirectResponse(url=target, status_code=307))

        response = await call_next(request)
        return session.apply_cookies(response)

    def organization_redirect(self, user_id: str) -> Optional[str]:
        """Users without a school land on organization selection"""
        db = SessionLocal()
        try:
            if fetch_school_id(db, user_id):
                return None
        except Exception as e:
            logger.warning("School lookup failed for %s: %s", user_id, e)
        finally:
            db.close()
        return SELECT_ORGANIZATION
