"""
Session Bridge
Carries the Supabase auth session in cookies and refreshes it when the
access token has expired
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request
from supabase import AuthApiError, Client, create_client
from supabase.client import ClientOptions

from hyrepro.core.config import settings
from hyrepro.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None
    email_confirmed_at: Optional[str] = None
    user_metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_verified(self) -> bool:
        return self.email_confirmed_at is not None

    @classmethod
    def from_provider(cls, user) -> "AuthUser":
        confirmed = getattr(user, "email_confirmed_at", None)
        return cls(
            id=str(user.id),
            email=getattr(user, "email", None),
            email_confirmed_at=confirmed.isoformat() if hasattr(confirmed, "isoformat") else confirmed,
            user_metadata=dict(getattr(user, "user_metadata", None) or {}),
        )


@dataclass
class CookieToSet:
    name: str
    value: str
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthSession:
    """Result of resolving the caller's session for one request"""
    user: Optional[AuthUser] = None
    access_token: Optional[str] = None
    cookies_to_set: List[CookieToSet] = field(default_factory=list)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def apply_cookies(self, response):
        """Copy refreshed session cookies onto an outgoing response"""
        for cookie in self.cookies_to_set:
            response.set_cookie(key=cookie.name, value=cookie.value, **cookie.options)
        return response


class SessionBridge:
    """
    Cookie-based bridge to Supabase Auth

    - reads `sb-access-token` / `sb-refresh-token` cookies (Bearer header as fallback)
    - validates the access token with the auth server
    - refreshes an expired session and records the new cookies to set
    """

    def __init__(
        self,
        url: Optional[str] = None,
        anon_key: Optional[str] = None,
        service_key: Optional[str] = None,
    ):
        self.url = url if url is not None else settings.SUPABASE_URL
        self.anon_key = anon_key if anon_key is not None else settings.SUPABASE_ANON_KEY
        self.service_key = service_key if service_key is not None else settings.SUPABASE_SERVICE_ROLE_KEY
        self._admin: Optional[Client] = None

    def _create_client(self, key: str) -> Client:
        if not self.url or not key:
            logger.error("Supabase URL or key is not configured")
            raise ConfigurationError("Supabase is not configured")
        return create_client(
            self.url,
            key,
            options=ClientOptions(auto_refresh_token=False, persist_session=False),
        )

    def public_client(self) -> Client:
        """Fresh anon-key client; auth calls mutate client state so never share one"""
        return self._create_client(self.anon_key)

    @property
    def admin(self) -> Client:
        """Service-role client for storage and admin operations"""
        if self._admin is None:
            self._admin = self._create_client(self.service_key)
        return self._admin

    # ============== COOKIES ==============

    def cookie_options(self, max_age: Optional[int] = None) -> Dict[str, Any]:
        return {
            "path": "/",
            "httponly": True,
            "secure": settings.COOKIE_SECURE,
            "samesite": settings.COOKIE_SAMESITE,
            "max_age": settings.COOKIE_MAX_AGE if max_age is None else max_age,
        }

    def session_cookies(self, session) -> List[CookieToSet]:
        return [
            CookieToSet(settings.ACCESS_TOKEN_COOKIE, session.access_token, self.cookie_options()),
            CookieToSet(settings.REFRESH_TOKEN_COOKIE, session.refresh_token, self.cookie_options()),
        ]

    def expired_cookies(self) -> List[CookieToSet]:
        return [
            CookieToSet(settings.ACCESS_TOKEN_COOKIE, "", self.cookie_options(max_age=0)),
            CookieToSet(settings.REFRESH_TOKEN_COOKIE, "", self.cookie_options(max_age=0)),
        ]

    def read_tokens(self, request: Request) -> Tuple[Optional[str], Optional[str]]:
        access_token = request.cookies.get(settings.ACCESS_TOKEN_COOKIE)
        refresh_token = request.cookies.get(settings.REFRESH_TOKEN_COOKIE)

        if not access_token:
            auth_header = request.headers.get("Authorization", "")
            if auth_header.startswith("Bearer "):
                access_token = auth_header[7:]

        return access_token, refresh_token

    # ============== SESSION ==============

    def get_user(self, access_token: str) -> Optional[AuthUser]:
        """Validate an access token; None when the auth server rejects it"""
        try:
            response = self.public_client().auth.get_user(access_token)
        except AuthApiError as e:
            logger.info("Access token rejected: %s", e.message)
            return None
        if not response or not response.user:
            return None
        return AuthUser.from_provider(response.user)

    def refresh(self, refresh_token: str) -> AuthSession:
        try:
            response = self.public_client().auth.refresh_session(refresh_token)
        except AuthApiError as e:
            logger.info("Session refresh rejected: %s", e.message)
            return AuthSession(cookies_to_set=self.expired_cookies())

        if not response.session or not response.user:
            return AuthSession(cookies_to_set=self.expired_cookies())

        logger.debug("Refreshed session for user %s", response.user.id)
        return AuthSession(
            user=AuthUser.from_provider(response.user),
            access_token=response.session.access_token,
            cookies_to_set=self.session_cookies(response.session),
        )

    def resolve(self, request: Request) -> AuthSession:
        """
        Resolve the caller's session from cookies

        Provider errors other than an auth rejection propagate to the caller.
        """
        access_token, refresh_token = self.read_tokens(request)

        if access_token:
            user = self.get_user(access_token)
            if user:
                return AuthSession(user=user, access_token=access_token)

        if refresh_token:
            return self.refresh(refresh_token)

        return AuthSession()

    # ============== AUTH FLOWS ==============

    def exchange_code(self, code: str, code_verifier: Optional[str] = None) -> AuthSession:
        """Exchange an OAuth/PKCE auth code for a session"""
        params = {"auth_code": code}
        if code_verifier:
            params["code_verifier"] = code_verifier
        response = self.public_client().auth.exchange_code_for_session(params)
        return AuthSession(
            user=AuthUser.from_provider(response.user),
            access_token=response.session.access_token,
            cookies_to_set=self.session_cookies(response.session),
        )

    def verify_otp(self, token_hash: str, otp_type: str) -> AuthSession:
        """Verify an email OTP (signup confirmation, recovery, invite)"""
        response = self.public_client().auth.verify_otp({"token_hash": token_hash, "type": otp_type})
        if not response.session:
            return AuthSession(user=AuthUser.from_provider(response.user) if response.user else None)
        return AuthSession(
            user=AuthUser.from_provider(response.user),
            access_token=response.session.access_token,
            cookies_to_set=self.session_cookies(response.session),
        )


def get_session_bridge(request: Request) -> SessionBridge:
    """Bridge configured on the application (swappable in tests)"""
    return request.app.state.session_bridge


def get_auth_session(request: Request) -> AuthSession:
    """
    Session resolved by the request gate, or resolved now for routes the gate skips
    """
    session = getattr(request.state, "auth", None)
    if session is None:
        session = get_session_bridge(request).resolve(request)
        request.state.auth = session
    return session
