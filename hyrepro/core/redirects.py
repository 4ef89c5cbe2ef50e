"""
Post-login redirect rules

Decides where a freshly loaded page should send the user:
- no user                      -> /signup
- user, email not verified     -> stay
- verified, no school          -> /select-organization
- verified, school             -> /
At most one navigation is dispatched per mount.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from hyrepro.core.session import AuthUser

logger = logging.getLogger(__name__)

SIGNUP = "/signup"
HOME = "/"
SELECT_ORGANIZATION = "/select-organization"

AUTH_PAGES = ("/login", "/signup")
SCHOOL_EXEMPT_PAGES = ("/create-school", "/select-organization")


@dataclass
class PageState:
    loading: bool
    user: Optional[AuthUser]
    pathname: str


class RedirectHook:
    """
    Args:
        navigate: replaces the current location (router.replace equivalent)
        fetch_school_id: returns the user's school id or None; may raise
    """

    def __init__(
        self,
        navigate: Callable[[str], None],
        fetch_school_id: Callable[[str], Optional[str]],
    ):
        self.navigate = navigate
        self.fetch_school_id = fetch_school_id
        self.is_redirecting = False
        self.school_id: Optional[str] = None

    def reset(self):
        """New mount: allow one more redirect"""
        self.is_redirecting = False

    def _redirect(self, target: str) -> Optional[str]:
        if self.is_redirecting:
            return None
        self.is_redirecting = True
        self.navigate(target)
        return target

    def evaluate(self, state: PageState) -> Optional[str]:
        """Run the rules for one render; returns the dispatched target, if any"""
        if state.loading:
            return None

        if state.user is None:
            if state.pathname in AUTH_PAGES:
                return None
            return self._redirect(SIGNUP)

        if state.pathname in SCHOOL_EXEMPT_PAGES:
            return None

        if not state.user.is_verified:
            return None

        try:
            self.school_id = self.fetch_school_id(state.user.id)
        except Exception as e:
            # A failed lookup is treated as "no school"
            logger.warning("School lookup failed for %s: %s", state.user.id, e)
            self.school_id = None

        if not self.school_id:
            return self._redirect(SELECT_ORGANIZATION)
        return self._redirect(HOME)
