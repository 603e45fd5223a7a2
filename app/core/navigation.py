"""Client navigation rules for protected pages.

Redirects are a user-experience aid only. State-changing endpoints always
re-check access through ``AuthorizationGate``.
"""

from dataclasses import dataclass

from app.core.roles import AccountStanding

SIGN_IN_PATH = "/login"
PENDING_APPROVAL_PATH = "/pending-approval"
DASHBOARD_PATH = "/dashboard"


@dataclass(frozen=True)
class PageRequirements:
    """What a protected page needs from the session."""

    require_admin: bool = False
    require_approved: bool = True


@dataclass(frozen=True)
class SessionSnapshot:
    """Client view of the session at one point in time."""

    loading: bool
    standing: AccountStanding | None = None

    @property
    def signed_in(self) -> bool:
        return self.standing is not None


def redirect_for(session: SessionSnapshot, requirements: PageRequirements) -> str | None:
    """
    Return where the client must navigate, or None to render the page.

    No decision is made while the session is loading.
    """
    if session.loading:
        return None
    if session.standing is None:
        return SIGN_IN_PATH
    if requirements.require_approved and not session.standing.is_approved:
        return PENDING_APPROVAL_PATH
    if requirements.require_admin and not session.standing.is_admin:
        return DASHBOARD_PATH
    return None


class RouteGuard:
    """
    Per-mount redirect state of a protected page.

    At most one redirect is issued per mount; later evaluations return
    None until ``reset`` is called on remount.
    """

    def __init__(self, requirements: PageRequirements | None = None):
        self.requirements = requirements or PageRequirements()
        self._redirected_to: str | None = None

    @property
    def redirected_to(self) -> str | None:
        return self._redirected_to

    def evaluate(self, session: SessionSnapshot) -> str | None:
        """Return a redirect target the first time one is needed, else None."""
        if self._redirected_to is not None:
            return None
        target = redirect_for(session, self.requirements)
        if target is not None:
            self._redirected_to = target
        return target

    def can_render(self, session: SessionSnapshot) -> bool:
        """Whether protected content may be shown for this session."""
        return not session.loading and redirect_for(session, self.requirements) is None

    def reset(self) -> None:
        """Forget the issued redirect (page remounted)."""
        self._redirected_to = None
