"""Request-scoped security context: who is calling, and through which session."""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from fastapi import Depends, Request
from fastapi_users import exceptions
from fastapi_users.authentication import CookieTransport

from ..database import User, UserSession
from .users import (
    SessionStrategy,
    UserManager,
    get_cookie_transport,
    get_session_strategy,
    get_user_manager,
)

logger = logging.getLogger(__name__)

ANONYMOUS_PRINCIPAL = "anonymousUser"


@dataclass
class Authentication:
    """Authentication state of a principal."""

    name: str
    principal: Optional[User] = None
    authorities: List[str] = field(default_factory=list)
    authenticated: bool = True

    @property
    def type_name(self) -> str:
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"


@dataclass
class UsernamePasswordAuthentication(Authentication):
    """Authentication established by a username/password login."""

    @classmethod
    def for_user(cls, user: User) -> "UsernamePasswordAuthentication":
        return cls(name=user.username, principal=user, authorities=[user.role.authority])


@dataclass
class AnonymousAuthentication(Authentication):
    """Placeholder used when the request carries no session."""

    name: str = ANONYMOUS_PRINCIPAL
    authorities: List[str] = field(default_factory=lambda: ["ROLE_ANONYMOUS"])


@dataclass
class SecurityContext:
    """Holds the session and authentication for the current request."""

    session: Optional[UserSession] = None
    authentication: Optional[Authentication] = None

    @property
    def session_id(self) -> Optional[str]:
        return self.session.token if self.session is not None else None

    @property
    def is_authenticated(self) -> bool:
        auth = self.authentication
        return auth is not None and auth.authenticated and auth.name != ANONYMOUS_PRINCIPAL

    def clear(self) -> None:
        self.session = None
        self.authentication = None


async def get_security_context(
    request: Request,
    transport: CookieTransport = Depends(get_cookie_transport),
    user_manager: UserManager = Depends(get_user_manager),
    strategy: SessionStrategy = Depends(get_session_strategy),
) -> SecurityContext:
    """Restore the security context from the session cookie.

    No session means an anonymous authentication. A session whose user is
    missing or disabled keeps the session but carries no authentication.
    """
    context = SecurityContext()
    session = await strategy.get_session(request.cookies.get(transport.cookie_name))

    if session is None:
        context.authentication = AnonymousAuthentication()
    else:
        context.session = session
        try:
            user = await user_manager.get(session.user_id)
        except exceptions.UserNotExists:
            logger.warning(f"Session references missing user {session.user_id}")
            user = None
        if user is not None and user.is_active:
            context.authentication = UsernamePasswordAuthentication.for_user(user)

    request.state.security_context = context
    return context
