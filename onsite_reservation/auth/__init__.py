"""Authentication module using fastapi-users.

Components:
- users: schemas, user manager, session cookie and session store
- context: request-scoped security context restored from the session cookie
"""

from .users import (
    UserRead,
    UserCreate,
    UserManager,
    SessionStrategy,
    build_auth_backend,
    get_cookie_transport,
    get_user_manager,
    get_session_strategy,
)
from .context import (
    ANONYMOUS_PRINCIPAL,
    Authentication,
    AnonymousAuthentication,
    UsernamePasswordAuthentication,
    SecurityContext,
    get_security_context,
)

__all__ = [
    # Schemas
    "UserRead",
    "UserCreate",
    # FastAPI Users
    "UserManager",
    "SessionStrategy",
    "build_auth_backend",
    "get_cookie_transport",
    "get_user_manager",
    "get_session_strategy",
    # Security context
    "ANONYMOUS_PRINCIPAL",
    "Authentication",
    "AnonymousAuthentication",
    "UsernamePasswordAuthentication",
    "SecurityContext",
    "get_security_context",
]
