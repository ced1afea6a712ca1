"""Session diagnostics. Only mounted when EXPOSE_SESSION_DEBUG is enabled."""

from datetime import datetime
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from ..auth.context import SecurityContext, get_security_context

router = APIRouter(prefix="/api/auth", tags=["Diagnostics"])


def _epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


@router.get("/session-debug")
async def debug_session(
    request: Request, context: SecurityContext = Depends(get_security_context)
) -> Dict[str, Any]:
    """Report session metadata and the authentication bound to it."""
    debug_info: Dict[str, Any] = {}
    session = context.session

    if session is None:
        debug_info["session"] = "No active session"
        return debug_info

    debug_info["sessionId"] = session.token
    debug_info["sessionCreationTime"] = _epoch_millis(session.created_at)
    debug_info["sessionLastAccessedTime"] = _epoch_millis(session.last_accessed_at)
    debug_info["sessionMaxInactiveInterval"] = request.app.state.config.session_max_inactive_interval

    auth = context.authentication
    if auth is not None:
        debug_info["authName"] = auth.name
        debug_info["authType"] = auth.type_name
        debug_info["isAuthenticated"] = auth.authenticated
        debug_info["authorities"] = list(auth.authorities)
    else:
        debug_info["auth"] = "No authentication in context"

    return debug_info
