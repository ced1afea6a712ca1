"""Authentication API routes: register, login, logout and current user.

Credential checks, password hashing and session storage are delegated to
fastapi-users; these handlers validate input, call the user service and
shape the JSON responses.
"""

from typing import Any
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from fastapi_users import exceptions
from fastapi_users.authentication import CookieTransport
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from ..auth.context import SecurityContext, UsernamePasswordAuthentication, get_security_context
from ..auth.users import (
    SessionStrategy,
    UserCreate,
    UserManager,
    clear_session_cookie,
    get_cookie_transport,
    get_session_strategy,
    get_user_manager,
    set_session_cookie,
)
from ..database import Role
from ..services.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# ============== Request Models ==============

class RegisterRequest(BaseModel):
    """User registration request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)  # PASSWORD_MIN_LENGTH may raise the floor
    role: Role
    department_id: int


class LoginRequest(BaseModel):
    """User login request."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _dump(model: BaseModel) -> Any:
    return model.model_dump(by_alias=True, mode="json")


# ============== Registration & Login ==============

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request_data: RegisterRequest,
    user_service: UserService = Depends(get_user_service),
):
    """Register a new user account."""
    try:
        if await user_service.exists_by_username(request_data.username):
            return _message(status.HTTP_400_BAD_REQUEST, "Username is already taken")

        if await user_service.exists_by_email(request_data.email):
            return _message(status.HTTP_400_BAD_REQUEST, "Email is already in use")

        user_create = UserCreate(
            username=request_data.username,
            email=request_data.email,
            password=request_data.password,  # hashed by the user manager
            role=request_data.role,
            is_active=True,
            department_id=request_data.department_id,
        )
        created_user = await user_service.create_user(user_create)

        return JSONResponse(
            status_code=status.HTTP_201_CREATED,
            content={"user": _dump(created_user), "message": "User registered successfully"},
        )
    except exceptions.UserAlreadyExists:
        return _message(status.HTTP_400_BAD_REQUEST, "Email is already in use")
    except exceptions.InvalidPasswordException as e:
        return _message(status.HTTP_400_BAD_REQUEST, f"Invalid password: {e.reason}")
    except Exception as e:
        logger.exception(f"Registration failed for {request_data.username}")
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Registration failed: {e}")


@router.post("/login")
async def login(
    request_data: LoginRequest,
    request: Request,
    context: SecurityContext = Depends(get_security_context),
    user_manager: UserManager = Depends(get_user_manager),
    user_service: UserService = Depends(get_user_service),
    strategy: SessionStrategy = Depends(get_session_strategy),
    transport: CookieTransport = Depends(get_cookie_transport),
):
    """Login with username and password and open a session."""
    try:
        user = await user_manager.authenticate(request_data)
        if user is None:
            logger.warning(f"Failed login attempt for {request_data.username}")
            return _message(status.HTTP_401_UNAUTHORIZED, "Invalid username or password")

        if not user.is_active:
            logger.warning(f"Login attempt for disabled account {user.username}")
            return _message(status.HTTP_401_UNAUTHORIZED, "User account is disabled")

        # Never reuse a session id the client presented before authenticating
        if context.session is not None:
            await strategy.destroy_token(context.session.token, user)

        context.authentication = UsernamePasswordAuthentication.for_user(user)
        token = await strategy.write_token(user)
        context.session = await strategy.get_session(token)

        await user_manager.on_after_login(user, request)
        user_read = await user_service.get_user_by_username(user.username)

        logger.info(f"Authenticated user: {context.authentication.name}")

        response = JSONResponse(
            content={
                "user": _dump(user_read),
                "message": "Login successful",
                "sessionId": token,
            }
        )
        set_session_cookie(response, transport, token)
        return response
    except Exception as e:
        logger.exception(f"Login failed for {request_data.username}")
        return _message(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"An error occurred during authentication: {e}",
        )


@router.post("/logout")
async def logout(
    context: SecurityContext = Depends(get_security_context),
    strategy: SessionStrategy = Depends(get_session_strategy),
    transport: CookieTransport = Depends(get_cookie_transport),
):
    """Invalidate the current session, if any."""
    authentication = context.authentication
    if authentication is not None:
        if context.session is not None:
            await strategy.destroy_token(context.session.token, authentication.principal)
            logger.info(f"User {authentication.name} logged out")
        context.clear()

    response = JSONResponse(content={"message": "Logout successful"})
    clear_session_cookie(response, transport)
    return response


# ============== Current User ==============

@router.get("/me")
async def get_current_user(
    context: SecurityContext = Depends(get_security_context),
    user_service: UserService = Depends(get_user_service),
):
    """Get the profile of the authenticated user."""
    authentication = context.authentication
    if not context.is_authenticated:
        return _message(status.HTTP_401_UNAUTHORIZED, "Not authenticated")

    try:
        user_read = await user_service.get_user_by_username(authentication.name)
        return JSONResponse(content=_dump(user_read))
    except Exception as e:
        logger.exception(f"Failed to load current user {authentication.name}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": str(e),
                "authName": authentication.name,
                "isAuthenticated": authentication.authenticated,
                "sessionId": context.session_id or "No session",
            },
        )
