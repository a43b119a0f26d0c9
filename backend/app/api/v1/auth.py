"""Account and session endpoints.

- POST /accounts: register a user (new family group, one role)
- POST /login: password login; returns an access token and sets the
  httpOnly refresh cookie
- POST /accessToken: rotate the refresh cookie and issue a new access token
- POST /logout: revoke the session and clear the cookie

Security considerations:
- login spends bcrypt time even for unknown usernames (DUMMY_HASH)
- only the SHA-256 of the newest refresh token is stored; replaying an
  older token for the same session fails
- every refresh failure gives the same 422, whatever the cause
"""

import uuid
from datetime import timedelta

import jwt
import structlog
from fastapi import APIRouter, Request, Response, status
from sqlalchemy.exc import IntegrityError

from app.api.deps import DbSession
from app.core.auth import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    delete_refresh_cookie,
    hash_password,
    hash_refresh_token,
    set_refresh_cookie,
    validate_password_strength,
    verify_password,
)
from app.core.config import settings
from app.core.errors import ConflictError, ValidationError
from app.core.rate_limiting import limiter
from app.models.user import Session, User
from app.repositories.session_repository import SessionRepository
from app.repositories.user_repository import UserRepository
from app.schemas.auth import (
    AccountDTO,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserInfoDTO,
)
from app.services.authorization import Role

logger = structlog.get_logger()

router = APIRouter()

_ROLE_PRECEDENCE = (
    Role.ADMIN,
    Role.PARENT,
    Role.FLEET_USER,
    Role.YOUNG_DRIVER,
    Role.MUSIC_USER,
)
"""Order used to pick the single role reported in userInfo."""

_INVALID_REFRESH_MSG = "Invalid or expired refresh token."


def _primary_role(user: User) -> str:
    roles = user.role_names
    return next(
        (role for role in _ROLE_PRECEDENCE if role in roles), Role.FLEET_USER
    )


def _refresh_lifetime() -> timedelta:
    return timedelta(days=settings.refresh_token_days)


def _login_response(user: User) -> LoginResponse:
    access_token = create_access_token(
        user_id=str(user.id),
        username=user.username,
        roles=user.role_names,
    )
    return LoginResponse(
        access_token=access_token,
        user_info=UserInfoDTO(
            username=user.username,
            email=user.email,
            role=_primary_role(user),
        ),
    )


async def _session_from_cookie(
    request: Request, db: DbSession
) -> tuple[Session, str]:
    """Resolve the refresh cookie to a live session.

    Returns:
        The session and the presented token's hash.

    Raises:
        ValidationError: Missing, malformed, expired, revoked or superseded
            token. The message never says which.
    """
    token = request.cookies.get(settings.refresh_cookie_name)
    if not token:
        raise ValidationError(_INVALID_REFRESH_MSG)
    try:
        claims = decode_refresh_token(token)
        session_id = uuid.UUID(claims.session_id)
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise ValidationError(_INVALID_REFRESH_MSG) from exc

    token_hash = hash_refresh_token(token)
    session = await SessionRepository.get_by_id(db, session_id)
    if (
        session is None
        or str(session.user_id) != claims.user_id
        or not SessionRepository.is_valid(session, token_hash)
    ):
        raise ValidationError(_INVALID_REFRESH_MSG)
    return session, token_hash


# ===================================================================
# POST /accounts
# ===================================================================


@router.post("/accounts", name="register", status_code=status.HTTP_201_CREATED)
@limiter.limit(lambda: settings.rate_limit_register)
async def register(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: RegisterRequest,
    db: DbSession,
) -> AccountDTO:
    """Register a new user in a family group of their own.

    Raises:
        ValidationError: Weak password, or self-assigned ADMIN role.
        ConflictError: Username or email already taken.
    """
    validate_password_strength(body.password)
    if body.role == Role.ADMIN:
        raise ValidationError.field_error(
            "role", "The ADMIN role cannot be self-assigned."
        )

    if await UserRepository.get_by_username(db, body.username) is not None:
        raise ConflictError("USERNAME_TAKEN", "Username already taken")
    if await UserRepository.get_by_email(db, body.email) is not None:
        raise ConflictError("EMAIL_TAKEN", "Email already taken")

    try:
        user = await UserRepository.create(
            db,
            username=body.username,
            email=body.email,
            password_hash=hash_password(body.password),
            roles=[body.role],
        )
        await db.commit()
    except IntegrityError as exc:
        # Lost a race with a concurrent registration for the same name.
        await db.rollback()
        msg = "Username or email already taken"
        raise ConflictError("USERNAME_TAKEN", msg) from exc

    logger.info("user_registered", user_id=str(user.id), role=body.role)
    return AccountDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        roles=sorted(user.role_names),
        family_group_id=user.family_group_id,
    )


# ===================================================================
# POST /login
# ===================================================================


@router.post("/login", name="login")
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: LoginRequest,
    response: Response,
    db: DbSession,
) -> LoginResponse:
    """Check credentials, open a session and issue both tokens.

    Raises:
        ValidationError: Unknown user or wrong password (same message).
    """
    user = await UserRepository.get_by_username(db, body.username)
    password_hash = user.password_hash if user is not None else None
    if not verify_password(body.password, password_hash) or user is None:
        raise ValidationError("Invalid username or password")

    session_id = uuid.uuid4()
    refresh_token = create_refresh_token(
        user_id=str(user.id), session_id=str(session_id)
    )
    await SessionRepository.create(
        db,
        user_id=user.id,
        refresh_token_hash=hash_refresh_token(refresh_token),
        lifetime=_refresh_lifetime(),
        session_id=session_id,
    )
    await db.commit()

    set_refresh_cookie(response, refresh_token)
    logger.info("user_logged_in", user_id=str(user.id), session_id=str(session_id))
    return _login_response(user)


# ===================================================================
# POST /accessToken
# ===================================================================


@router.post("/accessToken", name="refresh_access_token")
async def refresh_access_token(
    request: Request,
    response: Response,
    db: DbSession,
) -> LoginResponse:
    """Rotate the refresh token and issue a new access token.

    Roles are re-read from the database, so role changes take effect at the
    next refresh.
    """
    session, _ = await _session_from_cookie(request, db)
    user = await UserRepository.get_by_id(db, session.user_id)
    if user is None:
        raise ValidationError(_INVALID_REFRESH_MSG)

    refresh_token = create_refresh_token(
        user_id=str(user.id), session_id=str(session.id)
    )
    await SessionRepository.rotate(
        db,
        session,
        refresh_token_hash=hash_refresh_token(refresh_token),
        lifetime=_refresh_lifetime(),
    )
    await db.commit()

    set_refresh_cookie(response, refresh_token)
    return _login_response(user)


# ===================================================================
# POST /logout
# ===================================================================


@router.post("/logout", name="logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    db: DbSession,
) -> Response:
    """Revoke the session behind the refresh cookie and clear the cookie."""
    session, _ = await _session_from_cookie(request, db)
    await SessionRepository.revoke(db, session)
    await db.commit()

    logger.info("user_logged_out", user_id=str(session.user_id))
    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    delete_refresh_cookie(response)
    return response
