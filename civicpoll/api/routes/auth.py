"""Authentication routes."""

from typing import Annotated
from uuid import UUID

import asyncpg
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import AliasChoices, BaseModel, Field, field_validator

from civicpoll.api.deps import client_ip, get_current_user
from civicpoll.core.config import settings
from civicpoll.core.database import get_db
from civicpoll.core.logging_config import get_logger, security_logger
from civicpoll.core.rate_limiting import login_rate_limiter
from civicpoll.core.responses import (
    conflict_response,
    error_response,
    forbidden_response,
    not_found_response,
    success_response,
)
from civicpoll.core.security import (
    DUMMY_PASSWORD_HASH,
    create_access_token,
    hash_password,
    verify_password,
)
from civicpoll.core.validation import (
    EmailValidator,
    PasswordValidator,
    PhoneNumberValidator,
    sanitize_string,
)
from civicpoll.services import reference as reference_service
from civicpoll.services import users as user_service

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = get_logger(__name__)


# ============================================
# PYDANTIC MODELS
# ============================================


class RegisterRequest(BaseModel):
    """Voter self-registration."""

    phone_number: str = Field(..., max_length=20)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str = Field(..., min_length=2, max_length=255)
    email: str | None = Field(None, max_length=255)
    age_group: str | None = Field(None, max_length=20)
    gender: str | None = Field(None, max_length=20)
    county_id: int | None = None
    constituency_id: int | None = None
    ward_id: int | None = None

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        is_valid, error = PhoneNumberValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return PhoneNumberValidator.normalize(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        is_valid, error = PasswordValidator.validate(v)
        if not is_valid:
            raise ValueError(error)
        return v

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = sanitize_string(v, max_length=255)
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _clean_email(v)


def _clean_email(v: str | None) -> str | None:
    v = sanitize_string(v, max_length=255).lower()
    if not v:
        return None
    is_valid, error = EmailValidator.validate(v)
    if not is_valid:
        raise ValueError(error)
    return v


class LoginRequest(BaseModel):
    """Login with a phone number or an email address."""

    phone_or_email: str = Field(
        ...,
        max_length=255,
        validation_alias=AliasChoices("phone_or_email", "phoneOrEmail", "phone_number"),
    )
    password: str = Field(..., max_length=128)

    @field_validator("phone_or_email")
    @classmethod
    def normalize_login(cls, v: str) -> str:
        v = sanitize_string(v, max_length=255)
        if "@" in v:
            return v.lower()
        return PhoneNumberValidator.normalize(v)


class ProfileUpdateRequest(BaseModel):
    full_name: str | None = Field(None, min_length=2, max_length=255)
    email: str | None = Field(None, max_length=255)
    county_id: int | None = None
    constituency_id: int | None = None
    ward_id: int | None = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return _clean_email(v)


def _token_for(user: dict) -> str:
    return create_access_token(data={"sub": str(user["id"]), "role": user["role"]})


# ============================================
# REGISTRATION AND LOGIN
# ============================================


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Register a new voter account.

    The phone number is stored in `+254...` form. A number that is already
    registered is rejected with 409 and nothing is written. When no county
    is given the default county is assigned.
    """
    ip_address = client_ip(http_request)
    logger.info(f"Registration attempt: {request.phone_number}")

    county_id = request.county_id
    if county_id is None and request.constituency_id is None and request.ward_id is None:
        default_county = await reference_service.get_county_by_name(
            conn, settings.DEFAULT_COUNTY_NAME
        )
        county_id = default_county["id"] if default_county else None

    user = await user_service.create_user(
        conn,
        phone_number=request.phone_number,
        password_hash=hash_password(request.password),
        full_name=request.full_name,
        email=request.email,
        age_group=request.age_group,
        gender=request.gender,
        county_id=county_id,
        constituency_id=request.constituency_id,
        ward_id=request.ward_id,
    )
    if user is None:
        logger.warning(f"Registration failed: phone number already registered - {request.phone_number}")
        conflict_response("Phone number already registered")

    security_logger.log_user_registration(
        phone_number=request.phone_number, role=user["role"], ip_address=ip_address
    )
    access_token = _token_for(user)
    security_logger.log_token_creation(user["id"], user["role"])

    return success_response(
        data={"access_token": access_token, "token_type": "bearer", "user": user},
        message="Registration successful",
    )


@router.post("/login")
async def login(
    request: LoginRequest,
    http_request: Request,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
):
    """
    Authenticate with phone number or email and return a JWT.

    Unknown accounts and wrong passwords get the same 401 and cost the same
    Argon2 verification. Repeated failures are rate limited per login and
    per IP.
    """
    ip_address = client_ip(http_request)
    user_agent = http_request.headers.get("user-agent")
    login_id = request.phone_or_email

    allowed, error_msg = login_rate_limiter.check_login_allowed(login_id, ip_address)
    if not allowed:
        security_logger.log_login_attempt(
            phone_or_email=login_id,
            success=False,
            ip_address=ip_address,
            user_agent=user_agent,
            reason="rate_limited",
        )
        error_response(
            message=error_msg,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            headers={"Retry-After": str(login_rate_limiter.identifier_limiter.window_seconds)},
        )

    try:
        user = await user_service.get_user_for_login(conn, login_id)

        password_hash = user["password_hash"] if user else DUMMY_PASSWORD_HASH
        password_valid = verify_password(request.password, password_hash)

        if not (user and password_valid):
            login_rate_limiter.record_failed_attempt(login_id, ip_address)
            reason = "unknown_account" if not user else "invalid_password"
            security_logger.log_login_attempt(
                phone_or_email=login_id,
                success=False,
                ip_address=ip_address,
                user_agent=user_agent,
                reason=reason,
            )
            error_response(
                message="Invalid credentials",
                status_code=status.HTTP_401_UNAUTHORIZED,
            )

        if user["status"] != "active":
            security_logger.log_login_attempt(
                phone_or_email=login_id,
                success=False,
                ip_address=ip_address,
                user_agent=user_agent,
                reason="account_not_active",
            )
            forbidden_response("Account is not active")

        login_rate_limiter.record_successful_login(login_id, ip_address)
        await user_service.update_user_last_login(conn, UUID(user["id"]))

        access_token = _token_for(user)
        security_logger.log_login_attempt(
            phone_or_email=login_id,
            success=True,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        security_logger.log_token_creation(user["id"], user["role"])

        user_data = {k: v for k, v in user.items() if k != "password_hash"}
        return success_response(
            data={"access_token": access_token, "token_type": "bearer", "user": user_data},
            message="Login successful",
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Login error for {login_id}: {str(e)}", exc_info=True)
        error_response(
            message="An error occurred during login. Please try again later.",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )


# ============================================
# PROFILE
# ============================================


@router.get("/profile")
async def get_profile(
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Current user's profile with location names."""
    profile = await user_service.get_user_profile(conn, UUID(current_user["id"]))
    if not profile:
        not_found_response("User")
    return success_response(data=profile)


@router.put("/profile")
async def update_profile(
    request: ProfileUpdateRequest,
    conn: Annotated[asyncpg.Connection, Depends(get_db)],
    current_user: Annotated[dict, Depends(get_current_user)],
):
    """Update name, email and location."""
    updates = request.model_dump(exclude_unset=True)
    if updates.get("full_name"):
        updates["full_name"] = sanitize_string(updates["full_name"], max_length=255)

    await user_service.update_user_profile(conn, UUID(current_user["id"]), **updates)
    profile = await user_service.get_user_profile(conn, UUID(current_user["id"]))
    return success_response(data=profile, message="Profile updated successfully")


@router.post("/logout")
async def logout(current_user: Annotated[dict, Depends(get_current_user)]):
    """Tokens are stateless; the client discards its copy."""
    security_logger.log_logout(current_user["id"])
    return success_response(message="Logged out successfully")


@router.get("/locations")
async def get_locations(conn: Annotated[asyncpg.Connection, Depends(get_db)]):
    """County / constituency / ward hierarchy for registration forms."""
    locations = await reference_service.list_geographic_hierarchy(conn)
    return success_response(data=locations)
