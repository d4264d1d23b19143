"""Authentication endpoints."""

from fastapi import APIRouter, status
from starlette.requests import Request

from src.cybertask.api.dependencies import (
    AuthServiceDep,
    CurrentUser,
    EmailVerificationServiceDep,
    PasswordResetServiceDep,
)
from src.cybertask.core.rate_limit import limiter
from src.cybertask.schemas.auth import (
    AuthPayload,
    ForgotPasswordRequest,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokensPayload,
    VerifyEmailRequest,
)
from src.cybertask.schemas.common import ApiResponse
from src.cybertask.schemas.user import UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=ApiResponse[AuthPayload],
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Email (USER_EXISTS) or username (USERNAME_EXISTS) taken"}},
)
@limiter.limit("3/hour")
async def register(
    request: Request,
    data: RegisterRequest,
    service: AuthServiceDep,
    verification: EmailVerificationServiceDep,
) -> ApiResponse[AuthPayload]:
    """Create an account, sign it in and send a verification email."""
    user, tokens = await service.register(data)
    await verification.create_and_send_verification(user)
    return ApiResponse(
        message="User registered successfully",
        data=AuthPayload(user=UserRead.model_validate(user), tokens=tokens),
    )


@router.post(
    "/login",
    response_model=ApiResponse[AuthPayload],
    responses={401: {"description": "INVALID_CREDENTIALS or ACCOUNT_DEACTIVATED"}},
)
@limiter.limit("5/minute")
async def login(
    request: Request, data: LoginRequest, service: AuthServiceDep
) -> ApiResponse[AuthPayload]:
    """Authenticate with email and password.

    ``remember_me`` extends the refresh token lifetime.
    """
    user, tokens = await service.authenticate(data.email, data.password, data.remember_me)
    return ApiResponse(
        message="Login successful",
        data=AuthPayload(user=UserRead.model_validate(user), tokens=tokens),
    )


@router.get("/me", response_model=ApiResponse[UserRead])
async def me(current_user: CurrentUser) -> ApiResponse[UserRead]:
    return ApiResponse(message="Current user", data=UserRead.model_validate(current_user))


@router.post(
    "/refresh",
    response_model=ApiResponse[TokensPayload],
    responses={401: {"description": "INVALID_REFRESH_TOKEN or REFRESH_TOKEN_EXPIRED"}},
)
@limiter.limit("10/minute")
async def refresh(
    request: Request, data: RefreshRequest, service: AuthServiceDep
) -> ApiResponse[TokensPayload]:
    """Exchange a refresh token for a new token pair.

    The presented refresh token is revoked; replaying it fails.
    """
    tokens = await service.refresh(data.refresh_token)
    return ApiResponse(message="Token refreshed", data=TokensPayload(tokens=tokens))


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    current_user: CurrentUser,
    service: AuthServiceDep,
    data: LogoutRequest | None = None,
) -> ApiResponse[None]:
    """Revoke one refresh token, or every session when none is given."""
    await service.logout(current_user.id, data.refresh_token if data else None)
    return ApiResponse(message="Logged out successfully")


@router.post("/forgot-password", response_model=ApiResponse[None])
@limiter.limit("3/hour")
async def forgot_password(
    request: Request, data: ForgotPasswordRequest, service: PasswordResetServiceDep
) -> ApiResponse[None]:
    """Always succeeds so the response never reveals whether the email exists."""
    await service.request_reset(data.email)
    return ApiResponse(message="If that email is registered, a reset link has been sent")


@router.post(
    "/reset-password",
    response_model=ApiResponse[None],
    responses={400: {"description": "INVALID_RESET_TOKEN"}},
)
@limiter.limit("5/hour")
async def reset_password(
    request: Request, data: ResetPasswordRequest, service: PasswordResetServiceDep
) -> ApiResponse[None]:
    await service.reset_password(data.token, data.password)
    return ApiResponse(message="Password has been reset")


@router.post(
    "/verify-email",
    response_model=ApiResponse[UserRead],
    responses={400: {"description": "INVALID_VERIFICATION_TOKEN"}},
)
@limiter.limit("10/hour")
async def verify_email(
    request: Request, data: VerifyEmailRequest, service: EmailVerificationServiceDep
) -> ApiResponse[UserRead]:
    user = await service.verify_token(data.token)
    return ApiResponse(message="Email verified successfully", data=UserRead.model_validate(user))


@router.post(
    "/resend-verification",
    response_model=ApiResponse[None],
    responses={400: {"description": "EMAIL_ALREADY_VERIFIED"}},
)
@limiter.limit("3/hour")
async def resend_verification(
    request: Request, current_user: CurrentUser, service: EmailVerificationServiceDep
) -> ApiResponse[None]:
    await service.resend_verification(current_user)
    return ApiResponse(message="Verification email sent")
