"""
API v1 routes.

Defines REST endpoints for the account lifecycle API. Domain errors are
not caught here; src.api.errors maps them to responses.
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from src.api.dependencies import (
    get_account_service,
    get_bearer_token,
    require_session,
)
from src.api.models import (
    AccountResponse,
    EmailRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    OtpLoginRequest,
    OtpRequest,
    PasswordResetConfirmation,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    UpdateUsernameRequest,
    VerificationRequiredResponse,
    VerifyEmailRequest,
)
from src.config.settings import get_settings
from src.domain.accounts import AccountService
from src.domain.models import AccountSummary, LoginResult
from src.domain.ports import LoginStatus

router = APIRouter(tags=["v1"])

_OTP_ERRORS = {400: {"model": ErrorResponse, "description": "Missing, expired or invalid OTP"}}
_AUTH_ERRORS = {401: {"model": ErrorResponse, "description": "Missing, invalid, expired or revoked token"}}


def _login_response(result: LoginResult) -> LoginResponse:
    return LoginResponse(
        token=result.token,
        refresh_token=result.refresh_token,
        expires_at=result.expires_at,
        user_id=result.account_id,
        email=result.email,
        username=result.username,
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Missing fields or passwords do not match"},
        409: {"model": ErrorResponse, "description": "Email or username already exists"},
        422: {"description": "Validation error"},
    },
    summary="Register a new user",
    description="Submit username, email and password to create an unverified account. "
    "A 4-digit verification code will be sent to the provided email.",
)
def register(
    request_data: RegisterRequest,
    service: AccountService = Depends(get_account_service),
) -> RegisterResponse:
    """
    Register a new user and send verification code.

    - **username**: Unique username
    - **email**: Valid email address to register
    - **password** / **confirmPassword**: Password (minimum 8 characters), twice
    """
    service.register(
        request_data.username,
        request_data.email,
        request_data.password,
        request_data.confirm_password,
    )
    return RegisterResponse(
        message="Verification code sent",
        email=request_data.email.strip().lower(),
        expires_in_seconds=get_settings().otp_ttl_seconds,
    )


@router.put(
    "/otp/{identifier}",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**_OTP_ERRORS, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Verify account by id or email",
)
def verify_by_identifier(
    identifier: str,
    request_data: OtpRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    """Verify the account addressed by numeric id or email address."""
    service.verify_email(identifier, request_data.otp)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/verify-email",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**_OTP_ERRORS, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Verify account by email",
)
def verify_email(
    request_data: VerifyEmailRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.verify_email(request_data.email, request_data.otp)
    return MessageResponse(message="Email verified successfully")


@router.post(
    "/resend-otp",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
    summary="Resend verification code",
)
def resend_otp(
    request_data: EmailRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.resend_otp(request_data.email)
    return MessageResponse(message="OTP sent")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid email or password"},
        403: {"model": VerificationRequiredResponse, "description": "Account not verified, OTP sent"},
    },
    summary="Log in with email and password",
)
def login(
    request_data: LoginRequest,
    service: AccountService = Depends(get_account_service),
):
    """
    Authenticate and receive session tokens.

    Unverified accounts receive 403 with error OTP_REQUIRED; a fresh code
    is emailed when none is outstanding.
    """
    result = service.login(request_data.email, request_data.password)
    if result.status is LoginStatus.VERIFICATION_REQUIRED:
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content=VerificationRequiredResponse().model_dump(),
        )
    return _login_response(result)


@router.post(
    "/login/otp",
    response_model=LoginResponse,
    responses={**_OTP_ERRORS, 404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Verify account and log in with OTP",
)
def login_with_otp(
    request_data: OtpLoginRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    return _login_response(service.login_with_otp(request_data.email, request_data.otp))


@router.post(
    "/refresh",
    response_model=LoginResponse,
    responses=_AUTH_ERRORS,
    summary="Exchange a refresh token for a new access token",
)
def refresh(
    request_data: RefreshRequest,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    return _login_response(service.refresh(request_data.refresh_token))


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses=_AUTH_ERRORS,
    summary="Revoke the presented session token",
)
def logout(
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.logout(token)
    return MessageResponse(message="Logged out")


@router.post(
    "/password-reset-request",
    response_model=MessageResponse,
    summary="Request a password reset code",
    description="Always answers with the same message whether or not the email is registered.",
)
def request_password_reset(
    request_data: EmailRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.request_password_reset(request_data.email)
    return MessageResponse(message="Password reset code sent to your email")


@router.post(
    "/password-reset",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid or expired code"}},
    summary="Reset password with a reset code",
)
def reset_password(
    request_data: PasswordResetConfirmation,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    service.reset_password(request_data.otp, request_data.new_password)
    return MessageResponse(message="Password reset successfully")


@router.get(
    "/me",
    response_model=AccountResponse,
    responses=_AUTH_ERRORS,
    summary="Current account",
)
def me(account: AccountSummary = Depends(require_session)) -> AccountResponse:
    return AccountResponse(id=account.id, username=account.username, email=account.email)


@router.put(
    "/update-username",
    response_model=AccountResponse,
    responses={**_AUTH_ERRORS, 409: {"model": ErrorResponse, "description": "Username already taken"}},
    summary="Change the current account's username",
)
def update_username(
    request_data: UpdateUsernameRequest,
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    account = service.update_username(token, request_data.username)
    return AccountResponse(id=account.id, username=account.username, email=account.email)


@router.get(
    "/all",
    response_model=list[AccountResponse],
    responses=_AUTH_ERRORS,
    summary="List all accounts",
)
def list_accounts(
    _: AccountSummary = Depends(require_session),
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return [
        AccountResponse(id=a.id, username=a.username, email=a.email)
        for a in service.list_accounts()
    ]


@router.delete(
    "/delete/{account_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_AUTH_ERRORS, 404: {"model": ErrorResponse}},
    summary="Delete an account",
)
def delete_account(
    account_id: int,
    _: AccountSummary = Depends(require_session),
    service: AccountService = Depends(get_account_service),
) -> Response:
    service.delete_account(account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
