"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
Long-lived adapters (repository, revocation store, hasher, email sender)
are created at startup and kept on app.state; the domain services are
cheap and assembled per request.
"""

from datetime import timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.adapters.smtp.background import BackgroundEmailSender
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.sender import SmtpEmailSender
from src.config.settings import Settings, get_settings
from src.domain.accounts import AccountService
from src.domain.exceptions import Unauthorized
from src.domain.models import AccountSummary
from src.domain.otp import OtpEngine
from src.domain.ports import AccountRepository
from src.domain.tokens import TokenIssuer


def build_email_sender(settings: Settings) -> BackgroundEmailSender:
    """Create the configured sender, wrapped for fire-and-forget delivery."""
    if settings.email_backend == "smtp":
        delegate = SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            sender=settings.email_from,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
            timeout=settings.smtp_timeout_seconds,
        )
    else:
        delegate = ConsoleEmailSender()
    return BackgroundEmailSender(delegate, max_workers=settings.notification_workers)


def get_repository(request: Request) -> AccountRepository:
    """
    Get account repository from app state.

    The repository is created during app lifespan startup.
    """
    return request.app.state.repository


def get_token_issuer(request: Request) -> TokenIssuer:
    """Create token issuer bound to the process-wide revocation store."""
    settings = get_settings()
    return TokenIssuer(
        secret_key=settings.jwt_secret_key,
        revocations=request.app.state.revocations,
        algorithm=settings.jwt_algorithm,
        access_ttl=timedelta(seconds=settings.access_token_ttl_seconds),
        refresh_ttl=timedelta(seconds=settings.refresh_token_ttl_seconds),
    )


def get_account_service(request: Request) -> AccountService:
    """
    Create account service with injected dependencies.

    Wires together the repository, hasher, email sender, OTP engine and
    token issuer for the domain service.
    """
    settings = get_settings()
    repository = get_repository(request)
    otp = OtpEngine(
        repository=repository,
        verification_window=timedelta(seconds=settings.otp_ttl_seconds),
        reset_window=timedelta(seconds=settings.reset_ttl_seconds),
    )
    return AccountService(
        repository=repository,
        password_hasher=request.app.state.password_hasher,
        email_sender=request.app.state.email_sender,
        otp=otp,
        tokens=get_token_issuer(request),
        unverified_login_policy=settings.unverified_login_policy,
        resend_cooldown=timedelta(seconds=settings.resend_cooldown_seconds),
    )


# Bearer security scheme for OpenAPI documentation. Missing headers are
# reported through the domain Unauthorized error for a uniform 401 body.
http_bearer = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(http_bearer),
) -> str:
    """
    Extract the session token from the Authorization header.

    Raises:
        Unauthorized: Header missing or not a Bearer credential
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing bearer token")
    return credentials.credentials


def require_session(
    token: str = Depends(get_bearer_token),
    service: AccountService = Depends(get_account_service),
) -> AccountSummary:
    """Resolve the caller's account from a valid, verified session."""
    return service.profile(token)
