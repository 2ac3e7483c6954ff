"""
dsa_mentor/routes/auth.py
Authentication routes: register, login (with optional second factor), account, MFA setup

Auth routes are rate limited per client IP (slowapi).
"""
import logging

from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.config.settings import get_settings
from dsa_mentor.database import get_db
from dsa_mentor.errors import MfaRequiredError
from dsa_mentor.orm.account import Account
from dsa_mentor.schemas.auth import (
    AccountLogin,
    AccountRegister,
    AccountResponse,
    AuthResponse,
    ChangePasswordRequest,
    MeResponse,
    MessageResponse,
    MfaSetupResponse,
    MfaVerifyRequest,
    MfaVerifyResponse,
)
from dsa_mentor.security.session_tokens import get_current_account, issue_token
from dsa_mentor.services import credential_service, mfa_service, streak_engine

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix="/auth", tags=["Authentication"])
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


# ================= ROUTES =================

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(
    request: Request,  # Required by slowapi
    payload: AccountRegister,
    db: AsyncSession = Depends(get_db)
):
    """Create the account and log it in."""
    account = await credential_service.register_account(
        db,
        email=payload.email,
        password=payload.password,
        name=payload.name,
        preferred_language=payload.preferred_language,
    )

    return AuthResponse(
        message="User created successfully",
        access_token=issue_token(account),
        account=AccountResponse.model_validate(account),
    )


@router.post("/login", response_model=AuthResponse)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,  # Required by slowapi
    credentials: AccountLogin,
    db: AsyncSession = Depends(get_db),
):
    """
    Password login. With the second factor active and no `mfa_code`, answers
    200 with `requires_mfa: true` and no token so the client can prompt.
    """
    account = await credential_service.authenticate(db, credentials.email, credentials.password)

    try:
        mfa_service.verify_login(account, credentials.mfa_code)
    except MfaRequiredError:
        logger.info(f"Second factor required for account {account.id}")
        return AuthResponse(message="MFA token required", requires_mfa=True)

    streak_engine.record_activity(account)
    await db.commit()

    logger.info(f"Login successful: account={account.id}, streak={account.streak}")

    return AuthResponse(
        message="Login successful",
        access_token=issue_token(account),
        account=AccountResponse.model_validate(account),
    )


@router.get("/me", response_model=MeResponse)
async def me(current_account: Account = Depends(get_current_account)):
    return MeResponse(account=AccountResponse.model_validate(current_account))


@router.post("/mfa/setup", response_model=MfaSetupResponse)
async def mfa_setup(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Issue a fresh pending secret. Rendering the URI as a QR code is left to the client."""
    setup = await mfa_service.begin_setup(db, current_account)
    return MfaSetupResponse(
        secret=setup.secret,
        manual_entry_key=setup.secret,
        provisioning_uri=setup.provisioning_uri,
    )


@router.post("/mfa/verify", response_model=MfaVerifyResponse)
async def mfa_verify(
    payload: MfaVerifyRequest,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    account = await mfa_service.confirm_setup(db, current_account, payload.code)
    return MfaVerifyResponse(message="MFA enabled successfully", mfa_enabled=account.mfa_enabled)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    await credential_service.change_password(
        db, current_account, payload.current_password, payload.new_password
    )
    return MessageResponse(message="Password updated successfully")
