"""
dsa_mentor/services/mfa_service.py
Second-factor (TOTP) setup and verification

- 30-second steps, 6-digit codes (RFC 6238 defaults)
- ±2 steps (±60s) tolerance for clock drift
- setup writes a *pending* secret; the active secret only changes on confirmation
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

import pyotp
from fastapi import status
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.config.settings import get_settings
from dsa_mentor.errors import InvalidCodeError, InvalidInputError, MfaRequiredError
from dsa_mentor.orm.account import Account

logger = logging.getLogger(__name__)

SECRET_LENGTH = 32      # base32 chars -> 160 bits
CODE_DIGITS = 6
STEP_SECONDS = 30
VALID_WINDOW = 2

ForTime = Optional[Union[datetime, int, float]]


@dataclass
class MfaSetup:
    secret: str
    provisioning_uri: str


def _totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(secret, digits=CODE_DIGITS, interval=STEP_SECONDS)


def verify_code(secret: str, code: Optional[str], for_time: ForTime = None) -> bool:
    """True if `code` matches `secret` within ±VALID_WINDOW steps of `for_time` (default: now)."""
    if not secret or not code:
        return False
    code = code.strip().replace(" ", "")
    if len(code) != CODE_DIGITS or not code.isdigit():
        return False
    return _totp(secret).verify(code, for_time=for_time, valid_window=VALID_WINDOW)


def provisioning_uri(secret: str, email: str) -> str:
    return _totp(secret).provisioning_uri(name=email, issuer_name=get_settings().MFA_ISSUER)


async def begin_setup(db: AsyncSession, account: Account) -> MfaSetup:
    """
    Generate a fresh secret and store it as pending.
    Calling again before confirmation replaces the pending secret.
    """
    secret = pyotp.random_base32(length=SECRET_LENGTH)
    account.mfa_pending_secret = secret
    await db.commit()

    logger.info(f"MFA setup started for account {account.id}")
    return MfaSetup(secret=secret, provisioning_uri=provisioning_uri(secret, account.email))


async def confirm_setup(db: AsyncSession, account: Account, code: str, for_time: ForTime = None) -> Account:
    """
    Activate the pending secret if `code` is valid for it.

    A rejected code leaves the pending secret in place so the caller may retry.
    """
    if not account.mfa_pending_secret:
        raise InvalidInputError("MFA setup not initiated")

    if not verify_code(account.mfa_pending_secret, code, for_time=for_time):
        logger.warning(f"Invalid MFA setup code for account {account.id}")
        raise InvalidCodeError("Invalid token")

    account.mfa_secret = account.mfa_pending_secret
    account.mfa_pending_secret = None
    account.mfa_enabled = True
    await db.commit()

    logger.info(f"MFA enabled for account {account.id}")
    return account


def verify_login(account: Account, code: Optional[str], for_time: ForTime = None) -> None:
    """
    Second-factor check at login. No-op when the second factor is inactive.

    Raises:
        MfaRequiredError: second factor active and no code supplied
        InvalidCodeError: code supplied but rejected (401)
    """
    if not account.mfa_enabled:
        return

    if code is None or not str(code).strip():
        raise MfaRequiredError()

    if not verify_code(account.mfa_secret, str(code), for_time=for_time):
        logger.warning(f"Invalid MFA code at login for account {account.id}")
        raise InvalidCodeError("Invalid MFA token", status_code=status.HTTP_401_UNAUTHORIZED)
