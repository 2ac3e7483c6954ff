"""
dsa_mentor/security/session_tokens.py
Session issuer: signed, time-limited bearer tokens

The same validation backs HTTP bearer auth and the real-time relay handshake.
"""
import logging
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.config.settings import get_settings
from dsa_mentor.database import get_db
from dsa_mentor.errors import InvalidTokenError
from dsa_mentor.orm.account import Account
from dsa_mentor.services.credential_service import get_account_by_id

logger = logging.getLogger(__name__)

TOKEN_TYPE = "access"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


@lru_cache()
def get_signing_key() -> str:
    """Resolved once per process; fails in production-like environments without JWT_SECRET_KEY."""
    return get_settings().resolve_jwt_secret()


def issue_token(account: Account, expires_delta: Optional[timedelta] = None) -> str:
    """Create a token carrying the account id and email, valid for 7 days by default."""
    settings = get_settings()
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.SESSION_TOKEN_EXPIRE_DAYS))
    to_encode = {
        "sub": str(account.id),
        "user_id": account.id,
        "email": account.email,
        "exp": expire,
        "type": TOKEN_TYPE,
    }
    return jwt.encode(to_encode, get_signing_key(), algorithm=settings.JWT_ALGORITHM)


def validate_token(token: Optional[str]) -> int:
    """
    Verify signature, expiry and payload shape.

    Returns:
        The account id carried by the token
    Raises:
        InvalidTokenError: missing, malformed, badly signed or expired token
    """
    if not token:
        raise InvalidTokenError("Access token required")

    try:
        payload = jwt.decode(token, get_signing_key(), algorithms=[get_settings().JWT_ALGORITHM])
    except JWTError as e:
        logger.warning(f"Token rejected: {type(e).__name__}")
        raise InvalidTokenError()

    if payload.get("type") != TOKEN_TYPE:
        raise InvalidTokenError("Invalid token payload")

    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        raise InvalidTokenError("Invalid token payload")


async def resolve_account(db: AsyncSession, token: Optional[str]) -> Account:
    """Validate the token and load its account (a deleted account is an invalid token)."""
    account_id = validate_token(token)
    account = await get_account_by_id(db, account_id)
    if account is None:
        raise InvalidTokenError("Account not found")
    return account


async def get_current_account(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> Account:
    """Bearer-auth dependency. Missing and invalid tokens yield the same 401 shape."""
    return await resolve_account(db, token)
