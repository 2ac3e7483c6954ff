"""
dsa_mentor/services/credential_service.py
Credential store: account registration, password hashing and verification

bcrypt is slow by design and blocks the event loop, so hashing and
verification run in a small thread pool.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.errors import DuplicateAccountError, InvalidCredentialsError, InvalidInputError
from dsa_mentor.orm.account import Account, PreferredLanguage

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
BCRYPT_ROUNDS = 12

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=BCRYPT_ROUNDS,
)

_executor = None


def get_executor():
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=4)
    return _executor


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def normalize_password(password: str) -> str:
    """
    bcrypt only supports 72 bytes.
    Truncate AFTER UTF-8 encoding so multi-byte characters are not split.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > 72:
        encoded = encoded[:72]
    return encoded.decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    return pwd_context.hash(normalize_password(password))


def verify_password(account: Account, candidate: str) -> bool:
    """Check `candidate` against the stored hash (salt and cost come from the hash)."""
    if not candidate or not account.password_hash:
        return False
    return pwd_context.verify(normalize_password(candidate), account.password_hash)


async def hash_password_async(password: str) -> str:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), hash_password, password)


async def verify_password_async(account: Account, candidate: str) -> bool:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(get_executor(), verify_password, account, candidate)


async def _dummy_verify_async() -> None:
    """Spend the same bcrypt time when the email is unknown."""
    loop = asyncio.get_running_loop()
    await loop.run_in_executor(get_executor(), pwd_context.dummy_verify)


def validate_password(password: Optional[str]) -> str:
    if not password:
        raise InvalidInputError("Email, password, and name are required")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            details={"field": "password"}
        )
    return password


async def get_account_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_account_by_id(db: AsyncSession, account_id: int) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.id == account_id))
    return result.scalar_one_or_none()


async def register_account(
    db: AsyncSession,
    email: str,
    password: str,
    name: str,
    preferred_language: Optional[PreferredLanguage] = None,
) -> Account:
    """
    Create a new account.

    Raises:
        InvalidInputError: missing fields or password shorter than 6 characters
        DuplicateAccountError: email already registered (case-insensitive)
    """
    email = normalize_email(email)
    name = (name or "").strip()
    if not email or not password or not name:
        logger.warning(f"Malformed registration: email_present={bool(email)}, name_present={bool(name)}")
        raise InvalidInputError("Email, password, and name are required")
    validate_password(password)

    if await get_account_by_email(db, email):
        logger.warning(f"Email already registered: {email}")
        raise DuplicateAccountError()

    account = Account(
        email=email,
        name=name,
        password_hash=await hash_password_async(password),
        preferred_language=preferred_language or PreferredLanguage.JavaScript,
        mfa_enabled=False,
        mfa_secret=None,
        mfa_pending_secret=None,
        current_day=1,
        streak=0,
        last_active_date=None,
        total_problems_completed=0,
        join_date=datetime.utcnow(),
    )
    db.add(account)
    try:
        await db.commit()
    except IntegrityError:
        # Registered concurrently between the lookup and the insert
        await db.rollback()
        logger.warning(f"Email already registered: {email}")
        raise DuplicateAccountError()

    logger.info(f"Account registered: id={account.id}")
    return account


async def authenticate(db: AsyncSession, email: str, password: str) -> Account:
    """
    Resolve an account from email + password.

    Unknown email and wrong password raise the same InvalidCredentialsError,
    and both paths pay for one bcrypt verification.
    """
    account = await get_account_by_email(db, email)

    if account is None:
        await _dummy_verify_async()
        logger.warning("Invalid credentials (login)")
        raise InvalidCredentialsError()

    if not await verify_password_async(account, password):
        logger.warning(f"Invalid credentials (login) for account {account.id}")
        raise InvalidCredentialsError()

    return account


async def change_password(db: AsyncSession, account: Account, current_password: str, new_password: str) -> Account:
    """Verify the current password, then hash and store the new one exactly once."""
    if not await verify_password_async(account, current_password):
        raise InvalidInputError("Current password is incorrect", details={"field": "current_password"})
    validate_password(new_password)

    account.password_hash = await hash_password_async(new_password)
    await db.commit()

    logger.info(f"Account {account.id} changed password")
    return account
