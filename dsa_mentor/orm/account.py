"""
dsa_mentor/orm/account.py
Account model: credentials, second factor and the progress cursor
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, CheckConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship

from dsa_mentor.orm.base import BaseModel

FIRST_DAY = 1
LAST_DAY = 84


class PreferredLanguage(str, Enum):
    """Informational only - never changes behaviour"""
    JavaScript = "JavaScript"
    Python = "Python"
    Java = "Java"
    CPP = "C++"
    TypeScript = "TypeScript"
    Go = "Go"
    Rust = "Rust"


class Account(BaseModel):
    """
    A registered learner.

    KEY FIELDS:
    - password_hash: bcrypt hash, never the clear password
    - mfa_secret: active TOTP secret (only while mfa_enabled)
    - mfa_pending_secret: secret issued by setup, waiting for confirmation
    - current_day: cursor into the 84-day curriculum (1..84)
    - streak / last_active_date: maintained by the streak engine
    - total_problems_completed: incremented on day completion (stats recount is authoritative)
    """
    __tablename__ = "accounts"

    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    password_hash = Column(String(255), nullable=False)
    preferred_language = Column(
        SQLEnum(PreferredLanguage),
        nullable=False,
        default=PreferredLanguage.JavaScript
    )

    # Second factor
    mfa_enabled = Column(Boolean, default=False, nullable=False)
    mfa_secret = Column(String(64), nullable=True)
    mfa_pending_secret = Column(String(64), nullable=True)

    # Progress cursor
    current_day = Column(Integer, default=FIRST_DAY, nullable=False)
    streak = Column(Integer, default=0, nullable=False)
    last_active_date = Column(Date, nullable=True)
    total_problems_completed = Column(Integer, default=0, nullable=False)
    join_date = Column(DateTime, default=datetime.utcnow, nullable=False)

    progress_records = relationship(
        "DayProgress",
        back_populates="account",
        cascade="all, delete-orphan",
        lazy="noload"
    )

    __table_args__ = (
        CheckConstraint(
            f"current_day >= {FIRST_DAY} AND current_day <= {LAST_DAY}",
            name="ck_account_current_day_range"
        ),
        CheckConstraint("streak >= 0", name="ck_account_streak_non_negative"),
    )

    def __repr__(self):
        return f"<Account(id={self.id}, email='{self.email}', day={self.current_day})>"
