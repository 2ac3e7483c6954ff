"""
dsa_mentor/orm/progress.py
Per-day progress records and their embedded problem entries
"""
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from dsa_mentor.orm.base import BaseModel


class Difficulty(str, Enum):
    Easy = "Easy"
    Medium = "Medium"
    Hard = "Hard"


class DayProgress(BaseModel):
    """
    One record per (account, day).

    Created lazily on first read or write; never deleted.
    `completed` is one-way (False -> True); `completed_at` is set on that transition.
    """
    __tablename__ = "day_progress"

    account_id = Column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    day = Column(Integer, nullable=False)

    topic = Column(String(255), nullable=False)
    video_watched = Column(Boolean, default=False, nullable=False)
    notebook_completed = Column(Boolean, default=False, nullable=False)
    notebook_notes = Column(Text, default="", nullable=False)
    completed = Column(Boolean, default=False, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    time_spent = Column(Integer, default=0, nullable=False)  # minutes

    account = relationship("Account", back_populates="progress_records")
    problems_completed = relationship(
        "ProblemEntry",
        back_populates="progress",
        cascade="all, delete-orphan",
        order_by="ProblemEntry.id",
        lazy="selectin"
    )

    __table_args__ = (
        UniqueConstraint("account_id", "day", name="uq_account_day_progress"),
        CheckConstraint("day >= 1 AND day <= 84", name="ck_progress_day_range"),
        Index("ix_progress_account_completed_at", "account_id", "completed", "completed_at"),
    )

    def __repr__(self):
        return f"<DayProgress(account_id={self.account_id}, day={self.day}, completed={self.completed})>"


class ProblemEntry(BaseModel):
    """Immutable once appended; ordered by insertion id."""
    __tablename__ = "problem_entries"

    progress_id = Column(
        Integer,
        ForeignKey("day_progress.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    problem_name = Column(String(255), nullable=False)
    problem_url = Column(String(1024), nullable=True)
    difficulty = Column(SQLEnum(Difficulty), nullable=True)
    time_spent = Column(Integer, default=0, nullable=False)  # minutes
    completed_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    progress = relationship("DayProgress", back_populates="problems_completed")

    def __repr__(self):
        return f"<ProblemEntry(progress_id={self.progress_id}, name='{self.problem_name}')>"
