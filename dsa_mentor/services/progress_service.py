"""
dsa_mentor/services/progress_service.py
Progress store: per-(account, day) records and the completion transition

RULES:
- Records are created lazily on first read or update; never deleted
- Identifier fields (account_id, day, id) are never overwritten by an update
- problems_completed is append-only and keeps insertion order
- completed is one-way; its side effects run only on the False -> True transition
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.config.settings import get_settings
from dsa_mentor.errors import ErrorCode, InvalidInputError, NotFoundError
from dsa_mentor.knowledge_base.curriculum import default_topic
from dsa_mentor.orm.account import Account, FIRST_DAY, LAST_DAY
from dsa_mentor.orm.progress import DayProgress, Difficulty, ProblemEntry
from dsa_mentor.services import streak_engine

logger = logging.getLogger(__name__)

MIN_PROBLEMS_FOR_COMPLETION = 2
MIN_NOTES_LENGTH = 50

PROTECTED_FIELDS = frozenset({"id", "account", "account_id", "day"})
MERGEABLE_FIELDS = frozenset({
    "topic",
    "video_watched",
    "notebook_completed",
    "notebook_notes",
    "time_spent",
})


class UpdateOutcome(NamedTuple):
    progress: DayProgress
    newly_completed: bool


def validate_day(day: int) -> int:
    if day < FIRST_DAY or day > LAST_DAY:
        raise InvalidInputError(
            f"Day must be between {FIRST_DAY} and {LAST_DAY}",
            details={"day": day}
        )
    return day


def requirements_for(
    video_watched: Optional[bool],
    problem_count: int,
    notebook_completed: Optional[bool],
    notebook_notes: Optional[str],
) -> Dict[str, bool]:
    """
    The three-condition gate: >= 2 problems, video watched, notebook done.
    The notebook only counts once the notes reach MIN_NOTES_LENGTH characters.
    """
    video_watched = bool(video_watched)
    enough_problems = problem_count >= MIN_PROBLEMS_FOR_COMPLETION
    notebook_completed = bool(notebook_completed)
    notes_long_enough = len(notebook_notes or "") >= MIN_NOTES_LENGTH

    return {
        "video_watched": video_watched,
        "enough_problems": enough_problems,
        "notebook_completed": notebook_completed,
        "notes_long_enough": notes_long_enough,
        "can_complete": video_watched and enough_problems and notebook_completed and notes_long_enough,
    }


def completion_requirements(record: DayProgress) -> Dict[str, bool]:
    return requirements_for(
        record.video_watched,
        len(record.problems_completed or []),
        record.notebook_completed,
        record.notebook_notes,
    )


def _problem_entry(data: Mapping[str, Any]) -> ProblemEntry:
    difficulty = data.get("difficulty")
    if difficulty is not None and not isinstance(difficulty, Difficulty):
        difficulty = Difficulty(difficulty)
    return ProblemEntry(
        problem_name=data["problem_name"],
        problem_url=data.get("problem_url"),
        difficulty=difficulty,
        time_spent=data.get("time_spent") or 0,
        completed_at=datetime.utcnow(),
    )


async def get_progress(db: AsyncSession, account: Account, day: int) -> Optional[DayProgress]:
    result = await db.execute(
        select(DayProgress).where(
            DayProgress.account_id == account.id,
            DayProgress.day == day
        )
    )
    return result.scalar_one_or_none()


async def list_progress(db: AsyncSession, account: Account) -> List[DayProgress]:
    result = await db.execute(
        select(DayProgress)
        .where(DayProgress.account_id == account.id)
        .order_by(DayProgress.day)
    )
    return list(result.scalars().all())


def _new_record(account: Account, day: int) -> DayProgress:
    return DayProgress(
        account_id=account.id,
        day=day,
        topic=default_topic(day),
        video_watched=False,
        notebook_completed=False,
        notebook_notes="",
        completed=False,
        completed_at=None,
        time_spent=0,
        problems_completed=[],
    )


async def _insert_record(db: AsyncSession, account: Account, day: int, record: DayProgress) -> DayProgress:
    """
    Flush a new day record.

    If a concurrent request created the same (account, day) first, the unique
    constraint rejects ours; roll back and return the stored row instead.
    """
    db.add(record)
    try:
        await db.flush()
        return record
    except IntegrityError:
        await db.rollback()
        # Rollback expires everything loaded in the session
        await db.refresh(account)
        logger.info(f"Progress record created concurrently, reusing it: account={account.id}, day={day}")
        return await get_progress(db, account, day)


async def get_or_create(db: AsyncSession, account: Account, day: int) -> DayProgress:
    """Return the day's record, creating a default one if absent."""
    validate_day(day)
    record = await get_progress(db, account, day)
    if record is not None:
        return record

    record = _new_record(account, day)
    stored = await _insert_record(db, account, day, record)
    if stored is record:
        await db.commit()
        logger.info(f"Created progress record: account={account.id}, day={day}")
    return stored


def _merged_fields(record: DayProgress, updates: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        field: updates[field] if updates.get(field) is not None else getattr(record, field)
        for field in MERGEABLE_FIELDS
    }


def _check_gate(account: Account, day: int, record: DayProgress, updates: Mapping[str, Any]) -> None:
    if not updates.get("completed") or record.completed:
        return

    merged = _merged_fields(record, updates)
    requirements = requirements_for(
        merged["video_watched"],
        len(record.problems_completed) + len(updates.get("problems_completed") or []),
        merged["notebook_completed"],
        merged["notebook_notes"],
    )
    if not requirements["can_complete"]:
        logger.warning(f"Completion gate not met: account={account.id}, day={day}")
        raise InvalidInputError(
            "Day requirements not met",
            code=ErrorCode.PREREQUISITE_NOT_MET,
            details=requirements
        )


async def apply_update(
    db: AsyncSession,
    account: Account,
    day: int,
    updates: Mapping[str, Any],
    enforce_gate: Optional[bool] = None,
) -> UpdateOutcome:
    """
    Merge a partial update into the day's record (creating it first if absent).

    On the completed False -> True transition:
    - completed_at is stamped
    - if day >= current_day, the cursor moves to min(day + 1, 84) and
      total_problems_completed grows by the problems sent in this update
    - the streak engine records the activity

    Raises:
        InvalidInputError: day out of range, or gate unmet while enforced
    """
    validate_day(day)
    if enforce_gate is None:
        enforce_gate = get_settings().ENFORCE_COMPLETION_GATE

    record = await get_progress(db, account, day)
    is_new = record is None
    if is_new:
        record = _new_record(account, day)

    # Checked before the insert so a rejected update leaves no record behind
    if enforce_gate:
        _check_gate(account, day, record, updates)

    if is_new:
        stored = await _insert_record(db, account, day, record)
        if stored is not record:
            record = stored
            if enforce_gate:
                _check_gate(account, day, record, updates)

    ignored = PROTECTED_FIELDS.intersection(updates)
    if ignored:
        logger.warning(f"Ignoring identifier fields in update: {sorted(ignored)}")

    merged = _merged_fields(record, updates)
    submitted: Iterable[Mapping[str, Any]] = updates.get("problems_completed") or []
    new_entries = [_problem_entry(problem) for problem in submitted]
    newly_completed = bool(updates.get("completed")) and not record.completed

    for field, value in merged.items():
        setattr(record, field, value)
    record.problems_completed.extend(new_entries)

    if newly_completed:
        record.completed = True
        record.completed_at = datetime.utcnow()

        if day >= account.current_day:
            account.current_day = min(day + 1, LAST_DAY)
            account.total_problems_completed = (account.total_problems_completed or 0) + len(new_entries)

        streak_engine.record_activity(account)
        logger.info(
            f"✓ Day {day} completed: account={account.id}, "
            f"current_day={account.current_day}, streak={account.streak}"
        )
    elif updates.get("completed") is False and record.completed:
        logger.warning(f"Ignoring completed=false for completed day {day} (account {account.id})")

    await db.commit()
    return UpdateOutcome(progress=record, newly_completed=newly_completed)


async def append_problem(
    db: AsyncSession,
    account: Account,
    day: int,
    problem: Mapping[str, Any],
) -> DayProgress:
    """
    Append one solved problem to an existing day record.

    Raises:
        NotFoundError: no record exists for that day yet
    """
    validate_day(day)
    record = await get_progress(db, account, day)
    if record is None:
        raise NotFoundError("Progress not found for this day")

    record.problems_completed.append(_problem_entry(problem))
    await db.commit()

    logger.info(
        f"Problem appended: account={account.id}, day={day}, "
        f"total_on_day={len(record.problems_completed)}"
    )
    return record
