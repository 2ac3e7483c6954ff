"""
dsa_mentor/routes/progress.py
Per-day progress and stats routes

All routes act on the authenticated account only. A day completed over HTTP
is also announced on the relay as `lesson_completed`.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.database import get_db
from dsa_mentor.orm.account import Account
from dsa_mentor.orm.progress import DayProgress
from dsa_mentor.realtime import events
from dsa_mentor.realtime.connection_manager import get_connection_manager
from dsa_mentor.schemas.progress import (
    CompletionRequirements,
    DayProgressEnvelope,
    DayProgressResponse,
    ProblemAppendResponse,
    ProblemCreate,
    ProgressListResponse,
    ProgressUpdate,
    StatsResponse,
)
from dsa_mentor.security.session_tokens import get_current_account
from dsa_mentor.services import progress_service, stats_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["Progress"])


# ================= HELPER FUNCTIONS =================

def serialize_progress(record: DayProgress) -> DayProgressResponse:
    response = DayProgressResponse.model_validate(record)
    response.requirements = CompletionRequirements(**progress_service.completion_requirements(record))
    return response


# ================= ROUTES =================

@router.get("", response_model=ProgressListResponse)
async def list_progress(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    records = await progress_service.list_progress(db, current_account)
    return ProgressListResponse(progress=[serialize_progress(record) for record in records])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    return StatsResponse(**await stats_service.compute_stats(db, current_account))


@router.get("/day/{day}", response_model=DayProgressEnvelope)
async def get_day_progress(
    day: int,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """Fetch the day's record, creating a default one on first access."""
    record = await progress_service.get_or_create(db, current_account, day)
    return DayProgressEnvelope(progress=serialize_progress(record))


@router.put("/day/{day}", response_model=DayProgressEnvelope)
async def update_day_progress(
    day: int,
    payload: ProgressUpdate,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """
    Partial merge of the sent fields. `problems_completed` entries are appended.
    Sending `completed: true` for the first time advances the account cursor.
    """
    outcome = await progress_service.apply_update(
        db, current_account, day, payload.model_dump(exclude_unset=True)
    )

    if outcome.newly_completed:
        delivered = get_connection_manager().broadcast(current_account.id, events.lesson_completed(day))
        logger.info(f"lesson_completed mirrored to {delivered} live connection(s) for account {current_account.id}")

    return DayProgressEnvelope(progress=serialize_progress(outcome.progress))


@router.post("/day/{day}/problem", response_model=ProblemAppendResponse)
async def add_problem(
    day: int,
    problem: ProblemCreate,
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    record = await progress_service.append_problem(db, current_account, day, problem.model_dump())
    return ProblemAppendResponse(
        message="Problem added successfully",
        progress=serialize_progress(record),
    )
