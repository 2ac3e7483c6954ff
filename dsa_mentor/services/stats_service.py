"""
dsa_mentor/services/stats_service.py
Stats aggregator: read-only summary derived from the progress store

total_problems_completed is a recount of stored problem entries, not the
incremental counter on the account.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dsa_mentor.orm.account import Account
from dsa_mentor.orm.progress import DayProgress, ProblemEntry

logger = logging.getLogger(__name__)

WEEKLY_WINDOW = timedelta(days=7)


async def count_completed_days(db: AsyncSession, account_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(DayProgress.id)).where(
        DayProgress.account_id == account_id,
        DayProgress.completed.is_(True)
    )
    if since is not None:
        query = query.where(DayProgress.completed_at >= since)
    result = await db.execute(query)
    return result.scalar() or 0


async def count_problems(db: AsyncSession, account_id: int) -> int:
    result = await db.execute(
        select(func.count(ProblemEntry.id))
        .join(DayProgress, ProblemEntry.progress_id == DayProgress.id)
        .where(DayProgress.account_id == account_id)
    )
    return result.scalar() or 0


async def compute_stats(db: AsyncSession, account: Account, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Summary for dashboards. Never mutates stored state."""
    now = now or datetime.utcnow()

    total_days_completed = await count_completed_days(db, account.id)
    weekly_progress = await count_completed_days(db, account.id, since=now - WEEKLY_WINDOW)
    total_problems = await count_problems(db, account.id)

    if total_problems != (account.total_problems_completed or 0):
        logger.debug(
            f"Problem counter drift for account {account.id}: "
            f"counter={account.total_problems_completed}, recount={total_problems}"
        )

    return {
        "current_day": account.current_day,
        "streak": account.streak,
        "total_days_completed": total_days_completed,
        "weekly_progress": weekly_progress,
        "total_problems_completed": total_problems,
        "join_date": account.join_date,
        "preferred_language": account.preferred_language,
        "last_active_date": account.last_active_date,
    }
