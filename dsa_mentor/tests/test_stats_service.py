"""
Stats aggregator: derived, read-only summary
"""
from datetime import datetime, timedelta

import pytest

from dsa_mentor.services import progress_service, stats_service
from dsa_mentor.services.credential_service import register_account
from dsa_mentor.tests.conftest import TEST_PASSWORD, unique_email


def problem(name: str) -> dict:
    return {"problem_name": name, "difficulty": "Easy", "time_spent": 5}


@pytest.mark.asyncio
async def test_empty_account(db, account):
    stats = await stats_service.compute_stats(db, account)

    assert stats["total_days_completed"] == 0
    assert stats["total_problems_completed"] == 0
    assert stats["weekly_progress"] == 0
    assert stats["current_day"] == 1
    assert stats["streak"] == 0
    assert stats["join_date"] == account.join_date
    assert stats["preferred_language"] == account.preferred_language


@pytest.mark.asyncio
async def test_counts_completed_days_and_recounts_problems(db, account):
    await progress_service.apply_update(db, account, 1, {
        "completed": True,
        "problems_completed": [problem("Two Sum"), problem("Valid Anagram")],
    })
    await progress_service.apply_update(db, account, 2, {"problems_completed": [problem("Missing Number")]})
    await progress_service.append_problem(db, account, 2, problem("Single Number"))

    stats = await stats_service.compute_stats(db, account)

    assert stats["total_days_completed"] == 1
    assert stats["weekly_progress"] == 1
    assert stats["total_problems_completed"] == 4
    # Counter only saw the problems sent with the completing update
    assert account.total_problems_completed == 2


@pytest.mark.asyncio
async def test_weekly_window_is_trailing_seven_days(db, account):
    await progress_service.apply_update(db, account, 1, {"completed": True})
    await progress_service.apply_update(db, account, 2, {"completed": True})

    stats_now = await stats_service.compute_stats(db, account)
    stats_later = await stats_service.compute_stats(db, account, now=datetime.utcnow() + timedelta(days=8))

    assert stats_now["weekly_progress"] == 2
    assert stats_later["weekly_progress"] == 0
    assert stats_later["total_days_completed"] == 2


@pytest.mark.asyncio
async def test_scoped_to_account(db, account):
    other = await register_account(db, email=unique_email("other"), password=TEST_PASSWORD, name="Other")
    await progress_service.apply_update(db, other, 1, {"completed": True, "problems_completed": [problem("Two Sum")]})

    stats = await stats_service.compute_stats(db, account)

    assert stats["total_days_completed"] == 0
    assert stats["total_problems_completed"] == 0


@pytest.mark.asyncio
async def test_does_not_mutate_state(db, account):
    await progress_service.apply_update(db, account, 1, {"completed": True, "problems_completed": [problem("A")]})
    before = (account.current_day, account.streak, account.total_problems_completed, account.last_active_date)

    await stats_service.compute_stats(db, account)
    await stats_service.compute_stats(db, account)

    assert (account.current_day, account.streak, account.total_problems_completed, account.last_active_date) == before
    assert not db.dirty
