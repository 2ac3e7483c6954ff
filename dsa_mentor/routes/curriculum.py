"""
dsa_mentor/routes/curriculum.py
Read-only lookups into the fixed 84-day curriculum
"""
import logging

from fastapi import APIRouter, Depends

from dsa_mentor.errors import InvalidInputError
from dsa_mentor.knowledge_base import curriculum
from dsa_mentor.orm.account import Account
from dsa_mentor.schemas.progress import CurriculumEntryResponse, CurriculumOverviewResponse
from dsa_mentor.security.session_tokens import get_current_account

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/curriculum", tags=["Curriculum"])


@router.get("/day/{day}", response_model=CurriculumEntryResponse)
async def get_curriculum_day(day: int, current_account: Account = Depends(get_current_account)):
    entry = curriculum.get_entry(day)
    if entry is None:
        raise InvalidInputError(
            f"Invalid day number. Must be between 1 and {curriculum.TOTAL_DAYS}",
            details={"day": day}
        )
    return CurriculumEntryResponse.model_validate(entry)


@router.get("/overview", response_model=CurriculumOverviewResponse)
async def get_curriculum_overview(current_account: Account = Depends(get_current_account)):
    return CurriculumOverviewResponse(
        curriculum=[CurriculumEntryResponse.model_validate(entry) for entry in curriculum.overview()]
    )
