"""
dsa_mentor/schemas/progress.py
Pydantic schemas for day progress, problems, stats and curriculum
"""
from datetime import date, datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dsa_mentor.orm.account import PreferredLanguage
from dsa_mentor.orm.progress import Difficulty


# ================= REQUEST SCHEMAS =================

class ProblemCreate(BaseModel):
    """
    A solved problem to append to a day.

    Used by: POST /api/progress/day/{day}/problem
    """
    problem_name: str = Field(..., min_length=1, max_length=255)
    problem_url: Optional[str] = Field(None, max_length=1024)
    difficulty: Optional[Difficulty] = None
    time_spent: int = Field(0, ge=0, description="Minutes spent on the problem")

    @field_validator('problem_name')
    @classmethod
    def validate_problem_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("problem_name cannot be empty")
        return v.strip()

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "problem_name": "Two Sum",
            "problem_url": "https://leetcode.com/problems/two-sum/",
            "difficulty": "Easy",
            "time_spent": 15
        }
    })


class ProgressUpdate(BaseModel):
    """
    Partial update of a day record. Only the fields sent are merged.

    `account_id` and `day` are not part of the schema and cannot be overwritten.
    `problems_completed`, when present, is appended to the stored list.

    Used by: PUT /api/progress/day/{day}
    """
    topic: Optional[str] = Field(None, max_length=255)
    video_watched: Optional[bool] = None
    notebook_completed: Optional[bool] = None
    notebook_notes: Optional[str] = None
    completed: Optional[bool] = None
    time_spent: Optional[int] = Field(None, ge=0)
    problems_completed: Optional[List[ProblemCreate]] = None


# ================= RESPONSE SCHEMAS =================

class ProblemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    problem_name: str
    problem_url: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    time_spent: int
    completed_at: datetime


class CompletionRequirements(BaseModel):
    """Derived view of the three-condition completion gate."""
    video_watched: bool
    enough_problems: bool
    notebook_completed: bool
    notes_long_enough: bool
    can_complete: bool


class DayProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    day: int
    topic: str
    video_watched: bool
    problems_completed: List[ProblemResponse]
    notebook_completed: bool
    notebook_notes: str
    completed: bool
    completed_at: Optional[datetime] = None
    time_spent: int
    requirements: Optional[CompletionRequirements] = None
    created_at: datetime
    updated_at: datetime


class DayProgressEnvelope(BaseModel):
    progress: DayProgressResponse


class ProgressListResponse(BaseModel):
    progress: List[DayProgressResponse]


class ProblemAppendResponse(BaseModel):
    message: str
    progress: DayProgressResponse


class StatsResponse(BaseModel):
    current_day: int
    streak: int
    total_days_completed: int
    weekly_progress: int
    total_problems_completed: int
    join_date: datetime
    preferred_language: PreferredLanguage
    last_active_date: Optional[date] = None


class CurriculumEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    day: int
    topic: str
    phase: str
    week: int
    is_review: bool


class CurriculumOverviewResponse(BaseModel):
    curriculum: List[CurriculumEntryResponse]
