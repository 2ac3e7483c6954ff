"""
dsa_mentor/routes/__init__.py
Route registration
"""
from fastapi import APIRouter

from dsa_mentor.routes import auth, curriculum, progress

router = APIRouter()

router.include_router(auth.router)
router.include_router(progress.router)
router.include_router(curriculum.router)
