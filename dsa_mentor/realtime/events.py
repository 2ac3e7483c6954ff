"""
dsa_mentor/realtime/events.py
Relay frame types and builders
"""
from datetime import datetime
from typing import Any, Dict

# Client -> server
PROGRESS_UPDATE = "progress_update"
LESSON_COMPLETE = "lesson_complete"
PING = "ping"

ALLOWED_CLIENT_MESSAGES = {PROGRESS_UPDATE, LESSON_COMPLETE, PING}

# Server -> client
PROGRESS_SYNC = "progress_sync"
LESSON_COMPLETED = "lesson_completed"
PONG = "pong"
ERROR = "error"

CONGRATULATIONS = "Outstanding work! You're one step closer to DSA mastery."


def _now() -> str:
    return datetime.utcnow().isoformat()


def progress_sync(data: Any) -> Dict[str, Any]:
    return {"type": PROGRESS_SYNC, "data": data}


def lesson_completed(day: Any) -> Dict[str, Any]:
    return {
        "type": LESSON_COMPLETED,
        "day": day,
        "timestamp": _now(),
        "message": CONGRATULATIONS,
    }


def pong() -> Dict[str, Any]:
    return {"type": PONG, "timestamp": _now()}


def error(message: str) -> Dict[str, Any]:
    return {"type": ERROR, "message": message}
