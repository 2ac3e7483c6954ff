from .base import Base
from .account import Account, PreferredLanguage
from .progress import DayProgress, ProblemEntry, Difficulty
