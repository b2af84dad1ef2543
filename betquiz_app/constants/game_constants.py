"""Game rules shared by the registry, the settlement engine and reports."""

from fractions import Fraction
import re

DEFAULT_ASSESSMENT_NAME: str = "Assessment"
DEFAULT_INITIAL_COINS: int = 1000
DEFAULT_WIN_MULTIPLIER: float = 2.0
DEFAULT_TIMER_SECONDS: int = 30

SKIP_PENALTY_RATE: str = "0.05"
SKIP_PENALTY_ROUNDING: int = 10
HIGH_CONFIDENCE_PERCENT: float = 40.0

HIGH_KNOWLEDGE_ACCURACY: float = 50.0
HIGH_CONFIDENCE_AVERAGE: float = 40.0
NEEDS_HELP_KNOWLEDGE_SCORE: int = 40
NEEDS_HELP_SKIP_RATIO = Fraction(3, 10)
MISCONCEPTION_RATIO = Fraction(3, 10)

# Excludes I, O, 0 and 1 so codes survive being read off a projector.
CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
STUDENT_CODE_LENGTH: int = 6
TEACHER_CODE_INFIX: str = "-TCH-"
CODE_PATTERN = re.compile(r"^[A-Z0-9-]{3,40}$")
