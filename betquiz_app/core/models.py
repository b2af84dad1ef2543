"""Domain models for the betting assessment."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING
from uuid import uuid4

if TYPE_CHECKING:
    from betquiz_app.core.services.question_bank import QuestionBank

OPTION_IDS: tuple[str, ...] = ("A", "B", "C", "D")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Outcome(str, Enum):
    """How a question was resolved for a student."""

    SKIPPED = "skipped"
    NO_ANSWER = "no_answer"
    BET = "bet"


class ConfidenceLevel(str, Enum):
    NONE = "none"
    LOW = "low"
    HIGH = "high"


class CompletionReason(str, Enum):
    """Why a session stopped accepting answers."""

    FINISHED = "finished"
    TIME_UP = "time_up"
    NO_COINS = "no_coins"


@dataclass(slots=True, frozen=True)
class QuestionRow:
    """Validated upload row, as produced by the importer or the create payload."""

    question: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_answers: tuple[str, ...]
    multiple_correct: bool = False
    question_image: str | None = None
    option_a_image: str | None = None
    option_b_image: str | None = None
    option_c_image: str | None = None
    option_d_image: str | None = None

    def option_texts(self) -> list[str]:
        return [self.option_a, self.option_b, self.option_c, self.option_d]

    def option_images(self) -> list[str | None]:
        return [self.option_a_image, self.option_b_image, self.option_c_image, self.option_d_image]


@dataclass(slots=True, frozen=True)
class Option:
    id: str
    text: str
    image: str | None = None


@dataclass(slots=True, frozen=True)
class Question:
    """Multiple-choice question with exactly four options (A-D)."""

    id: int
    text: str
    options: tuple[Option, ...]
    correct_answers: frozenset[str]
    multiple_correct: bool = False
    image: str | None = None


@dataclass(slots=True, frozen=True)
class BetResult:
    """Settlement of the wager placed on a single option."""

    amount: int
    correct: bool
    payout: int = 0
    lost: int = 0

    @property
    def profit(self) -> int:
        return self.payout - self.amount if self.correct else 0


@dataclass(slots=True, frozen=True)
class Response:
    """Immutable log entry for one answered, skipped or timed-out question."""

    question_id: int
    question_text: str
    time_taken: int
    correct_answers: tuple[str, ...]
    outcome: Outcome
    coins_after: int
    correct: bool
    confidence_level: ConfidenceLevel
    penalty: int | None = None
    bets: dict[str, int] | None = None
    bet_results: dict[str, BetResult] | None = None
    coins_returned: int | None = None
    coins_lost: int | None = None
    net_change: int | None = None
    confidence_percent: float | None = None

    @property
    def skipped(self) -> bool:
        return self.outcome is Outcome.SKIPPED

    @property
    def no_answer(self) -> bool:
        return self.outcome is Outcome.NO_ANSWER

    @property
    def is_bet(self) -> bool:
        return self.outcome is Outcome.BET


@dataclass(slots=True)
class StudentSession:
    """Mutable per-student state: balance, time budget and progress."""

    name: str
    coins: int
    remaining_time: int
    id: str = field(default_factory=lambda: uuid4().hex)
    current_question_index: int = 0
    responses: list[Response] = field(default_factory=list)
    joined_at: datetime = field(default_factory=utc_now)
    completion: CompletionReason | None = None

    @property
    def is_complete(self) -> bool:
        return self.completion is not None


@dataclass(slots=True)
class Assessment:
    """A published question set together with every student who joined it."""

    name: str
    student_code: str
    teacher_code: str
    questions: QuestionBank
    initial_coins: int
    win_multiplier: float
    total_duration: int
    timer_seconds: int
    id: str = field(default_factory=lambda: str(uuid4()))
    students: dict[str, StudentSession] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    status: str = "active"

    @property
    def question_count(self) -> int:
        return self.questions.length()
