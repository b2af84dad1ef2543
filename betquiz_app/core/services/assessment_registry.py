"""Registry mapping access codes to live assessments."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import random
from threading import Lock

from betquiz_app.constants.game_constants import (
    CODE_ALPHABET,
    CODE_PATTERN,
    DEFAULT_ASSESSMENT_NAME,
    DEFAULT_INITIAL_COINS,
    DEFAULT_TIMER_SECONDS,
    DEFAULT_WIN_MULTIPLIER,
    STUDENT_CODE_LENGTH,
    TEACHER_CODE_INFIX,
)
from betquiz_app.core.errors import (
    CodeConflictError,
    InvalidCodeError,
    InvalidInputError,
    IsTeacherCodeError,
    NoQuestionsError,
    NotFoundError,
)
from betquiz_app.core.models import Assessment, QuestionRow, StudentSession
from betquiz_app.core.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssessmentDraft:
    """Everything a teacher supplies when publishing an assessment."""

    questions: list[QuestionRow] = field(default_factory=list)
    name: str | None = None
    initial_coins: int | None = None
    win_multiplier: float | None = None
    timer_seconds: int | None = None
    total_duration: int | None = None
    student_code: str | None = None
    teacher_code: str | None = None


def normalize_code(code: str | None) -> str:
    return (code or "").strip().upper()


class AssessmentRegistry:
    """Owns every live assessment, indexed under both of its codes."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._by_code: dict[str, Assessment] = {}
        self._lock = Lock()
        self._rng = rng or random.Random()

    def create(self, draft: AssessmentDraft) -> Assessment:
        if not draft.questions:
            raise NoQuestionsError("No questions provided")
        bank = QuestionBank.from_rows(draft.questions)

        initial_coins = draft.initial_coins if draft.initial_coins is not None else DEFAULT_INITIAL_COINS
        win_multiplier = draft.win_multiplier if draft.win_multiplier is not None else DEFAULT_WIN_MULTIPLIER
        timer_seconds = draft.timer_seconds if draft.timer_seconds is not None else DEFAULT_TIMER_SECONDS
        if initial_coins <= 0:
            raise InvalidInputError("initialCoins must be a positive integer")
        if win_multiplier <= 1:
            raise InvalidInputError("winMultiplier must be greater than 1")
        if timer_seconds <= 0:
            raise InvalidInputError("timerSeconds must be a positive integer")
        total_duration = draft.total_duration
        if total_duration is None:
            total_duration = timer_seconds * bank.length()
        elif total_duration <= 0:
            raise InvalidInputError("totalDuration must be a positive number of seconds")

        student_code = normalize_code(draft.student_code)
        teacher_code = normalize_code(draft.teacher_code)

        with self._lock:
            if student_code:
                self._check_supplied_code(student_code, "studentCode")
            else:
                student_code = self._generate_student_code()

            if teacher_code:
                self._check_supplied_code(teacher_code, "teacherCode")
                if teacher_code == student_code:
                    raise CodeConflictError("teacherCode must differ from studentCode")
            else:
                teacher_code = self._generate_teacher_code(student_code)

            assessment = Assessment(
                name=(draft.name or "").strip() or DEFAULT_ASSESSMENT_NAME,
                student_code=student_code,
                teacher_code=teacher_code,
                questions=bank,
                initial_coins=initial_coins,
                win_multiplier=win_multiplier,
                total_duration=total_duration,
                timer_seconds=timer_seconds,
            )
            self._by_code[student_code] = assessment
            self._by_code[teacher_code] = assessment

        logger.info(
            "Created assessment %r (%d questions) with student code %s",
            assessment.name,
            bank.length(),
            student_code,
        )
        return assessment

    def resolve(self, code: str) -> Assessment:
        with self._lock:
            assessment = self._by_code.get(normalize_code(code))
        if assessment is None:
            raise NotFoundError("Assessment not found. Check your code.")
        return assessment

    @staticmethod
    def is_teacher_code(assessment: Assessment, code: str) -> bool:
        """Exact case-insensitive match against the stored teacher code."""
        return bool(assessment.teacher_code) and normalize_code(code) == assessment.teacher_code.upper()

    def join_student(self, assessment: Assessment, name: str, via_code: str) -> tuple[StudentSession, bool]:
        """Return the student's session and whether it already existed."""
        if self.is_teacher_code(assessment, via_code):
            raise IsTeacherCodeError("This is a teacher code. Students should use the short code.")
        cleaned = (name or "").strip()
        if not cleaned:
            raise InvalidInputError("Code and name are required")

        with self._lock:
            lowered = cleaned.casefold()
            existing = next(
                (s for s in assessment.students.values() if s.name.casefold() == lowered),
                None,
            )
            if existing is not None:
                return existing, True

            session = StudentSession(
                name=cleaned,
                coins=assessment.initial_coins,
                remaining_time=assessment.total_duration,
            )
            assessment.students[session.id] = session

        logger.info("Student %r joined assessment %s", cleaned, assessment.student_code)
        return session, False

    def students_of(self, assessment: Assessment) -> list[StudentSession]:
        with self._lock:
            return list(assessment.students.values())

    def count(self) -> int:
        with self._lock:
            return len({id(assessment) for assessment in self._by_code.values()})

    def _check_supplied_code(self, code: str, label: str) -> None:
        if not CODE_PATTERN.match(code):
            raise InvalidCodeError(f"Invalid {label} format")
        if code in self._by_code:
            raise CodeConflictError(f"{label} already in use")

    def _generate_student_code(self) -> str:
        while True:
            code = "".join(self._rng.choice(CODE_ALPHABET) for _ in range(STUDENT_CODE_LENGTH))
            if code not in self._by_code:
                return code

    def _generate_teacher_code(self, student_code: str) -> str:
        while True:
            code = f"{student_code}{TEACHER_CODE_INFIX}{self._rng.randint(1000, 9999)}"
            if code not in self._by_code:
                return code
