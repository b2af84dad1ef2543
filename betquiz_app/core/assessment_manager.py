"""Business logic shared by every API route: the single entry point into the core."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from threading import Lock

from betquiz_app.core.errors import ForbiddenError, NotFoundError
from betquiz_app.core.models import Assessment, CompletionReason, Question, StudentSession
from betquiz_app.core.services.assessment_registry import AssessmentRegistry, AssessmentDraft
from betquiz_app.core.services.report_builder import (
    StudentReport,
    StudentSnapshot,
    TeacherReport,
    build_student_report,
    build_teacher_report,
)
from betquiz_app.core.services.settlement import (
    SettlementResult,
    Submission,
    current_question,
    settle,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CodeCheck:
    is_teacher: bool
    assessment_name: str
    question_count: int


@dataclass(slots=True, frozen=True)
class JoinResult:
    assessment: Assessment
    student_id: str
    remaining_time: int
    current_question: int
    current_coins: int
    rejoined: bool


@dataclass(slots=True, frozen=True)
class QuestionView:
    """What a polling student sees: either the current question or completion."""

    complete: bool
    current_coins: int
    remaining_time: int
    total_questions: int
    reason: CompletionReason | None = None
    question_number: int | None = None
    question: Question | None = None


class AssessmentManager:
    """Facade over the registry, settlement engine and report builder."""

    def __init__(self, registry: AssessmentRegistry | None = None) -> None:
        self._registry = registry or AssessmentRegistry()
        self._locks_guard = Lock()
        self._session_locks: dict[str, Lock] = {}

    @property
    def registry(self) -> AssessmentRegistry:
        return self._registry

    # --- Registry delegation ---

    def create_assessment(self, draft: AssessmentDraft) -> Assessment:
        return self._registry.create(draft)

    def check_code(self, code: str) -> CodeCheck:
        assessment = self._registry.resolve(code)
        return CodeCheck(
            is_teacher=self._registry.is_teacher_code(assessment, code),
            assessment_name=assessment.name,
            question_count=assessment.question_count,
        )

    def join_assessment(self, code: str, student_name: str) -> JoinResult:
        assessment = self._registry.resolve(code)
        session, rejoined = self._registry.join_student(assessment, student_name, via_code=code)
        with self._lock_for(session.id):
            if rejoined:
                logger.info("Student %r rejoined assessment %s", session.name, assessment.student_code)
            return JoinResult(
                assessment=assessment,
                student_id=session.id,
                remaining_time=session.remaining_time,
                current_question=session.current_question_index,
                current_coins=session.coins,
                rejoined=rejoined,
            )

    def active_assessment_count(self) -> int:
        return self._registry.count()

    # --- Settlement delegation ---

    def get_current_question(self, code: str, student_id: str) -> QuestionView:
        assessment, session = self._resolve_student(code, student_id)
        bank = assessment.questions
        with self._lock_for(session.id):
            question = current_question(session, bank)
            if question is None:
                return QuestionView(
                    complete=True,
                    reason=session.completion,
                    current_coins=session.coins,
                    remaining_time=session.remaining_time,
                    total_questions=bank.length(),
                )
            return QuestionView(
                complete=False,
                question_number=session.current_question_index + 1,
                question=question,
                current_coins=session.coins,
                remaining_time=session.remaining_time,
                total_questions=bank.length(),
            )

    def submit_answer(self, code: str, student_id: str, submission: Submission) -> SettlementResult:
        assessment, session = self._resolve_student(code, student_id)
        with self._lock_for(session.id):
            return settle(session, assessment.questions, assessment.win_multiplier, submission)

    # --- Reports ---

    def student_report(self, code: str, student_id: str) -> StudentReport:
        assessment, session = self._resolve_student(code, student_id)
        snapshots = self._snapshot_students(assessment)
        subject = next(s for s in snapshots if s.id == session.id)
        return build_student_report(assessment, subject, snapshots)

    def teacher_report(self, code: str) -> TeacherReport:
        assessment = self._registry.resolve(code)
        if not self._registry.is_teacher_code(assessment, code):
            raise ForbiddenError("Teacher code required for this report")
        return build_teacher_report(assessment, self._snapshot_students(assessment))

    # --- Internals ---

    def _resolve_student(self, code: str, student_id: str) -> tuple[Assessment, StudentSession]:
        assessment = self._registry.resolve(code)
        session = assessment.students.get(student_id)
        if session is None:
            raise NotFoundError("Student not found")
        return assessment, session

    def _snapshot_students(self, assessment: Assessment) -> list[StudentSnapshot]:
        snapshots = []
        for session in self._registry.students_of(assessment):
            with self._lock_for(session.id):
                snapshots.append(StudentSnapshot.of(session))
        return snapshots

    def _lock_for(self, student_id: str) -> Lock:
        with self._locks_guard:
            lock = self._session_locks.get(student_id)
            if lock is None:
                lock = Lock()
                self._session_locks[student_id] = lock
            return lock
