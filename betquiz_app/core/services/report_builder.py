"""Read-only statistics derived from students' response logs."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
import math

from betquiz_app.constants.game_constants import (
    MISCONCEPTION_RATIO,
    NEEDS_HELP_KNOWLEDGE_SCORE,
    NEEDS_HELP_SKIP_RATIO,
)
from betquiz_app.core.models import Assessment, ConfidenceLevel, Question, Response, StudentSession
from betquiz_app.core.scoring import Persona, classify_persona, knowledge_score, round_half_up


@dataclass(slots=True, frozen=True)
class StudentSnapshot:
    """Point-in-time copy of a session, taken under the session's lock."""

    id: str
    name: str
    coins: int
    responses: tuple[Response, ...]

    @classmethod
    def of(cls, session: StudentSession) -> "StudentSnapshot":
        return cls(id=session.id, name=session.name, coins=session.coins, responses=tuple(session.responses))


@dataclass(slots=True, frozen=True)
class StudentStats:
    id: str
    name: str
    coins: int
    completed: bool
    questions_answered: int
    answered: int
    correct: int
    wrong: int
    skipped: int
    no_answer: int
    accuracy: float
    avg_confidence: float
    avg_time: float
    knowledge_score: int
    persona: Persona
    responses: tuple[Response, ...]


@dataclass(slots=True, frozen=True)
class StudentReport:
    student_name: str
    assessment_name: str
    date: datetime
    final_coins: int
    initial_coins: int
    rank: int | str
    total_students: int
    total_questions: int
    stats: StudentStats
    wrong_questions: list[str]
    win_multiplier: float
    total_duration: int


@dataclass(slots=True, frozen=True)
class ClassStats:
    total_students: int
    completed_students: int
    avg_coins: int = 0
    avg_accuracy: int = 0
    avg_knowledge_score: int = 0


@dataclass(slots=True, frozen=True)
class QuestionAnalysis:
    question_number: int
    question_text: str
    correct_answers: tuple[str, ...]
    attempted: int
    correct: int
    skipped: int
    accuracy: int
    common_wrong_answers: dict[str, int]
    high_confidence_wrong: int
    misconception_alert: bool


@dataclass(slots=True, frozen=True)
class TeacherReport:
    assessment_name: str
    date: datetime
    initial_coins: int
    win_multiplier: float
    total_duration: int
    class_stats: ClassStats
    student_stats: list[StudentStats]
    question_analysis: list[QuestionAnalysis]
    students_needing_help: list[str]
    questions: list[Question] = field(default_factory=list)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_student_stats(student: StudentSnapshot, total_questions: int) -> StudentStats:
    responses = student.responses
    bets = [r for r in responses if r.is_bet]
    answered = len(bets)
    correct = sum(1 for r in responses if r.correct)
    accuracy = 100 * correct / answered if answered else 0.0
    avg_confidence = _mean([r.confidence_percent for r in bets if r.confidence_percent is not None])

    return StudentStats(
        id=student.id,
        name=student.name,
        coins=student.coins,
        completed=len(responses) == total_questions,
        questions_answered=len(responses),
        answered=answered,
        correct=correct,
        wrong=answered - correct,
        skipped=sum(1 for r in responses if r.skipped),
        no_answer=sum(1 for r in responses if r.no_answer),
        accuracy=accuracy,
        avg_confidence=avg_confidence,
        avg_time=_mean([r.time_taken for r in responses]),
        knowledge_score=knowledge_score(responses, total_questions),
        persona=classify_persona(accuracy, avg_confidence),
        responses=responses,
    )


def rank_of(student_id: str, students: Sequence[StudentSnapshot], total_questions: int) -> tuple[int | str, int]:
    """Return the 1-based coin rank among completed students and how many completed."""
    finished = sorted(
        (s for s in students if len(s.responses) == total_questions),
        key=lambda s: -s.coins,
    )
    position = next((i for i, s in enumerate(finished, start=1) if s.id == student_id), None)
    return (position if position is not None else "-"), len(finished)


def build_student_report(
    assessment: Assessment,
    student: StudentSnapshot,
    everyone: Sequence[StudentSnapshot],
) -> StudentReport:
    total_questions = assessment.question_count
    stats = compute_student_stats(student, total_questions)
    rank, completed_count = rank_of(student.id, everyone, total_questions)
    return StudentReport(
        student_name=student.name,
        assessment_name=assessment.name,
        date=assessment.created_at,
        final_coins=student.coins,
        initial_coins=assessment.initial_coins,
        rank=rank,
        total_students=completed_count,
        total_questions=total_questions,
        stats=stats,
        wrong_questions=[r.question_text for r in student.responses if not r.correct],
        win_multiplier=assessment.win_multiplier,
        total_duration=assessment.total_duration,
    )


def analyze_question(index: int, question: Question, students: Sequence[StudentSnapshot]) -> QuestionAnalysis:
    responses = [s.responses[index] for s in students if index < len(s.responses)]
    attempted = sum(1 for r in responses if r.is_bet)
    correct = sum(1 for r in responses if r.correct)

    wrong_bets: dict[str, int] = {}
    for response in responses:
        for option_id, result in (response.bet_results or {}).items():
            if not result.correct and result.amount > 0:
                wrong_bets[option_id] = wrong_bets.get(option_id, 0) + 1

    high_confidence_wrong = sum(
        1 for r in responses if not r.correct and r.confidence_level is ConfidenceLevel.HIGH
    )
    # Threshold is relative to everyone who joined, not only those who reached this question.
    threshold = math.ceil(len(students) * MISCONCEPTION_RATIO)

    return QuestionAnalysis(
        question_number=index + 1,
        question_text=question.text,
        correct_answers=tuple(sorted(question.correct_answers)),
        attempted=attempted,
        correct=correct,
        skipped=sum(1 for r in responses if not r.is_bet),
        accuracy=round_half_up(100 * correct / attempted) if attempted else 0,
        common_wrong_answers=wrong_bets,
        high_confidence_wrong=high_confidence_wrong,
        misconception_alert=high_confidence_wrong >= threshold,
    )


def build_teacher_report(assessment: Assessment, students: Sequence[StudentSnapshot]) -> TeacherReport:
    total_questions = assessment.question_count
    stats = sorted(
        (compute_student_stats(s, total_questions) for s in students),
        key=lambda s: -s.coins,
    )
    completed = [s for s in stats if s.completed]

    class_stats = ClassStats(total_students=len(stats), completed_students=len(completed))
    if completed:
        class_stats = ClassStats(
            total_students=len(stats),
            completed_students=len(completed),
            avg_coins=round_half_up(_mean([s.coins for s in completed])),
            avg_accuracy=round_half_up(_mean([round_half_up(s.accuracy) for s in completed])),
            avg_knowledge_score=round_half_up(_mean([s.knowledge_score for s in completed])),
        )

    needing_help = [
        s.name
        for s in completed
        if s.knowledge_score < NEEDS_HELP_KNOWLEDGE_SCORE
        or s.skipped + s.no_answer > total_questions * NEEDS_HELP_SKIP_RATIO
    ]

    return TeacherReport(
        assessment_name=assessment.name,
        date=assessment.created_at,
        initial_coins=assessment.initial_coins,
        win_multiplier=assessment.win_multiplier,
        total_duration=assessment.total_duration,
        class_stats=class_stats,
        student_stats=stats,
        question_analysis=[
            analyze_question(index, question, students) for index, question in enumerate(assessment.questions)
        ],
        students_needing_help=needing_help,
        questions=list(assessment.questions),
    )
