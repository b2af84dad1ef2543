from __future__ import annotations

import re

import pytest

from betquiz_app.constants.game_constants import CODE_ALPHABET
from betquiz_app.core.errors import (
    CodeConflictError,
    InvalidCodeError,
    InvalidInputError,
    IsTeacherCodeError,
    NoQuestionsError,
    NotFoundError,
)
from betquiz_app.core.services.assessment_registry import AssessmentDraft


def test_create_generates_codes_and_defaults(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows, name="Week 1"))

    assert len(assessment.student_code) == 6
    assert set(assessment.student_code) <= set(CODE_ALPHABET)
    assert re.fullmatch(rf"{assessment.student_code}-TCH-\d{{4}}", assessment.teacher_code)
    assert assessment.name == "Week 1"
    assert assessment.initial_coins == 1000
    assert assessment.win_multiplier == 2.0
    assert assessment.total_duration == 30 * 2
    assert assessment.question_count == 2
    assert assessment.status == "active"


def test_create_uses_supplied_settings(registry, rows):
    assessment = registry.create(
        AssessmentDraft(
            questions=rows,
            initial_coins=500,
            win_multiplier=1.5,
            total_duration=120,
            student_code=" class-1 ",
            teacher_code="class-1-boss",
        )
    )
    assert assessment.student_code == "CLASS-1"
    assert assessment.teacher_code == "CLASS-1-BOSS"
    assert assessment.total_duration == 120
    assert assessment.name == "Assessment"


@pytest.mark.parametrize("code", ["ab", "bad code!", "X" * 41])
def test_create_rejects_malformed_codes(registry, rows, code):
    with pytest.raises(InvalidCodeError):
        registry.create(AssessmentDraft(questions=rows, student_code=code))
    with pytest.raises(InvalidCodeError):
        registry.create(AssessmentDraft(questions=rows, teacher_code=code))


def test_create_rejects_codes_in_use(registry, rows):
    first = registry.create(AssessmentDraft(questions=rows, student_code="MATHS"))

    with pytest.raises(CodeConflictError):
        registry.create(AssessmentDraft(questions=rows, student_code="maths"))
    with pytest.raises(CodeConflictError):
        registry.create(AssessmentDraft(questions=rows, teacher_code=first.teacher_code))
    with pytest.raises(CodeConflictError):
        registry.create(AssessmentDraft(questions=rows, student_code="SAME", teacher_code="same"))


def test_create_rejects_empty_question_list(registry):
    with pytest.raises(NoQuestionsError):
        registry.create(AssessmentDraft(questions=[]))


@pytest.mark.parametrize(
    "overrides",
    [{"initial_coins": 0}, {"win_multiplier": 1.0}, {"total_duration": 0}, {"timer_seconds": -5}],
)
def test_create_rejects_out_of_range_settings(registry, rows, overrides):
    with pytest.raises(InvalidInputError):
        registry.create(AssessmentDraft(questions=rows, **overrides))


def test_resolve_is_case_insensitive_for_both_codes(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows))

    assert registry.resolve(assessment.student_code.lower()) is assessment
    assert registry.resolve(f"  {assessment.teacher_code.lower()} ") is assessment
    with pytest.raises(NotFoundError):
        registry.resolve("NOPE42")


def test_teacher_code_match_is_exact(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows, student_code="ABC", teacher_code="ABC-TCH-1234"))

    assert registry.is_teacher_code(assessment, "abc-tch-1234")
    assert not registry.is_teacher_code(assessment, "ABC")
    assert not registry.is_teacher_code(assessment, "ABC-TCH-123")
    assert not registry.is_teacher_code(assessment, "XABC-TCH-1234")


def test_join_creates_fresh_session(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows, initial_coins=750, total_duration=90))

    session, rejoined = registry.join_student(assessment, "  Ada ", via_code=assessment.student_code)

    assert not rejoined
    assert session.name == "Ada"
    assert session.coins == 750
    assert session.remaining_time == 90
    assert session.current_question_index == 0
    assert session.responses == []
    assert assessment.students[session.id] is session


def test_rejoin_returns_existing_session_untouched(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows))
    session, _ = registry.join_student(assessment, "Ada", via_code=assessment.student_code)
    session.coins = 420
    session.current_question_index = 1

    again, rejoined = registry.join_student(assessment, "ADA", via_code=assessment.student_code)

    assert rejoined
    assert again is session
    assert again.coins == 420
    assert again.current_question_index == 1
    assert len(assessment.students) == 1


def test_join_with_teacher_code_is_rejected(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows))
    with pytest.raises(IsTeacherCodeError):
        registry.join_student(assessment, "Ada", via_code=assessment.teacher_code.lower())
    assert assessment.students == {}


def test_join_requires_a_name(registry, rows):
    assessment = registry.create(AssessmentDraft(questions=rows))
    with pytest.raises(InvalidInputError):
        registry.join_student(assessment, "   ", via_code=assessment.student_code)


def test_count_counts_assessments_not_codes(registry, rows):
    registry.create(AssessmentDraft(questions=rows))
    registry.create(AssessmentDraft(questions=rows))
    assert registry.count() == 2
