from __future__ import annotations

import random

import pytest

from betquiz_app.core.assessment_manager import AssessmentManager
from betquiz_app.core.models import QuestionRow
from betquiz_app.core.services.assessment_registry import AssessmentRegistry


@pytest.fixture
def make_row():
    def factory(
        text: str = "What is 2 + 2?",
        correct: tuple[str, ...] = ("B",),
        multiple: bool = False,
    ) -> QuestionRow:
        return QuestionRow(
            question=text,
            option_a="3",
            option_b="4",
            option_c="5",
            option_d="22",
            correct_answers=correct,
            multiple_correct=multiple,
        )

    return factory


@pytest.fixture
def rows(make_row) -> list[QuestionRow]:
    return [
        make_row("What is 2 + 2?", ("B",)),
        make_row("Which are odd?", ("A", "C"), multiple=True),
    ]


@pytest.fixture
def registry() -> AssessmentRegistry:
    return AssessmentRegistry(rng=random.Random(1234))


@pytest.fixture
def manager(registry: AssessmentRegistry) -> AssessmentManager:
    return AssessmentManager(registry)
