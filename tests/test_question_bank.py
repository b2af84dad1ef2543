from __future__ import annotations

import pytest

from betquiz_app.core.errors import InvalidInputError, NoQuestionsError
from betquiz_app.core.models import QuestionRow
from betquiz_app.core.services.question_bank import QuestionBank


def test_from_rows_assigns_positions_and_option_ids(rows):
    bank = QuestionBank.from_rows(rows)

    assert bank.length() == len(bank) == 2
    first = bank.get(0)
    assert first.id == 1
    assert [o.id for o in first.options] == ["A", "B", "C", "D"]
    assert [o.text for o in first.options] == ["3", "4", "5", "22"]
    assert bank.get(1).id == 2
    assert bank.get(1).multiple_correct is True


def test_get_out_of_range_returns_none(rows):
    bank = QuestionBank.from_rows(rows)
    assert bank.get(2) is None
    assert bank.get(-1) is None


def test_correct_answers_are_normalized_sets(make_row):
    bank = QuestionBank.from_rows([make_row(correct=(" a", "c ", "A"))])
    assert bank.correct_answers(0) == frozenset({"A", "C"})
    with pytest.raises(IndexError):
        bank.correct_answers(5)


def test_iteration_preserves_order(rows):
    bank = QuestionBank.from_rows(rows)
    assert [q.text for q in bank] == ["What is 2 + 2?", "Which are odd?"]


def test_empty_bank_is_rejected():
    with pytest.raises(NoQuestionsError):
        QuestionBank.from_rows([])


def test_unknown_correct_answer_is_rejected(make_row):
    with pytest.raises(InvalidInputError):
        QuestionBank.from_rows([make_row(correct=("E",))])


def test_blank_option_is_rejected():
    row = QuestionRow(
        question="Q",
        option_a="a",
        option_b=" ",
        option_c="c",
        option_d="d",
        correct_answers=("A",),
    )
    with pytest.raises(InvalidInputError):
        QuestionBank.from_rows([row])


def test_images_are_carried_onto_options():
    row = QuestionRow(
        question="Q",
        option_a="a",
        option_b="b",
        option_c="c",
        option_d="d",
        correct_answers=("A",),
        question_image="data:image/png;base64,AAAA",
        option_c_image="data:image/jpeg;base64,BBBB",
    )
    question = QuestionBank.from_rows([row]).get(0)
    assert question.image == "data:image/png;base64,AAAA"
    assert question.options[2].image == "data:image/jpeg;base64,BBBB"
    assert question.options[0].image is None
