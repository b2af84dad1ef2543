"""Immutable, ordered question list owned by a single assessment."""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from betquiz_app.core.errors import InvalidInputError, NoQuestionsError
from betquiz_app.core.models import OPTION_IDS, Option, Question, QuestionRow


class QuestionBank:
    """Read-only view over the questions of an assessment."""

    __slots__ = ("_questions",)

    def __init__(self, questions: Sequence[Question]) -> None:
        if not questions:
            raise NoQuestionsError("No questions provided")
        self._questions: tuple[Question, ...] = tuple(questions)

    @classmethod
    def from_rows(cls, rows: Sequence[QuestionRow]) -> "QuestionBank":
        """Build a bank from validated upload rows; ids are 1-based positions."""
        if not rows:
            raise NoQuestionsError("No questions provided")
        return cls([cls._build_question(position, row) for position, row in enumerate(rows, start=1)])

    def get(self, index: int) -> Question | None:
        if not 0 <= index < len(self._questions):
            return None
        return self._questions[index]

    def length(self) -> int:
        return len(self._questions)

    def correct_answers(self, index: int) -> frozenset[str]:
        question = self.get(index)
        if question is None:
            raise IndexError(f"Question index {index} out of range")
        return question.correct_answers

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    @staticmethod
    def _build_question(position: int, row: QuestionRow) -> Question:
        text = row.question.strip()
        if not text:
            raise InvalidInputError(f"Question {position}: question text must not be empty.")

        texts = [option.strip() for option in row.option_texts()]
        if any(not option for option in texts):
            raise InvalidInputError(f"Question {position}: option text cannot be empty.")

        correct = frozenset(answer.strip().upper() for answer in row.correct_answers if answer.strip())
        if not correct:
            raise InvalidInputError(f"Question {position}: at least one correct answer is required.")
        unknown = sorted(correct - set(OPTION_IDS))
        if unknown:
            raise InvalidInputError(f"Question {position}: invalid correct answer(s) {', '.join(unknown)}.")

        options = tuple(
            Option(id=option_id, text=option_text, image=image or None)
            for option_id, option_text, image in zip(OPTION_IDS, texts, row.option_images())
        )
        return Question(
            id=position,
            text=text,
            options=options,
            correct_answers=correct,
            multiple_correct=row.multiple_correct,
            image=row.question_image or None,
        )
