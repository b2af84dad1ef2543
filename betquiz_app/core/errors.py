"""Exceptions raised by the assessment core.

Each exception carries the HTTP status the API layer translates it into, so the
server never has to know which failures are the client's fault.
"""

from __future__ import annotations


class BetQuizError(Exception):
    """Base exception for all expected failures."""

    status_code: int = 500


class NotFoundError(BetQuizError):
    """Raised when a code or student id does not resolve."""

    status_code = 404


class InvalidInputError(BetQuizError):
    """Raised when a request is malformed."""

    status_code = 400


class InvalidCodeError(InvalidInputError):
    """Raised when a supplied access code violates the code format."""


class NoQuestionsError(InvalidInputError):
    """Raised when an assessment would contain no questions."""


class IsTeacherCodeError(InvalidInputError):
    """Raised when a student tries to join with the teacher code."""


class CodeConflictError(BetQuizError):
    """Raised when an access code already belongs to a live assessment."""

    status_code = 400


class InsufficientCoinsError(BetQuizError):
    """Raised when the total wager exceeds the student's balance."""

    status_code = 400

    def __init__(self, total_bet: int, coins: int) -> None:
        self.total_bet = total_bet
        self.coins = coins
        super().__init__("Insufficient coins")


class NoMoreQuestionsError(BetQuizError):
    """Raised when submitting for a session that has no current question."""

    status_code = 400

    def __init__(self, message: str = "No more questions") -> None:
        super().__init__(message)


class ForbiddenError(BetQuizError):
    status_code = 403


class QuestionImportError(BetQuizError):
    """Raised when an uploaded question file cannot be parsed."""

    status_code = 400


class PersistenceError(BetQuizError):
    """Raised when the question store fails to commit."""

    status_code = 500
