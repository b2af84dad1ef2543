"""Settlement of bets, skips and timeouts into a student's session.

Every failure a caller can trigger (malformed wagers, over-betting, answering
after the end) is detected before the session is touched, so a rejected
submission leaves coins, progress, time and the response log exactly as they
were. Callers must hold the session's lock for the duration of a settlement.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import logging
import math

from betquiz_app.constants.game_constants import HIGH_CONFIDENCE_PERCENT
from betquiz_app.core.errors import InsufficientCoinsError, InvalidInputError, NoMoreQuestionsError
from betquiz_app.core.models import (
    OPTION_IDS,
    BetResult,
    CompletionReason,
    ConfidenceLevel,
    Outcome,
    Question,
    Response,
    StudentSession,
)
from betquiz_app.core.scoring import payout, skip_penalty
from betquiz_app.core.services.question_bank import QuestionBank

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Submission:
    """A validated answer submission."""

    bets: dict[str, int] = field(default_factory=dict)
    skipped: bool = False
    no_answer: bool = False
    time_taken: int = 0

    @classmethod
    def parse(
        cls,
        bets: Mapping[str, object] | None = None,
        skipped: bool = False,
        no_answer: bool = False,
        time_taken: float | int | None = 0,
    ) -> "Submission":
        parsed: dict[str, int] = {}
        for key, value in (bets or {}).items():
            option_id = str(key).strip().upper()
            if option_id not in OPTION_IDS:
                raise InvalidInputError(f"Unknown option {key!r}; bets must target A, B, C or D")
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidInputError(f"Bet on {option_id} must be a whole number of coins")
            if value < 0:
                raise InvalidInputError(f"Bet on {option_id} cannot be negative")
            parsed[option_id] = parsed.get(option_id, 0) + value

        try:
            seconds = float(time_taken or 0)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidInputError("timeTaken must be a number of seconds") from exc
        if not math.isfinite(seconds):
            raise InvalidInputError("timeTaken must be a finite number of seconds")

        return cls(
            bets=parsed,
            skipped=bool(skipped),
            no_answer=bool(no_answer),
            time_taken=max(0, int(seconds)),
        )

    @property
    def total_bet(self) -> int:
        return sum(self.bets.values())


@dataclass(slots=True, frozen=True)
class SettlementResult:
    """Outcome of one submit call."""

    new_total: int
    is_last_question: bool
    remaining_time: int
    response: Response | None = None
    time_up: bool = False


def refresh_completion(session: StudentSession, question_count: int) -> CompletionReason | None:
    """Tag the session complete if time, coins or questions have run out.

    Idempotent: once a reason is recorded it is returned as-is and the session
    is not touched again.
    """
    if session.completion is not None:
        return session.completion

    reason: CompletionReason | None = None
    if session.remaining_time <= 0:
        reason = CompletionReason.TIME_UP
    elif session.coins <= 0:
        reason = CompletionReason.NO_COINS
    elif session.current_question_index >= question_count:
        reason = CompletionReason.FINISHED

    if reason is not None:
        session.completion = reason
        session.current_question_index = question_count
    return reason


def current_question(session: StudentSession, bank: QuestionBank) -> Question | None:
    if refresh_completion(session, bank.length()) is not None:
        return None
    return bank.get(session.current_question_index)


def settle(
    session: StudentSession,
    bank: QuestionBank,
    win_multiplier: float,
    submission: Submission,
) -> SettlementResult:
    """Apply a submission to the session and return what happened."""
    question = None if session.is_complete else bank.get(session.current_question_index)
    if question is None:
        raise NoMoreQuestionsError()

    question_count = bank.length()
    remaining = max(0, session.remaining_time - submission.time_taken)

    if remaining == 0:
        session.remaining_time = 0
        refresh_completion(session, question_count)
        logger.info("Session %s ran out of time on question %d", session.id, question.id)
        return SettlementResult(
            new_total=session.coins,
            is_last_question=True,
            remaining_time=0,
            time_up=True,
        )

    if submission.skipped or submission.no_answer:
        response = _settle_skip(session, question, submission)
    else:
        response = _settle_bet(session, question, win_multiplier, submission)

    session.remaining_time = remaining
    session.responses.append(response)
    session.current_question_index += 1
    complete = refresh_completion(session, question_count) is not None

    logger.info(
        "Settled question %d for session %s: %s, coins %d",
        question.id,
        session.id,
        response.outcome.value,
        session.coins,
    )
    return SettlementResult(
        new_total=session.coins,
        is_last_question=complete,
        remaining_time=session.remaining_time,
        response=response,
    )


def _settle_skip(session: StudentSession, question: Question, submission: Submission) -> Response:
    penalty = skip_penalty(session.coins)
    session.coins = max(0, session.coins - penalty)
    return Response(
        question_id=question.id,
        question_text=question.text,
        time_taken=submission.time_taken,
        correct_answers=tuple(sorted(question.correct_answers)),
        outcome=Outcome.SKIPPED if submission.skipped else Outcome.NO_ANSWER,
        penalty=penalty,
        coins_after=session.coins,
        correct=False,
        confidence_level=ConfidenceLevel.NONE,
    )


def _settle_bet(
    session: StudentSession,
    question: Question,
    win_multiplier: float,
    submission: Submission,
) -> Response:
    total_bet = submission.total_bet
    if total_bet > session.coins:
        raise InsufficientCoinsError(total_bet, session.coins)

    confidence_percent = 100 * total_bet / session.coins if total_bet > 0 else 0.0
    confidence_level = (
        ConfidenceLevel.HIGH if confidence_percent >= HIGH_CONFIDENCE_PERCENT else ConfidenceLevel.LOW
    )

    # Deduct every stake first so no option's payout can fund another option's stake.
    coins_before = session.coins
    coins = max(0, coins_before - total_bet)
    coins_returned = 0
    coins_lost = 0
    bet_results: dict[str, BetResult] = {}
    for option_id in OPTION_IDS:
        amount = submission.bets.get(option_id, 0)
        if amount <= 0:
            continue
        if option_id in question.correct_answers:
            won = payout(amount, win_multiplier)
            coins += won
            coins_returned += won
            bet_results[option_id] = BetResult(amount=amount, correct=True, payout=won)
        else:
            coins_lost += amount
            bet_results[option_id] = BetResult(amount=amount, correct=False, lost=amount)

    session.coins = coins
    return Response(
        question_id=question.id,
        question_text=question.text,
        time_taken=submission.time_taken,
        correct_answers=tuple(sorted(question.correct_answers)),
        outcome=Outcome.BET,
        bets=dict(submission.bets),
        bet_results=bet_results,
        coins_returned=coins_returned,
        coins_lost=coins_lost,
        net_change=coins - coins_before,
        coins_after=coins,
        correct=any(result.correct for result in bet_results.values()),
        confidence_level=confidence_level,
        confidence_percent=confidence_percent,
    )
