"""Pure scoring helpers: skip penalty, payouts, knowledge score and personas."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
import math

from betquiz_app.constants.game_constants import (
    HIGH_CONFIDENCE_AVERAGE,
    HIGH_KNOWLEDGE_ACCURACY,
    SKIP_PENALTY_RATE,
    SKIP_PENALTY_ROUNDING,
)
from betquiz_app.core.models import ConfidenceLevel, Response


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer with ties going up, like JavaScript's Math.round."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def skip_penalty(coins: int) -> int:
    """Return 5% of the balance rounded to the nearest multiple of 10."""
    tens = Decimal(coins) * Decimal(SKIP_PENALTY_RATE) / SKIP_PENALTY_ROUNDING
    return round_half_up(tens) * SKIP_PENALTY_ROUNDING


def payout(amount: int, multiplier: float) -> int:
    """Full return (stake plus profit) of a winning wager, floored to whole coins."""
    return math.floor(amount * multiplier)


def knowledge_score(responses: Iterable[Response], total_questions: int) -> int:
    """Combine correctness and confidence into a 0-100 score."""
    max_score = total_questions * 3
    if max_score <= 0:
        return 0

    score = 0
    for response in responses:
        if not response.is_bet:
            continue
        high = response.confidence_level is ConfidenceLevel.HIGH
        if response.correct:
            score += 3 if high else 1
        else:
            score -= 2 if high else 1

    return max(0, round_half_up(Decimal(100 * score) / max_score))


@dataclass(slots=True, frozen=True)
class Persona:
    name: str
    emoji: str
    message: str


# Keyed by (high_knowledge, high_confidence).
_PERSONAS: dict[tuple[bool, bool], Persona] = {
    (True, True): Persona(
        name="Campus Legend",
        emoji="\N{GRADUATION CAP}",
        message="You walked in, owned it, and walked out. Absolute main character energy!",
    ),
    (True, False): Persona(
        name="Undercover Genius",
        emoji="\N{DISGUISED FACE}",
        message="Acing it while betting low? You're too humble - flex a little next time!",
    ),
    (False, True): Persona(
        name="Main Character Syndrome",
        emoji="\N{CAMERA WITH FLASH}",
        message="Big bets, bigger dreams! Maybe hit the library before the next party?",
    ),
    (False, False): Persona(
        name="Netflix & Cram",
        emoji="\N{TELEVISION}",
        message="Running on coffee and vibes. Time to recharge and review those notes!",
    ),
}


def classify_persona(accuracy: float, avg_confidence: float) -> Persona:
    return _PERSONAS[(accuracy >= HIGH_KNOWLEDGE_ACCURACY, avg_confidence >= HIGH_CONFIDENCE_AVERAGE)]
