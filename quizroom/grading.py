"""Pure business rules: join codes, scoring, quiz status and leaderboard order."""
import random
import string
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_classroom_code(rng: random.Random | None = None) -> str:
    """Return a candidate join code. Uniqueness is the caller's job."""
    rng = rng or random.SystemRandom()
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def score_answers(correct_answers: Sequence[int], answers: Iterable[dict]) -> int:
    """Count positions where the submitted option equals the correct one.

    Matching is by index only: answers[i] is compared with correct_answers[i]
    whatever question id the answer names. Answers beyond the question list
    and questions left unanswered both count as incorrect.
    """
    score = 0
    for index, answer in enumerate(answers):
        if index >= len(correct_answers):
            break
        if answer["selectedOption"] == correct_answers[index]:
            score += 1
    return score


def quiz_status(quiz, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    if not quiz.is_active:
        return "inactive"
    if now < quiz.starts_on:
        return "scheduled"
    if quiz.ends_on is not None and now > quiz.ends_on:
        return "ended"
    return "active"


def rank_submissions(submissions: Iterable) -> List:
    """Highest score first; earlier submission wins a tie."""
    return sorted(submissions, key=lambda s: (-s.score, s.submitted_at, s.id))
