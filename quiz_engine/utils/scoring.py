"""
Scoring policy evaluation.

Pure functions: an answer tally and a policy in, a ScoreResult out. The
breakdown is part of the result because administrators use it to settle
score disputes.
"""
from typing import Optional, Tuple

from quiz_engine.errors import PolicyMismatchError
from quiz_engine.models.results import AttemptAnswers, ScoreBreakdown, ScoreResult
from quiz_engine.models.scoring_policy import ScoringMode
from quiz_engine.utils.iq_scoring import (
    get_iq_category,
    get_iq_score,
    normalize_score_table,
    passed_iq_test,
)


SECONDS_PER_QUESTION = 60


def _round(value: float) -> float:
    return round(value, 2)


def tally_answers(attempt: AttemptAnswers) -> Tuple[int, int, int]:
    """Count correct, incorrect and unanswered questions.

    A blank or null answer is unanswered. When a question is answered more
    than once the last answer wins.
    """
    latest = {}
    for submitted in attempt.answers:
        if submitted.question_id not in attempt.question_bank:
            raise PolicyMismatchError(
                f"Answer references question {submitted.question_id} which is not in the quiz question bank"
            )
        latest[submitted.question_id] = submitted.answer

    correct = 0
    incorrect = 0
    for question_id, answer in latest.items():
        if answer is None or str(answer).strip() == "":
            continue
        if str(answer) == attempt.question_bank[question_id]:
            correct += 1
        else:
            incorrect += 1

    unanswered = attempt.total_questions - correct - incorrect
    return correct, incorrect, unanswered


def score_standard(
    policy,
    correct: int,
    incorrect: int,
    unanswered: int,
    passing_score: Optional[float],
    time_spent_seconds: Optional[int] = None,
    time_budget_seconds: Optional[int] = None,
) -> ScoreResult:
    """Weighted scoring with penalties, bonuses, a multiplier and clamps"""
    if policy.multiplier < 0:
        raise PolicyMismatchError(f"Scoring policy {policy.id} has a negative multiplier")

    total_questions = correct + incorrect + unanswered

    correct_points = correct * policy.points_per_correct
    incorrect_penalty = incorrect * policy.penalty_per_incorrect
    unanswered_penalty = unanswered * policy.penalty_per_unanswered
    base_points = correct_points - incorrect_penalty - unanswered_penalty + policy.flat_bonus

    time_bonus = 0.0
    if policy.time_bonus_enabled:
        budget = time_budget_seconds if time_budget_seconds is not None else total_questions * SECONDS_PER_QUESTION
        seconds_saved = max(0, budget - (time_spent_seconds or 0))
        time_bonus = seconds_saved * policy.bonus_per_second_saved

    final_score = (base_points + time_bonus) * policy.multiplier
    if policy.min_score is not None and final_score < policy.min_score:
        final_score = policy.min_score
    if policy.max_score is not None and final_score > policy.max_score:
        final_score = policy.max_score
    final_score = max(0, final_score)

    if policy.max_score is not None:
        max_possible_score = policy.max_score
    else:
        max_possible_score = total_questions * policy.points_per_correct * policy.multiplier

    percentage = final_score / max_possible_score * 100 if max_possible_score > 0 else 0

    threshold = policy.passing_score if policy.passing_score is not None else passing_score
    passed = threshold is not None and final_score >= threshold

    return ScoreResult(
        mode=ScoringMode.STANDARD.value,
        policy_id=policy.id,
        score=_round(final_score),
        max_possible_score=_round(max_possible_score),
        percentage=_round(percentage),
        passed=passed,
        breakdown=ScoreBreakdown(
            correct_answers=correct,
            incorrect_answers=incorrect,
            unanswered_questions=unanswered,
            correct_points=_round(correct_points),
            incorrect_penalty=_round(incorrect_penalty),
            unanswered_penalty=_round(unanswered_penalty),
            bonus_points=_round(policy.flat_bonus),
            time_bonus=_round(time_bonus),
            base_points=_round(base_points),
            multiplier=policy.multiplier,
            final_score=_round(final_score),
        ),
    )


def score_iq(policy, correct: int, incorrect: int, unanswered: int) -> ScoreResult:
    """Discrete lookup from correct-answer count to an IQ score and band"""
    table = normalize_score_table(policy.iq_score_table)
    raw_score = get_iq_score(correct, table)
    if raw_score is None:
        raise PolicyMismatchError(f"Scoring policy {policy.id} has an empty IQ score table")

    category = get_iq_category(raw_score)
    max_possible_score = max(table.values())
    percentage = raw_score / max_possible_score * 100 if max_possible_score > 0 else 0

    return ScoreResult(
        mode=ScoringMode.IQ.value,
        policy_id=policy.id,
        score=_round(raw_score),
        max_possible_score=_round(max_possible_score),
        percentage=_round(percentage),
        passed=passed_iq_test(raw_score),
        category=category.value,
        breakdown=ScoreBreakdown(
            correct_answers=correct,
            incorrect_answers=incorrect,
            unanswered_questions=unanswered,
            raw_score=raw_score,
            final_score=_round(raw_score),
        ),
    )


def evaluate(
    policy,
    attempt: AttemptAnswers,
    passing_score: Optional[float],
    time_spent_seconds: Optional[int] = None,
    time_budget_seconds: Optional[int] = None,
) -> ScoreResult:
    """Tally an answer set and score it under the policy's mode"""
    correct, incorrect, unanswered = tally_answers(attempt)

    if policy.mode == ScoringMode.IQ.value:
        return score_iq(policy, correct, incorrect, unanswered)
    if policy.mode == ScoringMode.STANDARD.value:
        return score_standard(
            policy,
            correct,
            incorrect,
            unanswered,
            passing_score,
            time_spent_seconds=time_spent_seconds,
            time_budget_seconds=time_budget_seconds,
        )
    raise PolicyMismatchError(f"Scoring policy {policy.id} has unknown mode {policy.mode!r}")
