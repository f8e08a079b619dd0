"""
IQ score lookup and category bands
"""
from enum import Enum
from typing import Dict, Optional

class IQCategory(str, Enum):
    GIFTED = "Gifted"
    SUPERIOR = "Superior"
    HIGH_AVERAGE = "High Average"
    AVERAGE = "Average"
    LOW_AVERAGE = "Low Average"
    BORDERLINE = "Borderline"

# Descending lower bounds; a score belongs to the highest band it reaches
IQ_RANGES = [
    (130, IQCategory.GIFTED),
    (120, IQCategory.SUPERIOR),
    (110, IQCategory.HIGH_AVERAGE),
    (90, IQCategory.AVERAGE),
    (80, IQCategory.LOW_AVERAGE),
]

BORDERLINE_CEILING = 80

# correct answers -> IQ score, used when a policy has no table of its own
DEFAULT_IQ_SCORE_TABLE: Dict[int, int] = {count: 70 + count * 2 for count in range(0, 31)}

def normalize_score_table(table: Optional[dict]) -> Dict[int, float]:
    """JSON tables come back with string keys"""
    if table is None:
        return dict(DEFAULT_IQ_SCORE_TABLE)
    return {int(count): float(score) for count, score in table.items()}

def get_iq_score(correct_answers: int, table: Optional[dict] = None) -> Optional[float]:
    """Look up the IQ score for a number of correct answers.

    Counts above the table's domain use the highest defined entry, and gaps
    fall back to the nearest lower entry. Returns None for an empty table.
    """
    scores = normalize_score_table(table)
    if not scores:
        return None

    if correct_answers in scores:
        return scores[correct_answers]

    highest = max(scores)
    if correct_answers > highest:
        return scores[highest]

    lower = [count for count in scores if count < correct_answers]
    if lower:
        return scores[max(lower)]
    return scores[min(scores)]

def get_iq_category(iq_score: float) -> IQCategory:
    for lower_bound, category in IQ_RANGES:
        if iq_score >= lower_bound:
            return category
    return IQCategory.BORDERLINE

def is_borderline(iq_score: float) -> bool:
    return iq_score < BORDERLINE_CEILING

def passed_iq_test(iq_score: float) -> bool:
    """Borderline always fails, whatever passing score is configured"""
    return not is_borderline(iq_score)
