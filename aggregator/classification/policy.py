from aggregator.core.models import Category

MATCH_THRESHOLD = 80  # strictly above -> Match
REVIEW_THRESHOLD = 60  # at or above -> Review


def clamp_score(score) -> int:
    return max(0, min(100, int(round(float(score)))))


def category_for_score(score: int) -> Category:
    """
    The score is the source of truth for a classifier-assigned category:
    > 80 Match, 60..80 Review, < 60 Rejected.
    """
    if score > MATCH_THRESHOLD:
        return Category.MATCH
    if score >= REVIEW_THRESHOLD:
        return Category.REVIEW
    return Category.REJECTED
