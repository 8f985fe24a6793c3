"""
HireSignal - Corpus Ranker
Orders the question corpus by relevance to a role.
"""

import logging
from typing import Iterable, Optional

from ..models.corpus import Category, CorpusItem, RankedItem, RankedSelection

logger = logging.getLogger(__name__)

DEPARTMENT_WEIGHT = 3
SENIORITY_WEIGHT = 2
UNIVERSAL_CATEGORY_WEIGHT = 1
RUBRIC_WEIGHT = 1

UNIVERSAL_CATEGORIES = {Category.BEHAVIORAL, Category.CULTURE_SAFE}


def score_item(item: CorpusItem, department: str, seniority: str) -> int:
    """Weighted relevance of one item to the target role."""
    score = 0
    if item.department == department:
        score += DEPARTMENT_WEIGHT
    if item.seniority == seniority:
        score += SENIORITY_WEIGHT
    if item.category in UNIVERSAL_CATEGORIES:
        score += UNIVERSAL_CATEGORY_WEIGHT
    if item.rubric is not None:
        score += RUBRIC_WEIGHT
    return score


def rank_corpus(
    items: Iterable[CorpusItem],
    department: str,
    seniority: str,
    limit: Optional[int] = None
) -> RankedSelection:
    """
    Rank corpus items for a role.

    The sort is stable, so ties keep corpus-store order. Archived items are
    dropped.

    Args:
        items: Corpus items in store order.
        department: Target department.
        seniority: Target seniority.
        limit: Optional truncation applied after sorting.

    Returns:
        RankedSelection ordered by descending score.
    """
    ranked = [
        RankedItem(item=item, score=score_item(item, department, seniority))
        for item in items
        if not item.archived
    ]
    ranked.sort(key=lambda r: r.score, reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    logger.debug("Ranked %d corpus items for %s/%s", len(ranked), department, seniority)
    return RankedSelection(items=ranked, department=department, seniority=seniority)
