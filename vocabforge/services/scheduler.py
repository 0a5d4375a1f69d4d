"""
Review scheduler - due-item selection and ladder rescheduling.

Intervals follow a fixed ladder keyed by the correct streak before the
answer: 1 day, 3 days, then 7 days for every further correct answer. A
wrong answer brings the item back in 10 minutes.
"""

import random
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import Config
from ..exceptions import NoEligibleItems
from ..models import SessionOutcome, StudySource, VocabularyItem, WordStatus
from ..utils.helpers import MS_PER_DAY, MS_PER_MINUTE, now_ms

RETRY_DELAY_MS = 10 * MS_PER_MINUTE
LEARNED_THRESHOLD = 3


def ladder_days(correct_streak: int) -> int:
    """Delay in days for a correct answer given the streak before it."""
    if correct_streak == 0:
        return 1
    if correct_streak == 1:
        return 3
    return 7


@dataclass
class ReviewSelection:
    """
    Items chosen for a session.

    A free-practice selection (nothing was due) needs the learner's consent
    before a session may start on it.
    """
    items: List[VocabularyItem]
    requires_confirmation: bool = False
    confirmed: bool = False

    @property
    def is_free_practice(self) -> bool:
        return self.requires_confirmation

    @property
    def can_start(self) -> bool:
        return bool(self.items) and (self.confirmed or not self.requires_confirmation)

    def confirm(self) -> "ReviewSelection":
        self.confirmed = True
        return self

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


def filter_by_source(items: Iterable[VocabularyItem], source: StudySource) -> List[VocabularyItem]:
    """Keep items matching the provenance filter."""
    source = StudySource(source)
    if source == StudySource.MANUAL:
        return [item for item in items if not item.generated]
    if source == StudySource.AI_GENERATED:
        return [item for item in items if item.generated]
    return list(items)


def is_due(item: VocabularyItem, now: int) -> bool:
    return item.status == WordStatus.NEW or item.next_review_at <= now


def select_due(
    items: Sequence[VocabularyItem],
    source_filter: StudySource = StudySource.ALL,
    limit: int = Config.SESSION_SIZE,
    now: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> ReviewSelection:
    """
    Choose up to `limit` items for a review session.

    Due items (new, or past their review time) come first, oldest review
    time first. When nothing is due, a random free-practice pool is drawn
    from the source-filtered items and must be confirmed.

    Raises:
        NoEligibleItems: the source-filtered collection is empty
    """
    now = now_ms() if now is None else now
    pool = filter_by_source(items, source_filter)

    due = [item for item in pool if is_due(item, now)]
    due.sort(key=lambda item: item.next_review_at)  # stable
    if due:
        return ReviewSelection(items=due[:limit])

    if not pool:
        raise NoEligibleItems()

    chooser = rng or random
    fallback = chooser.sample(pool, min(limit, len(pool)))
    return ReviewSelection(items=fallback, requires_confirmation=True)


def apply_outcome(item: VocabularyItem, correct: bool, now: Optional[int] = None) -> VocabularyItem:
    """Return the item rescheduled after one answer."""
    now = now_ms() if now is None else now

    if correct:
        delay_ms = ladder_days(item.correct_streak) * MS_PER_DAY
        streak = item.correct_streak + 1
        status = WordStatus.LEARNED if streak > LEARNED_THRESHOLD else WordStatus.LEARNING
    else:
        delay_ms = RETRY_DELAY_MS
        streak = 0
        status = WordStatus.LEARNING

    return item.with_changes(
        next_review_at=now + delay_ms,
        correct_streak=streak,
        status=status,
        attempt_count=item.attempt_count + 1,
        last_review_at=now,
    )


def apply_outcomes(
    items: Sequence[VocabularyItem],
    outcomes: Sequence[SessionOutcome],
    now: Optional[int] = None,
) -> List[VocabularyItem]:
    """Fold a session's outcomes into the collection, in outcome order."""
    now = now_ms() if now is None else now
    by_id: Dict[str, VocabularyItem] = {item.id: item for item in items}
    for outcome in outcomes:
        item = by_id.get(outcome.item_id)
        if item is not None:
            by_id[outcome.item_id] = apply_outcome(item, outcome.correct, now)
    return [by_id[item.id] for item in items]


def count_due(items: Iterable[VocabularyItem], now: Optional[int] = None) -> int:
    """Items already in review whose time has come."""
    now = now_ms() if now is None else now
    return sum(1 for item in items if item.status != WordStatus.NEW and item.next_review_at <= now)
