"""
Study session controller.

One instance per session, never persisted. The controller walks the
selected items in one of four modes and hands the outcomes to
`on_complete` when the session ends. Leaving a session through exit()
produces no outcomes.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Set

from ..config import Config
from ..exceptions import ConfirmationRequired, NoEligibleItems, SessionStateError
from ..generation import GenerationOrchestrator, ImageRequest
from ..generation.orchestrator import DEFAULT_STYLE
from ..models import SessionOutcome, StudyMode, VocabularyItem
from ..providers import VERIFICATION_UNAVAILABLE, NullSpeaker, Speaker
from ..utils.parsing import TextParser
from .scheduler import ReviewSelection

logger = logging.getLogger(__name__)

CORRECT_MESSAGE = "Correct!"
WRONG_MESSAGE = "Not quite."
NOT_EXACT_MESSAGE = "Your answer did not exactly match (verification unavailable)."


class SessionState(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXITED = "exited"


class CardSide(str, Enum):
    NATIVE = "native"
    TARGET = "target"


class CardState(str, Enum):
    DEFAULT = "default"
    SELECTED = "selected"
    MATCHED = "matched"
    WRONG = "wrong"


class SelectionResult(str, Enum):
    """What happened to a card selection in match mode."""
    SELECTED = "selected"
    MATCHED = "matched"
    WRONG = "wrong"
    IGNORED = "ignored"


@dataclass
class MatchCard:
    """One side of an item on the match grid."""
    id: str
    item_id: str
    text: str
    side: CardSide
    state: CardState = CardState.DEFAULT


@dataclass(frozen=True)
class AnswerFeedback:
    """Verdict on a typed answer, shown to the learner."""
    correct: bool
    message: str
    expected: str


def build_match_cards(items: Sequence[VocabularyItem], rng: Optional[random.Random] = None) -> List[MatchCard]:
    """Two cards per item (native and target form), shuffled."""
    cards: List[MatchCard] = []
    for item in items:
        cards.append(MatchCard(f"{CardSide.NATIVE.value}-{item.id}", item.id, item.gloss, CardSide.NATIVE))
        cards.append(MatchCard(f"{CardSide.TARGET.value}-{item.id}", item.id, item.headword, CardSide.TARGET))
    (rng or random).shuffle(cards)
    return cards


class SessionController:
    """
    Drive one study session.

    Usage:
        controller = SessionController(items, StudyMode.TYPING, orchestrator,
                                       on_complete=service.apply_session_results)
        await controller.load_image()
        feedback = await controller.submit_typed("house")
    """

    def __init__(
        self,
        items: Sequence[VocabularyItem],
        mode: StudyMode,
        orchestrator: Optional[GenerationOrchestrator] = None,
        speaker: Optional[Speaker] = None,
        on_complete: Optional[Callable[[List[SessionOutcome]], None]] = None,
        on_item_updated: Optional[Callable[[VocabularyItem], None]] = None,
        style: str = DEFAULT_STYLE,
        feedback_delay: float = Config.MATCH_FEEDBACK_DELAY,
        rng: Optional[random.Random] = None,
    ):
        if not items:
            raise NoEligibleItems()

        self.items: List[VocabularyItem] = list(items)
        self.mode = StudyMode(mode)
        self.orchestrator = orchestrator
        self.speaker = speaker or NullSpeaker()
        self.on_complete = on_complete
        self.on_item_updated = on_item_updated
        self.style = style
        self.feedback_delay = feedback_delay

        self.state = SessionState.ACTIVE
        self.position = 0
        self.outcomes: List[SessionOutcome] = []
        self.current_image: Optional[str] = None

        # Changes whenever the controller leaves a position
        self._visit = 0

        self.cards: List[MatchCard] = []
        self.mistakes: Set[str] = set()
        self._resolving = False
        if self.mode == StudyMode.MATCH:
            self.cards = build_match_cards(self.items, rng)

    @classmethod
    def from_selection(cls, selection: ReviewSelection, mode: StudyMode, **kwargs) -> "SessionController":
        """
        Start a session on a scheduler selection.

        Raises:
            ConfirmationRequired: free-practice selection not yet confirmed
        """
        if selection.requires_confirmation and not selection.confirmed:
            raise ConfirmationRequired()
        return cls(selection.items, mode, **kwargs)

    # ------------------------------------------------------------------ state

    @property
    def is_active(self) -> bool:
        return self.state == SessionState.ACTIVE

    @property
    def current_item(self) -> Optional[VocabularyItem]:
        """Item at the current position (sequential modes only)."""
        if not self.is_active or self.mode == StudyMode.MATCH:
            return None
        return self.items[self.position]

    @property
    def progress(self) -> str:
        return f"{min(self.position + 1, len(self.items))} / {len(self.items)}"

    def _require(self, *modes: StudyMode) -> Optional[VocabularyItem]:
        if not self.is_active:
            raise SessionStateError(f"Session is {self.state.value}")
        if self.mode not in modes:
            raise SessionStateError(f"Not available in {self.mode.value} mode")
        return self.items[self.position] if self.mode != StudyMode.MATCH else None

    def _record(self, correct: bool) -> None:
        item = self.items[self.position]
        self.outcomes.append(SessionOutcome(item_id=item.id, correct=correct))
        self.position += 1
        self._visit += 1
        self.current_image = None
        if self.position >= len(self.items):
            self._complete(self.outcomes)

    def _complete(self, outcomes: List[SessionOutcome]) -> None:
        self.state = SessionState.COMPLETED
        self.outcomes = list(outcomes)
        self._visit += 1
        logger.info("Session completed: %d/%d correct",
                    sum(1 for o in self.outcomes if o.correct), len(self.outcomes))
        if self.on_complete:
            self.on_complete(list(self.outcomes))

    def exit(self) -> None:
        """Abandon the session; no outcomes are applied."""
        if self.is_active:
            self.state = SessionState.EXITED
            self._visit += 1

    # ------------------------------------------------------------------ images

    async def load_image(self) -> Optional[str]:
        """Illustration for the current item (not used in match mode)."""
        item = self.current_item
        if item is None:
            return None
        if item.image_ref:
            self.current_image = item.image_ref
            return self.current_image
        return await self._fetch_image(item, force=False)

    async def regenerate_image(self) -> Optional[str]:
        """Replace the current item's illustration with a freshly generated one."""
        item = self.current_item
        if item is None:
            return None
        return await self._fetch_image(item, force=True)

    async def _fetch_image(self, item: VocabularyItem, force: bool) -> Optional[str]:
        if self.orchestrator is None:
            return None

        visit = self._visit
        self.current_image = None
        result = await self.orchestrator.generate_image(
            ImageRequest(item.headword, item.example_sentence, self.style), force=force
        )
        if visit != self._visit:
            logger.debug("Discarding late image for '%s'", item.headword)
            return None

        self.current_image = result.reference
        if result.reference != item.image_ref:
            updated = item.with_changes(image_ref=result.reference)
            self.items[self.position] = updated
            if self.on_item_updated:
                self.on_item_updated(updated)
        return self.current_image

    # ------------------------------------------------------------ flashcards

    def answer_flashcard(self, knows: bool) -> None:
        self._require(StudyMode.FLASHCARDS)
        self._record(bool(knows))

    # ---------------------------------------------------------------- typing

    async def submit_typed(self, text: str) -> AnswerFeedback:
        """
        Check a typed answer against the headword.

        Exact (case and whitespace insensitive) matches need no network; other
        answers go to AI verification. If verification is unavailable the
        answer counts as wrong.
        """
        item = self._require(StudyMode.TYPING)

        if TextParser.answers_match(text, item.headword):
            feedback = AnswerFeedback(True, CORRECT_MESSAGE, item.headword)
        elif not TextParser.normalize_answer(text):
            feedback = AnswerFeedback(False, WRONG_MESSAGE, item.headword)
        else:
            visit = self._visit
            if self.orchestrator is None:
                verdict = VERIFICATION_UNAVAILABLE
            else:
                verdict = await self.orchestrator.verify_answer(item.gloss, text)
            if visit != self._visit:
                logger.debug("Discarding late verification for '%s'", item.headword)
                return AnswerFeedback(False, NOT_EXACT_MESSAGE, item.headword)

            if verdict is VERIFICATION_UNAVAILABLE:
                feedback = AnswerFeedback(False, NOT_EXACT_MESSAGE, item.headword)
            elif verdict.correct:
                feedback = AnswerFeedback(True, verdict.feedback or CORRECT_MESSAGE, item.headword)
            else:
                feedback = AnswerFeedback(False, verdict.feedback or WRONG_MESSAGE, item.headword)

        self._record(feedback.correct)
        return feedback

    # ------------------------------------------------------------- listening

    def play_pronunciation(self) -> None:
        item = self._require(StudyMode.LISTENING)
        self.speaker.speak(item.headword)

    def submit_listening(self, text: str) -> AnswerFeedback:
        """Exact match only; no AI verification."""
        item = self._require(StudyMode.LISTENING)
        correct = TextParser.answers_match(text, item.headword)
        feedback = AnswerFeedback(correct, CORRECT_MESSAGE if correct else WRONG_MESSAGE, item.headword)
        self._record(correct)
        return feedback

    # ----------------------------------------------------------------- match

    @property
    def remaining_cards(self) -> List[MatchCard]:
        return [c for c in self.cards if c.state != CardState.MATCHED]

    @property
    def is_locked(self) -> bool:
        """True while a comparison is resolving."""
        return self._resolving

    def _card(self, card_id: str) -> MatchCard:
        for card in self.cards:
            if card.id == card_id:
                return card
        raise SessionStateError(f"Unknown card: {card_id}")

    async def select_card(self, card_id: str) -> SelectionResult:
        """
        Select a card on the match grid.

        The first selection marks the card; the second resolves the pair.
        A wrong pair flashes for `feedback_delay` seconds and marks both
        items as mistaken for the rest of the session.
        """
        self._require(StudyMode.MATCH)
        if self._resolving:
            return SelectionResult.IGNORED

        card = self._card(card_id)
        if card.state != CardState.DEFAULT:
            return SelectionResult.IGNORED

        selected = next((c for c in self.cards if c.state == CardState.SELECTED), None)
        if selected is None:
            card.state = CardState.SELECTED
            return SelectionResult.SELECTED

        self._resolving = True
        try:
            if selected.item_id == card.item_id:
                selected.state = card.state = CardState.MATCHED
                if not self.remaining_cards:
                    self._complete(self._match_outcomes())
                return SelectionResult.MATCHED

            self.mistakes.update((selected.item_id, card.item_id))
            selected.state = card.state = CardState.WRONG
            await asyncio.sleep(self.feedback_delay)
            selected.state = card.state = CardState.DEFAULT
            return SelectionResult.WRONG
        finally:
            self._resolving = False

    def _match_outcomes(self) -> List[SessionOutcome]:
        return [SessionOutcome(item_id=item.id, correct=item.id not in self.mistakes) for item in self.items]

    def card_states(self) -> Dict[str, CardState]:
        return {c.id: c.state for c in self.cards}
