"""
Session engine for the adaptive vocabulary test.

Drives item selection, EAP re-estimation and the stopping rules for one
examinee. The engine keeps no state of its own: every session is an
AdministrationState value, and ``record_response`` returns a new state rather
than mutating the old one. Presenting items and collecting answers is the
caller's job.

Typical driver loop::

    config = calibrate(bank)
    state = AdministrationState()
    item = select_initial(bank, config)
    while not isinstance(item, Done):
        correct = present(bank[item])
        state = record_response(bank, config, state, item, correct)
        item = next_item_or_done(bank, config, state)
    result = final_score(state, stop_reason=item.reason)
"""
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from vocabcat.core.cat.ability_estimation import (
    AbilityEstimate,
    estimate_ability_eap,
    responses_from_items,
)
from vocabcat.core.cat.calibration import CalibratedConfig, calibrate
from vocabcat.core.cat.item_bank import ItemBank
from vocabcat.core.cat.item_selection import (
    RandomSource,
    select_initial_item,
    select_next_item,
)
from vocabcat.core.cat.score_conversion import VocabScore, score_result
from vocabcat.core.cat.stopping_rules import (
    STOP_POOL_EXHAUSTED,
    check_termination,
    needs_high_level,
)
from vocabcat.core.logging_config import session_id_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdministrationState:
    """Immutable response history of one session and its current estimate."""

    administered_items: Tuple[int, ...] = ()  # Bank indices, in order shown
    responses: Tuple[bool, ...] = ()  # Scored responses, same order
    theta: float = 0.0
    se: float = math.inf
    # Estimate after each response, one entry per response
    theta_history: Tuple[float, ...] = ()
    se_history: Tuple[float, ...] = ()

    @property
    def item_count(self) -> int:
        return len(self.administered_items)

    @property
    def correct_count(self) -> int:
        return sum(1 for r in self.responses if r)

    def high_level_count(self, bank: ItemBank, threshold: int) -> int:
        """Number of administered items with level >= threshold."""
        return sum(1 for i in self.administered_items if bank[i].level >= threshold)


@dataclass(frozen=True)
class Done:
    """Returned by next_item_or_done when the session is over."""

    reason: str


def estimate_theta(
    bank: ItemBank,
    config: CalibratedConfig,
    administered_items: Tuple[int, ...],
    responses: Tuple[bool, ...],
) -> AbilityEstimate:
    """
    Estimate ability from a complete response history.

    Delegates to ``estimate_ability_eap`` after looking up each administered
    item's (a, b, c) parameters.
    """
    params = [
        (bank[i].discrimination, bank[i].difficulty, bank[i].guessing)
        for i in administered_items
    ]
    return estimate_ability_eap(
        responses_from_items(params, responses),
        prior_mean=config.prior_mean,
        prior_sd=config.prior_sd,
        grid_min=config.grid_min,
        grid_max=config.grid_max,
        grid_step=config.grid_step,
    )


def select_initial(
    bank: ItemBank,
    config: CalibratedConfig,
    rng: Optional[RandomSource] = None,
) -> int:
    """Choose the opening item around the calibrated prior mean."""
    return select_initial_item(bank, config.prior_mean, rng=rng)


def record_response(
    bank: ItemBank,
    config: CalibratedConfig,
    state: AdministrationState,
    item_index: int,
    correct: bool,
) -> AdministrationState:
    """
    Append one scored response and re-estimate ability from the full history.

    Args:
        bank: Item bank.
        config: Calibrated session configuration.
        state: Current session state (left unchanged).
        item_index: Bank index of the item that was answered.
        correct: Whether the answer was correct.

    Returns:
        A new AdministrationState one response longer.

    Raises:
        ValueError: If item_index is out of range or was already administered.
    """
    if not 0 <= item_index < len(bank):
        raise ValueError(
            f"item_index {item_index} out of range for bank of {len(bank)} items"
        )
    if item_index in state.administered_items:
        raise ValueError(f"Item {item_index} has already been administered")

    administered = state.administered_items + (item_index,)
    responses = state.responses + (bool(correct),)
    estimate = estimate_theta(bank, config, administered, responses)

    logger.debug(
        f"Response #{len(administered)} (item {item_index}, correct={bool(correct)}) -> "
        f"theta={estimate.theta:.3f}, SE={estimate.se:.3f}",
        extra={
            "item_index": item_index,
            "theta": estimate.theta,
            "se": estimate.se,
            "items_administered": len(administered),
        },
    )

    return AdministrationState(
        administered_items=administered,
        responses=responses,
        theta=estimate.theta,
        se=estimate.se,
        theta_history=state.theta_history + (estimate.theta,),
        se_history=state.se_history + (estimate.se,),
    )


def next_item_or_done(
    bank: ItemBank,
    config: CalibratedConfig,
    state: AdministrationState,
) -> Union[int, Done]:
    """
    Apply the stopping rules, then pick the next item if the session continues.

    Args:
        bank: Item bank.
        config: Calibrated session configuration.
        state: Current session state.

    Returns:
        Bank index of the next item, or Done with the stop reason
        ("max_items", "precision_reached" or "pool_exhausted").
    """
    high_level_count = state.high_level_count(bank, config.high_level_threshold)

    decision = check_termination(
        item_count=state.item_count,
        se=state.se,
        high_level_count=high_level_count,
        config=config,
    )
    if decision.should_stop:
        assert decision.reason is not None
        return Done(reason=decision.reason)

    next_index = select_next_item(
        bank,
        theta_estimate=state.theta,
        administered_items=state.administered_items,
        need_high_level=needs_high_level(high_level_count, config),
        high_level_threshold=config.high_level_threshold,
    )
    if next_index is None:
        logger.info(f"Stopping: item pool exhausted after {state.item_count} items")
        return Done(reason=STOP_POOL_EXHAUSTED)

    return next_index


def final_score(state: AdministrationState, stop_reason: Optional[str] = None) -> VocabScore:
    """Convert the final estimate of a finished session to a VocabScore."""
    return score_result(
        theta=state.theta,
        se=state.se,
        items_administered=state.item_count,
        correct_count=state.correct_count,
        stop_reason=stop_reason,
    )


class CATSessionManager:
    """
    Binds an item bank, its calibrated configuration and a random source.

    Manages:
    - Calibration on construction (unless a config is supplied)
    - The opening item and every subsequent selection
    - Response recording with full EAP re-estimation
    - Final score conversion

    The bank and config are shared read-only by every session; each session's
    state lives in the AdministrationState values passed in and returned.
    """

    def __init__(
        self,
        bank: ItemBank,
        config: Optional[CalibratedConfig] = None,
        rng: Optional[RandomSource] = None,
    ):
        """
        Args:
            bank: Item bank for every session run by this manager.
            config: Precomputed configuration; calibrated from ``bank`` if None.
            rng: Random source for the opening-item jitter.

        Raises:
            EmptyBankError: If ``bank`` is empty and no config is given.
        """
        self.bank = bank
        self.config = config if config is not None else calibrate(bank)
        self.rng = rng

    def start(self, session_id: Optional[str] = None) -> Tuple[AdministrationState, int]:
        """
        Open a session and choose its first item.

        Args:
            session_id: Identifier attached to log entries; generated if None.

        Returns:
            Tuple of (empty state, index of the first item).
        """
        session_id = session_id or uuid.uuid4().hex[:12]
        session_id_context.set(session_id)

        first_item = select_initial(self.bank, self.config, rng=self.rng)
        logger.info(
            f"Started session {session_id} on {len(self.bank)} items, "
            f"first item {first_item}"
        )
        return AdministrationState(), first_item

    def record_response(
        self, state: AdministrationState, item_index: int, correct: bool
    ) -> AdministrationState:
        """Delegate to :func:`record_response` with this manager's bank and config."""
        return record_response(self.bank, self.config, state, item_index, correct)

    def next_item_or_done(self, state: AdministrationState) -> Union[int, Done]:
        """Delegate to :func:`next_item_or_done` with this manager's bank and config."""
        return next_item_or_done(self.bank, self.config, state)

    def finalize(self, state: AdministrationState, stop_reason: Optional[str] = None) -> VocabScore:
        """
        Score a finished session.

        Args:
            state: Final session state.
            stop_reason: Reason carried by the Done that ended the session.

        Returns:
            VocabScore for the session.
        """
        result = final_score(state, stop_reason=stop_reason)
        logger.info(
            f"Session finalized: theta={result.theta:.3f}, SE={result.se:.3f}, "
            f"vocab={result.vocab_size:.0f}, tier={result.tier}, "
            f"items={result.items_administered}, correct={result.correct_count}, "
            f"stop_reason={stop_reason}"
        )
        return result
