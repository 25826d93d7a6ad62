"""
Maximum Fisher Information (MFI) item selection for the adaptive vocabulary test.

Selects the unadministered item that maximizes 3PL Fisher information at the
current ability estimate:

    I(theta) = a^2 * Q * (P - c)^2 / (P * (1 - c)^2)

Where P = P(theta; a, b, c) and Q = 1 - P. Information is defined as zero in
the guessing-floor and certainty regions (P <= c or P >= 1).

Stratification:
    While the session still needs high-level items, the candidate pool is
    restricted to items with level >= the high-level threshold whenever any
    such item remains. This is a hard filter, not a weighting, so the session
    always makes progress towards its required count of difficult items.

References:
    - Lord, F. M. (1980). Applications of item response theory to practical
      testing problems. Hillsdale, NJ: Erlbaum.
"""

import logging
import math
import random
from typing import Collection, List, Optional, Protocol, runtime_checkable

from vocabcat.core.cat.ability_estimation import probability_3pl
from vocabcat.core.cat.item_bank import EmptyBankError, ItemBank

logger = logging.getLogger(__name__)

# Weights of the initial-item score: information at the prior mean versus
# closeness of the item difficulty to the prior mean.
INITIAL_INFORMATION_WEIGHT = 0.7
INITIAL_PROXIMITY_WEIGHT = 0.3

# Upper bound of the uniform tie-break jitter added to initial-item scores.
INITIAL_JITTER_SCALE = 0.01

_default_rng = random.Random()


@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields uniform floats in [0, 1), e.g. ``random.Random``."""

    def random(self) -> float:
        ...


def fisher_information_3pl(
    theta: float,
    discrimination: float,
    difficulty: float,
    guessing: float,
) -> float:
    """
    Compute Fisher information for a 3PL item at a given ability level.

    I(theta) = a^2 * Q * (P - c)^2 / (P * (1 - c)^2)

    Args:
        theta: Ability level.
        discrimination: Item discrimination parameter (a).
        difficulty: Item difficulty parameter (b).
        guessing: Item lower asymptote (c), in [0, 1).

    Returns:
        Fisher information (non-negative). Zero when P <= c or P >= 1.
    """
    a, c = discrimination, guessing
    p = probability_3pl(theta, a, difficulty, c)
    if p <= c or p >= 1.0:
        return 0.0
    q = 1.0 - p
    return (a * a * q * (p - c) ** 2) / (p * (1.0 - c) ** 2)


def select_initial_item(
    bank: ItemBank,
    prior_mean: float,
    rng: Optional[RandomSource] = None,
) -> int:
    """
    Choose the first item before any response exists.

    score = 0.7 * I(prior_mean) + 0.3 * (-|b - prior_mean|) + jitter

    The jitter is uniform in [0, 0.01) and only breaks near-ties, so the
    opening item is not identical for every examinee. Pass a seeded ``rng``
    for reproducible selection.

    Args:
        bank: Item bank.
        prior_mean: Prior mean ability (the calibrated bank centre).
        rng: Random source for the jitter; defaults to a module-level
            ``random.Random``.

    Returns:
        Index of the chosen item.

    Raises:
        EmptyBankError: If the bank has no items.
    """
    if len(bank) == 0:
        raise EmptyBankError("Cannot select an initial item from an empty item bank")

    source = rng if rng is not None else _default_rng

    best_index = 0
    best_score = -math.inf
    for index, item in enumerate(bank):
        info = fisher_information_3pl(
            prior_mean, item.discrimination, item.difficulty, item.guessing
        )
        proximity = -abs(item.difficulty - prior_mean)
        score = (
            INITIAL_INFORMATION_WEIGHT * info
            + INITIAL_PROXIMITY_WEIGHT * proximity
            + INITIAL_JITTER_SCALE * source.random()
        )
        if score > best_score:
            best_score = score
            best_index = index

    logger.debug(
        f"Initial item: index={best_index}, prior_mean={prior_mean:.3f}, "
        f"score={best_score:.4f}"
    )
    return best_index


def select_next_item(
    bank: ItemBank,
    theta_estimate: float,
    administered_items: Collection[int],
    need_high_level: bool,
    high_level_threshold: int,
) -> Optional[int]:
    """
    Select the next item by maximum Fisher information with stratification.

    Selection pipeline:
    1. Candidate pool = every item not yet administered
    2. If ``need_high_level`` and any candidate has level >= threshold,
       restrict the pool to those candidates
    3. Return the candidate with the highest information at theta; ties go
       to the earliest item in bank order

    Args:
        bank: Item bank.
        theta_estimate: Current ability estimate.
        administered_items: Indices already shown in this session.
        need_high_level: Whether the session still needs high-level items.
        high_level_threshold: Minimum level of a high-level item.

    Returns:
        Index of the selected item, or None if no unadministered items remain.
    """
    excluded = set(administered_items)
    pool: List[int] = [i for i in range(len(bank)) if i not in excluded]

    if need_high_level:
        high_level = [i for i in pool if bank[i].level >= high_level_threshold]
        if high_level:
            pool = high_level
        else:
            logger.debug(
                "High-level items still needed but none remain; "
                "selecting from the full pool"
            )

    if not pool:
        logger.info(
            f"No eligible items remaining. Bank size: {len(bank)}, "
            f"administered: {len(excluded)}"
        )
        return None

    best_index = pool[0]
    best_info = -1.0
    for index in pool:
        item = bank[index]
        info = fisher_information_3pl(
            theta_estimate, item.discrimination, item.difficulty, item.guessing
        )
        if info > best_info:
            best_info = info
            best_index = index

    logger.debug(
        f"Item selection: theta={theta_estimate:.3f}, eligible={len(pool)}, "
        f"selected index {best_index} (level={bank[best_index].level}, "
        f"info={best_info:.4f})"
    )
    return best_index
