"""
Session calibration from item bank statistics.

Derives the operating parameters of an adaptive session (prior, ability grid,
target SE and item-count bounds) from the loaded bank, once, before the first
item is shown. Tying the target SE to the information the bank can actually
deliver keeps test lengths consistent across banks of different quality.

Functions:
    compute_item_statistics - Discrimination-weighted difficulty mean and SD
    estimate_expected_information - Information a test of N items can reach
    calibrate - Build the CalibratedConfig for a session
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from vocabcat.core.cat.item_bank import EmptyBankError, ItemBank
from vocabcat.core.cat.item_selection import fisher_information_3pl
from vocabcat.core.config import settings

logger = logging.getLogger(__name__)

# --- Prior ---

# Items with tiny or negative discrimination still get this much weight
MIN_ITEM_WEIGHT = 0.1

# Floor on the prior SD so a tightly clustered bank does not produce an
# over-confident prior
MIN_PRIOR_SD = 0.8

# Floor on the weighted difficulty variance before taking the square root
MIN_DIFFICULTY_VARIANCE = 1e-6

# --- Ability grid ---

# The grid always covers at least [-6, 6] ...
BASE_GRID_MIN = -6.0
BASE_GRID_MAX = 6.0
# ... and at least prior_mean +/- GRID_PADDING_SDS * prior_sd
GRID_PADDING_SDS = 4.0

# --- Target SE ---

# Share of the ideal information an adaptive run realistically achieves,
# since items never perfectly match a moving estimate
INFORMATION_EFFICIENCY = 0.85
MIN_EXPECTED_INFORMATION = 1e-6
TARGET_SE_MIN = 0.25
TARGET_SE_MAX = 0.4

# --- Test length ---

MIN_ITEMS_FLOOR = 24
MIN_ITEMS_TARGET_RATIO = 0.8
MAX_ITEMS_MARGIN = 5


@dataclass(frozen=True)
class ItemStatistics:
    """Discrimination-weighted summary of item difficulties."""

    weighted_difficulty_mean: float
    weighted_difficulty_sd: float


@dataclass(frozen=True)
class CalibratedConfig:
    """Session-wide operating parameters; read-only once calibrated."""

    prior_mean: float
    prior_sd: float
    grid_min: float
    grid_max: float
    grid_step: float
    min_items: int
    target_items: int
    max_items: int
    target_se: float
    high_level_threshold: int
    required_high_level_items: int


def compute_item_statistics(bank: ItemBank) -> ItemStatistics:
    """
    Compute the discrimination-weighted mean and SD of item difficulty.

    Each item is weighted by max(a, 0.1) so items with near-zero or negative
    discrimination cannot collapse the estimate.

    Args:
        bank: Non-empty item bank.

    Returns:
        ItemStatistics with the weighted mean and standard deviation.
    """
    weights = [max(item.discrimination, MIN_ITEM_WEIGHT) for item in bank]
    weight_sum = sum(weights)

    weighted_mean = (
        sum(w * item.difficulty for w, item in zip(weights, bank)) / weight_sum
        if weight_sum > 0
        else 0.0
    )
    weighted_variance = (
        sum(w * (item.difficulty - weighted_mean) ** 2 for w, item in zip(weights, bank))
        / weight_sum
        if weight_sum > 0
        else 1.0
    )

    return ItemStatistics(
        weighted_difficulty_mean=weighted_mean,
        weighted_difficulty_sd=math.sqrt(max(weighted_variance, MIN_DIFFICULTY_VARIANCE)),
    )


def estimate_expected_information(
    bank: ItemBank,
    theta: float,
    sample_size: int,
) -> float:
    """
    Estimate the test information an adaptive run of ``sample_size`` items reaches.

    Ranks the bank by Fisher information at ``theta``, averages the top
    ``sample_size`` items and scales by ``sample_size * 0.85``.

    Args:
        bank: Item bank.
        theta: Ability level at which information is evaluated.
        sample_size: Nominal test length.

    Returns:
        Expected test information. Returns 1.0 if no item carries positive
        information at ``theta``.
    """
    infos = [
        fisher_information_3pl(theta, item.discrimination, item.difficulty, item.guessing)
        for item in bank
    ]
    infos = [info for info in infos if math.isfinite(info) and info > 0]
    if not infos:
        logger.warning(
            f"No item carries positive information at theta={theta:.3f}; "
            "using unit expected information"
        )
        return 1.0

    infos.sort(reverse=True)
    usable = infos[: max(sample_size, 1)]
    average_info = sum(usable) / len(usable)

    return average_info * sample_size * INFORMATION_EFFICIENCY


def calibrate(
    bank: ItemBank,
    target_items: Optional[int] = None,
    grid_step: Optional[float] = None,
    high_level_threshold: Optional[int] = None,
    required_high_level_items: Optional[int] = None,
) -> CalibratedConfig:
    """
    Derive the session configuration from the item bank.

    Steps:
    1. Prior mean/SD from the weighted difficulty distribution (SD floored at 0.8)
    2. Grid bounds covering [-6, 6] and prior_mean +/- 4 * prior_sd
    3. target_se = sqrt(1 / expected_information), clamped to [0.25, 0.4]
    4. min_items = max(24, floor(0.8 * target_items));
       max_items = max(target_items + 5, min_items + 5)

    Args:
        bank: Item bank to calibrate against.
        target_items: Nominal test length (default: settings.CAT_TARGET_ITEMS).
        grid_step: Ability grid spacing (default: settings.CAT_GRID_STEP).
        high_level_threshold: Level at which an item counts as high-level
            (default: settings.CAT_HIGH_LEVEL_THRESHOLD).
        required_high_level_items: High-level items required before stopping
            (default: settings.CAT_REQUIRED_HIGH_LEVEL_ITEMS).

    Returns:
        CalibratedConfig for the session.

    Raises:
        EmptyBankError: If the bank has no items.
    """
    if len(bank) == 0:
        raise EmptyBankError("Cannot calibrate an adaptive session on an empty item bank")

    if target_items is None:
        target_items = settings.CAT_TARGET_ITEMS
    if grid_step is None:
        grid_step = settings.CAT_GRID_STEP
    if high_level_threshold is None:
        high_level_threshold = settings.CAT_HIGH_LEVEL_THRESHOLD
    if required_high_level_items is None:
        required_high_level_items = settings.CAT_REQUIRED_HIGH_LEVEL_ITEMS

    stats = compute_item_statistics(bank)
    prior_mean = stats.weighted_difficulty_mean
    prior_sd = max(stats.weighted_difficulty_sd, MIN_PRIOR_SD)

    padding = GRID_PADDING_SDS * prior_sd
    grid_min = min(BASE_GRID_MIN, prior_mean - padding)
    grid_max = max(BASE_GRID_MAX, prior_mean + padding)

    expected_info = estimate_expected_information(bank, prior_mean, target_items)
    raw_se = math.sqrt(1.0 / max(expected_info, MIN_EXPECTED_INFORMATION))
    target_se = min(max(raw_se, TARGET_SE_MIN), TARGET_SE_MAX)

    min_items = max(MIN_ITEMS_FLOOR, math.floor(target_items * MIN_ITEMS_TARGET_RATIO))
    max_items = max(target_items + MAX_ITEMS_MARGIN, min_items + MAX_ITEMS_MARGIN)

    config = CalibratedConfig(
        prior_mean=prior_mean,
        prior_sd=prior_sd,
        grid_min=grid_min,
        grid_max=grid_max,
        grid_step=grid_step,
        min_items=min_items,
        target_items=target_items,
        max_items=max_items,
        target_se=target_se,
        high_level_threshold=high_level_threshold,
        required_high_level_items=required_high_level_items,
    )

    logger.info(
        f"Calibrated session on {len(bank)} items: "
        f"prior=N({prior_mean:.3f}, {prior_sd:.3f}), "
        f"grid=[{grid_min:.2f}, {grid_max:.2f}] step {grid_step}, "
        f"expected_info={expected_info:.2f}, target_se={target_se:.3f}, "
        f"items={min_items}/{target_items}/{max_items}"
    )

    return config
