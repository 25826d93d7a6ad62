"""
Stopping rules for the adaptive vocabulary test.

Stopping Rules (evaluated in priority order):
    1. Maximum items: stop at max_items (hard cap, overrides everything)
    2. Minimum items: continue below min_items regardless of precision
    3. Target items: continue below target_items
    4. Precision: continue while SE(theta) > target_se
    5. Coverage: continue until required_high_level_items high-level items
       have been administered
    6. Otherwise stop ("precision_reached")

Pool exhaustion is detected by item selection, not here; the session engine
turns an empty pool into an immediate stop.

Rules 2 and 3 both mean "keep going", so min_items only has an effect of its
own when it exceeds target_items. Calibration floors min_items at 24, so that
happens only for target lengths below 24.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from vocabcat.core.cat.calibration import CalibratedConfig

logger = logging.getLogger(__name__)

STOP_MAX_ITEMS = "max_items"
STOP_PRECISION_REACHED = "precision_reached"
STOP_POOL_EXHAUSTED = "pool_exhausted"


@dataclass
class TerminationDecision:
    """
    Result of evaluating the stopping rules after a response.

    Attributes:
        should_stop: Whether the session should end.
        reason: STOP_MAX_ITEMS or STOP_PRECISION_REACHED when stopping, else None.
        details: Diagnostics (se, item_count, high_level_count, and which
            thresholds are met).
    """

    should_stop: bool
    reason: Optional[str]
    details: Dict[str, Any]


def needs_high_level(high_level_count: int, config: CalibratedConfig) -> bool:
    """Whether the session still needs more high-level items."""
    return high_level_count < config.required_high_level_items


def check_termination(
    item_count: int,
    se: float,
    high_level_count: int,
    config: CalibratedConfig,
) -> TerminationDecision:
    """
    Decide whether the session should stop after the latest response.

    Args:
        item_count: Number of items administered so far.
        se: Current standard error of theta (may be inf before any response).
        high_level_count: Administered items with level >= high_level_threshold.
        config: Calibrated session configuration.

    Returns:
        TerminationDecision with the decision, reason and diagnostics.

    Raises:
        ValueError: If se, item_count or high_level_count is negative.
    """
    if se < 0:
        raise ValueError(f"Standard error must be non-negative, got {se}")
    if item_count < 0:
        raise ValueError(f"Number of items must be non-negative, got {item_count}")
    if high_level_count < 0:
        raise ValueError(
            f"High-level item count must be non-negative, got {high_level_count}"
        )

    details: Dict[str, Any] = {
        "se": se,
        "item_count": item_count,
        "high_level_count": high_level_count,
        "target_se": config.target_se,
        "min_items_met": item_count >= config.min_items,
        "target_items_met": item_count >= config.target_items,
        "at_max_items": item_count >= config.max_items,
        "precision_met": se <= config.target_se,
        "high_level_met": not needs_high_level(high_level_count, config),
    }

    # Rule 1: Maximum items
    if item_count >= config.max_items:
        logger.info(
            f"Stopping: reached maximum items ({item_count}/{config.max_items})"
        )
        return TerminationDecision(should_stop=True, reason=STOP_MAX_ITEMS, details=details)

    # Rule 2: Minimum items
    if item_count < config.min_items:
        logger.debug(
            f"Continuing: {item_count}/{config.min_items} items administered (below minimum)"
        )
        return TerminationDecision(should_stop=False, reason=None, details=details)

    # Rule 3: Target items
    if item_count < config.target_items:
        logger.debug(
            f"Continuing: {item_count}/{config.target_items} items administered (below target)"
        )
        return TerminationDecision(should_stop=False, reason=None, details=details)

    # Rule 4: Precision
    if se > config.target_se:
        logger.debug(f"Continuing: SE={se:.4f} above target {config.target_se:.4f}")
        return TerminationDecision(should_stop=False, reason=None, details=details)

    # Rule 5: High-level coverage
    if needs_high_level(high_level_count, config):
        logger.debug(
            f"Continuing: {high_level_count}/{config.required_high_level_items} "
            "high-level items administered"
        )
        return TerminationDecision(should_stop=False, reason=None, details=details)

    logger.info(
        f"Stopping: SE={se:.4f} <= {config.target_se:.4f} after {item_count} items "
        f"({high_level_count} high-level)"
    )
    return TerminationDecision(
        should_stop=True, reason=STOP_PRECISION_REACHED, details=details
    )
