"""
Conversion of the final ability estimate to a vocabulary size and reading tier.

Vocabulary Size:
    size(theta) = sum_k 1000 / (1 + exp(-(theta - d_k)))

    Where d_k are eight fixed anchor difficulties, one per 1000-word frequency
    band. Each band contributes up to 1000 known words, so the curve is
    strictly increasing and bounded by [0, 8000]. The anchors are constants and
    do not depend on the bank loaded for a session.

95% Interval:
    [size(theta - 1.96 * SE), size(theta + 1.96 * SE)]

    The curve is monotone, so mapping the theta interval end points gives the
    interval on the vocabulary scale. An infinite SE maps to [0, 8000].

Reading Tier:
    A fixed step function of vocabulary size selecting reading material at
    tiers 2-7.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Anchor difficulties of the eight frequency bands
VOCAB_ANCHOR_DIFFICULTIES: Tuple[float, ...] = (
    -2.206,
    -1.512,
    -0.701,
    -0.075,
    0.748,
    1.152,
    1.504,
    2.089,
)
WORDS_PER_BAND = 1000.0

Z_95 = 1.96  # z-score for 95% confidence interval

# (exclusive upper bound on vocabulary size, tier); sizes at or above the last
# bound map to MAX_READING_TIER
READING_TIER_BOUNDS: Tuple[Tuple[float, int], ...] = (
    (2000.0, 2),
    (3000.0, 2),
    (4000.0, 3),
    (5000.0, 4),
    (6000.0, 5),
    (7000.0, 6),
)
MAX_READING_TIER = 7


@dataclass(frozen=True)
class VocabScore:
    """Final result of an adaptive vocabulary session.

    Attributes:
        theta: Final EAP ability estimate.
        se: Posterior SD of theta.
        vocab_size: Estimated number of known words (0-8000).
        tier: Reading-difficulty tier (2-7).
        vocab_ci_lower: Lower end of the 95% interval on vocabulary size.
        vocab_ci_upper: Upper end of the 95% interval on vocabulary size.
        items_administered: Number of items answered.
        correct_count: Number of correct answers.
        stop_reason: Why the session ended, if known.
    """

    theta: float
    se: float
    vocab_size: float
    tier: int
    vocab_ci_lower: float
    vocab_ci_upper: float
    items_administered: int
    correct_count: int
    stop_reason: Optional[str] = None


def _logistic(x: float) -> float:
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    exp_x = math.exp(x)
    return exp_x / (1.0 + exp_x)


def vocab_size_from_theta(theta: float) -> float:
    """
    Convert a theta estimate to an estimated vocabulary size.

    Examples:
        >>> round(vocab_size_from_theta(0.0))
        3761
    """
    return sum(WORDS_PER_BAND * _logistic(theta - d) for d in VOCAB_ANCHOR_DIFFICULTIES)


def reading_tier(vocab_size: float) -> int:
    """
    Map a vocabulary size to a reading-difficulty tier (2-7).

    Examples:
        >>> reading_tier(1500)
        2
        >>> reading_tier(4500)
        4
        >>> reading_tier(7500)
        7
    """
    for upper_bound, tier in READING_TIER_BOUNDS:
        if vocab_size < upper_bound:
            return tier
    return MAX_READING_TIER


def vocab_confidence_interval(theta: float, se: float) -> Tuple[float, float]:
    """
    95% interval for the vocabulary size implied by theta and its SE.

    Args:
        theta: Ability estimate.
        se: Standard error of theta; must be non-negative (inf allowed).

    Returns:
        (lower, upper) vocabulary sizes.

    Raises:
        ValueError: If se is negative or NaN.
    """
    if math.isnan(se) or se < 0:
        raise ValueError(f"se must be non-negative, got {se}")
    if se == 0:
        size = vocab_size_from_theta(theta)
        return (size, size)

    margin = Z_95 * se
    return (vocab_size_from_theta(theta - margin), vocab_size_from_theta(theta + margin))


def score_result(
    theta: float,
    se: float,
    items_administered: int,
    correct_count: int,
    stop_reason: Optional[str] = None,
) -> VocabScore:
    """
    Build the final score for a completed session.

    Args:
        theta: Final ability estimate.
        se: Final standard error.
        items_administered: Number of items answered.
        correct_count: Number of correct answers.
        stop_reason: Why the session ended.

    Returns:
        VocabScore with vocabulary size, tier and interval.

    Raises:
        ValueError: If theta is not finite.
    """
    if not math.isfinite(theta):
        raise ValueError(f"theta must be finite, got {theta}")

    vocab_size = vocab_size_from_theta(theta)
    tier = reading_tier(vocab_size)
    ci_lower, ci_upper = vocab_confidence_interval(theta, se)

    logger.debug(
        f"score_result: theta={theta:.3f}, se={se:.3f} -> "
        f"vocab={vocab_size:.0f} [{ci_lower:.0f}, {ci_upper:.0f}], tier={tier}"
    )

    return VocabScore(
        theta=theta,
        se=se,
        vocab_size=vocab_size,
        tier=tier,
        vocab_ci_lower=ci_lower,
        vocab_ci_upper=ci_upper,
        items_administered=items_administered,
        correct_count=correct_count,
        stop_reason=stop_reason,
    )
