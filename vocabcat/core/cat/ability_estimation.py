"""
EAP (Expected A Posteriori) ability estimation for the adaptive vocabulary test.

Computes the full posterior over an equally spaced ability grid under the 3PL
IRT model and summarizes it by its mean (theta) and standard deviation (SE).

Model:
    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

Posterior:
    log p(theta | x) = log N(theta | mu, sigma) + sum_i log P_i(theta)^x_i (1 - P_i(theta))^(1 - x_i)

The posterior is rebuilt from the complete response history on every call.
Nothing is carried over between calls, so repeated updates cannot accumulate
floating-point drift; the cost is O(items x grid points) per response.
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from scipy.special import expit
from scipy.stats import norm

logger = logging.getLogger(__name__)

# Response probabilities are clamped to [PROB_FLOOR, 1 - PROB_FLOOR] before
# taking logs so a single surprising response cannot zero out the likelihood.
PROB_FLOOR = 1e-6

# (discrimination, difficulty, guessing, is_correct)
ItemResponse3PL = Tuple[float, float, float, bool]


@dataclass(frozen=True)
class AbilityEstimate:
    """Posterior mean and standard deviation of ability."""

    theta: float
    se: float


# Returned when no item has been administered yet.
NO_ESTIMATE = AbilityEstimate(theta=0.0, se=math.inf)


def probability_3pl(theta: float, a: float, b: float, c: float) -> float:
    """
    Probability of a correct response under the 3PL model.

    P(theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

    Uses a numerically stable sigmoid so extreme logits do not overflow.
    """
    logit = a * (theta - b)
    if logit >= 0:
        s = 1.0 / (1.0 + math.exp(-logit))
    else:
        exp_logit = math.exp(logit)
        s = exp_logit / (1.0 + exp_logit)
    return c + (1.0 - c) * s


def ability_grid(grid_min: float, grid_max: float, grid_step: float) -> np.ndarray:
    """Equally spaced grid from grid_min to grid_max (inclusive) at grid_step."""
    steps = max(1, int(round((grid_max - grid_min) / grid_step)))
    return grid_min + grid_step * np.arange(steps + 1, dtype=float)


def posterior_distribution(
    responses: Sequence[ItemResponse3PL],
    prior_mean: float,
    prior_sd: float,
    grid_min: float,
    grid_max: float,
    grid_step: float,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Compute the discrete posterior over the ability grid.

    Args:
        responses: (a, b, c, is_correct) for every administered item, in any
            order (the posterior does not depend on order).
        prior_mean: Mean of the Gaussian prior on theta.
        prior_sd: Standard deviation of the Gaussian prior on theta.
        grid_min: Lowest grid point.
        grid_max: Highest grid point.
        grid_step: Grid spacing.

    Returns:
        Tuple of (grid, probabilities); probabilities sum to 1. With no
        responses, or if the posterior cannot be normalized, the normalized
        prior is returned.
    """
    grid = ability_grid(grid_min, grid_max, grid_step)

    if not responses:
        return grid, _normalized_prior(grid, prior_mean, prior_sd)

    log_prior = norm.logpdf(grid, loc=prior_mean, scale=prior_sd)
    log_posterior = log_prior + _compute_log_likelihoods(grid, responses)

    # Shift by the maximum before exponentiating to avoid underflow
    with np.errstate(invalid="ignore", over="ignore"):
        shifted = np.exp(log_posterior - np.max(log_posterior))
        total = float(np.sum(shifted))

    if not math.isfinite(total) or total <= 0.0:
        logger.warning(
            f"Posterior could not be normalized (sum={total}) after "
            f"{len(responses)} responses. Falling back to the prior."
        )
        return grid, _normalized_prior(grid, prior_mean, prior_sd)

    return grid, shifted / total


def estimate_ability_eap(
    responses: Sequence[ItemResponse3PL],
    prior_mean: float,
    prior_sd: float,
    grid_min: float,
    grid_max: float,
    grid_step: float,
) -> AbilityEstimate:
    """
    Estimate ability as the posterior mean over the ability grid.

    theta_hat = sum(theta_j * p_j)
    SE        = sqrt(sum((theta_j - theta_hat)^2 * p_j))

    Args:
        responses: (a, b, c, is_correct) for every administered item.
        prior_mean: Mean of the Gaussian prior on theta.
        prior_sd: Standard deviation of the Gaussian prior on theta.
        grid_min: Lowest grid point.
        grid_max: Highest grid point.
        grid_step: Grid spacing.

    Returns:
        AbilityEstimate. With no responses returns NO_ESTIMATE
        (theta=0.0, se=inf).
    """
    if not responses:
        return NO_ESTIMATE

    grid, probs = posterior_distribution(
        responses, prior_mean, prior_sd, grid_min, grid_max, grid_step
    )

    theta_hat = float(np.sum(grid * probs))
    variance = float(np.sum((grid - theta_hat) ** 2 * probs))

    return AbilityEstimate(theta=theta_hat, se=math.sqrt(max(variance, 0.0)))


def _normalized_prior(grid: np.ndarray, prior_mean: float, prior_sd: float) -> np.ndarray:
    density = norm.pdf(grid, loc=prior_mean, scale=prior_sd)
    return density / np.sum(density)


def _compute_log_likelihoods(
    grid: np.ndarray,
    responses: Sequence[ItemResponse3PL],
) -> np.ndarray:
    """
    Log-likelihood of the response vector at every grid point.

    Args:
        grid: Ability grid.
        responses: List of (a, b, c, is_correct) tuples.

    Returns:
        Array of log-likelihood values, one per grid point.
    """
    log_likelihood = np.zeros_like(grid)
    for a, b, c, is_correct in responses:
        p = c + (1.0 - c) * expit(a * (grid - b))
        p = np.clip(p, PROB_FLOOR, 1.0 - PROB_FLOOR)
        if is_correct:
            log_likelihood += np.log(p)
        else:
            log_likelihood += np.log(1.0 - p)
    return log_likelihood


def responses_from_items(
    items: Sequence[Tuple[float, float, float]],
    correct: Sequence[bool],
) -> List[ItemResponse3PL]:
    """Pair (a, b, c) parameter triples with their scored responses."""
    if len(items) != len(correct):
        raise ValueError(
            f"items length ({len(items)}) must match responses length ({len(correct)})"
        )
    return [(a, b, c, bool(x)) for (a, b, c), x in zip(items, correct)]
