"""
Monte Carlo simulation of the adaptive vocabulary test.

Simulates examinees with known ability taking adaptive sessions through the
session engine and reports how well the final estimates recover the true
ability, how long the sessions run and why they stop.

The item bank generator draws 3PL parameters from distributions typical of
calibrated multiple-choice vocabulary banks (Lord, 1980):
    - Discrimination (a) ~ LogNormal(0.0, 0.3), clipped to [0.5, 2.5]
    - Difficulty (b) ~ Normal(0.0, 1.0), clipped to [-3.0, 3.0]
    - Guessing (c) ~ Uniform(0.15, 0.25), four-option items
    - Level 1-10 by difficulty decile of [-3, 3]
"""

import logging
import math
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from vocabcat.core.cat.ability_estimation import probability_3pl
from vocabcat.core.cat.calibration import CalibratedConfig
from vocabcat.core.cat.engine import CATSessionManager, Done
from vocabcat.core.cat.item_bank import ItemBank, VocabItem

logger = logging.getLogger(__name__)

# Synthetic item parameter distributions
DISCRIMINATION_LOGNORMAL_MEAN = 0.0
DISCRIMINATION_LOGNORMAL_SD = 0.3
DISCRIMINATION_MIN = 0.5
DISCRIMINATION_MAX = 2.5
DIFFICULTY_NORMAL_MEAN = 0.0
DIFFICULTY_NORMAL_SD = 1.0
DIFFICULTY_MIN = -3.0
DIFFICULTY_MAX = 3.0
GUESSING_MIN = 0.15
GUESSING_MAX = 0.25
N_LEVELS = 10


@dataclass
class SimulationConfig:
    """Configuration for a simulation run."""

    n_examinees: int = 200
    theta_mean: float = 0.0  # Mean of the true-ability distribution
    theta_sd: float = 1.0  # SD of the true-ability distribution
    seed: int = 42


@dataclass
class ExamineeResult:
    """Per-examinee simulation results."""

    true_theta: float
    estimated_theta: float
    final_se: float
    bias: float  # estimated_theta - true_theta
    items_administered: int
    high_level_items: int
    stopping_reason: str
    vocab_size: float
    tier: int
    administered_items: List[int] = field(default_factory=list)


@dataclass
class SimulationResult:
    """Aggregate simulation results."""

    config: SimulationConfig
    cat_config: CalibratedConfig
    examinee_results: List[ExamineeResult]
    mean_items: float
    median_items: float
    mean_se: float
    mean_bias: float
    rmse: float
    stopping_reason_counts: Dict[str, int]


def level_for_difficulty(difficulty: float) -> int:
    """Map a difficulty in [-3, 3] to a level in 1..N_LEVELS."""
    span = DIFFICULTY_MAX - DIFFICULTY_MIN
    level = 1 + int((difficulty - DIFFICULTY_MIN) / span * N_LEVELS)
    return min(max(level, 1), N_LEVELS)


def generate_item_bank(n_items: int = 300, seed: int = 42) -> ItemBank:
    """
    Generate a synthetic 3PL vocabulary item bank.

    Args:
        n_items: Number of items.
        seed: Random seed for reproducibility.

    Returns:
        ItemBank with synthetic words and answer options.
    """
    rng = np.random.default_rng(seed)

    a = np.clip(
        rng.lognormal(mean=DISCRIMINATION_LOGNORMAL_MEAN, sigma=DISCRIMINATION_LOGNORMAL_SD, size=n_items),
        DISCRIMINATION_MIN,
        DISCRIMINATION_MAX,
    )
    b = np.clip(
        rng.normal(loc=DIFFICULTY_NORMAL_MEAN, scale=DIFFICULTY_NORMAL_SD, size=n_items),
        DIFFICULTY_MIN,
        DIFFICULTY_MAX,
    )
    c = rng.uniform(GUESSING_MIN, GUESSING_MAX, size=n_items)

    items = [
        VocabItem(
            discrimination=float(a[i]),
            difficulty=float(b[i]),
            guessing=float(c[i]),
            level=level_for_difficulty(float(b[i])),
            correct_answer=f"meaning-{i}",
            distractors=(f"distractor-{i}-1", f"distractor-{i}-2", f"distractor-{i}-3"),
            word=f"word-{i}",
        )
        for i in range(n_items)
    ]

    logger.info(f"Generated synthetic item bank: {n_items} items (seed={seed})")
    return ItemBank(items)


def simulate_response(true_theta: float, item: VocabItem, rng: random.Random) -> bool:
    """Draw a response from the 3PL model for an examinee at ``true_theta``."""
    prob = probability_3pl(true_theta, item.discrimination, item.difficulty, item.guessing)
    return rng.random() < prob


def run_simulation(
    bank: ItemBank,
    config: SimulationConfig,
    cat_config: Optional[CalibratedConfig] = None,
) -> SimulationResult:
    """
    Run simulated examinees through complete adaptive sessions.

    For each examinee:
    1. Draw true_theta from N(config.theta_mean, config.theta_sd)
    2. Start a session and loop: respond -> record_response -> next_item_or_done
    3. Record the final estimate, test length and stop reason

    Args:
        bank: Item bank.
        config: Simulation configuration.
        cat_config: Session configuration; calibrated from the bank if None.

    Returns:
        SimulationResult with per-examinee and aggregate metrics.

    Raises:
        EmptyBankError: If the bank is empty.
    """
    rng = random.Random(config.seed)
    np_rng = np.random.default_rng(config.seed)
    manager = CATSessionManager(bank, config=cat_config, rng=rng)

    logger.info(
        f"Starting CAT simulation: N={config.n_examinees}, "
        f"theta ~ N({config.theta_mean}, {config.theta_sd}^2), bank={len(bank)} items"
    )

    examinee_results = []
    for examinee_id in range(1, config.n_examinees + 1):
        true_theta = float(np_rng.normal(loc=config.theta_mean, scale=config.theta_sd))

        state, next_item = manager.start(session_id=f"sim-{examinee_id}")
        while not isinstance(next_item, Done):
            is_correct = simulate_response(true_theta, bank[next_item], rng)
            state = manager.record_response(state, next_item, is_correct)
            next_item = manager.next_item_or_done(state)

        score = manager.finalize(state, stop_reason=next_item.reason)
        examinee_results.append(
            ExamineeResult(
                true_theta=true_theta,
                estimated_theta=state.theta,
                final_se=state.se,
                bias=state.theta - true_theta,
                items_administered=state.item_count,
                high_level_items=state.high_level_count(
                    bank, manager.config.high_level_threshold
                ),
                stopping_reason=next_item.reason,
                vocab_size=score.vocab_size,
                tier=score.tier,
                administered_items=list(state.administered_items),
            )
        )

        if examinee_id % 100 == 0:
            logger.info(f"Completed {examinee_id}/{config.n_examinees} examinees")

    return _aggregate_results(config, manager.config, examinee_results)


def _aggregate_results(
    config: SimulationConfig,
    cat_config: CalibratedConfig,
    examinee_results: List[ExamineeResult],
) -> SimulationResult:
    if not examinee_results:
        return SimulationResult(
            config=config,
            cat_config=cat_config,
            examinee_results=[],
            mean_items=0.0,
            median_items=0.0,
            mean_se=0.0,
            mean_bias=0.0,
            rmse=0.0,
            stopping_reason_counts={},
        )

    items = np.array([r.items_administered for r in examinee_results], dtype=float)
    ses = np.array([r.final_se for r in examinee_results], dtype=float)
    biases = np.array([r.bias for r in examinee_results], dtype=float)

    result = SimulationResult(
        config=config,
        cat_config=cat_config,
        examinee_results=examinee_results,
        mean_items=float(np.mean(items)),
        median_items=float(np.median(items)),
        mean_se=float(np.mean(ses)),
        mean_bias=float(np.mean(biases)),
        rmse=float(math.sqrt(np.mean(biases**2))),
        stopping_reason_counts=dict(Counter(r.stopping_reason for r in examinee_results)),
    )

    logger.info(
        f"Simulation complete: mean_items={result.mean_items:.1f}, "
        f"mean_se={result.mean_se:.3f}, bias={result.mean_bias:+.3f}, "
        f"rmse={result.rmse:.3f}, stops={result.stopping_reason_counts}"
    )
    return result
