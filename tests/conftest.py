"""
Pytest configuration and shared fixtures for testing.
"""
import random
from typing import Callable, Iterable, Tuple

import pytest

from vocabcat.core.cat.calibration import CalibratedConfig
from vocabcat.core.cat.item_bank import ItemBank, VocabItem
from vocabcat.core.cat.simulation import generate_item_bank
from vocabcat.core.logging_config import session_id_context


def _item(
    a: float = 1.0,
    b: float = 0.0,
    c: float = 0.0,
    level: int = 1,
    word: str = "",
) -> VocabItem:
    return VocabItem(
        discrimination=a,
        difficulty=b,
        guessing=c,
        level=level,
        correct_answer="answer",
        distractors=("wrong-1", "wrong-2", "wrong-3"),
        word=word,
    )


@pytest.fixture
def make_item() -> Callable[..., VocabItem]:
    """Factory for a single VocabItem with 3PL parameters."""
    return _item


@pytest.fixture
def make_bank() -> Callable[[Iterable[Tuple[float, float, float, int]]], ItemBank]:
    """Factory for an ItemBank from (a, b, c, level) tuples."""

    def _make(params: Iterable[Tuple[float, float, float, int]]) -> ItemBank:
        return ItemBank(_item(a, b, c, level, word=f"w{i}") for i, (a, b, c, level) in enumerate(params))

    return _make


@pytest.fixture(scope="module")
def synthetic_bank() -> ItemBank:
    """A 200-item synthetic 3PL bank shared by the tests of one module."""
    return generate_item_bank(n_items=200, seed=7)


@pytest.fixture
def session_config() -> CalibratedConfig:
    """A hand-written configuration with a standard-normal prior."""
    return CalibratedConfig(
        prior_mean=0.0,
        prior_sd=1.0,
        grid_min=-6.0,
        grid_max=6.0,
        grid_step=0.01,
        min_items=24,
        target_items=30,
        max_items=35,
        target_se=0.3,
        high_level_threshold=7,
        required_high_level_items=2,
    )


@pytest.fixture
def seeded_rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture(autouse=True)
def _reset_session_id():
    """Keep session ids set by one test out of the next one's log records."""
    token = session_id_context.set(None)
    yield
    session_id_context.reset(token)
