"""
Session engine tests: immutable state, stop reasons and complete sessions.
"""
import dataclasses
import math
import random

import pytest

from vocabcat.core.cat.calibration import calibrate
from vocabcat.core.cat.engine import (
    AdministrationState,
    CATSessionManager,
    Done,
    estimate_theta,
    final_score,
    next_item_or_done,
    record_response,
    select_initial,
)
from vocabcat.core.cat.item_bank import EmptyBankError, ItemBank
from vocabcat.core.cat.simulation import simulate_response
from vocabcat.core.cat.stopping_rules import (
    STOP_MAX_ITEMS,
    STOP_POOL_EXHAUSTED,
    STOP_PRECISION_REACHED,
)
from vocabcat.core.logging_config import session_id_context

ALL_REASONS = {STOP_MAX_ITEMS, STOP_PRECISION_REACHED, STOP_POOL_EXHAUSTED}


def _run_session(bank, config, true_theta, seed):
    """Drive one session to completion with model-generated responses."""
    rng = random.Random(seed)
    state = AdministrationState()
    item = select_initial(bank, config, rng=rng)
    while not isinstance(item, Done):
        state = record_response(bank, config, state, item, simulate_response(true_theta, bank[item], rng))
        item = next_item_or_done(bank, config, state)
    return state, item


class TestAdministrationState:
    def test_initial_state(self):
        state = AdministrationState()
        assert state.item_count == 0
        assert state.correct_count == 0
        assert state.theta == 0.0
        assert math.isinf(state.se)

    def test_state_is_frozen(self):
        with pytest.raises(AttributeError):
            AdministrationState().theta = 1.0

    def test_high_level_count(self, make_bank):
        bank = make_bank([(1.0, 0.0, 0.2, 3), (1.0, 1.0, 0.2, 7), (1.0, 2.0, 0.2, 9)])
        state = AdministrationState(administered_items=(0, 1, 2), responses=(True, False, True))
        assert state.high_level_count(bank, 7) == 2
        assert state.correct_count == 2


class TestRecordResponse:
    def test_returns_new_state_and_leaves_old_untouched(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        before = AdministrationState()
        after = record_response(synthetic_bank, config, before, 5, True)

        assert before.administered_items == ()
        assert before.responses == ()
        assert after.administered_items == (5,)
        assert after.responses == (True,)
        assert math.isfinite(after.se)
        assert after.theta_history == (after.theta,)
        assert after.se_history == (after.se,)

    def test_estimate_recomputed_from_full_history(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        state = AdministrationState()
        for index, correct in [(3, True), (10, False), (42, True)]:
            state = record_response(synthetic_bank, config, state, index, correct)

        direct = estimate_theta(synthetic_bank, config, state.administered_items, state.responses)
        assert state.theta == pytest.approx(direct.theta)
        assert state.se == pytest.approx(direct.se)
        assert len(state.theta_history) == 3

    def test_duplicate_item_raises(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        state = record_response(synthetic_bank, config, AdministrationState(), 5, True)
        with pytest.raises(ValueError, match="already been administered"):
            record_response(synthetic_bank, config, state, 5, False)

    @pytest.mark.parametrize("index", [-1, 200, 1000])
    def test_out_of_range_item_raises(self, synthetic_bank, index):
        config = calibrate(synthetic_bank)
        with pytest.raises(ValueError, match="out of range"):
            record_response(synthetic_bank, config, AdministrationState(), index, True)

    def test_empty_history_estimate(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        estimate = estimate_theta(synthetic_bank, config, (), ())
        assert estimate.theta == 0.0
        assert math.isinf(estimate.se)


class TestNextItemOrDone:
    def test_stops_at_max_items(self, synthetic_bank):
        config = dataclasses.replace(
            calibrate(synthetic_bank), min_items=1, target_items=5, max_items=5, target_se=0.0
        )
        state, done = _run_session(synthetic_bank, config, true_theta=0.0, seed=1)
        assert done == Done(reason=STOP_MAX_ITEMS)
        assert state.item_count == 5

    def test_stops_when_precise_enough(self, synthetic_bank):
        config = dataclasses.replace(
            calibrate(synthetic_bank),
            min_items=2,
            target_items=2,
            max_items=10,
            target_se=10.0,
            required_high_level_items=0,
        )
        state, done = _run_session(synthetic_bank, config, true_theta=0.5, seed=2)
        assert done.reason == STOP_PRECISION_REACHED
        assert state.item_count == 2

    def test_pool_exhaustion(self, make_bank):
        bank = make_bank([(1.0, -1.0, 0.2, 1), (1.0, 0.0, 0.2, 5), (1.0, 1.0, 0.2, 8)])
        config = calibrate(bank)
        state, done = _run_session(bank, config, true_theta=0.0, seed=3)
        assert done.reason == STOP_POOL_EXHAUSTED
        assert sorted(state.administered_items) == [0, 1, 2]

    def test_high_level_items_requested_first(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        state = AdministrationState()
        state = record_response(synthetic_bank, config, state, select_initial(synthetic_bank, config), True)
        for _ in range(2):
            if state.high_level_count(synthetic_bank, config.high_level_threshold) >= 2:
                break
            item = next_item_or_done(synthetic_bank, config, state)
            assert synthetic_bank[item].level >= config.high_level_threshold
            state = record_response(synthetic_bank, config, state, item, False)

        assert state.high_level_count(synthetic_bank, config.high_level_threshold) >= 2

    @pytest.mark.parametrize("true_theta", [-2.0, 0.0, 2.0])
    def test_complete_session_invariants(self, synthetic_bank, true_theta):
        config = calibrate(synthetic_bank)
        state, done = _run_session(synthetic_bank, config, true_theta=true_theta, seed=11)

        assert isinstance(done, Done)
        assert done.reason in ALL_REASONS
        assert len(set(state.administered_items)) == state.item_count
        assert state.item_count <= config.max_items
        assert state.item_count >= config.min_items
        assert state.high_level_count(synthetic_bank, config.high_level_threshold) >= 2
        assert state.se < state.se_history[0]


class TestFinalScore:
    def test_scores_final_state(self, synthetic_bank):
        config = calibrate(synthetic_bank)
        state, done = _run_session(synthetic_bank, config, true_theta=1.0, seed=5)
        score = final_score(state, stop_reason=done.reason)

        assert score.theta == state.theta
        assert score.items_administered == state.item_count
        assert score.correct_count == state.correct_count
        assert 2 <= score.tier <= 7
        assert score.stop_reason == done.reason


class TestCATSessionManager:
    def test_empty_bank_raises(self):
        with pytest.raises(EmptyBankError):
            CATSessionManager(ItemBank([]))

    def test_start_sets_session_id(self, synthetic_bank):
        manager = CATSessionManager(synthetic_bank, rng=random.Random(0))
        state, first_item = manager.start(session_id="exam-001")

        assert session_id_context.get() == "exam-001"
        assert state == AdministrationState()
        assert 0 <= first_item < len(synthetic_bank)

    def test_generates_session_id(self, synthetic_bank):
        manager = CATSessionManager(synthetic_bank)
        manager.start()
        assert session_id_context.get()

    def test_full_session_through_manager(self, synthetic_bank):
        rng = random.Random(21)
        manager = CATSessionManager(synthetic_bank, rng=rng)
        state, item = manager.start()
        while not isinstance(item, Done):
            state = manager.record_response(state, item, simulate_response(-0.5, synthetic_bank[item], rng))
            item = manager.next_item_or_done(state)

        score = manager.finalize(state, stop_reason=item.reason)
        assert score.items_administered == state.item_count
        assert manager.config.min_items <= state.item_count <= manager.config.max_items

    def test_supplied_config_is_used(self, synthetic_bank, session_config):
        manager = CATSessionManager(synthetic_bank, config=session_config)
        assert manager.config is session_config
