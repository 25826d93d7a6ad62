"""
Adaptive vocabulary test engine.

This module provides 3PL EAP estimation, Fisher-information item selection,
bank calibration, stopping rules and score conversion.
"""

from .ability_estimation import (
    AbilityEstimate,
    estimate_ability_eap,
    probability_3pl,
)
from .calibration import CalibratedConfig, calibrate
from .engine import (
    AdministrationState,
    CATSessionManager,
    Done,
    final_score,
    next_item_or_done,
    record_response,
    select_initial,
)
from .item_bank import (
    EmptyBankError,
    ItemBank,
    ItemBankError,
    VocabCATError,
    VocabItem,
    load_item_bank,
)
from .item_selection import fisher_information_3pl, select_next_item
from .score_conversion import VocabScore, reading_tier, vocab_size_from_theta
from .stopping_rules import check_termination

__all__ = [
    "calibrate",
    "CalibratedConfig",
    "select_initial",
    "record_response",
    "next_item_or_done",
    "final_score",
    "AdministrationState",
    "Done",
    "CATSessionManager",
    "AbilityEstimate",
    "estimate_ability_eap",
    "probability_3pl",
    "fisher_information_3pl",
    "select_next_item",
    "check_termination",
    "VocabScore",
    "vocab_size_from_theta",
    "reading_tier",
    "ItemBank",
    "VocabItem",
    "load_item_bank",
    "VocabCATError",
    "EmptyBankError",
    "ItemBankError",
]
