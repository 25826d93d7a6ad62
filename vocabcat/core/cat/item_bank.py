"""
Calibrated vocabulary item bank and its loader.

The bank is an immutable, ordered collection of 3PL items. Items are
identified by their position in the bank, so the order of the source file is
significant and is preserved.

Trust boundary:
    Item parameters are validated here, when the bank is built from external
    rows (discrimination > 0, guessing in [0, 1), finite values). The engine
    modules (calibration, estimation, selection) trust the bank they are
    given and do not re-validate parameters.
"""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from vocabcat.schemas.item_bank import ItemBankRow

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = (
    "Item",
    "Level",
    "CorrectAnswer",
    "Distractor_1",
    "Distractor_2",
    "Distractor_3",
    "Dscrimination",
    "Difficulty",
    "Guessing",
)


class VocabCATError(Exception):
    """Base exception for the adaptive vocabulary test engine."""

    def __init__(  # noqa: D107
        self,
        message: str,
        original_error: Optional[Exception] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.original_error = original_error
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")
        if self.original_error:
            parts.append(
                f"Original error: {type(self.original_error).__name__}: "
                f"{self.original_error}"
            )
        return " | ".join(parts)


class EmptyBankError(VocabCATError):
    """Raised when a session is started against an item bank with no items."""


class ItemBankError(VocabCATError):
    """Raised when an item bank file or row cannot be turned into items."""


@dataclass(frozen=True)
class VocabItem:
    """A calibrated multiple-choice vocabulary item (3PL parameters)."""

    discrimination: float  # a
    difficulty: float  # b
    guessing: float  # c
    level: int
    correct_answer: str
    distractors: Tuple[str, ...]
    word: str = ""
    part_of_speech: str = ""


class ItemBank(Sequence[VocabItem]):
    """Read-only, position-indexed collection of calibrated items."""

    def __init__(self, items: Iterable[VocabItem]):
        self._items: Tuple[VocabItem, ...] = tuple(items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):  # type: ignore[override]
        return self._items[index]

    def __iter__(self) -> Iterator[VocabItem]:
        return iter(self._items)

    def __repr__(self) -> str:
        return f"ItemBank({len(self._items)} items)"


def item_from_row(row: ItemBankRow) -> VocabItem:
    """Convert a validated bank row to an engine item."""
    return VocabItem(
        discrimination=row.discrimination,
        difficulty=row.difficulty,
        guessing=row.guessing,
        level=row.level,
        correct_answer=row.correct_answer,
        distractors=row.distractors,
        word=row.word,
        part_of_speech=row.part_of_speech,
    )


def item_bank_from_rows(rows: Iterable[Mapping[str, Any]]) -> ItemBank:
    """
    Build an ItemBank from raw mapping rows (e.g. ``csv.DictReader`` output).

    Row numbers in error messages are 1-based data rows; the header is row 0.

    Args:
        rows: Iterable of dicts keyed by the bank's column names.

    Returns:
        ItemBank preserving row order.

    Raises:
        ItemBankError: If any row fails validation.
    """
    items = []
    for row_number, raw in enumerate(rows, start=1):
        if None in raw:
            raise ItemBankError(
                "Row has more values than the header has columns",
                context={"row": row_number},
            )
        missing = [col for col in REQUIRED_COLUMNS if raw.get(col) is None]
        if missing:
            raise ItemBankError(
                "Row is missing required columns",
                context={"row": row_number, "missing": missing},
            )
        try:
            validated = ItemBankRow.model_validate(raw)
        except ValidationError as e:
            raise ItemBankError(
                "Invalid item parameters",
                original_error=e,
                context={"row": row_number, "item": raw.get("Item")},
            ) from e
        items.append(item_from_row(validated))

    return ItemBank(items)


def load_item_bank(path: Union[str, Path]) -> ItemBank:
    """
    Load a calibrated item bank from a CSV parameter file.

    Args:
        path: Path to a CSV file with a header row containing at least
            REQUIRED_COLUMNS.

    Returns:
        ItemBank with one item per data row, in file order.

    Raises:
        ItemBankError: If the file cannot be read, lacks required columns, or
            contains an invalid row.
    """
    path = Path(path)
    try:
        with path.open(newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            header = [name.strip() for name in (reader.fieldnames or [])]
            missing = [col for col in REQUIRED_COLUMNS if col not in header]
            if missing:
                raise ItemBankError(
                    "Item bank file is missing required columns",
                    context={"path": str(path), "missing": missing},
                )
            reader.fieldnames = header
            bank = item_bank_from_rows(reader)
    except OSError as e:
        raise ItemBankError(
            "Could not read item bank file",
            original_error=e,
            context={"path": str(path)},
        ) from e

    logger.info(f"Loaded {len(bank)} vocabulary items from {path}")
    return bank
