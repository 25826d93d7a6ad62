"""
Tests for loading and validating the calibrated item bank file.
"""
import pytest

from vocabcat.core.cat.item_bank import (
    ItemBank,
    ItemBankError,
    VocabCATError,
    item_bank_from_rows,
    load_item_bank,
)

HEADER = (
    "Item,Level,PartOfSpeech,CorrectAnswer,Distractor_1,Distractor_2,Distractor_3,"
    "Dscrimination,Difficulty,Guessing"
)


def _write_bank(tmp_path, *rows, header=HEADER):
    path = tmp_path / "bank.csv"
    path.write_text("\n".join([header, *rows]) + "\n", encoding="utf-8")
    return path


def _row(**overrides):
    row = {
        "Item": "lucid",
        "Level": "6",
        "PartOfSpeech": "adj",
        "CorrectAnswer": "clear",
        "Distractor_1": "heavy",
        "Distractor_2": "angry",
        "Distractor_3": "early",
        "Dscrimination": "1.25",
        "Difficulty": "0.4",
        "Guessing": "0.2",
    }
    row.update(overrides)
    return row


class TestLoadItemBank:
    """Tests for load_item_bank."""

    def test_loads_rows_in_file_order(self, tmp_path):
        path = _write_bank(
            tmp_path,
            "dog,1,n,animal,colour,number,place,0.9,-2.1,0.22",
            "lucid,6,adj,clear,heavy,angry,early,1.25,0.4,0.2",
            "recondite,9,adj,obscure,loud,tiny,fresh,1.8,2.2,0.18",
        )
        bank = load_item_bank(path)

        assert isinstance(bank, ItemBank)
        assert len(bank) == 3
        assert [item.word for item in bank] == ["dog", "lucid", "recondite"]
        assert bank[1].discrimination == 1.25
        assert bank[1].difficulty == 0.4
        assert bank[1].guessing == 0.2
        assert bank[1].level == 6
        assert bank[1].correct_answer == "clear"
        assert bank[1].distractors == ("heavy", "angry", "early")
        assert bank[1].part_of_speech == "adj"

    def test_accepts_utf8_bom_and_padded_header(self, tmp_path):
        path = tmp_path / "bank.csv"
        header = ", ".join(HEADER.split(","))
        path.write_text(
            "\ufeff" + header + "\nlucid,6,adj,clear,heavy,angry,early,1.25,0.4,0.2\n",
            encoding="utf-8",
        )
        assert len(load_item_bank(path)) == 1

    def test_part_of_speech_is_optional(self, tmp_path):
        header = "Item,Level,CorrectAnswer,Distractor_1,Distractor_2,Distractor_3,Dscrimination,Difficulty,Guessing"
        path = _write_bank(tmp_path, "lucid,6,clear,heavy,angry,early,1.25,0.4,0.2", header=header)
        assert load_item_bank(path)[0].part_of_speech == ""

    def test_header_only_gives_empty_bank(self, tmp_path):
        assert len(load_item_bank(_write_bank(tmp_path))) == 0

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(ItemBankError, match="Could not read item bank file") as exc_info:
            load_item_bank(tmp_path / "missing.csv")
        assert isinstance(exc_info.value.original_error, OSError)

    def test_missing_column_raises(self, tmp_path):
        header = "Item,Level,CorrectAnswer,Distractor_1,Distractor_2,Distractor_3,Difficulty,Guessing"
        path = _write_bank(tmp_path, "lucid,6,clear,heavy,angry,early,0.4,0.2", header=header)
        with pytest.raises(ItemBankError) as exc_info:
            load_item_bank(path)
        assert exc_info.value.context["missing"] == ["Dscrimination"]

    def test_extra_values_raise(self, tmp_path):
        path = _write_bank(tmp_path, "lucid,6,adj,clear,heavy,angry,early,1.25,0.4,0.2,surplus")
        with pytest.raises(ItemBankError, match="more values"):
            load_item_bank(path)

    def test_short_row_raises(self, tmp_path):
        path = _write_bank(tmp_path, "lucid,6,adj,clear,heavy")
        with pytest.raises(ItemBankError, match="missing required columns") as exc_info:
            load_item_bank(path)
        assert exc_info.value.context["row"] == 1


class TestRowValidation:
    """Invalid item parameters are rejected at the loader."""

    @pytest.mark.parametrize(
        "column,value",
        [
            ("Dscrimination", "0"),
            ("Dscrimination", "-0.5"),
            ("Guessing", "1.0"),
            ("Guessing", "-0.1"),
            ("Difficulty", "nan"),
            ("Dscrimination", "inf"),
            ("Difficulty", "hard"),
            ("Level", "high"),
            ("Item", ""),
        ],
    )
    def test_invalid_value_raises(self, column, value):
        with pytest.raises(ItemBankError, match="Invalid item parameters") as exc_info:
            item_bank_from_rows([_row(), _row(**{column: value})])
        assert exc_info.value.context["row"] == 2

    def test_error_is_a_vocabcat_error(self):
        with pytest.raises(VocabCATError):
            item_bank_from_rows([_row(Guessing="2")])

    def test_message_includes_context(self):
        with pytest.raises(ItemBankError) as exc_info:
            item_bank_from_rows([_row(Guessing="2")])
        message = str(exc_info.value)
        assert "row=1" in message
        assert "Original error: ValidationError" in message

    def test_whitespace_is_stripped(self):
        bank = item_bank_from_rows([_row(Item="  lucid ", CorrectAnswer=" clear")])
        assert bank[0].word == "lucid"
        assert bank[0].correct_answer == "clear"

    def test_boundary_guessing_zero_accepted(self):
        assert item_bank_from_rows([_row(Guessing="0")])[0].guessing == 0.0
