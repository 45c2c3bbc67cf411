import pytest

from shared.exceptions import InvalidRangeError
from shared.utils.a1_notation import (
    cell_address,
    column_letter_to_index,
    index_to_column_letter,
    is_column_letter,
    parse_cell_address,
    parse_range_address,
    range_address,
    split_sheet_name,
)


class TestColumnLetters:
    @pytest.mark.parametrize(
        "index,letter",
        [(0, "A"), (1, "B"), (25, "Z"), (26, "AA"), (27, "AB"), (51, "AZ"), (52, "BA"), (701, "ZZ"), (702, "AAA")],
    )
    def test_conversion(self, index, letter):
        assert index_to_column_letter(index) == letter
        assert column_letter_to_index(letter) == index

    def test_lowercase_letters(self):
        assert column_letter_to_index("ab") == 27

    @pytest.mark.parametrize("bad", ["", "A1", "$", "É"])
    def test_invalid_letters(self, bad):
        with pytest.raises(InvalidRangeError):
            column_letter_to_index(bad)

    def test_negative_index(self):
        with pytest.raises(InvalidRangeError):
            index_to_column_letter(-1)

    def test_is_column_letter(self):
        assert is_column_letter("C")
        assert is_column_letter("aa")
        assert not is_column_letter("")
        assert not is_column_letter("C3")
        assert not is_column_letter("Unit Price")


class TestAddresses:
    def test_cell_address(self):
        assert cell_address(0, 0) == "A1"
        assert cell_address(9, 27) == "AB10"

    def test_range_address(self):
        assert range_address(0, 0, 9, 2) == "A1:C10"
        assert range_address(4, 3, 4, 3) == "D5"

    def test_parse_cell_address(self):
        assert parse_cell_address("B3") == (2, 1)
        assert parse_cell_address("$aa$10") == (9, 26)
        assert parse_cell_address(" C1 ") == (0, 2)

    @pytest.mark.parametrize("bad", ["", "A0", "3B", "A1:B2", "Revenue"])
    def test_parse_cell_address_rejects(self, bad):
        with pytest.raises(InvalidRangeError) as exc_info:
            parse_cell_address(bad)
        assert exc_info.value.code == "INVALID_RANGE"

    def test_parse_range_address(self):
        assert parse_range_address("A1:C10") == (0, 0, 9, 2)
        assert parse_range_address("D5") == (4, 3, 4, 3)
        assert parse_range_address("Sheet1!B2:C3") == (1, 1, 2, 2)

    def test_parse_range_address_normalizes_corners(self):
        assert parse_range_address("C10:A1") == (0, 0, 9, 2)

    @pytest.mark.parametrize("bad", ["", ":", "A1:B2:C3", "A1:", "Total"])
    def test_parse_range_address_rejects(self, bad):
        with pytest.raises(InvalidRangeError):
            parse_range_address(bad)

    def test_split_sheet_name(self):
        assert split_sheet_name("'Q1 Sales'!A1:B2") == ("Q1 Sales", "A1:B2")
        assert split_sheet_name("A1") == (None, "A1")
