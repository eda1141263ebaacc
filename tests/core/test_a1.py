"""A1 范围表示法测试"""

import pytest
from sheetcrm.core.a1 import (
    build_range,
    column_letter,
    column_number,
    parse_range,
    quote_table_name,
)


class TestColumnLetters:
    @pytest.mark.parametrize(
        ("number", "letters"),
        [(1, "A"), (16, "P"), (26, "Z"), (27, "AA"), (52, "AZ"), (53, "BA"), (702, "ZZ")],
    )
    def test_letter_and_number_agree(self, number: int, letters: str):
        assert column_letter(number) == letters
        assert column_number(letters) == number

    def test_zero_column_rejected(self):
        with pytest.raises(ValueError):
            column_letter(0)

    def test_lowercase_letters_accepted(self):
        assert column_number("aa") == 27

    def test_invalid_letters_rejected(self):
        with pytest.raises(ValueError):
            column_number("A1")


class TestRanges:
    def test_build_range_uses_schema_width(self):
        assert build_range("EventLogs_IOT", 5, 5, 24) == "EventLogs_IOT!A5:X5"

    def test_build_open_range(self):
        assert build_range("EventLogs_DT", 2, None, 18) == "EventLogs_DT!A2:R"
        assert build_range("EventLogs_DT", None, None, 18) == "EventLogs_DT!A:R"

    def test_table_name_with_space_is_quoted(self):
        assert quote_table_name("Event Logs") == "'Event Logs'"
        assert quote_table_name("O'Brien") == "'O''Brien'"
        assert build_range("事件", 2, 3, 2) == "'事件'!A2:B3"

    def test_parse_quoted_range(self):
        parsed = parse_range("'O''Brien'!B2:D9")
        assert parsed.table == "O'Brien"
        assert (parsed.start_column, parsed.start_row) == (2, 2)
        assert (parsed.end_column, parsed.end_row) == (4, 9)

    def test_parse_open_range(self):
        parsed = parse_range("EventLogs_General!A:P")
        assert parsed.start_row is None
        assert parsed.end_row is None
        assert parsed.end_column == 16

    def test_parse_range_without_table_rejected(self):
        with pytest.raises(ValueError):
            parse_range("A1:B2")
