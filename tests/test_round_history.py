from datetime import date, datetime
from decimal import Decimal

from round_history import (
    build_history_rows,
    detect_next_round_number,
    excel_serial_to_date,
    format_date_iso,
    normalize_history_dates,
    parse_date,
    remove_empty_rows,
    round_label,
)


def test_excel_serial_dates():
    assert excel_serial_to_date(25569) == date(1970, 1, 1)
    assert excel_serial_to_date(44927) == date(2023, 1, 1)
    assert excel_serial_to_date(45366.75) == date(2024, 3, 15)
    assert excel_serial_to_date(Decimal("45366")) == date(2024, 3, 15)
    assert excel_serial_to_date("45366") is None
    assert excel_serial_to_date(True) is None


def test_parse_date_formats():
    assert parse_date("2024-03-15") == date(2024, 3, 15)
    assert parse_date("2024/3/5") == date(2024, 3, 5)
    assert parse_date("15/03/2024") == date(2024, 3, 15)
    assert parse_date("15-03-2024") == date(2024, 3, 15)
    assert parse_date(" 2024-03-15 ") == date(2024, 3, 15)
    assert parse_date(datetime(2024, 3, 15, 9, 30)) == date(2024, 3, 15)
    assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)


def test_parse_date_rejects_garbage():
    for value in (None, "", "next tuesday", "2024-13-01", "31/02/2024", [2024, 3, 15]):
        assert parse_date(value) is None


def test_format_date_iso_pads():
    assert format_date_iso(date(2024, 1, 5)) == "2024-01-05"


def test_normalize_history_dates_in_place():
    rows = [
        {"user_a": "a", "user_b": "b", "date": 44927},
        {"user_a": "a", "user_b": "c", "date": "15/03/2024"},
        {"user_a": "b", "user_b": "c", "date": "whenever"},
        {"user_a": "c", "user_b": "d", "date": ""},
        None,
    ]
    normalize_history_dates(rows)
    assert rows[0]["date"] == "2023-01-01"
    assert rows[1]["date"] == "2024-03-15"
    assert rows[2]["date"] == "whenever"
    assert rows[3]["date"] == ""
    normalize_history_dates(None)


def test_remove_empty_rows():
    rows = [
        {"user_a": "a", "user_b": "b"},
        None,
        {"user_a": "", "user_b": "b"},
        {"user_a": "a"},
        {"user_a": "c", "user_b": "d", "date": ""},
    ]
    kept = remove_empty_rows(rows)
    assert kept == [rows[0], rows[4]]
    assert remove_empty_rows([]) == []
    assert remove_empty_rows(None) is None


def test_detect_next_round_number():
    rows = [
        {"round_label": "Random Coffee #3"},
        {"round_label": "random coffee#7"},
        {"round_label": "Random Coffee # 5"},
        {"round_label": "Lunch #40"},
        {"round_label": ""},
        {},
        None,
    ]
    assert detect_next_round_number(rows, "Random Coffee") == 8
    assert detect_next_round_number([], "Random Coffee") == 1
    assert detect_next_round_number(None, "Random Coffee") == 1


def test_detect_next_round_number_escapes_base_text():
    rows = [{"round_label": "Coffee (beta) #2"}, {"round_label": "Coffee xbetax #9"}]
    assert detect_next_round_number(rows, "Coffee (beta)") == 3


def test_round_label_and_new_rows():
    label = round_label("Random Coffee", 4)
    assert label == "Random Coffee #4"
    rows = build_history_rows([("a@test.com", "b@test.com"), ("c@test.com", "a@test.com")], label, date(2024, 3, 15))
    assert rows == [
        {"user_a": "a@test.com", "user_b": "b@test.com", "date": "2024-03-15", "round_label": "Random Coffee #4"},
        {"user_a": "c@test.com", "user_b": "a@test.com", "date": "2024-03-15", "round_label": "Random Coffee #4"},
    ]
    assert build_history_rows([], label, date(2024, 3, 15)) == []
