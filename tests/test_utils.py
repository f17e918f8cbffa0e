import math
from datetime import date, datetime

import pandas as pd
import pytest

from processing.common_code.utils import (
    parse_integer,
    parse_numeric,
    split_part,
    try_cast_date,
)


@pytest.mark.parametrize("value,expected", [
    ("April 9, 2013", pd.Timestamp("2013-04-09")),
    ("Apr 9, 2013", pd.Timestamp("2013-04-09")),
    ("2014-06-10", pd.Timestamp("2014-06-10")),
    ("2014-06-10 13:45:00", pd.Timestamp("2014-06-10")),
    ("6/10/2014", pd.Timestamp("2014-06-10")),
    (datetime(2014, 6, 10, 8, 30), pd.Timestamp("2014-06-10")),
    (date(2014, 6, 10), pd.Timestamp("2014-06-10")),
])
def test_try_cast_date_parses_known_formats(value, expected):
    assert try_cast_date(value) == expected


@pytest.mark.parametrize("value", [None, float("nan"), pd.NaT, "", "   ", "not a date", "02/30/2014", "9999-01-01"])
def test_try_cast_date_returns_none_instead_of_raising(value):
    assert try_cast_date(value) is None


def test_split_part_behaves_like_sql():
    assert split_part("123 Main St, Nashville", ",", 1) == "123 Main St"
    assert split_part("123 Main St, Nashville", ",", 2) == "Nashville"
    assert split_part("123 Main St", ",", 2) == ""
    assert split_part("a, b, c, d", ",", 3) == "c"
    assert split_part(None, ",", 1) is None
    assert split_part(float("nan"), ",", 2) is None


def test_split_part_rejects_zero_position():
    with pytest.raises(ValueError):
        split_part("a,b", ",", 0)


def test_parse_numeric_strips_formatting():
    assert parse_numeric("$120,000") == 120000.0
    assert parse_numeric("95000") == 95000.0
    assert parse_numeric("abc") is None
    assert parse_numeric("") is None
    assert parse_numeric(None) is None


def test_parse_integer():
    assert parse_integer("123") == 123
    assert parse_integer("123.0") == 123
    assert parse_integer(7.0) == 7
    assert parse_integer("12.5") is None
    assert parse_integer("x") is None
    assert parse_integer(math.nan) is None
