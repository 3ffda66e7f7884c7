"""Cell formatting tests."""

import pytest

from utils.format import format_bytes, format_duration, format_duration_short, format_float

NaN = float("nan")


@pytest.mark.parametrize("value, expected", [
    (0, "0"),
    (0.5, "0.5"),
    (1.25, "1.25"),
    (1.999, "2"),
    (9.5, "9.5"),
    (10.4, "10"),
    (1234.56, "1235"),
    (-3.5, "-3.5"),
    (NaN, ""),
])
def test_format_float(value, expected):
    assert format_float(value) == expected


def test_format_bytes_picks_largest_unit():
    assert format_bytes(512) == ("512", "B")
    assert format_bytes(2048) == ("2", "KB")
    assert format_bytes(1_572_864) == ("1.5", "MB")
    assert format_bytes(5 * 1024 ** 4) == ("5", "TB")


def test_format_bytes_of_nan_is_blank():
    assert format_bytes(NaN) == ("", "")


def test_format_duration_keeps_largest_components():
    assert format_duration(45) == "45s"
    assert format_duration(3725) == "1h"
    assert format_duration(3725, 2) == "1h 2m"
    assert format_duration(90000, 2) == "1d 1h"


def test_format_duration_drops_zero_tail():
    assert format_duration(7200, 3) == "2h"
    assert format_duration(86400 + 30, 3) == "1d"


def test_format_duration_zero_and_negative():
    assert format_duration(0) == "0s"
    assert format_duration(-120) == "-2m"


def test_format_duration_short_has_no_separator():
    assert format_duration_short(3725, 2) == "1h2m"
