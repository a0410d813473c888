"""Tests for table formatting helpers."""
import pytest

from idxwatch.infrastructure import formatters as fmt


@pytest.mark.parametrize(
    "price,expected",
    [(9875.0, "9,875"), (1000.0, "1,000"), (512.5, "512.50"), (0.0, "0.00")],
)
def test_format_price(price, expected):
    assert fmt.format_price(price) == expected


def test_format_change_and_percent_signs():
    assert fmt.format_change(125) == "+125"
    assert fmt.format_change(-50) == "-50"
    assert fmt.format_percent(1.284) == "+1.28%"
    assert fmt.format_percent(-0.5) == "-0.50%"


@pytest.mark.parametrize(
    "value,expected",
    [
        (999, "999"),
        (1_500, "1.50K"),
        (1_234_567, "1.23M"),
        (2_500_000_000, "2.50B"),
        (1.1e12, "1.10T"),
        (-1_234_567, "1.23M"),
    ],
)
def test_format_compact(value, expected):
    assert fmt.format_compact(value) == expected


def test_format_pl_keeps_sign():
    assert fmt.format_pl(1_500) == "+1.50K"
    assert fmt.format_pl(-1_500) == "-1.50K"


def test_format_optional():
    assert fmt.format_optional(None) == "-"
    assert fmt.format_optional(12.5) == "12.50"


def test_truncate():
    assert fmt.truncate("Bank Central Asia", 10) == "Bank Ce..."
    assert fmt.truncate("BBCA", 10) == "BBCA"
    assert fmt.truncate("BBCA", 3) == "BBC"


def test_format_relative_time():
    now = 1_700_000_000
    assert fmt.format_relative_time(0, now) == ""
    assert fmt.format_relative_time(now - 30, now) == "just now"
    assert fmt.format_relative_time(now - 300, now) == "5m ago"
    assert fmt.format_relative_time(now - 7200, now) == "2h ago"
    assert fmt.format_relative_time(now - 3 * 86400, now) == "3d ago"


def test_format_timestamp_missing():
    assert fmt.format_timestamp(0) == "-"


def test_sparkline_resamples_to_width():
    line = fmt.sparkline([float(v) for v in range(100)], 20)
    assert len(line) == 20
    assert line[0] == fmt.SPARK_BLOCKS[0]
    assert line[-1] == fmt.SPARK_BLOCKS[-1]


def test_sparkline_flat_and_empty():
    assert fmt.sparkline([5.0, 5.0, 5.0], 10) == fmt.SPARK_BLOCKS[0] * 3
    assert fmt.sparkline([], 10) == ""


def test_bar():
    assert fmt.bar(0.5, 10) == "█" * 5 + "░" * 5
    assert fmt.bar(1.5, 4) == "████"
    assert fmt.bar(-1, 4) == "░░░░"
