"""
tests/test_color_scale.py

Pytest unit tests for the rate and expense-delta colour scales.
"""

from __future__ import annotations

import math

import pytest

from segmentation.color_scale import (
    INVALID_RATE_COLOR,
    NEUTRAL_DELTA_COLOR,
    color_for_rate,
    expense_delta_color,
    interpolate_color,
)


def _brightness(color: str) -> int:
    value = int(color.lstrip("#"), 16)
    return ((value >> 16) & 255) + ((value >> 8) & 255) + (value & 255)


class TestInterpolateColor:
    def test_endpoints(self) -> None:
        assert interpolate_color("#000000", "#ffffff", 0.0) == "#000000"
        assert interpolate_color("#000000", "#ffffff", 1.0) == "#ffffff"

    def test_rounds_half_up(self) -> None:
        # 0 + 255 * 0.5 = 127.5
        assert interpolate_color("#000000", "#ff0000", 0.5) == "#800000"


class TestColorForRate:
    @pytest.mark.parametrize(
        "rate, expected",
        [
            (0.30, "#166534"),
            (0.95, "#166534"),
            (0.12, "#1d4ed8"),
            (0.08, "#dbeafe"),
            (-0.10, "#991b1b"),
            (-2.0, "#991b1b"),
        ],
    )
    def test_band_endpoints(self, rate: float, expected: str) -> None:
        assert color_for_rate(rate) == expected

    def test_yellow_band_starts_light_below_eight_percent(self) -> None:
        assert color_for_rate(0.0799999) == "#fef3c7"
        assert color_for_rate(0.04) == "#d97706"

    @pytest.mark.parametrize("rate", [math.nan, math.inf, -math.inf])
    def test_non_finite_rates(self, rate: float) -> None:
        assert color_for_rate(rate) == INVALID_RATE_COLOR

    def test_green_darkens_as_rate_rises(self) -> None:
        shades = [_brightness(color_for_rate(rate)) for rate in (0.13, 0.18, 0.24, 0.29)]
        assert shades == sorted(shades, reverse=True)

    def test_blue_darkens_as_rate_rises(self) -> None:
        shades = [_brightness(color_for_rate(rate)) for rate in (0.08, 0.09, 0.10, 0.11, 0.12)]
        assert shades == sorted(shades, reverse=True)
        assert len(set(shades)) == len(shades)

    def test_yellow_darkens_as_rate_falls(self) -> None:
        shades = [_brightness(color_for_rate(rate)) for rate in (0.079, 0.07, 0.06, 0.05, 0.04)]
        assert shades == sorted(shades, reverse=True)
        assert len(set(shades)) == len(shades)

    def test_red_darkens_as_rate_falls(self) -> None:
        shades = [_brightness(color_for_rate(rate)) for rate in (0.03, 0.0, -0.05, -0.09)]
        assert shades == sorted(shades, reverse=True)


class TestExpenseDeltaColor:
    def test_zero_delta_is_neutral(self) -> None:
        assert expense_delta_color(0.0) == NEUTRAL_DELTA_COLOR
        assert expense_delta_color(math.nan) == NEUTRAL_DELTA_COLOR

    def test_overspend_is_red(self) -> None:
        assert expense_delta_color(0.2) == "#991b1b"
        assert expense_delta_color(0.5) == "#991b1b"

    def test_underspend_is_green(self) -> None:
        assert expense_delta_color(-0.2) == "#166534"
