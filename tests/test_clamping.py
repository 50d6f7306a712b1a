"""
tests/test_clamping.py

Pytest unit tests for display-only outlier clamping.
"""

from __future__ import annotations

import pytest

from segmentation.clamping import clamp_absolute_max


class TestClampAbsoluteMax:
    def test_dominant_value_is_clamped(self) -> None:
        result = clamp_absolute_max([100.0, 10.0, 5.0])
        assert [item.display_value for item in result] == [20.0, 10.0, 5.0]
        assert [item.is_clamped for item in result] == [True, False, False]
        assert result[0].value == 100.0

    def test_input_order_is_preserved(self) -> None:
        result = clamp_absolute_max([5.0, 100.0, 10.0])
        assert [item.item for item in result] == [5.0, 100.0, 10.0]
        assert result[1].is_clamped

    def test_negative_outlier_keeps_sign(self) -> None:
        result = clamp_absolute_max([-100.0, 10.0, 5.0])
        assert result[0].display_value == -20.0
        assert result[0].is_clamped

    def test_threshold_boundary_is_not_clamped(self) -> None:
        result = clamp_absolute_max([20.0, 10.0])
        assert not any(item.is_clamped for item in result)

    def test_custom_ratio(self) -> None:
        result = clamp_absolute_max([100.0, 10.0], ratio=3.0)
        assert result[0].display_value == 30.0

    @pytest.mark.parametrize("values", [[], [42.0], [0.0, 0.0], [10.0, 0.0, 0.0]])
    def test_degenerate_inputs_are_unclamped(self, values: list[float]) -> None:
        result = clamp_absolute_max(values)
        assert [item.display_value for item in result] == values
        assert not any(item.is_clamped for item in result)

    def test_key_accessor(self) -> None:
        items = [{"name": "a", "v": 50.0}, {"name": "b", "v": -5.0}]
        result = clamp_absolute_max(items, key=lambda item: item["v"])
        assert result[0].item["name"] == "a"
        assert result[0].display_value == 10.0
