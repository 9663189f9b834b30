"""Unit tests for deskframe.domain.resampler."""

import pytest

from deskframe.core.exceptions import ResampleBoundsError
from deskframe.domain.resampler import (
    MAX_CAP,
    MIN_CAP,
    MIN_FRAME_DURATION_MS,
    clamp_cap,
    floor_duration,
    resample,
    sample_indices,
    validate_cap,
)

pytestmark = pytest.mark.unit


class TestSampleIndices:
    """Tests for uniform-stride index selection."""

    def test_sample_indices_when_total_exceeds_cap_then_uniform_stride(self) -> None:
        assert sample_indices(100, 10) == (0, 10, 20, 30, 40, 50, 60, 70, 80, 90)

    def test_sample_indices_when_total_within_cap_then_every_index(self) -> None:
        assert sample_indices(4, 10) == (0, 1, 2, 3)

    def test_sample_indices_when_total_zero_then_empty(self) -> None:
        assert sample_indices(0, 5) == ()

    def test_sample_indices_when_cap_not_positive_then_raises(self) -> None:
        with pytest.raises(ValueError):
            sample_indices(10, 0)

    def test_sample_indices_when_uneven_stride_then_floor_of_ratio(self) -> None:
        assert sample_indices(7, 3) == (0, 2, 4)

    @pytest.mark.parametrize("total", [2, 7, 21, 50, 101, 1000])
    @pytest.mark.parametrize("cap", [2, 5, 10, 20])
    def test_sample_indices_when_any_input_then_bounded_and_non_decreasing(
        self, total: int, cap: int
    ) -> None:
        indices = sample_indices(total, cap)

        assert len(indices) == min(total, cap)
        assert all(0 <= i < total for i in indices)
        assert list(indices) == sorted(indices)


class TestCapBounds:
    """Tests for cap validation and clamping."""

    def test_validate_cap_when_in_range_then_returns_cap(self) -> None:
        assert validate_cap(MIN_CAP) == MIN_CAP
        assert validate_cap(MAX_CAP) == MAX_CAP

    @pytest.mark.parametrize("cap", [0, 1, 21, 500])
    def test_validate_cap_when_out_of_range_then_raises(self, cap: int) -> None:
        with pytest.raises(ResampleBoundsError):
            validate_cap(cap)

    @pytest.mark.parametrize(("cap", "expected"), [(-3, 2), (1, 2), (7, 7), (21, 20), (999, 20)])
    def test_clamp_cap_when_called_then_within_bounds(self, cap: int, expected: int) -> None:
        assert clamp_cap(cap) == expected

    def test_floor_duration_when_short_then_raised_to_minimum(self) -> None:
        assert floor_duration(0) == MIN_FRAME_DURATION_MS
        assert floor_duration(10) == MIN_FRAME_DURATION_MS
        assert floor_duration(120) == 120


class TestResample:
    """Tests for resample()."""

    def test_resample_when_hundred_frames_to_ten_then_even_durations(self) -> None:
        result = resample([50] * 100, 10)

        assert result.frame_count == 10
        assert result.indices == tuple(range(0, 100, 10))
        assert all(abs(d - 500) <= 1 for d in result.durations_ms)
        assert result.total_duration_ms == 5000

    def test_resample_when_fewer_frames_than_cap_then_keeps_source_durations(self) -> None:
        result = resample([100, 200, 300], 10)

        assert result.indices == (0, 1, 2)
        assert result.durations_ms == (100, 200, 300)

    def test_resample_when_source_durations_tiny_then_floored(self) -> None:
        result = resample([0, 10, 30], 10)

        assert result.durations_ms == (MIN_FRAME_DURATION_MS,) * 3

    def test_resample_when_total_short_then_per_frame_floored(self) -> None:
        result = resample([1] * 40, 20)

        assert result.durations_ms == (MIN_FRAME_DURATION_MS,) * 20

    def test_resample_when_cap_out_of_range_then_clamped(self) -> None:
        assert resample([50] * 100, 1).frame_count == MIN_CAP
        assert resample([50] * 100, 64).frame_count == MAX_CAP

    def test_resample_when_explicit_total_then_used_for_durations(self) -> None:
        result = resample([50] * 30, 10, total_duration_ms=9000)

        assert result.durations_ms == (900,) * 10

    def test_resample_when_empty_then_empty_result(self) -> None:
        result = resample([], 10)

        assert result.frame_count == 0
        assert result.total_duration_ms == 0
