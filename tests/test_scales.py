"""
Tests for scale construction.
"""

import math

import pandas as pd
import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.filters import FilterState, apply_filters, default_filters
from core.pages import RATING_STOPS, SET3
from core.scales import (
    BandScale,
    LinearScale,
    OrdinalColorScale,
    SegmentedColorScale,
    SqrtScale,
    build_scales,
    magnitude_domain,
    ticks,
)

NON_NEGATIVE = st.floats(min_value=0, max_value=1e12, allow_nan=False, allow_infinity=False)


class TestMagnitudeDomain:
    def test_padded_upper_bound(self):
        assert magnitude_domain([10, 20]) == pytest.approx((0.0, 21.0))

    @pytest.mark.parametrize("values", [[], [0, 0], ["x", float("nan")]])
    def test_fallback_for_empty_or_zero(self, values):
        assert magnitude_domain(values) == (0.0, 1.0)


@given(values=st.lists(NON_NEGATIVE, max_size=50))
def test_domain_starts_at_zero_and_covers_max(values):
    lo, hi = magnitude_domain(values)
    assert lo == 0.0
    assert hi > 0.0
    if values:
        assert hi >= max(values)


class TestTicks:
    def test_round_steps(self):
        assert ticks(0, 100, 10) == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
        assert ticks(0, 1, 5) == pytest.approx([0.0, 0.2, 0.4, 0.6, 0.8, 1.0])

    def test_degenerate(self):
        assert ticks(3, 3) == [3]
        assert ticks(0, math.inf) == []


class TestNumericScales:
    def test_linear_roundtrip(self):
        scale = LinearScale((0.0, 10.0), (0.0, 100.0))
        assert scale(5) == 50.0
        assert scale.invert(50) == 5.0
        assert scale.contains(10)
        assert not scale.contains(11)

    def test_inverted_range(self):
        scale = LinearScale((0.0, 10.0), (200.0, 0.0))
        assert scale(0) == 200.0
        assert scale(10) == 0.0

    def test_sqrt_area_is_proportional_to_value(self):
        scale = SqrtScale((0.0, 100.0), (0.0, 10.0))
        assert scale(100) == pytest.approx(10.0)
        assert scale(25) == pytest.approx(5.0)
        assert scale(4) ** 2 / scale(1) ** 2 == pytest.approx(4.0)
        assert scale(0) == 0.0

    def test_band_positions(self):
        band = BandScale(("a", "b", "c"), (0.0, 310.0), 0.1)
        assert band.step == pytest.approx(100.0)
        assert band.bandwidth == pytest.approx(90.0)
        assert band("a") == pytest.approx(10.0)
        assert band("c") == pytest.approx(210.0)
        assert band("zzz") is None


class TestColorScales:
    def test_segmented_hits_stops_exactly(self):
        scale = SegmentedColorScale((0.0, 40.0, 70.0, 85.0, 100.0), RATING_STOPS)
        assert scale(0) == RATING_STOPS[0]
        assert scale(40) == RATING_STOPS[1]
        assert scale(85) == RATING_STOPS[3]
        assert scale(100) == RATING_STOPS[4]
        assert scale(150) == RATING_STOPS[4]

    def test_segmented_interpolates_between_stops(self):
        scale = SegmentedColorScale((0.0, 100.0), ("#000000", "#ffffff"))
        assert scale(50) == "#808080"

    def test_normalized_over_source_extent(self):
        scale = SegmentedColorScale((0.0, 100.0), ("#000000", "#ffffff"), source_extent=(50.0, 500.0))
        assert scale(50) == "#000000"
        assert scale(500) == "#ffffff"

    def test_unordered_breakpoints_rejected(self):
        with pytest.raises(ValueError):
            SegmentedColorScale((0.0, 50.0, 20.0), ("#000000", "#111111", "#222222"))

    def test_ordinal_is_stable(self):
        scale = OrdinalColorScale(("Action", "Racing"), SET3)
        assert scale("Action") == SET3[0]
        assert scale("Racing") == SET3[1]
        assert scale("Unlisted") == SET3[2]
        assert scale("Racing") == scale("Racing")


class TestBuildScales:
    def test_scatter_scales(self, steam_page, steam_ctx):
        filtered = apply_filters(steam_ctx["records"], default_filters(steam_page, steam_ctx), steam_page)
        scales = build_scales(filtered, steam_page, default_filters(steam_page, steam_ctx), steam_ctx)
        width, height = steam_page.plot_area()

        assert scales["x"].domain == pytest.approx((0.0, 25.0 * 1.05))
        assert scales["x"].range == (0.0, width)
        assert scales["y"].range == (height, 0.0)
        assert scales["y"].domain[1] >= filtered["owners"].max()
        assert isinstance(scales["size"], SqrtScale)
        assert scales["size"].range == (0.0, steam_page.chart.max_radius)

    def test_bar_scales_follow_filtered_order(self, twitch_page, twitch_ctx):
        state = default_filters(twitch_page, twitch_ctx)
        filtered = apply_filters(twitch_ctx["records"], state, twitch_page)
        scales = build_scales(filtered, twitch_page, state, twitch_ctx)

        assert isinstance(scales["x"], BandScale)
        assert scales["x"].domain == ("2", "0", "1", "5")
        assert scales["y"].domain == pytest.approx((0.0, 8000 * 1.05))

    def test_measure_drives_sales_y(self, sales_page, sales_ctx):
        state = FilterState(measure="JP_Sales")
        filtered = apply_filters(sales_ctx["records"], state, sales_page)
        scales = build_scales(filtered, sales_page, state, sales_ctx)

        assert scales["y"].domain == pytest.approx((0.0, 7 * 1.05))
        assert scales["color"]("Sports") == SET3[2]

    def test_empty_set_falls_back(self, steam_page, steam_ctx):
        empty = steam_ctx["records"].iloc[0:0]
        scales = build_scales(empty, steam_page, FilterState(), steam_ctx)
        assert scales["x"].domain == (0.0, 1.0)
        assert scales["y"].domain == (0.0, 1.0)

    def test_empty_frame_without_columns(self, twitch_page):
        scales = build_scales(pd.DataFrame(), twitch_page, FilterState(sort_by="followers"))
        assert scales["x"].domain == ()
