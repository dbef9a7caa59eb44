"""
Tests for the zoom/pan view transform.
"""

import pytest

from core.scales import BandScale, LinearScale
from core.view import (
    IDENTITY,
    ViewTransform,
    constrain,
    pan,
    rescale_band,
    rescale_linear,
    visible_band_domain,
    zoom_at,
)

EXTENT = (100.0, 100.0)


class TestZoom:
    def test_zoom_at_origin(self):
        t = zoom_at(IDENTITY, 2.0, (0.0, 0.0), EXTENT)
        assert (t.k, t.x, t.y) == (2.0, 0.0, 0.0)

    def test_zoom_keeps_point_under_cursor(self):
        t = zoom_at(IDENTITY, 2.0, (50.0, 50.0), EXTENT)
        assert (t.k, t.x, t.y) == (2.0, -50.0, -50.0)
        assert t.invert_x(50.0) == pytest.approx(50.0)

    @pytest.mark.parametrize("factor, expected", [(100.0, 10.0), (0.1, 1.0)])
    def test_scale_is_clamped(self, factor, expected):
        assert zoom_at(IDENTITY, factor, (0.0, 0.0), EXTENT).k == expected

    @pytest.mark.parametrize("factor", [0.0, -1.0, float("nan")])
    def test_invalid_factor_is_ignored(self, factor):
        t = ViewTransform(2.0, -10.0, -10.0)
        assert zoom_at(t, factor, (0.0, 0.0), EXTENT) is t

    def test_zoom_out_to_identity(self):
        t = zoom_at(ViewTransform(2.0, -50.0, -50.0), 0.5, (50.0, 50.0), EXTENT)
        assert t.is_identity


class TestPanAndConstrain:
    def test_pan_cannot_leave_plot_area(self):
        t = pan(ViewTransform(2.0, -50.0, -50.0), 500.0, -500.0, EXTENT)
        assert (t.x, t.y) == (0.0, -100.0)

    def test_identity_cannot_pan(self):
        assert pan(IDENTITY, 30.0, 30.0, EXTENT) == IDENTITY

    def test_constrain_is_noop_inside(self):
        t = ViewTransform(3.0, -20.0, -40.0)
        assert constrain(t, EXTENT) == t


class TestRescale:
    def test_rescale_linear_x(self):
        scale = LinearScale((0.0, 100.0), (0.0, 100.0))
        zoomed = rescale_linear(scale, ViewTransform(2.0, -50.0, -50.0), "x")
        assert zoomed.domain == pytest.approx((25.0, 75.0))
        assert zoomed.range == scale.range

    def test_rescale_linear_y_with_inverted_range(self):
        scale = LinearScale((0.0, 100.0), (100.0, 0.0))
        zoomed = rescale_linear(scale, ViewTransform(2.0, -50.0, -50.0), "y")
        assert zoomed.domain == pytest.approx((25.0, 75.0))

    def test_rescaled_domain_never_negative(self):
        scale = LinearScale((0.0, 100.0), (0.0, 100.0))
        zoomed = rescale_linear(scale, ViewTransform(1.0, 20.0, 0.0), "x")
        assert zoomed.domain[0] == 0.0

    def test_identity_band_is_unchanged(self):
        band = BandScale(tuple("abcdefghij"), (0.0, 100.0))
        assert rescale_band(band, IDENTITY) is band
        assert visible_band_domain(band, IDENTITY) == band.domain

    def test_zoomed_band_shows_contiguous_middle(self):
        band = BandScale(tuple("abcdefghij"), (0.0, 100.0))
        shown = visible_band_domain(band, ViewTransform(2.0, -50.0, 0.0))

        assert "a" not in shown and "j" not in shown
        joined = "".join(band.domain)
        assert "".join(shown) in joined
        assert rescale_band(band, ViewTransform(2.0, -50.0, 0.0)).domain == shown
