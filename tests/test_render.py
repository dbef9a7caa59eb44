"""
Tests for the keyed render cycle.
"""

from dataclasses import replace

import pytest

from core.data import prepare_context
from core.filters import FilterState, default_filters
from core.render import NO_DATA_MESSAGE, PLACEHOLDER_KEY, TRANSITION_MS, reconcile, render
from core.view import ViewTransform


def _cycle(page, data_ctx, filters, previous=None, transform=None):
    kwargs = {"previous": previous}
    if transform is not None:
        kwargs["transform"] = transform
    return prepare_context(filters, data_ctx, page, **kwargs)


class TestReconcile:
    def test_partition_by_key(self):
        plan = reconcile(["a", "b"], ["b", "c"])
        assert plan.create == ("c",)
        assert plan.update == ("b",)
        assert plan.remove == ("a",)

    def test_order_follows_current_set(self):
        plan = reconcile([], ["z", "a", "m"])
        assert plan.create == ("z", "a", "m")


class TestBarCycle:
    """Enter, update and exit over the Twitch bar chart"""

    def test_first_render_enters_every_mark(self, twitch_page, twitch_ctx):
        result = _cycle(twitch_page, twitch_ctx, default_filters(twitch_page, twitch_ctx))["render"]
        _, height = twitch_page.plot_area()

        assert [m.status for m in result.marks] == ["enter"] * 4
        assert result.duration == TRANSITION_MS
        for mark in result.marks:
            assert mark.start["height"] == 0.0
            assert mark.start["opacity"] == 0.0
            assert mark.start["y"] == height
            assert mark.end["opacity"] == twitch_page.chart.opacity
            assert mark.end["height"] == pytest.approx(height - mark.end["y"])

    def test_filter_change_updates_and_exits_by_key(self, twitch_page, twitch_ctx):
        filters = default_filters(twitch_page, twitch_ctx)
        first = _cycle(twitch_page, twitch_ctx, filters)["render"]
        second = _cycle(
            twitch_page,
            twitch_ctx,
            replace(filters, threshold=4000.0),
            previous=first.attrs_by_key(),
        )["render"]

        status = {m.key: m.status for m in second.marks}
        assert status == {"2": "update", "0": "update", "1": "exit", "5": "exit"}
        for mark in second.marks:
            assert mark.start == first.attrs_by_key()[mark.key]
            if mark.status == "exit":
                assert mark.end["opacity"] == 0.0
        assert second.keys == ("2", "0")

    def test_rerender_is_idempotent(self, twitch_page, twitch_ctx):
        filters = default_filters(twitch_page, twitch_ctx)
        first = _cycle(twitch_page, twitch_ctx, filters)["render"]
        again = _cycle(twitch_page, twitch_ctx, filters, previous=first.attrs_by_key())["render"]

        assert all(m.status == "update" for m in again.marks)
        assert all(m.start == m.end for m in again.marks)

    def test_axis_labels_are_names(self, twitch_page, twitch_ctx):
        result = _cycle(twitch_page, twitch_ctx, default_filters(twitch_page, twitch_ctx))["render"]
        assert [t.label for t in result.axes["x"]] == ["c", "a", "b", "f"]


class TestEmptyResult:
    def test_placeholder_replaces_marks(self, steam_page, steam_ctx):
        first = _cycle(steam_page, steam_ctx, FilterState())["render"]
        empty = _cycle(steam_page, steam_ctx, FilterState(category="Klingon"), previous=first.attrs_by_key())["render"]

        assert empty.placeholder is not None
        assert empty.placeholder.key == PLACEHOLDER_KEY
        assert empty.placeholder.end["text"] == NO_DATA_MESSAGE
        assert empty.live_marks == ()
        assert {m.status for m in empty.marks} == {"exit"}
        assert all(m.end["r"] == 0.0 for m in empty.marks)
        assert empty.stats["count"] == 0

    def test_recovery_after_empty(self, steam_page, steam_ctx):
        empty = _cycle(steam_page, steam_ctx, FilterState(category="Klingon"))["render"]
        back = _cycle(steam_page, steam_ctx, FilterState(), previous=empty.attrs_by_key())["render"]

        assert back.placeholder is None
        assert {m.status for m in back.marks} == {"enter"}


class TestScatter:
    def test_radius_follows_size_scale(self, steam_page, steam_ctx):
        ctx = _cycle(steam_page, steam_ctx, FilterState())
        size = ctx["scales"]["size"]
        by_key = ctx["render"].attrs_by_key()

        for rec in ctx["filtered"].to_dict(orient="records"):
            assert by_key[rec["key"]]["r"] == pytest.approx(size(rec["positive_ratings"]))

    def test_zoom_hides_marks_outside_view(self, steam_page, steam_ctx):
        width, height = steam_page.plot_area()
        # zoom into the top-right corner: cheap games at the left drop out
        zoomed = ViewTransform(4.0, width - width * 4.0, 0.0)
        ctx = _cycle(steam_page, steam_ctx, FilterState(), transform=zoomed)
        visible = {m.key: m.visible for m in ctx["render"].marks}

        assert visible["30"] is False
        assert len(ctx["filtered"]) == 5

    def test_stats(self, steam_page, steam_ctx):
        result = _cycle(steam_page, steam_ctx, FilterState(category="Action"))["render"]
        assert result.stats["count"] == 3
        assert result.stats["mean"]["price"] == pytest.approx(5.0 / 3)

    def test_render_direct_with_same_scales(self, steam_page, steam_ctx):
        ctx = _cycle(steam_page, steam_ctx, FilterState())
        again = render(ctx["filtered"], ctx["scales"], steam_page, FilterState(), previous=ctx["render"].attrs_by_key())
        assert again.keys == ctx["render"].keys
