"""
Tests for dataset loading and the per-page data context.
"""

from dataclasses import replace

import pytest

from core.data import DATA_DIR, is_remote, load_page_data, prepare_context, resolve_source
from core.errors import LoadError
from core.filters import FilterState
from core.pages import PAGES, STEAM, TWITCH


class TestLoadPageData:
    """Loading a page dataset to completion"""

    def test_steam_context(self, steam_ctx):
        assert steam_ctx["page"] == "steam"
        assert len(steam_ctx["records"]) == 5
        assert steam_ctx["categories"] == ["Action", "RPG", "Strategy"]
        assert steam_ctx["range_bounds"] == (2000.0, 2015.0)
        assert steam_ctx["threshold_max"] == 25.0

    def test_twitch_context_drops_invalid_rows(self, twitch_ctx):
        records = twitch_ctx["records"]
        assert records["channel"].tolist() == ["a", "b", "c", "f"]
        assert twitch_ctx["color_extent"] == (50.0, 500.0)

    def test_sales_color_domain_is_sorted_genres(self, sales_ctx):
        assert sales_ctx["color_domain"] == ["Platform", "Racing", "Sports"]

    def test_repeated_loads_are_cached(self, steam_page):
        assert load_page_data(steam_page) is load_page_data(steam_page)

    @pytest.mark.parametrize("name", sorted(PAGES))
    def test_bundled_datasets_load(self, name):
        data_ctx = load_page_data(PAGES[name])
        assert not data_ctx["records"].empty
        assert data_ctx["records"]["key"].is_unique


class TestLoadErrors:
    """Every load failure surfaces as LoadError"""

    def test_missing_file(self, tmp_path):
        page = replace(STEAM, dataset=str(tmp_path / "nope.csv"))
        with pytest.raises(LoadError, match="not found"):
            load_page_data(page)

    def test_empty_file(self, write_csv):
        page = replace(STEAM, dataset=str(write_csv("empty.csv", "")))
        with pytest.raises(LoadError, match="empty"):
            load_page_data(page)

    def test_header_only(self, write_csv):
        path = write_csv("header.csv", "appid,name,release_date,genres,positive_ratings,negative_ratings,owners,price\n")
        with pytest.raises(LoadError, match="No rows"):
            load_page_data(replace(STEAM, dataset=str(path)))

    def test_missing_required_column(self, write_csv):
        path = write_csv("cols.csv", "appid,name,release_date,genres,positive_ratings,negative_ratings,price\n1,A,2001,Action,1,1,1\n")
        with pytest.raises(LoadError, match="owners"):
            load_page_data(replace(STEAM, dataset=str(path)))

    def test_no_valid_rows_after_coercion(self, write_csv):
        header = "Channel,Watch time(Minutes),Stream time(minutes),Peak viewers,Average viewers,Followers,Followers gained,Views gained,Partnered,Mature,Language\n"
        path = write_csv("twitch.csv", header + "a,1,1,1,0,0,1,1,True,False,English\n")
        with pytest.raises(LoadError, match="No valid"):
            load_page_data(replace(TWITCH, dataset=str(path)))


class TestSources:
    def test_relative_dataset_resolves_under_data_dir(self):
        assert resolve_source("vgsales.csv") == str(DATA_DIR / "vgsales.csv")

    def test_absolute_and_remote_sources_pass_through(self, tmp_path):
        path = str(tmp_path / "x.csv")
        assert resolve_source(path) == path
        assert is_remote("https://example.org/steam.csv")
        assert resolve_source("https://example.org/steam.csv") == "https://example.org/steam.csv"


class TestPrepareContext:
    def test_context_shape(self, steam_page, steam_ctx):
        ctx = prepare_context({"category": "Action"}, steam_ctx, steam_page)

        assert isinstance(ctx["filters"], FilterState)
        assert ctx["filtered"]["key"].tolist() == ["10", "30", "50"]
        assert ctx["size"] == (steam_page.width, steam_page.height)
        assert ctx["render"].keys == ("10", "30", "50")

    def test_matched_ignores_top_n(self, twitch_page, twitch_ctx):
        ctx = prepare_context({"top_n": 2}, twitch_ctx, twitch_page)

        assert len(ctx["filtered"]) == 2
        assert len(ctx["matched"]) == 4
