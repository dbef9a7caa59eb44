"""Declarative page descriptors.

Each dataset page (Steam, Twitch, video-game sales) is described once here;
the loader, filter engine, scale builder and renderer are all driven from
these descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from core.errors import UnknownPageError

# d3.schemeSet3
SET3 = (
    "#8dd3c7",
    "#ffffb3",
    "#bebada",
    "#fb8072",
    "#80b1d3",
    "#fdb462",
    "#b3de69",
    "#fccde5",
    "#d9d9d9",
    "#bc80bd",
    "#ccebc5",
    "#ffed6f",
)
VIRIDIS_STOPS = ("#440154", "#3b528b", "#21918c", "#5ec962", "#fde725")
RATING_STOPS = ("#d73027", "#fc8d59", "#fee08b", "#91cf60", "#1a9850")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    column: str
    kind: str = "number"  # number | text | bool | range_max | year | primary_token
    default: object = 0
    clamp_min: Optional[float] = None
    required: bool = True


@dataclass(frozen=True)
class RatioSpec:
    positive: str
    negative: str
    positive_out: str
    negative_out: str


@dataclass(frozen=True)
class ColorSpec:
    kind: str  # segmented | ordinal
    field: str
    breakpoints: Tuple[float, ...] = ()
    colors: Tuple[str, ...] = ()
    normalize: bool = False


@dataclass(frozen=True)
class ChartSpec:
    kind: str  # scatter | bar
    x: Optional[str]
    y: Optional[str]
    label: str
    x_title: str = ""
    y_title: str = ""
    color: Optional[ColorSpec] = None
    size: Optional[str] = None
    max_radius: float = 18.0
    radius: float = 5.0
    opacity: float = 0.7


@dataclass(frozen=True)
class Margins:
    top: int = 40
    right: int = 30
    bottom: int = 60
    left: int = 60


@dataclass(frozen=True)
class PageConfig:
    name: str
    title: str
    dataset: str
    fields: Tuple[FieldSpec, ...]
    chart: ChartSpec
    key: Optional[str] = None
    ratios: Tuple[RatioSpec, ...] = ()
    required_positive: Tuple[str, ...] = ()
    category: Optional[str] = None
    threshold: Optional[str] = None
    threshold_direction: str = "max"
    threshold_default: object = "all"
    threshold_options: Tuple[float, ...] = ()
    range_field: Optional[str] = None
    sort_options: Tuple[str, ...] = ()
    default_sort: Optional[str] = None
    top_n: Optional[int] = None
    top_n_bounds: Tuple[int, int] = (1, 1000)
    measures: Tuple[str, ...] = ()
    default_measure: Optional[str] = None
    stat_fields: Tuple[str, ...] = ()
    width: int = 900
    height: int = 500
    margins: Margins = field(default_factory=Margins)
    tooltip_offset: Tuple[float, float] = (15.0, -10.0)
    zoomable: bool = False
    reset_zoom_on_update: bool = False

    @property
    def required_columns(self) -> Tuple[str, ...]:
        cols = [f.column for f in self.fields if f.required]
        if self.key:
            cols.insert(0, self.key)
        return tuple(dict.fromkeys(cols))

    def plot_area(self, size: Optional[Tuple[int, int]] = None) -> Tuple[float, float]:
        width, height = size or (self.width, self.height)
        m = self.margins
        return float(max(width - m.left - m.right, 1)), float(max(height - m.top - m.bottom, 1))


def value_field(page: PageConfig, sort_by: Optional[str] = None, measure: Optional[str] = None) -> str:
    """Field that drives the y encoding of the main chart."""
    if page.chart.y:
        return page.chart.y
    if page.measures:
        return measure or page.default_measure or page.measures[0]
    return sort_by or page.default_sort or page.sort_options[0]


STEAM = PageConfig(
    name="steam",
    title="Steam games",
    dataset="steam-data/steam.csv",
    key="appid",
    fields=(
        FieldSpec("name", "name", "text", "Unknown"),
        FieldSpec("developer", "developer", "text", "Unknown", required=False),
        FieldSpec("genre", "genres", "primary_token", "Unknown"),
        FieldSpec("release_date", "release_date", "text", ""),
        FieldSpec("release_year", "release_date", "year", 2000),
        FieldSpec("price", "price", "number", 0, clamp_min=0),
        FieldSpec("positive_ratings", "positive_ratings", "number", 0, clamp_min=0),
        FieldSpec("negative_ratings", "negative_ratings", "number", 0, clamp_min=0),
        FieldSpec("average_playtime", "average_playtime", "number", 0, clamp_min=0, required=False),
        FieldSpec("owners", "owners", "range_max", 0),
    ),
    ratios=(RatioSpec("positive_ratings", "negative_ratings", "positive_pct", "negative_pct"),),
    category="genre",
    threshold="price",
    threshold_direction="max",
    threshold_default="all",
    threshold_options=(5.0, 10.0, 20.0, 50.0),
    range_field="release_year",
    sort_options=("price", "owners", "positive_pct"),
    chart=ChartSpec(
        kind="scatter",
        x="price",
        y="owners",
        label="name",
        x_title="Game Price ($)",
        y_title="Owners (upper estimate)",
        color=ColorSpec(
            kind="segmented",
            field="positive_pct",
            breakpoints=(0.0, 40.0, 70.0, 85.0, 100.0),
            colors=RATING_STOPS,
        ),
        size="positive_ratings",
    ),
    stat_fields=("price", "positive_pct"),
    margins=Margins(top=40, right=30, bottom=60, left=60),
    zoomable=True,
)

TWITCH = PageConfig(
    name="twitch",
    title="Twitch streamers",
    dataset="twitchdata-update.csv",
    fields=(
        FieldSpec("channel", "Channel", "text", "Unknown"),
        FieldSpec("watchTime", "Watch time(Minutes)", "number", 0),
        FieldSpec("streamTime", "Stream time(minutes)", "number", 0, clamp_min=0),
        FieldSpec("peakViewers", "Peak viewers", "number", 0),
        FieldSpec("averageViewers", "Average viewers", "number", 0, clamp_min=0),
        FieldSpec("followers", "Followers", "number", 0, clamp_min=0),
        FieldSpec("followersGained", "Followers gained", "number", 0),
        FieldSpec("viewsGained", "Views gained", "number", 0),
        FieldSpec("partnered", "Partnered", "bool", False),
        FieldSpec("mature", "Mature", "bool", False),
        FieldSpec("language", "Language", "text", "Unknown"),
    ),
    required_positive=("followers", "averageViewers"),
    category="language",
    threshold="followers",
    threshold_direction="min",
    threshold_default=0.0,
    sort_options=("followers", "averageViewers"),
    default_sort="followers",
    top_n=25,
    chart=ChartSpec(
        kind="bar",
        x=None,
        y=None,
        label="channel",
        x_title="Streamers",
        y_title="Followers",
        color=ColorSpec(
            kind="segmented",
            field="averageViewers",
            breakpoints=(0.0, 25.0, 50.0, 75.0, 100.0),
            colors=VIRIDIS_STOPS,
            normalize=True,
        ),
        opacity=1.0,
    ),
    stat_fields=("followers", "averageViewers"),
    width=1000,
    height=600,
    margins=Margins(top=40, right=40, bottom=60, left=100),
    zoomable=True,
    reset_zoom_on_update=True,
)

SALES = PageConfig(
    name="sales",
    title="Video game sales",
    dataset="vgsales.csv",
    key="Rank",
    fields=(
        FieldSpec("rank", "Rank", "number", 0),
        FieldSpec("name", "Name", "text", "Unknown"),
        FieldSpec("platform", "Platform", "text", "Unknown"),
        FieldSpec("year", "Year", "year", 0),
        FieldSpec("genre", "Genre", "text", "Unknown"),
        FieldSpec("publisher", "Publisher", "text", "Unknown", required=False),
        FieldSpec("NA_Sales", "NA_Sales", "number", 0, clamp_min=0),
        FieldSpec("EU_Sales", "EU_Sales", "number", 0, clamp_min=0),
        FieldSpec("JP_Sales", "JP_Sales", "number", 0, clamp_min=0),
        FieldSpec("Other_Sales", "Other_Sales", "number", 0, clamp_min=0),
        FieldSpec("Global_Sales", "Global_Sales", "number", 0, clamp_min=0),
    ),
    category="genre",
    measures=("Global_Sales", "NA_Sales", "EU_Sales", "JP_Sales", "Other_Sales"),
    default_measure="Global_Sales",
    sort_options=("Global_Sales", "NA_Sales", "EU_Sales", "JP_Sales", "Other_Sales"),
    top_n=20,
    chart=ChartSpec(
        kind="bar",
        x=None,
        y=None,
        label="name",
        x_title="Games",
        y_title="Sales (millions)",
        color=ColorSpec(kind="ordinal", field="genre", colors=SET3),
        opacity=1.0,
    ),
    stat_fields=("Global_Sales",),
    width=1200,
    height=500,
    margins=Margins(top=20, right=30, bottom=60, left=80),
    tooltip_offset=(10.0, -10.0),
)

PAGES: Dict[str, PageConfig] = {p.name: p for p in (STEAM, TWITCH, SALES)}


def get_page(name: str) -> PageConfig:
    try:
        return PAGES[name]
    except KeyError:
        raise UnknownPageError(f"Unknown page: {name}") from None
