from __future__ import annotations

import math
from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.charts import area_size_scale, linear_axis_scale, main_chart, to_vega_spec
from core.filters import FilterState
from core.formatting import REGION_NAMES
from core.pages import SALES, SET3
from core.scales import LinearScale, OrdinalColorScale, SqrtScale, magnitude_domain

REGIONS = ["NA_Sales", "EU_Sales", "JP_Sales", "Other_Sales"]
REGION_COLORS = {
    "NA_Sales": "#ff6b6b",
    "EU_Sales": "#4ecdc4",
    "JP_Sales": "#45b7d1",
    "Other_Sales": "#96ceb4",
}
PIE_LABEL_MIN_SALES = 20.0
UNKNOWN_YEAR = 0


def sales_by_year(df: pd.DataFrame) -> pd.DataFrame:
    """Regional sales summed per year, stacked in REGIONS order (y0/y1 per layer)."""
    cols = ["year", "region", "sales", "y0", "y1"]
    if df.empty:
        return pd.DataFrame(columns=cols)
    known = df[df["year"] != UNKNOWN_YEAR]
    if known.empty:
        return pd.DataFrame(columns=cols)
    totals = known.groupby("year")[REGIONS].sum().sort_index()
    upper = totals.cumsum(axis=1)
    lower = upper - totals
    rows = []
    for year in totals.index:
        for region in REGIONS:
            rows.append(
                {
                    "year": int(year),
                    "region": region,
                    "sales": float(totals.at[year, region]),
                    "y0": float(lower.at[year, region]),
                    "y1": float(upper.at[year, region]),
                }
            )
    return pd.DataFrame(rows, columns=cols)


def sales_by_genre(df: pd.DataFrame) -> List[Dict[str, Any]]:
    if df.empty:
        return []
    genre = df.groupby("genre")["Global_Sales"].sum().sort_values(ascending=False, kind="stable")
    total = float(genre.sum())
    out: List[Dict[str, Any]] = []
    angle = 0.0
    for name, sales in genre.items():
        share = float(sales) / total if total > 0 else 0.0
        out.append(
            {
                "genre": str(name),
                "sales": float(sales),
                "pct": share * 100.0,
                "start_angle": angle,
                "end_angle": angle + share * 2 * math.pi,
                "show_label": float(sales) > PIE_LABEL_MIN_SALES,
            }
        )
        angle += share * 2 * math.pi
    return out


def region_scatter_scales(df: pd.DataFrame) -> Dict[str, Any]:
    """NA vs EU positions plus a sqrt radius of 0.8 * sqrt(global sales)."""
    top_global = float(df["Global_Sales"].max()) if not df.empty else 0.0
    return {
        "x": LinearScale(magnitude_domain(df.get("NA_Sales", [])), (0.0, 1.0)),
        "y": LinearScale(magnitude_domain(df.get("EU_Sales", [])), (1.0, 0.0)),
        "size": SqrtScale((0.0, max(top_global, 1.0)), (0.0, math.sqrt(max(top_global, 1.0)) * 0.8)),
    }


def compute_sales(filters: FilterState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    matched: pd.DataFrame = ctx.get("matched", pd.DataFrame())
    result = ctx["render"]
    scales = ctx["scales"]
    page = ctx.get("page", SALES)
    genre_color = OrdinalColorScale(tuple(ctx.get("color_domain") or ()), SET3)

    stacked = sales_by_year(matched)
    pie = sales_by_genre(matched)
    charts: Dict[str, Any] = {"main": to_vega_spec(main_chart(filtered, scales, result, page, filters))}

    if not stacked.empty:
        area_df = stacked.assign(region_name=stacked["region"].map(REGION_NAMES))
        area = (
            alt.Chart(area_df)
            .mark_area(interpolate="cardinal", opacity=0.8)
            .encode(
                x=alt.X("year:Q", title="Year", axis=alt.Axis(format="d")),
                y=alt.Y("y1:Q", title="Sales (millions)"),
                y2="y0:Q",
                color=alt.Color(
                    "region_name:N",
                    title="Region",
                    scale=alt.Scale(
                        domain=[REGION_NAMES[r] for r in REGIONS],
                        range=[REGION_COLORS[r] for r in REGIONS],
                    ),
                ),
                tooltip=[alt.Tooltip("region_name:N", title="Region"), "year:Q", alt.Tooltip("sales:Q", format=".1f")],
            )
        )
        charts["area"] = to_vega_spec(area)

    if pie:
        pie_df = pd.DataFrame(pie)
        pie_df["fill"] = pie_df["genre"].map(genre_color)
        arcs = (
            alt.Chart(pie_df)
            .mark_arc(stroke="#2d2d2d", strokeWidth=2)
            .encode(
                theta=alt.Theta("sales:Q", stack=True),
                order=alt.Order("sales:Q", sort="descending"),
                color=alt.Color("fill:N", scale=None),
                tooltip=[
                    alt.Tooltip("genre:N", title="Genre"),
                    alt.Tooltip("sales:Q", title="Sales (millions)", format=".1f"),
                    alt.Tooltip("pct:Q", title="Share (%)", format=".1f"),
                ],
            )
        )
        charts["pie"] = to_vega_spec(arcs)

    if not matched.empty:
        sc = region_scatter_scales(matched)
        scatter_df = matched.assign(fill=matched["genre"].map(genre_color))
        scatter = (
            alt.Chart(scatter_df)
            .mark_circle(opacity=0.7)
            .encode(
                x=alt.X("NA_Sales:Q", title="North America sales (millions)", scale=linear_axis_scale(sc["x"])),
                y=alt.Y("EU_Sales:Q", title="Europe sales (millions)", scale=linear_axis_scale(sc["y"])),
                size=alt.Size("Global_Sales:Q", scale=area_size_scale(sc["size"]), legend=None),
                color=alt.Color("fill:N", scale=None),
                tooltip=["name:N", "NA_Sales:Q", "EU_Sales:Q", "Global_Sales:Q", "genre:N"],
            )
            .interactive()
        )
        charts["scatter"] = to_vega_spec(scatter)

    return {
        "page": page.name,
        "filters": asdict(filters),
        "stats": result.stats,
        "render": result.to_dict(),
        "by_year": stacked.to_dict(orient="records"),
        "by_genre": pie,
        "charts": charts,
    }
