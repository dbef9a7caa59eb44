from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import altair as alt
import numpy as np
import pandas as pd

from core.charts import main_chart, to_vega_spec
from core.filters import FilterState
from core.pages import STEAM
from core.scales import magnitude_domain, ticks

HISTOGRAM_BINS = 30


def price_histogram(df: pd.DataFrame, bins: int = HISTOGRAM_BINS) -> List[Dict[str, float]]:
    """Price counts over nice thresholds, as d3's histogram bins them."""
    if df.empty or "price" not in df.columns:
        return []
    prices = df["price"].to_numpy(dtype=float)
    top = float(prices.max())
    if top <= 0:
        return [{"x0": 0.0, "x1": 0.0, "count": int(len(prices))}]
    inner = [t for t in ticks(0.0, top, bins) if 0.0 < t < top]
    edges = np.array([0.0, *inner, top])
    counts, _ = np.histogram(prices, bins=edges)
    return [
        {"x0": float(edges[i]), "x1": float(edges[i + 1]), "count": int(counts[i])}
        for i in range(len(counts))
    ]


def compute_steam(filters: FilterState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    matched: pd.DataFrame = ctx.get("matched", pd.DataFrame())
    result = ctx["render"]
    scales = ctx["scales"]
    page = ctx.get("page", STEAM)

    histogram = price_histogram(matched)
    charts: Dict[str, Any] = {"main": to_vega_spec(main_chart(filtered, scales, result, page, filters))}
    if histogram:
        hist_df = pd.DataFrame(histogram)
        hist_chart = (
            alt.Chart(hist_df)
            .mark_bar(color="steelblue")
            .encode(
                x=alt.X("x0:Q", bin="binned", title="Game Price ($)"),
                x2="x1:Q",
                y=alt.Y("count:Q", title="Number of Games", scale=alt.Scale(domain=list(magnitude_domain(hist_df["count"], padding=1.0)), nice=True)),
                tooltip=[
                    alt.Tooltip("x0:Q", title="From", format="$.2f"),
                    alt.Tooltip("x1:Q", title="To", format="$.2f"),
                    alt.Tooltip("count:Q", title="Games"),
                ],
            )
        )
        charts["price_histogram"] = to_vega_spec(hist_chart)

    return {
        "page": page.name,
        "filters": asdict(filters),
        "stats": result.stats,
        "render": result.to_dict(),
        "histogram": histogram,
        "charts": charts,
    }
