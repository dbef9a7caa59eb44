from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.charts import main_chart, to_vega_spec
from core.filters import ALL, FilterState
from core.formatting import format_number
from core.pages import TWITCH, value_field
from core.view import IDENTITY, visible_band_domain

TABLE_COLUMNS = ["channel", "language", "followers", "averageViewers", "peakViewers", "streamTime"]


def compute_twitch(filters: FilterState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered", pd.DataFrame())
    result = ctx["render"]
    scales = ctx["scales"]
    page = ctx.get("page", TWITCH)
    transform = ctx.get("transform", IDENTITY)

    score = value_field(page, filters.sort_by, filters.measure)
    threshold = 0.0 if filters.threshold == ALL else float(filters.threshold)
    top = filtered[[c for c in TABLE_COLUMNS if c in filtered.columns]].copy()
    top.insert(0, "rank", range(1, len(top) + 1))
    channels = dict(zip(filtered["key"], filtered["channel"])) if not filtered.empty else {}

    return {
        "page": page.name,
        "filters": asdict(filters),
        "stats": result.stats,
        "render": result.to_dict(),
        "score_field": score,
        "y_label": "Followers" if score == "followers" else "Average Viewers",
        "follower_label": format_number(threshold),
        "follower_max": ctx.get("threshold_max"),
        "visible_channels": [channels[k] for k in visible_band_domain(scales["x"], transform)],
        "top": top.to_dict(orient="records"),
        "charts": {"main": to_vega_spec(main_chart(filtered, scales, result, page, filters))},
    }
