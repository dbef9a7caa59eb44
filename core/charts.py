from __future__ import annotations

import math
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.filters import FilterState
from core.pages import PageConfig, value_field
from core.render import RenderResult
from core.scales import LinearScale, ScaleSet, SqrtScale

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def linear_axis_scale(scale: LinearScale) -> alt.Scale:
    lo, hi = sorted(scale.domain)
    return alt.Scale(domain=[lo, hi], nice=False, zero=True)


def area_size_scale(scale: SqrtScale) -> alt.Scale:
    # Vega-Lite sizes are areas, so a linear value->area scale keeps area proportional
    r_max = scale.range[1]
    return alt.Scale(type="linear", domain=list(scale.domain), range=[0, math.pi * r_max**2])


def unique_labels(labels: pd.Series, keys: pd.Series) -> pd.Series:
    dup = labels.duplicated(keep=False)
    return labels.where(~dup, labels + " #" + keys.astype(str))


def marks_frame(filtered: pd.DataFrame, result: RenderResult, page: PageConfig) -> pd.DataFrame:
    """Filtered records joined with the projected attributes of their live marks."""
    if filtered.empty:
        return filtered.assign(fill=pd.Series(dtype=str), visible=pd.Series(dtype=bool), label=pd.Series(dtype=str))
    live = {m.key: m for m in result.live_marks}
    df = filtered.copy()
    df["fill"] = [live[k].end.get("fill") if k in live else None for k in df["key"]]
    df["visible"] = [live[k].visible if k in live else False for k in df["key"]]
    df["label"] = unique_labels(df[page.chart.label].astype(str), df["key"])
    return df


def main_chart(filtered: pd.DataFrame, scales: ScaleSet, result: RenderResult, page: PageConfig, state: FilterState) -> alt.Chart:
    chart = page.chart
    y_field = value_field(page, state.sort_by, state.measure)
    df = marks_frame(filtered, result, page)
    df = df[df["visible"]] if not df.empty else df
    tooltip = [alt.Tooltip("label:N", title=chart.label.capitalize())]
    tooltip += [alt.Tooltip(f"{c}:Q", format=",.2f") for c in dict.fromkeys([y_field, *page.stat_fields])]

    if chart.kind == "bar":
        order: List[str] = df["label"].tolist()
        return (
            alt.Chart(df)
            .mark_bar()
            .encode(
                x=alt.X("label:N", sort=order, title=chart.x_title, axis=alt.Axis(labelAngle=-45)),
                y=alt.Y(f"{y_field}:Q", title=y_field.replace("_", " "), scale=linear_axis_scale(scales["y"])),
                color=alt.Color("fill:N", scale=None),
                tooltip=tooltip,
            )
            .properties(width="container", height=page.plot_area()[1])
        )

    encode: Dict[str, Any] = {
        "x": alt.X(f"{chart.x}:Q", title=chart.x_title, scale=linear_axis_scale(scales["x"])),
        "y": alt.Y(f"{y_field}:Q", title=chart.y_title, scale=linear_axis_scale(scales["y"])),
        "color": alt.Color("fill:N", scale=None),
        "tooltip": tooltip,
    }
    if chart.size and "size" in scales:
        encode["size"] = alt.Size(f"{chart.size}:Q", scale=area_size_scale(scales["size"]), legend=None)
    return (
        alt.Chart(df)
        .mark_circle(opacity=chart.opacity)
        .encode(**encode)
        .properties(width="container", height=page.plot_area()[1])
        .interactive()
    )
