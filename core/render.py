"""Keyed render/update cycle.

``render`` turns the filtered set plus its scales into a list of marks with
enter/update/exit status. Marks are matched across cycles by record key,
never by position, so a record keeps its mark while filters change.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from core.filters import FilterState
from core.formatting import format_tick
from core.pages import PageConfig, value_field
from core.scales import BandScale, LinearScale, ScaleSet, build_scales
from core.view import IDENTITY, ViewTransform, rescale_band, rescale_linear

logger = logging.getLogger(__name__)

TRANSITION_MS = 750
NO_DATA_MESSAGE = "No data to display with the current filters"
PLACEHOLDER_KEY = "__no_data__"

Attrs = Dict[str, Any]


@dataclass(frozen=True)
class Reconciliation:
    create: Tuple[str, ...]
    update: Tuple[str, ...]
    remove: Tuple[str, ...]


def reconcile(previous_keys: Iterable[str], current_keys: Iterable[str]) -> Reconciliation:
    prev = list(previous_keys)
    cur = list(current_keys)
    prev_set, cur_set = set(prev), set(cur)
    return Reconciliation(
        create=tuple(k for k in cur if k not in prev_set),
        update=tuple(k for k in cur if k in prev_set),
        remove=tuple(k for k in prev if k not in cur_set),
    )


@dataclass(frozen=True)
class Mark:
    key: str
    status: str  # enter | update | exit
    start: Attrs
    end: Attrs
    visible: bool = True
    label: str = ""


@dataclass(frozen=True)
class Tick:
    value: Any
    position: float
    label: str


@dataclass(frozen=True)
class RenderResult:
    marks: Tuple[Mark, ...]
    axes: Dict[str, Tuple[Tick, ...]]
    stats: Dict[str, Any]
    placeholder: Optional[Mark] = None
    duration: int = TRANSITION_MS
    reconciliation: Reconciliation = field(default_factory=lambda: Reconciliation((), (), ()))

    @property
    def live_marks(self) -> Tuple[Mark, ...]:
        return tuple(m for m in self.marks if m.status != "exit")

    @property
    def keys(self) -> Tuple[str, ...]:
        return tuple(m.key for m in self.live_marks)

    def attrs_by_key(self) -> Dict[str, Attrs]:
        return {m.key: dict(m.end) for m in self.live_marks}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def summary_stats(filtered: pd.DataFrame, page: PageConfig) -> Dict[str, Any]:
    means: Dict[str, Optional[float]] = {}
    for col in page.stat_fields:
        if filtered.empty or col not in filtered.columns:
            means[col] = None
        else:
            means[col] = float(filtered[col].mean())
    return {"count": int(len(filtered)), "mean": means}


def _neutral(attrs: Attrs, page: PageConfig, plot_height: float) -> Attrs:
    """Collapsed state marks enter from and exit to."""
    out = dict(attrs)
    if page.chart.kind == "bar":
        out.update(y=plot_height, height=0.0, opacity=0.0)
    else:
        out.update(r=0.0, opacity=0.0)
    return out


def _axis(scale: Any, max_value: float, labels: Mapping[str, str]) -> Tuple[Tick, ...]:
    if isinstance(scale, BandScale):
        half = scale.bandwidth / 2
        return tuple(Tick(k, scale(k) + half, labels.get(k, k)) for k in scale.domain)  # type: ignore[operator]
    return tuple(Tick(v, scale(v), format_tick(v, max_value)) for v in scale.ticks())


def _project(
    filtered: pd.DataFrame,
    scales: ScaleSet,
    page: PageConfig,
    state: FilterState,
    transform: ViewTransform,
    plot_height: float,
) -> Tuple[Dict[str, Attrs], Dict[str, bool], Dict[str, Any]]:
    chart = page.chart
    y_field = value_field(page, state.sort_by, state.measure)
    color = scales.get("color")
    size = scales.get("size")
    attrs: Dict[str, Attrs] = {}
    visible: Dict[str, bool] = {}

    if chart.kind == "bar":
        base_x: BandScale = scales["x"]
        x = rescale_band(base_x, transform)
        y: LinearScale = scales["y"]
        on_screen = set(x.domain)
        for row in filtered.itertuples(index=False):
            rec = row._asdict()
            key = rec["key"]
            shown = key in on_screen
            px = x(key) if shown else base_x(key)
            py = y(rec[y_field])
            attrs[key] = {
                "x": px,
                "y": py,
                "width": x.bandwidth if shown else base_x.bandwidth,
                "height": plot_height - py,
                "fill": color(rec[chart.color.field]) if color else "steelblue",
                "opacity": chart.opacity,
            }
            visible[key] = shown
        return attrs, visible, {"x": x, "y": y}

    x = rescale_linear(scales["x"], transform, "x")
    y = rescale_linear(scales["y"], transform, "y")
    for row in filtered.itertuples(index=False):
        rec = row._asdict()
        key = rec["key"]
        xv, yv = rec[chart.x], rec[y_field]
        attrs[key] = {
            "cx": x(xv),
            "cy": y(yv),
            "r": size(rec[chart.size]) if size else chart.radius,
            "fill": color(rec[chart.color.field]) if color else "steelblue",
            "opacity": chart.opacity,
        }
        visible[key] = x.contains(xv) and y.contains(yv)
    return attrs, visible, {"x": x, "y": y}


def render(
    filtered: pd.DataFrame,
    scales: ScaleSet,
    page: PageConfig,
    state: FilterState,
    *,
    transform: ViewTransform = IDENTITY,
    previous: Optional[Mapping[str, Attrs]] = None,
    size: Optional[Tuple[int, int]] = None,
) -> RenderResult:
    width, height = page.plot_area(size)
    previous = dict(previous or {})
    stats = summary_stats(filtered, page)

    if filtered.empty:
        logger.warning("%s: %s", page.name, NO_DATA_MESSAGE)
        exits = tuple(
            Mark(key, "exit", dict(prev), _neutral(prev, page, height)) for key, prev in previous.items()
        )
        placeholder = Mark(PLACEHOLDER_KEY, "enter", {}, {"x": width / 2, "y": height / 2, "text": NO_DATA_MESSAGE})
        axes = {"x": _axis(scales["x"], 0.0, {}), "y": _axis(scales["y"], 0.0, {})}
        return RenderResult(
            marks=exits,
            axes=axes,
            stats=stats,
            placeholder=placeholder,
            reconciliation=reconcile(previous, ()),
        )

    current, visible, drawn = _project(filtered, scales, page, state, transform, height)
    plan = reconcile(previous, current)
    labels = dict(zip(filtered["key"], filtered[page.chart.label].astype(str)))

    marks: List[Mark] = []
    for key in plan.create:
        marks.append(Mark(key, "enter", _neutral(current[key], page, height), current[key], visible[key], labels[key]))
    for key in plan.update:
        marks.append(Mark(key, "update", dict(previous[key]), current[key], visible[key], labels[key]))
    for key in plan.remove:
        marks.append(Mark(key, "exit", dict(previous[key]), _neutral(previous[key], page, height)))

    y_field = value_field(page, state.sort_by, state.measure)
    x_max = float(drawn["x"].domain[1]) if isinstance(drawn["x"], LinearScale) else 0.0
    axes = {
        "x": _axis(drawn["x"], x_max, labels),
        "y": _axis(drawn["y"], float(filtered[y_field].max()), labels),
    }
    return RenderResult(marks=tuple(marks), axes=axes, stats=stats, reconciliation=plan)


def render_page(
    filtered: pd.DataFrame,
    page: PageConfig,
    state: FilterState,
    data_ctx: Optional[Mapping[str, Any]] = None,
    *,
    transform: ViewTransform = IDENTITY,
    previous: Optional[Mapping[str, Attrs]] = None,
    size: Optional[Tuple[int, int]] = None,
) -> Tuple[ScaleSet, RenderResult]:
    """One full cycle: rebuild scales from the filtered set, then render."""
    scales = build_scales(filtered, page, state, data_ctx, size)
    result = render(filtered, scales, page, state, transform=transform, previous=previous, size=size)
    return scales, result
