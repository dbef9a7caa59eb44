"""Per-session application state and the event dispatcher.

``update(state, event)`` is the only way state changes after
``init_session``. Every handler returns a new ``AppState``; UI adapters
(Streamlit, API clients) translate their widget callbacks into events and
draw whatever the returned state holds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Tuple, Type, Union

import pandas as pd

from core.data import load_page_data, prepare_context
from core.errors import LoadError, ValidationError
from core.filters import ALL, FilterState, default_filters, parse_threshold, validate_top_n, with_range
from core.formatting import Card, detail_cards, format_number, tooltip_lines
from core.metrics import compute_page
from core.pages import PageConfig
from core.render import Attrs, RenderResult, render
from core.view import IDENTITY, ViewTransform, constrain, pan, zoom_at

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tooltip:
    key: str
    lines: Tuple[str, ...]
    left: float
    top: float


@dataclass(frozen=True)
class DetailPanel:
    key: str
    cards: Tuple[Card, ...]


@dataclass(frozen=True)
class AppState:
    page: PageConfig
    status: str = "idle"  # idle | loading | ready | error
    error: Optional[str] = None
    data_ctx: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    filters: FilterState = field(default_factory=FilterState)
    controls: Dict[str, Any] = field(default_factory=dict)
    ctx: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    transform: ViewTransform = IDENTITY
    size: Optional[Tuple[int, int]] = None
    tooltip: Optional[Tooltip] = None
    panel: Optional[DetailPanel] = None
    notice: Optional[str] = None

    @property
    def filtered(self) -> pd.DataFrame:
        return self.ctx.get("filtered", pd.DataFrame())

    @property
    def result(self) -> Optional[RenderResult]:
        return self.ctx.get("render")


# ---------- events ----------
@dataclass(frozen=True)
class ControlChanged:
    control: str  # category | threshold
    value: Any


@dataclass(frozen=True)
class RangeChanged:
    bound: str  # min | max
    value: float


@dataclass(frozen=True)
class TopNSubmitted:
    value: Any


@dataclass(frozen=True)
class SortRequested:
    field: str


@dataclass(frozen=True)
class MeasureChanged:
    measure: str


@dataclass(frozen=True)
class Hover:
    key: str
    page_x: float
    page_y: float


@dataclass(frozen=True)
class HoverEnd:
    pass


@dataclass(frozen=True)
class Zoom:
    factor: float
    x: float
    y: float


@dataclass(frozen=True)
class Pan:
    dx: float
    dy: float


@dataclass(frozen=True)
class ResetZoom:
    pass


@dataclass(frozen=True)
class Click:
    key: str


@dataclass(frozen=True)
class ClosePanel:
    pass


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


Event = Union[
    ControlChanged,
    RangeChanged,
    TopNSubmitted,
    SortRequested,
    MeasureChanged,
    Hover,
    HoverEnd,
    Zoom,
    Pan,
    ResetZoom,
    Click,
    ClosePanel,
    Resize,
]


def controls_for(filters: FilterState, page: PageConfig) -> Dict[str, Any]:
    """Displayed control values; always derived from the accepted filter state."""
    controls: Dict[str, Any] = {
        "category": filters.category,
        "threshold": filters.threshold,
        "threshold_label": "All" if filters.threshold == ALL else format_number(filters.threshold),
        "top_n": filters.top_n,
        "sort_by": filters.sort_by,
        "measure": filters.measure,
    }
    if page.range_field and filters.range_min is not None:
        controls["range_min"] = filters.range_min
        controls["range_max"] = filters.range_max
        controls["range_min_label"] = f"{filters.range_min:g}"
        controls["range_max_label"] = f"{filters.range_max:g}"
    return controls


def _previous(state: AppState) -> Optional[Dict[str, Attrs]]:
    result = state.result
    return result.attrs_by_key() if result is not None else None


def _refresh(state: AppState, filters: FilterState) -> AppState:
    """Full cycle: filter, rescale, render against the previous marks."""
    transform = IDENTITY if state.page.reset_zoom_on_update else state.transform
    ctx = prepare_context(
        filters,
        state.data_ctx,
        state.page,
        transform=transform,
        previous=_previous(state),
        size=state.size,
    )
    return replace(
        state,
        filters=filters,
        controls=controls_for(filters, state.page),
        ctx=ctx,
        transform=transform,
        notice=None,
    )


def _reproject(state: AppState, transform: ViewTransform) -> AppState:
    """Redraw with a new view transform; filtered set and scales are untouched."""
    if state.filtered.empty:
        return replace(state, transform=transform)
    result = render(
        state.filtered,
        state.ctx["scales"],
        state.page,
        state.filters,
        transform=transform,
        previous=_previous(state),
        size=state.size,
    )
    return replace(state, ctx=dict(state.ctx, render=result, transform=transform), transform=transform)


def _record(state: AppState, key: str) -> Optional[Dict[str, Any]]:
    filtered = state.filtered
    if filtered.empty:
        return None
    rows = filtered[filtered["key"] == key]
    if rows.empty:
        return None
    return rows.iloc[0].to_dict()


# ---------- handlers ----------
def _on_control(state: AppState, event: ControlChanged) -> AppState:
    if event.control == "category":
        filters = replace(state.filters, category=str(event.value or ALL))
    elif event.control == "threshold":
        filters = replace(state.filters, threshold=parse_threshold(event.value))
    else:
        raise ValueError(f"Unknown control: {event.control}")
    return _refresh(state, filters)


def _on_range(state: AppState, event: RangeChanged) -> AppState:
    if not state.page.range_field or state.filters.range_min is None:
        return state
    lo, hi = state.filters.range_min, state.filters.range_max
    if event.bound == "min":
        lo = event.value
    else:
        hi = event.value
    return _refresh(state, with_range(state.filters, lo, hi))


def _on_top_n(state: AppState, event: TopNSubmitted) -> AppState:
    try:
        top_n = validate_top_n(event.value, state.page.top_n_bounds)
    except ValidationError as exc:
        logger.info("Rejected top-N %r for %s", event.value, state.page.name)
        return replace(state, notice=str(exc), controls=controls_for(state.filters, state.page))
    return _refresh(state, replace(state.filters, top_n=top_n))


def _on_sort(state: AppState, event: SortRequested) -> AppState:
    if event.field not in state.page.sort_options:
        return state
    filters = replace(state.filters, sort_by=event.field)
    # bars show the measure, so ordering by a region also switches to it
    if event.field in state.page.measures:
        filters = replace(filters, measure=event.field)
    return _refresh(state, filters)


def _on_measure(state: AppState, event: MeasureChanged) -> AppState:
    if event.measure not in state.page.measures:
        return state
    filters = replace(state.filters, measure=event.measure)
    if filters.sort_by in state.page.measures:
        filters = replace(filters, sort_by=event.measure)
    return _refresh(state, filters)


def _on_hover(state: AppState, event: Hover) -> AppState:
    record = _record(state, event.key)
    if record is None:
        return state
    dx, dy = state.page.tooltip_offset
    lines = tuple(tooltip_lines(state.page, record, state.filters.measure))
    return replace(state, tooltip=Tooltip(event.key, lines, event.page_x + dx, event.page_y + dy))


def _on_hover_end(state: AppState, event: HoverEnd) -> AppState:
    return replace(state, tooltip=None)


def _on_zoom(state: AppState, event: Zoom) -> AppState:
    if not state.page.zoomable:
        return state
    extent = state.page.plot_area(state.size)
    return _reproject(state, zoom_at(state.transform, event.factor, (event.x, event.y), extent))


def _on_pan(state: AppState, event: Pan) -> AppState:
    if not state.page.zoomable:
        return state
    return _reproject(state, pan(state.transform, event.dx, event.dy, state.page.plot_area(state.size)))


def _on_reset_zoom(state: AppState, event: ResetZoom) -> AppState:
    return _reproject(state, IDENTITY)


def _on_click(state: AppState, event: Click) -> AppState:
    record = _record(state, event.key)
    if record is None:
        return state
    return replace(state, panel=DetailPanel(event.key, tuple(detail_cards(state.page, record))))


def _on_close_panel(state: AppState, event: ClosePanel) -> AppState:
    return replace(state, panel=None)


def _on_resize(state: AppState, event: Resize) -> AppState:
    size = (int(event.width), int(event.height))
    transform = constrain(state.transform, state.page.plot_area(size))
    return _refresh(replace(state, size=size, transform=transform), state.filters)


_HANDLERS: Dict[Type[Any], Callable[[AppState, Any], AppState]] = {
    ControlChanged: _on_control,
    RangeChanged: _on_range,
    TopNSubmitted: _on_top_n,
    SortRequested: _on_sort,
    MeasureChanged: _on_measure,
    Hover: _on_hover,
    HoverEnd: _on_hover_end,
    Zoom: _on_zoom,
    Pan: _on_pan,
    ResetZoom: _on_reset_zoom,
    Click: _on_click,
    ClosePanel: _on_close_panel,
    Resize: _on_resize,
}


def update(state: AppState, event: Event) -> AppState:
    if state.status != "ready":
        logger.debug("Ignoring %s while session is %s", type(event).__name__, state.status)
        return state
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unsupported event: {event!r}")
    return handler(state, event)


def init_session(page: PageConfig, size: Optional[Tuple[int, int]] = None) -> AppState:
    """Load the page dataset to completion, then run the first render cycle."""
    state = AppState(page=page, status="loading", size=size)
    try:
        data_ctx = load_page_data(page)
    except LoadError as exc:
        logger.error("Failed to load %s dataset: %s", page.name, exc)
        return replace(state, status="error", error=str(exc))
    state = replace(state, status="ready", data_ctx=data_ctx)
    return _refresh(state, default_filters(page, data_ctx))


def teardown(state: AppState) -> AppState:
    logger.info("Tearing down %s session", state.page.name)
    return AppState(page=state.page)


def page_payload(state: AppState) -> Optional[Dict[str, Any]]:
    if state.status != "ready":
        return None
    return compute_page(state.page, state.filters, state.ctx)
