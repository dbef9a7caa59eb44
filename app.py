import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from core import session as ss
from core.filters import ALL, FilterState
from core.formatting import REGION_NAMES, format_number
from core.pages import PAGES, PageConfig
from core.render import NO_DATA_MESSAGE

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

ZOOM_STEP = 1.5
PAN_STEP = 80.0
CHART_TITLES = {
    "main": "Overview",
    "price_histogram": "Price distribution",
    "area": "Regional sales over time",
    "pie": "Global sales by genre",
    "scatter": "NA vs EU sales",
}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(page: PageConfig, filters: FilterState) -> str:
    chips: List[str] = []
    if page.category:
        chips.append(f"{page.category.title()}: {'All' if filters.category == ALL else filters.category}")
    if page.threshold:
        op = "≤" if page.threshold_direction == "max" else "≥"
        label = "All" if filters.threshold == ALL else f"{op} {format_number(filters.threshold)}"
        chips.append(f"{page.threshold.title()}: {label}")
    if page.range_field and filters.range_min is not None:
        chips.append(f"Years: {filters.range_min:g}–{filters.range_max:g}")
    if filters.sort_by:
        chips.append(f"Sorted by: {REGION_NAMES.get(filters.sort_by, filters.sort_by)}")
    if filters.measure:
        chips.append(f"Measure: {REGION_NAMES.get(filters.measure, filters.measure)}")
    if filters.top_n is not None:
        chips.append(f"Top {filters.top_n}")
    return "".join(f"<span class='chip'>{txt}</span>" for txt in chips)


def render_page_header(state: ss.AppState):
    page = state.page
    top = st.container()
    c1, c2 = top.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>Dashboards / {page.title}</div><div class='page-title'>{page.title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        export_df = state.filtered
        if not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=f"{page.name}.csv",
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{format_filter_summary(page, state.filters)}</div>", unsafe_allow_html=True)


# ---------- session plumbing ----------
def _widget_key(page: PageConfig, name: str) -> str:
    return f"{page.name}_{name}"


def _sync_widgets(state: ss.AppState):
    """Push accepted control values back into the widgets (callbacks only)."""
    page = state.page
    controls = state.controls
    if page.category:
        st.session_state[_widget_key(page, "category")] = controls.get("category", ALL)
    if page.threshold:
        st.session_state[_widget_key(page, "threshold")] = controls.get("threshold", ALL)
    if page.range_field and "range_min" in controls:
        st.session_state[_widget_key(page, "range_min")] = int(controls["range_min"])
        st.session_state[_widget_key(page, "range_max")] = int(controls["range_max"])
    if controls.get("top_n") is not None:
        st.session_state[_widget_key(page, "top_n")] = str(controls["top_n"])
    if page.measures and controls.get("measure"):
        st.session_state[_widget_key(page, "measure")] = controls["measure"]


def current_state() -> ss.AppState:
    return st.session_state["app_state"]


def dispatch(event: Any):
    state = ss.update(current_state(), event)
    st.session_state["app_state"] = state
    _sync_widgets(state)


def dispatch_widget(kind: str, widget: str):
    page = current_state().page
    value = st.session_state[_widget_key(page, widget)]
    if kind == "control":
        dispatch(ss.ControlChanged(widget, value))
    elif kind == "range":
        dispatch(ss.RangeChanged("min" if widget == "range_min" else "max", float(value)))
    elif kind == "measure":
        dispatch(ss.MeasureChanged(value))


def submit_top_n():
    page = current_state().page
    dispatch(ss.TopNSubmitted(st.session_state[_widget_key(page, "top_n")]))


def submit_details():
    page = current_state().page
    key = st.session_state.get(_widget_key(page, "details"))
    if key:
        dispatch(ss.Click(key))


def activate_page(page: PageConfig) -> ss.AppState:
    """Tear down the previous page's session when navigating, then load this one."""
    state: Optional[ss.AppState] = st.session_state.get("app_state")
    if state is not None and state.page.name == page.name:
        return state
    if state is not None:
        st.session_state["app_state"] = ss.teardown(state)
    state = ss.init_session(page)
    st.session_state["app_state"] = state
    if state.status == "ready":
        _sync_widgets(state)
    return state


# ---------- sidebar controls ----------
def render_sidebar(state: ss.AppState):
    page = state.page
    ctx = state.ctx
    controls = state.controls
    st.markdown("---")
    st.markdown("### Filters")

    if page.category:
        options = [ALL] + list(ctx.get("categories", []))
        st.selectbox(
            page.category.title(),
            options=options,
            format_func=lambda v: "All" if v == ALL else v,
            key=_widget_key(page, "category"),
            on_change=dispatch_widget,
            args=("control", "category"),
        )

    if page.threshold and page.threshold_options:
        st.selectbox(
            f"Max {page.threshold}",
            options=[ALL, *page.threshold_options],
            format_func=lambda v: "All" if v == ALL else f"${v:g}",
            key=_widget_key(page, "threshold"),
            on_change=dispatch_widget,
            args=("control", "threshold"),
        )
    elif page.threshold:
        top = float(ctx.get("threshold_max") or 1.0)
        st.slider(
            f"Min {page.threshold}",
            min_value=0.0,
            max_value=top,
            step=max(top / 100.0, 1.0),
            key=_widget_key(page, "threshold"),
            on_change=dispatch_widget,
            args=("control", "threshold"),
        )
        st.caption(f"Showing {page.threshold} ≥ {controls.get('threshold_label', '0')}")

    bounds = ctx.get("range_bounds")
    if page.range_field and bounds:
        lo, hi = int(bounds[0]), int(bounds[1])
        st.slider("From year", min_value=lo, max_value=max(hi, lo + 1), key=_widget_key(page, "range_min"), on_change=dispatch_widget, args=("range", "range_min"))
        st.slider("To year", min_value=lo, max_value=max(hi, lo + 1), key=_widget_key(page, "range_max"), on_change=dispatch_widget, args=("range", "range_max"))
        st.caption(f"{controls.get('range_min_label', '')} – {controls.get('range_max_label', '')}")

    if page.measures:
        st.selectbox(
            "Region",
            options=list(page.measures),
            format_func=lambda m: REGION_NAMES.get(m, m),
            index=list(page.measures).index(state.filters.measure or page.measures[0]),
            key=_widget_key(page, "measure"),
            on_change=dispatch_widget,
            args=("measure", "measure"),
        )

    if page.top_n is not None:
        cols = st.columns([3, 2])
        cols[0].text_input("Top N", key=_widget_key(page, "top_n"))
        cols[1].button("Validate", on_click=submit_top_n, use_container_width=True)

    if page.sort_options:
        st.markdown("**Sort by**")
        sort_cols = st.columns(len(page.sort_options))
        for col, field_name in zip(sort_cols, page.sort_options):
            col.button(
                REGION_NAMES.get(field_name, field_name),
                key=_widget_key(page, f"sort_{field_name}"),
                on_click=dispatch,
                args=(ss.SortRequested(field_name),),
                type="primary" if state.filters.sort_by == field_name else "secondary",
            )

    if page.zoomable:
        st.markdown("---")
        st.markdown("### View")
        w, h = page.plot_area(state.size)
        center = (w / 2.0, h / 2.0)
        zoom_cols = st.columns(3)
        zoom_cols[0].button("Zoom +", on_click=dispatch, args=(ss.Zoom(ZOOM_STEP, *center),))
        zoom_cols[1].button("Zoom −", on_click=dispatch, args=(ss.Zoom(1 / ZOOM_STEP, *center),))
        zoom_cols[2].button("Reset", on_click=dispatch, args=(ss.ResetZoom(),))
        pan_cols = st.columns(4)
        pan_cols[0].button("←", on_click=dispatch, args=(ss.Pan(PAN_STEP, 0.0),))
        pan_cols[1].button("→", on_click=dispatch, args=(ss.Pan(-PAN_STEP, 0.0),))
        pan_cols[2].button("↑", on_click=dispatch, args=(ss.Pan(0.0, PAN_STEP),))
        pan_cols[3].button("↓", on_click=dispatch, args=(ss.Pan(0.0, -PAN_STEP),))
        st.caption(f"Zoom ×{state.transform.k:.1f}")

    with st.expander("Chart size", expanded=False):
        width, height = state.size or (page.width, page.height)
        new_w = st.number_input("Width", min_value=200, max_value=3000, value=int(width), step=50, key=_widget_key(page, "width"))
        new_h = st.number_input("Height", min_value=200, max_value=2000, value=int(height), step=50, key=_widget_key(page, "height"))
        st.button("Apply size", on_click=dispatch, args=(ss.Resize(int(new_w), int(new_h)),))


# ---------- page body ----------
def render_stats(state: ss.AppState, payload: Dict[str, Any]):
    stats = payload.get("stats", {})
    means = stats.get("mean", {})
    cols = st.columns(1 + len(means))
    cols[0].metric("Records shown", f"{stats.get('count', 0):,}")
    for col, (name, value) in zip(cols[1:], means.items()):
        label = REGION_NAMES.get(name, name)
        col.metric(f"Avg {label}", format_number(value) if value is not None else "N/A")


def render_details(state: ss.AppState):
    result = state.result
    if result is None or not result.live_marks:
        return
    labels = {m.key: m.label for m in result.live_marks}
    cols = st.columns([4, 1])
    cols[0].selectbox(
        "Details for",
        options=[""] + list(labels),
        format_func=lambda k: "Select a record…" if not k else labels.get(k, k),
        key=_widget_key(state.page, "details"),
        on_change=submit_details,
    )
    if state.panel is None:
        return
    cols[1].button("Close", on_click=dispatch, args=(ss.ClosePanel(),), use_container_width=True)
    with card(labels.get(state.panel.key, state.panel.key)):
        card_cols = st.columns(min(len(state.panel.cards), 4) or 1)
        for i, (title, value, subtext) in enumerate(state.panel.cards):
            card_cols[i % len(card_cols)].metric(title, value, help=subtext or None)


def render_extras(state: ss.AppState, payload: Dict[str, Any]):
    if state.page.name == "twitch":
        top = pd.DataFrame(payload.get("top", []))
        if not top.empty:
            with card(f"Top channels by {payload.get('y_label', '')}"):
                st.dataframe(top, hide_index=True, use_container_width=True)
    if state.page.name == "sales" and payload.get("by_genre"):
        with card("Genre share"):
            st.dataframe(pd.DataFrame(payload["by_genre"])[["genre", "sales", "pct"]], hide_index=True, use_container_width=True)


def render_page(state: ss.AppState):
    render_page_header(state)
    if state.notice:
        st.warning(state.notice)

    payload = ss.page_payload(state) or {}
    render_stats(state, payload)

    result = state.result
    if result is not None and result.placeholder is not None:
        st.info(NO_DATA_MESSAGE)

    charts = payload.get("charts", {})
    if "main" in charts:
        with card(CHART_TITLES["main"]):
            st.vega_lite_chart(charts["main"], use_container_width=True)
    render_details(state)

    secondary = [name for name in charts if name != "main"]
    if secondary:
        cols = st.columns(min(len(secondary), 2))
        for i, name in enumerate(secondary):
            with cols[i % len(cols)]:
                with card(CHART_TITLES.get(name, name)):
                    st.vega_lite_chart(charts[name], use_container_width=True)
    render_extras(state, payload)


# ---------- UI setup ----------
st.set_page_config(page_title="Game Data Dashboards", layout="wide")
inject_base_styles()
st.title("Game Data Dashboards")
st.caption("Steam games, Twitch streamers and video-game sales.")

with st.sidebar:
    st.markdown("### Navigate")
    page_name = st.radio("Navigate", list(PAGES), format_func=lambda n: PAGES[n].title, index=0)

app_state = activate_page(PAGES[page_name])
if app_state.status == "error":
    st.error(f"Could not load the {app_state.page.title} dataset: {app_state.error}")
    st.stop()

with st.sidebar:
    render_sidebar(app_state)

render_page(current_state())
