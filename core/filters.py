from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Mapping, Optional, Tuple, Union

import pandas as pd

from core.errors import ValidationError
from core.pages import PageConfig

logger = logging.getLogger(__name__)

ALL = "all"

Threshold = Union[str, float]


@dataclass(frozen=True)
class FilterState:
    category: str = ALL
    threshold: Threshold = ALL
    range_min: Optional[float] = None
    range_max: Optional[float] = None
    sort_by: Optional[str] = None
    top_n: Optional[int] = None
    measure: Optional[str] = None


def default_filters(page: PageConfig, data_ctx: Optional[Mapping[str, Any]] = None) -> FilterState:
    data_ctx = data_ctx or {}
    range_min = range_max = None
    bounds = data_ctx.get("range_bounds")
    if page.range_field and bounds:
        range_min, range_max = float(bounds[0]), float(bounds[1])
    return FilterState(
        category=ALL,
        threshold=parse_threshold(page.threshold_default),
        range_min=range_min,
        range_max=range_max,
        sort_by=page.default_sort,
        top_n=page.top_n,
        measure=page.default_measure,
    )


def parse_threshold(value: object) -> Threshold:
    if value is None or (isinstance(value, str) and value.strip().lower() in {"", ALL}):
        return ALL
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return ALL
    return out if math.isfinite(out) else ALL


def validate_top_n(value: object, bounds: Tuple[int, int] = (1, 1000)) -> int:
    lo, hi = bounds
    message = f"Please enter a number between {lo} and {hi}"
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValidationError(message) from None
    if not math.isfinite(number) or not number.is_integer() or not lo <= number <= hi:
        raise ValidationError(message)
    return int(number)


def with_top_n(state: FilterState, value: object, bounds: Tuple[int, int] = (1, 1000)) -> FilterState:
    """Accept a new top-N, or return ``state`` untouched when it is out of range."""
    try:
        return replace(state, top_n=validate_top_n(value, bounds))
    except ValidationError as exc:
        logger.info("Rejected top-N %r: %s", value, exc)
        return state


def ordered_range(low: object, high: object) -> Tuple[float, float]:
    lo, hi = float(low), float(high)  # type: ignore[arg-type]
    if lo > hi:
        lo, hi = hi, lo
    return lo, hi


def with_range(state: FilterState, low: object, high: object) -> FilterState:
    lo, hi = ordered_range(low, high)
    return replace(state, range_min=lo, range_max=hi)


def normalize_filters(raw: Mapping[str, Any], page: PageConfig, data_ctx: Optional[Mapping[str, Any]] = None) -> FilterState:
    """Build a FilterState from an untrusted mapping (API payload, query args)."""
    base = default_filters(page, data_ctx)
    raw = dict(raw or {})

    category = str(raw.get("category") or ALL)
    threshold = parse_threshold(raw.get("threshold", base.threshold))

    state = replace(base, category=category, threshold=threshold)
    if page.range_field:
        lo = raw.get("range_min")
        hi = raw.get("range_max")
        lo = base.range_min if lo is None else lo
        hi = base.range_max if hi is None else hi
        if lo is not None and hi is not None:
            state = with_range(state, lo, hi)

    sort_by = raw.get("sort_by")
    if sort_by in page.sort_options:
        state = replace(state, sort_by=sort_by)

    measure = raw.get("measure")
    if measure in page.measures:
        state = replace(state, measure=measure)

    if raw.get("top_n") is not None:
        state = replace(state, top_n=validate_top_n(raw["top_n"], page.top_n_bounds))
    return state


def select_records(records: pd.DataFrame, state: FilterState, page: PageConfig) -> pd.DataFrame:
    """AND of the category, threshold and range predicates, in input order."""
    if records.empty:
        return records.copy()
    mask = pd.Series(True, index=records.index)
    if page.category and state.category != ALL:
        mask &= records[page.category] == state.category
    if page.threshold and state.threshold != ALL:
        col = records[page.threshold]
        t = float(state.threshold)
        mask &= (col >= t) if page.threshold_direction == "min" else (col <= t)
    if page.range_field:
        col = records[page.range_field]
        if state.range_min is not None:
            mask &= col >= state.range_min
        if state.range_max is not None:
            mask &= col <= state.range_max
    return records[mask].reset_index(drop=True)


def apply_filters(records: pd.DataFrame, state: FilterState, page: PageConfig) -> pd.DataFrame:
    out = select_records(records, state, page)
    if state.sort_by and state.sort_by in out.columns:
        out = out.sort_values(state.sort_by, ascending=False, kind="stable")
    if state.top_n is not None:
        out = out.head(state.top_n)
    return out.reset_index(drop=True)
