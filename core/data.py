from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd

from core.derive import derive_records
from core.errors import LoadError
from core.filters import FilterState, apply_filters, normalize_filters, select_records
from core.pages import PageConfig
from core.render import render_page
from core.view import IDENTITY, ViewTransform

logger = logging.getLogger(__name__)

DATA_DIR = Path(os.environ.get("DASHBOARD_DATA_DIR", Path(__file__).resolve().parents[1] / "datasets"))
REMOTE_PREFIXES = ("http://", "https://")


def is_remote(source: str) -> bool:
    return str(source).lower().startswith(REMOTE_PREFIXES)


def resolve_source(dataset: str) -> str:
    if is_remote(dataset):
        return dataset
    path = Path(dataset)
    if not path.is_absolute():
        path = DATA_DIR / path
    return str(path)


def file_signature(source: str) -> Tuple[str, float]:
    try:
        return source, Path(source).stat().st_mtime
    except FileNotFoundError:
        raise LoadError(f"Dataset not found: {source}") from None


# ---------------- Loaders ----------------
def read_csv(source: str) -> pd.DataFrame:
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError:
        raise LoadError(f"Dataset is empty: {source}") from None
    except (pd.errors.ParserError, UnicodeDecodeError) as exc:
        raise LoadError(f"Malformed rows in {source}: {exc}") from exc
    except OSError as exc:
        raise LoadError(f"Dataset unreachable: {source} ({exc})") from exc
    if df.empty:
        raise LoadError(f"No rows in dataset: {source}")
    return df


@lru_cache(maxsize=8)
def _read_csv_cached(source: str, mtime: float) -> pd.DataFrame:
    return read_csv(source)


def load_raw(page: PageConfig) -> pd.DataFrame:
    """Read a page's dataset as strings; the result is a private copy."""
    source = resolve_source(page.dataset)
    if is_remote(source):
        raw = read_csv(source)
    else:
        raw = _read_csv_cached(*file_signature(source))
    missing = [c for c in page.required_columns if c not in raw.columns]
    if missing:
        raise LoadError(f"Missing columns in {source}: {', '.join(missing)}")
    return raw.copy()


def _extent(series: pd.Series) -> Optional[Tuple[float, float]]:
    if series.empty:
        return None
    return float(series.min()), float(series.max())


def build_data_context(page: PageConfig, raw: pd.DataFrame) -> Dict[str, Any]:
    records = derive_records(raw, page)
    if records.empty:
        raise LoadError(f"No valid {page.name} rows after coercion")

    categories: List[str] = []
    if page.category:
        categories = sorted(str(x) for x in records[page.category].unique())

    range_bounds = None
    if page.range_field:
        lo, hi = _extent(records[page.range_field])  # type: ignore[misc]
        range_bounds = (lo, hi)

    threshold_max = float(records[page.threshold].max()) if page.threshold else None

    color_domain: List[str] = []
    color_extent = None
    color = page.chart.color
    if color is not None and color.kind == "ordinal":
        color_domain = sorted(str(x) for x in records[color.field].unique())
    elif color is not None and color.normalize:
        color_extent = _extent(records[color.field])

    return {
        "page": page.name,
        "source": resolve_source(page.dataset),
        "records": records,
        "categories": categories,
        "range_bounds": range_bounds,
        "threshold_max": threshold_max,
        "color_domain": color_domain,
        "color_extent": color_extent,
    }


@lru_cache(maxsize=8)
def _load_page_data_cached(page: PageConfig, signature: Tuple[str, float]) -> Dict[str, Any]:
    return build_data_context(page, load_raw(page))


def load_page_data(page: PageConfig) -> Dict[str, Any]:
    source = resolve_source(page.dataset)
    if is_remote(source):
        data_ctx = build_data_context(page, load_raw(page))
    else:
        data_ctx = _load_page_data_cached(page, file_signature(source))
    logger.info("Loaded %d %s records from %s", len(data_ctx["records"]), page.name, source)
    return data_ctx


def prepare_context(
    filters: Mapping[str, Any] | FilterState,
    data_ctx: Dict[str, Any],
    page: PageConfig,
    *,
    transform: ViewTransform = IDENTITY,
    previous: Optional[Mapping[str, Dict[str, Any]]] = None,
    size: Optional[Tuple[int, int]] = None,
) -> Dict[str, Any]:
    records: pd.DataFrame = data_ctx.get("records", pd.DataFrame())
    filt = filters if isinstance(filters, FilterState) else normalize_filters(filters, page, data_ctx)

    matched = select_records(records, filt, page)
    filtered = apply_filters(records, filt, page)
    scales, result = render_page(
        filtered,
        page,
        filt,
        data_ctx,
        transform=transform,
        previous=previous,
        size=size,
    )
    return {
        "page": page,
        "filters": filt,
        "records": records,
        "matched": matched,
        "filtered": filtered,
        "scales": scales,
        "render": result,
        "transform": transform,
        "size": size or (page.width, page.height),
        "categories": data_ctx.get("categories", []),
        "range_bounds": data_ctx.get("range_bounds"),
        "threshold_max": data_ctx.get("threshold_max"),
        "color_domain": data_ctx.get("color_domain", []),
    }
