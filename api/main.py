from __future__ import annotations

import logging
from dataclasses import asdict
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import PageSummary, PagesResponse, RenderRequest
from core.data import load_page_data, prepare_context
from core.errors import LoadError, UnknownPageError, ValidationError
from core.filters import FilterState, default_filters, normalize_filters
from core.metrics import compute_page
from core.pages import PAGES, PageConfig, get_page
from core.view import ViewTransform

app = FastAPI(title="Game Dashboards API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception, action: str) -> JSONResponse:
    if isinstance(exc, UnknownPageError):
        status = 404
    elif isinstance(exc, ValidationError):
        status = 422
    elif isinstance(exc, LoadError):
        logger.error("%s failed: %s", action, exc)
        status = 503
    else:
        logger.exception("%s failed", action)
        status = 500
    return JSONResponse(status_code=status, content={"error": str(exc), "type": type(exc).__name__})


def _context(page: PageConfig, request: RenderRequest) -> tuple[FilterState, dict]:
    data_ctx = load_page_data(page)
    filters = normalize_filters(request.filters.model_dump(), page, data_ctx)
    size = (request.width or page.width, request.height or page.height)
    view = ViewTransform(request.view.k, request.view.x, request.view.y)
    ctx = prepare_context(filters, data_ctx, page, transform=view, previous=request.previous, size=size)
    return filters, ctx


@app.get("/pages")
def pages() -> PagesResponse:
    return PagesResponse(pages=[PageSummary(name=p.name, title=p.title, chart=p.chart.kind) for p in PAGES.values()])


@app.get("/meta/{page_name}")
def meta(page_name: str):
    try:
        page = get_page(page_name)
        data_ctx = load_page_data(page)
        defaults = default_filters(page, data_ctx)
        return _json(
            {
                "page": page.name,
                "title": page.title,
                "categories": ["all", *data_ctx.get("categories", [])],
                "range_bounds": data_ctx.get("range_bounds"),
                "threshold_max": data_ctx.get("threshold_max"),
                "threshold_options": list(page.threshold_options),
                "sort_options": list(page.sort_options),
                "measures": list(page.measures),
                "top_n_bounds": list(page.top_n_bounds),
                "defaults": asdict(defaults),
            }
        )
    except Exception as exc:
        return _error(exc, "meta")


@app.post("/pages/{page_name}/render")
def render_page(page_name: str, request: RenderRequest):
    try:
        page = get_page(page_name)
        filters, ctx = _context(page, request)
        return _json(compute_page(page, filters, ctx))
    except Exception as exc:
        return _error(exc, "render")


@app.post("/pages/{page_name}/export")
def export_page(page_name: str, request: RenderRequest):
    try:
        page = get_page(page_name)
        _, ctx = _context(page, request)
    except Exception as exc:
        return _error(exc, "export")

    export_df = ctx.get("filtered")
    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    filename = f"{page.name}.csv"
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": f"attachment; filename={filename}"})
