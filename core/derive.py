from __future__ import annotations

import math
import re
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from core.pages import FieldSpec, PageConfig

YEAR_PATTERN = re.compile(r"\d{4}")
NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
# plain decimal or exponent literals only; no underscores, hex or inf
NUMERIC_LITERAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
NA_TOKENS = {"", "nan", "none", "null", "n/a", "na", "<na>"}


def _is_missing(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and value.strip().lower() in NA_TOKENS


def to_number(value: object, default: float = 0.0) -> float:
    """Coerce to a finite float; anything else yields ``default``."""
    if _is_missing(value) or isinstance(value, bool):
        return float(default)
    if isinstance(value, str):
        text = value.strip()
        if not NUMERIC_LITERAL.fullmatch(text):
            return float(default)
        value = text
    try:
        out = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return float(default)
    if not math.isfinite(out):
        return float(default)
    return out


def to_text(value: object, default: str = "Unknown") -> str:
    if _is_missing(value):
        return default
    return str(value).strip()


def to_bool(value: object) -> bool:
    return not _is_missing(value) and str(value).strip() == "True"


def decode_range_max(value: object, default: float = 0.0) -> float:
    """Decode an owners-style range like ``"10000000-20000000"`` to its upper bound."""
    if _is_missing(value):
        return float(default)
    bounds = [float(m) for m in NUMBER_PATTERN.findall(str(value).replace(",", ""))]
    if not bounds:
        return float(default)
    return max(bounds)


def extract_year(value: object, default: int) -> int:
    if _is_missing(value):
        return int(default)
    match = YEAR_PATTERN.search(str(value))
    if not match:
        return int(default)
    return int(match.group(0))


def primary_token(value: object, default: str = "Unknown", sep: str = ";") -> str:
    if _is_missing(value):
        return default
    first = str(value).split(sep)[0].strip()
    return first or default


def rating_ratios(positive: float, negative: float) -> Tuple[float, float]:
    """Positive/negative shares on a 0-100 scale; both 0 when there are no ratings."""
    positive = max(to_number(positive), 0.0)
    negative = max(to_number(negative), 0.0)
    total = positive + negative
    if total <= 0:
        return 0.0, 0.0
    return positive / total * 100.0, negative / total * 100.0


def coerce_value(value: object, spec: FieldSpec) -> object:
    if spec.kind == "number":
        out = to_number(value, float(spec.default))  # type: ignore[arg-type]
    elif spec.kind == "range_max":
        out = decode_range_max(value, float(spec.default))  # type: ignore[arg-type]
    elif spec.kind == "year":
        return extract_year(value, int(spec.default))  # type: ignore[arg-type]
    elif spec.kind == "bool":
        return to_bool(value)
    elif spec.kind == "primary_token":
        return primary_token(value, str(spec.default))
    else:
        return to_text(value, str(spec.default))
    if spec.clamp_min is not None:
        out = max(out, spec.clamp_min)
    return out


def numeric_column(values: pd.Series, default: float = 0.0, clamp_min: Optional[float] = None) -> pd.Series:
    """Column-wise `to_number`: one `pd.to_numeric` pass instead of per-cell calls."""
    text = values.astype(str).str.strip()
    out = pd.to_numeric(text.where(text.str.fullmatch(NUMERIC_LITERAL.pattern)), errors="coerce").astype(float)
    out = out.where(np.isfinite(out)).fillna(float(default))
    if clamp_min is not None:
        out = out.clip(lower=clamp_min)
    return out


def _record_keys(raw: pd.DataFrame, key: Optional[str]) -> pd.Series:
    if not key:
        return pd.Series([str(i) for i in range(len(raw))], index=raw.index, dtype=object)
    keys = raw[key].map(lambda v: to_text(v, "")).astype(object)
    dup = keys.duplicated(keep="first") | (keys == "")
    if dup.any():
        # duplicated or blank ids fall back to their row position
        keys = keys.where(~dup, [f"row-{i}" for i in range(len(raw))])
    return keys


def derive_records(raw: pd.DataFrame, page: PageConfig) -> pd.DataFrame:
    out = pd.DataFrame(index=raw.index)
    out["key"] = _record_keys(raw, page.key)
    for spec in page.fields:
        if spec.column in raw.columns and spec.kind == "number":
            out[spec.name] = numeric_column(raw[spec.column], float(spec.default), spec.clamp_min)  # type: ignore[arg-type]
        elif spec.column in raw.columns:
            out[spec.name] = raw[spec.column].map(lambda v, s=spec: coerce_value(v, s))
        else:
            out[spec.name] = coerce_value(None, spec)

    for ratio in page.ratios:
        pairs = [rating_ratios(p, n) for p, n in zip(out[ratio.positive], out[ratio.negative])]
        out[ratio.positive_out] = [p for p, _ in pairs]
        out[ratio.negative_out] = [n for _, n in pairs]

    for col in page.required_positive:
        out = out[out[col] > 0]
    return out.reset_index(drop=True)
