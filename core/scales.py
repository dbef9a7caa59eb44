"""Visual-encoding scales.

Magnitude dimensions always start at 0 and end at the observed maximum
times ``PADDING``; an empty or all-zero set falls back to ``FALLBACK_MAX``
so a domain is never zero-width.
"""

from __future__ import annotations

import math
from bisect import bisect_right
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from core.filters import FilterState
from core.pages import PageConfig, value_field

PADDING = 1.05
FALLBACK_MAX = 1.0

ScaleSet = Dict[str, Any]


def _finite(values: Iterable[object]) -> List[float]:
    out: List[float] = []
    for v in values:
        try:
            f = float(v)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
        if math.isfinite(f):
            out.append(f)
    return out


def magnitude_domain(values: Iterable[object], padding: float = PADDING, fallback: float = FALLBACK_MAX) -> Tuple[float, float]:
    vals = _finite(values)
    top = max(vals) if vals else 0.0
    if top <= 0:
        return 0.0, fallback
    return 0.0, top * padding


def tick_step(lo: float, hi: float, count: int) -> float:
    step0 = abs(hi - lo) / max(count, 1)
    step1 = 10 ** math.floor(math.log10(step0))
    error = step0 / step1
    if error >= math.sqrt(50):
        step1 *= 10
    elif error >= math.sqrt(10):
        step1 *= 5
    elif error >= math.sqrt(2):
        step1 *= 2
    return step1


def ticks(lo: float, hi: float, count: int = 10) -> List[float]:
    """Round 1/2/5 x 10^k tick values covering [lo, hi]."""
    if not (math.isfinite(lo) and math.isfinite(hi)) or count <= 0:
        return []
    if hi < lo:
        lo, hi = hi, lo
    if hi == lo:
        return [lo]
    step = tick_step(lo, hi, count)
    start = math.ceil(lo / step - 1e-9)
    stop = math.floor(hi / step + 1e-9)
    return [round(i * step, 10) for i in range(start, stop + 1)]


@dataclass(frozen=True)
class LinearScale:
    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if d1 == d0:
            return r0
        return r0 + (float(value) - d0) / (d1 - d0) * (r1 - r0)

    def invert(self, pixel: float) -> float:
        d0, d1 = self.domain
        r0, r1 = self.range
        if r1 == r0:
            return d0
        return d0 + (float(pixel) - r0) / (r1 - r0) * (d1 - d0)

    def ticks(self, count: int = 10) -> List[float]:
        return ticks(self.domain[0], self.domain[1], count)

    def contains(self, value: float) -> bool:
        lo, hi = sorted(self.domain)
        return lo <= float(value) <= hi


@dataclass(frozen=True)
class SqrtScale:
    """Radius scale whose circle *area* grows linearly with the value."""

    domain: Tuple[float, float]
    range: Tuple[float, float]

    def __call__(self, value: float) -> float:
        d0, d1 = (math.sqrt(max(d, 0.0)) for d in self.domain)
        r0, r1 = self.range
        if d1 == d0:
            return r0
        return r0 + (math.sqrt(max(float(value), 0.0)) - d0) / (d1 - d0) * (r1 - r0)


@dataclass(frozen=True)
class BandScale:
    domain: Tuple[str, ...]
    range: Tuple[float, float]
    padding: float = 0.1

    @cached_property
    def _index(self) -> Dict[str, int]:
        return {key: i for i, key in enumerate(self.domain)}

    @property
    def step(self) -> float:
        r0, r1 = self.range
        return (r1 - r0) / max(1.0, len(self.domain) + self.padding)

    @property
    def bandwidth(self) -> float:
        return self.step * (1 - self.padding)

    def __call__(self, key: str) -> Optional[float]:
        i = self._index.get(key)
        if i is None:
            return None
        return self.range[0] + self.step * (self.padding + i)


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    c = color.lstrip("#")
    return int(c[0:2], 16), int(c[2:4], 16), int(c[4:6], 16)


def interpolate_hex(a: str, b: str, t: float) -> str:
    ra, ga, ba = _hex_to_rgb(a)
    rb, gb, bb = _hex_to_rgb(b)
    t = min(max(t, 0.0), 1.0)
    return "#{:02x}{:02x}{:02x}".format(
        round(ra + (rb - ra) * t),
        round(ga + (gb - ga) * t),
        round(ba + (bb - ba) * t),
    )


@dataclass(frozen=True)
class SegmentedColorScale:
    """Piecewise-linear color ramp over a fixed [0, 100] percentage domain.

    ``breakpoints`` are ordered low to high and paired one-to-one with
    ``colors``. When ``source_extent`` is set, raw values are first mapped
    linearly from that extent onto [0, 100].
    """

    breakpoints: Tuple[float, ...]
    colors: Tuple[str, ...]
    source_extent: Optional[Tuple[float, float]] = None
    domain: Tuple[float, float] = (0.0, 100.0)

    def __post_init__(self) -> None:
        if len(self.breakpoints) != len(self.colors) or len(self.colors) < 2:
            raise ValueError("breakpoints and colors must pair up (at least two stops)")
        if list(self.breakpoints) != sorted(self.breakpoints):
            raise ValueError("breakpoints must be ascending")

    def percent(self, value: float) -> float:
        v = float(value)
        if self.source_extent is not None:
            lo, hi = self.source_extent
            v = 0.0 if hi == lo else (v - lo) / (hi - lo) * 100.0
        return min(max(v, self.domain[0]), self.domain[1])

    def __call__(self, value: float) -> str:
        p = self.percent(value)
        bps = self.breakpoints
        if p <= bps[0]:
            return self.colors[0]
        if p >= bps[-1]:
            return self.colors[-1]
        i = bisect_right(bps, p) - 1
        span = bps[i + 1] - bps[i]
        t = 0.0 if span == 0 else (p - bps[i]) / span
        return interpolate_hex(self.colors[i], self.colors[i + 1], t)


@dataclass(frozen=True)
class OrdinalColorScale:
    domain: Tuple[str, ...]
    scheme: Tuple[str, ...]

    @cached_property
    def _index(self) -> Dict[str, int]:
        return {key: i for i, key in enumerate(self.domain)}

    def __call__(self, value: str) -> str:
        i = self._index.get(str(value), len(self.domain))
        return self.scheme[i % len(self.scheme)]


def color_scale(page: PageConfig, data_ctx: Mapping[str, Any]) -> Any:
    spec = page.chart.color
    if spec is None:
        return None
    if spec.kind == "ordinal":
        return OrdinalColorScale(tuple(data_ctx.get("color_domain") or ()), spec.colors)
    extent = data_ctx.get("color_extent") if spec.normalize else None
    return SegmentedColorScale(spec.breakpoints, spec.colors, tuple(extent) if extent else None)


def build_scales(
    filtered: pd.DataFrame,
    page: PageConfig,
    state: FilterState,
    data_ctx: Optional[Mapping[str, Any]] = None,
    size: Optional[Tuple[int, int]] = None,
) -> ScaleSet:
    data_ctx = data_ctx or {}
    width, height = page.plot_area(size)
    chart = page.chart
    y_field = value_field(page, state.sort_by, state.measure)

    scales: ScaleSet = {}
    if chart.kind == "bar":
        keys = tuple(filtered["key"]) if "key" in filtered.columns else ()
        scales["x"] = BandScale(keys, (0.0, width), 0.1)
    else:
        x_values = filtered[chart.x] if chart.x in filtered.columns else []
        scales["x"] = LinearScale(magnitude_domain(x_values), (0.0, width))

    y_values = filtered[y_field] if y_field in filtered.columns else []
    scales["y"] = LinearScale(magnitude_domain(y_values), (height, 0.0))

    color = color_scale(page, data_ctx)
    if color is not None:
        scales["color"] = color

    if chart.size:
        s_values = filtered[chart.size] if chart.size in filtered.columns else []
        _, top = magnitude_domain(s_values, padding=1.0)
        scales["size"] = SqrtScale((0.0, top), (0.0, chart.max_radius))
    return scales
