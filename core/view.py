"""Zoom/pan view transform.

The transform is composed with the base scales only when marks are
projected; it never changes the filtered set or the base scale domains.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Tuple

from core.scales import BandScale, LinearScale

SCALE_EXTENT = (1.0, 10.0)


@dataclass(frozen=True)
class ViewTransform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    def apply_x(self, px: float) -> float:
        return px * self.k + self.x

    def apply_y(self, py: float) -> float:
        return py * self.k + self.y

    def invert_x(self, px: float) -> float:
        return (px - self.x) / self.k

    def invert_y(self, py: float) -> float:
        return (py - self.y) / self.k

    @property
    def is_identity(self) -> bool:
        return self.k == 1.0 and self.x == 0.0 and self.y == 0.0


IDENTITY = ViewTransform()


def constrain(transform: ViewTransform, extent: Tuple[float, float]) -> ViewTransform:
    """Keep the zoomed viewport inside the plot area."""
    width, height = extent
    x = min(0.0, max(width - width * transform.k, transform.x))
    y = min(0.0, max(height - height * transform.k, transform.y))
    return replace(transform, x=x, y=y)


def zoom_at(
    transform: ViewTransform,
    factor: float,
    point: Tuple[float, float],
    extent: Tuple[float, float],
    scale_extent: Tuple[float, float] = SCALE_EXTENT,
) -> ViewTransform:
    if not math.isfinite(factor) or factor <= 0:
        return transform
    k = min(max(transform.k * factor, scale_extent[0]), scale_extent[1])
    px, py = point
    wx, wy = transform.invert_x(px), transform.invert_y(py)
    return constrain(ViewTransform(k, px - wx * k, py - wy * k), extent)


def pan(transform: ViewTransform, dx: float, dy: float, extent: Tuple[float, float]) -> ViewTransform:
    return constrain(replace(transform, x=transform.x + dx, y=transform.y + dy), extent)


def rescale_linear(scale: LinearScale, transform: ViewTransform, axis: str = "x") -> LinearScale:
    invert = transform.invert_x if axis == "x" else transform.invert_y
    domain = tuple(max(0.0, scale.invert(invert(r))) for r in scale.range)
    return LinearScale(domain, scale.range)  # type: ignore[arg-type]


def visible_band_domain(band: BandScale, transform: ViewTransform) -> Tuple[str, ...]:
    if not band.domain:
        return ()
    start, end = (transform.invert_x(r) for r in band.range)
    step = band.step
    first = max(0, math.floor(start / step))
    last = min(len(band.domain) - 1, math.ceil(end / step))
    return band.domain[first : last + 1]


def rescale_band(band: BandScale, transform: ViewTransform) -> BandScale:
    if transform.is_identity:
        return band
    return BandScale(visible_band_domain(band, transform), band.range, band.padding)
