from __future__ import annotations

from typing import Any, Callable, Dict

from core.filters import FilterState
from core.metrics_sales import compute_sales
from core.metrics_steam import compute_steam
from core.metrics_twitch import compute_twitch
from core.pages import PageConfig

PAGE_COMPUTE: Dict[str, Callable[[FilterState, Dict[str, Any]], Dict[str, Any]]] = {
    "steam": compute_steam,
    "twitch": compute_twitch,
    "sales": compute_sales,
}


def compute_page(page: PageConfig, filters: FilterState, ctx: Dict[str, Any]) -> Dict[str, Any]:
    payload = PAGE_COMPUTE[page.name](filters, ctx)
    payload["title"] = page.title
    return payload
