from __future__ import annotations

import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.pages import PageConfig

REGION_NAMES = {
    "NA_Sales": "North America",
    "EU_Sales": "Europe",
    "JP_Sales": "Japan",
    "Other_Sales": "Other regions",
    "Global_Sales": "Global",
}

Card = Tuple[str, str, str]


def format_number(num: object) -> str:
    try:
        value = float(num)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return "N/A"
    if not math.isfinite(value):
        return "N/A"
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(int(value)) if value.is_integer() else f"{value:g}"


def format_minutes(minutes: object) -> str:
    total = int(float(minutes))  # type: ignore[arg-type]
    return f"{total // 60}h {total % 60}m"


def format_tick(value: float, max_value: float) -> str:
    if max_value > 1000:
        return format_number(value)
    return f"{value:,g}"


def format_price(value: object) -> str:
    return f"${float(value):,.2f}"  # type: ignore[arg-type]


def _steam_tooltip(record: Mapping[str, Any], _: Optional[str]) -> List[str]:
    return [
        str(record["name"]),
        f"Genre: {record['genre']}",
        f"Price: {format_price(record['price'])}",
        f"Released: {record['release_year']}",
        f"Owners: up to {format_number(record['owners'])}",
        f"{record['positive_pct']:.1f}% positive ({format_number(record['positive_ratings'])} reviews up)",
    ]


def _twitch_tooltip(record: Mapping[str, Any], _: Optional[str]) -> List[str]:
    return [
        str(record["channel"]),
        f"{format_number(record['followers'])} followers",
        f"{format_number(record['averageViewers'])} avg viewers",
        f"{format_number(round(record['streamTime'] / 60))} hours streamed",
        str(record["language"]),
        "Click for details",
    ]


def _sales_tooltip(record: Mapping[str, Any], measure: Optional[str]) -> List[str]:
    measure = measure or "Global_Sales"
    return [
        str(record["name"]),
        f"Genre: {record['genre']}",
        f"Platform: {record['platform']}",
        f"Year: {record['year'] or 'N/A'}",
        f"{measure.replace('_', ' ')}: {record[measure]:g} millions",
    ]


def _steam_detail(record: Mapping[str, Any]) -> List[Card]:
    return [
        ("Game", str(record["name"]), f"{record['genre']} • {record['developer']}"),
        ("Price", format_price(record["price"]), f"Released {record['release_date'] or record['release_year']}"),
        (
            "Ratings",
            f"{record['positive_pct']:.1f}% positive",
            f"{format_number(record['positive_ratings'])} up / {format_number(record['negative_ratings'])} down",
        ),
        ("Owners", f"up to {format_number(record['owners'])}", f"Avg playtime {format_minutes(record['average_playtime'])}"),
    ]


def _twitch_detail(record: Mapping[str, Any]) -> List[Card]:
    flags = "Partnered" if record["partnered"] else "Not Partnered"
    if record["mature"]:
        flags += " • Mature"
    return [
        ("Channel", str(record["channel"]), f"{record['language']} • {flags}"),
        ("Followers", format_number(record["followers"]), f"+{format_number(record['followersGained'])} gained recently"),
        ("Viewership", format_number(record["averageViewers"]), f"Peak: {format_number(record['peakViewers'])} viewers"),
        ("Stream Time", format_minutes(record["streamTime"]), f"Total watch time: {format_minutes(record['watchTime'])}"),
        ("Engagement", format_number(record["viewsGained"]), "Views gained recently"),
    ]


def _sales_detail(record: Mapping[str, Any]) -> List[Card]:
    regions = " • ".join(f"{REGION_NAMES[r]} {record[r]:g}M" for r in ("NA_Sales", "EU_Sales", "JP_Sales", "Other_Sales"))
    return [
        ("Game", str(record["name"]), f"{record['platform']} • {record['genre']} • {record['year'] or 'N/A'}"),
        ("Global sales", f"{record['Global_Sales']:g} millions", regions),
        ("Rank", str(int(record["rank"])), str(record["publisher"])),
    ]


TOOLTIPS: Dict[str, Callable[[Mapping[str, Any], Optional[str]], List[str]]] = {
    "steam": _steam_tooltip,
    "twitch": _twitch_tooltip,
    "sales": _sales_tooltip,
}
DETAILS: Dict[str, Callable[[Mapping[str, Any]], List[Card]]] = {
    "steam": _steam_detail,
    "twitch": _twitch_detail,
    "sales": _sales_detail,
}


def tooltip_lines(page: PageConfig, record: Mapping[str, Any], measure: Optional[str] = None) -> List[str]:
    return TOOLTIPS[page.name](record, measure)


def detail_cards(page: PageConfig, record: Mapping[str, Any]) -> List[Card]:
    return DETAILS[page.name](record)
