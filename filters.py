"""Search and filter predicates over restaurants and menu items that are already loaded."""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence

from schemas import Address, MenuCategory, MenuItem, SortOption


def matches_text(item: Dict[str, Any], term: Optional[str], fields: Sequence[str] = ("name", "description")) -> bool:
    if not term:
        return True
    needle = term.lower()
    return any(needle in str(item.get(field) or "").lower() for field in fields)


def address_text(restaurant: Dict[str, Any]) -> str:
    address = restaurant.get("address")
    if isinstance(address, dict):
        return Address.model_validate(address).formatted()
    return address or ""


def _timestamp(value: Any) -> float:
    if not isinstance(value, datetime):
        return 0.0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


# ---------------------- Restaurants ----------------------
def filter_restaurants(
    restaurants: Iterable[Dict[str, Any]],
    search_term: str = "",
    cuisine: str = "",
    dietary_tags: Sequence[str] = (),
) -> List[Dict[str, Any]]:
    """Search bar filtering.

    A restaurant matches when its name or description contains the search term,
    its first cuisine equals `cuisine` and its dietary options include every
    selected tag. Empty criteria match everything.
    """
    results = []
    for r in restaurants:
        if not matches_text(r, search_term, ("restaurantName", "description")):
            continue
        if cuisine:
            cuisines = r.get("cuisine") or []
            if not cuisines or cuisines[0].lower() != cuisine.lower():
                continue
        options = r.get("dietaryOptions") or []
        if not all(tag in options for tag in dietary_tags):
            continue
        results.append(r)
    return results


def browse_restaurants(
    restaurants: Iterable[Dict[str, Any]],
    search_term: str = "",
    cuisine: str = "",
    sort_by: Optional[SortOption] = None,
) -> List[Dict[str, Any]]:
    needle = search_term.lower()
    results = [
        r for r in restaurants
        if (not needle
            or matches_text(r, needle, ("restaurantName", "description"))
            or needle in address_text(r).lower())
        and (not cuisine or cuisine in (r.get("cuisine") or []))
    ]
    if sort_by == SortOption.NEWEST:
        results.sort(key=lambda r: _timestamp(r.get("createdAt")), reverse=True)
    elif sort_by == SortOption.NAME:
        results.sort(key=lambda r: (r.get("restaurantName") or "").lower())
    return results


# ---------------------- Menu items ----------------------
def filter_menu_items(
    items: Iterable[MenuItem],
    categories: Sequence[MenuCategory] = (),
    category: str = "all",
    allergens: Sequence[str] = (),
    dietary_tags: Sequence[str] = (),
    spicy_level: Optional[int] = None,
) -> List[MenuItem]:
    filtered = list(items)
    if category and category != "all":
        filtered = [item for item in filtered if item.category_id == category]
    # Exclusion: any selected allergen drops the item.
    if allergens:
        filtered = [item for item in filtered if not any(a in item.allergens for a in allergens)]
    # Conjunction: every selected tag must be present.
    if dietary_tags:
        filtered = [item for item in filtered if all(t in item.dietary_tags for t in dietary_tags)]
    if spicy_level is not None:
        filtered = [item for item in filtered if item.spicy_level == spicy_level]

    category_order = {c.id: c.order for c in categories}
    filtered.sort(key=lambda item: (category_order.get(item.category_id, 0), item.order))
    return filtered
