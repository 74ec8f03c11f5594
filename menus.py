"""
Menu documents (`menus`, one per restaurant) and the flat menu item
catalogue (`menuItems`).

Menu writes replace the whole document. Nothing compares versions, so the
last save wins.
"""
import logging
import re
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pymongo import ASCENDING

import database
from errors import FormValidationError, NotFoundError
from filters import matches_text
from schemas import Menu, MenuItemRecord, MenuItemRecordUpdate, MenuStatus

logger = logging.getLogger(__name__)


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def to_menu(doc: Dict[str, Any]) -> Menu:
    try:
        return Menu.model_validate(doc)
    except ValidationError as e:
        raise FormValidationError(f"Invalid menu data: {e.errors()[0]['msg']}")


# ---------------------- Menu documents ----------------------
@database.backend_call("Error loading menu")
def get_menu(restaurant_id: str) -> Optional[Menu]:
    doc = database.get_document(database.MENUS, restaurant_id)
    if doc is None:
        return None
    return to_menu(doc)


@database.backend_call("Error loading menu")
def get_menu_by_slug(slug: str) -> Optional[Menu]:
    found = database.get_documents(database.MENUS, {"slug": slug}, limit=1)
    return to_menu(found[0]) if found else None


@database.backend_call("Failed to save menu")
def save_menu(menu: Menu) -> Menu:
    """Overwrite the stored menu with `menu`, as is."""
    if not menu.restaurant_id:
        raise FormValidationError("A menu needs a restaurant")
    menu.id = menu.restaurant_id
    database.set_document(database.MENUS, menu.restaurant_id, menu.model_dump(by_alias=True, exclude_none=True))
    logger.info("Saved menu for %s (version %s)", menu.restaurant_id, menu.version)
    return get_menu(menu.restaurant_id)


def _set_status(restaurant_id: str, status: MenuStatus) -> Menu:
    if database.get_document(database.MENUS, restaurant_id) is None:
        raise NotFoundError("Menu not found")
    database.set_document(database.MENUS, restaurant_id, {
        "status": status,
        "lastUpdated": database.server_timestamp(),
    }, merge=True)
    return get_menu(restaurant_id)


@database.backend_call("Failed to publish menu")
def publish_menu(restaurant_id: str) -> Menu:
    return _set_status(restaurant_id, "published")


@database.backend_call("Failed to archive menu")
def archive_menu(restaurant_id: str) -> Menu:
    return _set_status(restaurant_id, "archived")


@database.backend_call("Failed to delete menu")
def delete_menu(restaurant_id: str) -> None:
    database.delete_document(database.MENUS, restaurant_id)


# ---------------------- Menu item catalogue ----------------------
@database.backend_call("Error fetching restaurant menu")
def get_restaurant_menu_items(restaurant_id: str, category: Optional[str] = None) -> List[MenuItemRecord]:
    filters: Dict[str, Any] = {"restaurantId": restaurant_id}
    order_by = [("category", ASCENDING), ("name", ASCENDING)]
    if category:
        filters["category"] = category
        order_by = [("name", ASCENDING)]
    docs = database.get_documents(database.MENU_ITEMS, filters, order_by=order_by)
    return [MenuItemRecord.model_validate(doc) for doc in docs]


def search_menu_items(restaurant_id: str, search_term: str) -> List[MenuItemRecord]:
    items = get_restaurant_menu_items(restaurant_id)
    return [item for item in items if matches_text(item.model_dump(by_alias=True), search_term)]


@database.backend_call("Error fetching menu item")
def get_menu_item(item_id: str) -> Optional[MenuItemRecord]:
    doc = database.get_document(database.MENU_ITEMS, item_id)
    return MenuItemRecord.model_validate(doc) if doc else None


@database.backend_call("Error adding menu item")
def add_menu_item(restaurant_id: str, item: MenuItemRecord) -> str:
    data = item.model_copy(update={"restaurant_id": restaurant_id, "id": None, "ratings": None})
    doc = data.model_dump(by_alias=True, exclude_none=True)
    doc["ratings"] = {"average": 0, "count": 0}
    return database.create_document(database.MENU_ITEMS, doc)


@database.backend_call("Error updating menu item")
def update_menu_item(item_id: str, updates: MenuItemRecordUpdate) -> MenuItemRecord:
    database.update_document(database.MENU_ITEMS, item_id, updates.model_dump(by_alias=True, exclude_none=True))
    return get_menu_item(item_id)


@database.backend_call("Error updating menu item")
def add_menu_item_image(item_id: str, url: str) -> MenuItemRecord:
    doc = database.get_document(database.MENU_ITEMS, item_id)
    if doc is None:
        raise NotFoundError("Menu item not found")
    database.update_document(database.MENU_ITEMS, item_id, {"images": (doc.get("images") or []) + [url]})
    return get_menu_item(item_id)


@database.backend_call("Error toggling menu item availability")
def toggle_menu_item_availability(item_id: str, is_available: bool) -> MenuItemRecord:
    database.update_document(database.MENU_ITEMS, item_id, {"isAvailable": is_available})
    return get_menu_item(item_id)


@database.backend_call("Error deleting menu item")
def delete_menu_item(item_id: str) -> None:
    if not database.delete_document(database.MENU_ITEMS, item_id):
        raise NotFoundError("Menu item not found")
