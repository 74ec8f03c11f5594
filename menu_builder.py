"""
In-memory editing of a menu tree (categories -> items).

Nothing is written until `save()`, which overwrites the whole stored menu.
Two builders working from the same stored menu will clobber each other: the
last save wins and no version is checked.
"""
import logging
from typing import Any, Callable, Dict, Optional
from uuid import uuid4

import database
import menus
from schemas import Menu, MenuCategory, MenuItem

logger = logging.getLogger(__name__)

ConfirmGate = Callable[[str], bool]


def local_id() -> str:
    return uuid4().hex


class MenuBuilder:
    """Edit a `Menu` in memory.

    Field updates are dictionaries keyed by the stored (camelCase) names, the
    same shape the API accepts. Deletions go through `confirm(prompt)`; without
    a gate, or when the gate answers False, nothing is removed.
    """

    def __init__(self, menu: Menu, confirm: Optional[ConfirmGate] = None):
        self.menu = menu
        self.confirm = confirm
        self.selected_category_id: Optional[str] = None

    @classmethod
    def for_restaurant(cls, restaurant_id: str, confirm: Optional[ConfirmGate] = None) -> "MenuBuilder":
        menu = menus.get_menu(restaurant_id) or Menu(id=restaurant_id, restaurant_id=restaurant_id)
        return cls(menu, confirm=confirm)

    def _confirmed(self, prompt: str) -> bool:
        if self.confirm is None:
            return False
        return bool(self.confirm(prompt))

    def _category(self, category_id: str) -> Optional[MenuCategory]:
        return next((c for c in self.menu.categories if c.id == category_id), None)

    # ---------------------- Categories ----------------------
    def add_category(self, fields: Dict[str, Any]) -> MenuCategory:
        data = {**fields, "id": local_id(), "order": len(self.menu.categories), "items": []}
        category = MenuCategory.model_validate(data)
        self.menu.categories.append(category)
        return category

    def edit_category(self, category_id: str, fields: Dict[str, Any]) -> Optional[MenuCategory]:
        for i, category in enumerate(self.menu.categories):
            if category.id == category_id:
                merged = {**category.model_dump(by_alias=True), **fields, "id": category.id}
                self.menu.categories[i] = MenuCategory.model_validate(merged)
                return self.menu.categories[i]
        return None

    def delete_category(self, category_id: str) -> bool:
        category = self._category(category_id)
        if category is None:
            return False
        prompt = f"Delete category '{category.name}' and its {len(category.items)} item(s)?"
        if not self._confirmed(prompt):
            return False
        # Items live inside their category, so they go with it.
        self.menu.categories = [c for c in self.menu.categories if c.id != category_id]
        if self.selected_category_id == category_id:
            self.selected_category_id = None
        return True

    # ---------------------- Items ----------------------
    def select_category(self, category_id: Optional[str]) -> None:
        self.selected_category_id = category_id

    def add_item(self, fields: Dict[str, Any]) -> Optional[MenuItem]:
        category = self._category(self.selected_category_id) if self.selected_category_id else None
        if category is None:
            return None
        item = MenuItem.model_validate({
            **fields,
            "id": local_id(),
            "categoryId": category.id,
            "order": len(category.items),
        })
        category.items.append(item)
        return item

    def edit_item(self, category_id: str, item_id: str, fields: Dict[str, Any]) -> Optional[MenuItem]:
        category = self._category(category_id)
        if category is None:
            return None
        for i, item in enumerate(category.items):
            if item.id == item_id:
                merged = {**item.model_dump(by_alias=True), **fields, "id": item.id}
                category.items[i] = MenuItem.model_validate(merged)
                return category.items[i]
        return None

    def delete_item(self, category_id: str, item_id: str) -> bool:
        category = self._category(category_id)
        if category is None:
            return False
        item = next((i for i in category.items if i.id == item_id), None)
        if item is None or not self._confirmed(f"Delete '{item.name}'?"):
            return False
        category.items = [i for i in category.items if i.id != item_id]
        return True

    # ---------------------- Persistence ----------------------
    def save(self) -> Menu:
        pending = self.menu.model_copy(update={
            "version": self.menu.version + 1,
            "last_updated": database.server_timestamp(),
        })
        saved = menus.save_menu(pending)
        # Only a successful write moves the local version on.
        self.menu = pending
        logger.info("Menu builder saved %s categories for %s", len(self.menu.categories), self.menu.restaurant_id)
        return saved
