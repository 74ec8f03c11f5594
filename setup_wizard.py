"""
Restaurant setup wizard.

Four steps (basic, location, schedule, menu). Every completed step is merged
into the owner's draft and persisted, and the step id is stored on the draft
as a marker. On load, the wizard resumes at the first step whose id is not
a key of the draft. A step whose data already carries its own id as a
field (schedule) uses that field as the marker. Steps must be completed in
order; an earlier step can be redone, as after going back.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

import restaurants
import users
from errors import AppError, BackendError, FormValidationError, NotFoundError
from geocoding import geocode_address
from menu_builder import MenuBuilder
from menus import slugify
from schemas import WEEKDAYS, Address, Coordinates, DaySchedule, Menu, MenuCategory, MenuItem

logger = logging.getLogger(__name__)

STEPS = ("basic", "location", "schedule", "menu")

# Keys only the wizard uses; they never reach the restaurant profile.
WIZARD_KEYS = ("basic", "location", "menu", "categories")

ADDRESS_FIELDS = ("street", "city", "state", "postalCode", "country")


def _blank(value: Any) -> bool:
    if isinstance(value, str):
        return not value.strip()
    return not value


def validate_basic(data: Dict[str, Any]) -> Dict[str, Any]:
    for field in ("restaurantName", "description", "phone"):
        if _blank(data.get(field)):
            raise FormValidationError()
    if not isinstance(data.get("cuisine"), list) or not data["cuisine"]:
        raise FormValidationError("Select at least one cuisine")
    return data


def validate_location(data: Dict[str, Any], geocode: Callable[[Address], Optional[Coordinates]]) -> Dict[str, Any]:
    raw = data.get("address") or {}
    if not isinstance(raw, dict) or any(_blank(raw.get(f)) for f in ADDRESS_FIELDS):
        raise FormValidationError("Please complete all address fields")
    address = Address.model_validate(raw)
    coordinates = geocode(address)
    if coordinates is None:
        raise FormValidationError("Could not locate the address. Please check it and try again")
    address.coordinates = coordinates
    return {**data, "address": address.model_dump(by_alias=True, exclude_none=True)}


def validate_schedule(data: Dict[str, Any]) -> Dict[str, Any]:
    given = data.get("schedule") or {}
    if not isinstance(given, dict):
        raise FormValidationError("Invalid schedule")
    schedule = {}
    for day in WEEKDAYS:
        raw = given.get(day)
        try:
            day_schedule = DaySchedule.model_validate(raw) if raw is not None else DaySchedule()
        except ValidationError as e:
            raise FormValidationError(f"Invalid hours for {day}: {e.errors()[0]['msg']}")
        if not day_schedule.closed and (_blank(day_schedule.open) or _blank(day_schedule.close)):
            raise FormValidationError(f"Opening hours are required for {day}")
        schedule[day] = day_schedule.model_dump(by_alias=True)
    return {**data, "schedule": schedule}


def validate_menu(data: Dict[str, Any]) -> Dict[str, Any]:
    """Check the whole menu tree before anything is persisted.

    Categories and items go through the same models `MenuBuilder` builds on
    finish, with placeholder ids.
    """
    categories = data.get("categories")
    if not isinstance(categories, list) or not categories:
        raise FormValidationError("Add at least one menu category")
    if any(not isinstance(c, dict) or _blank(c.get("name")) for c in categories):
        raise FormValidationError("Every category needs a name")
    for category in categories:
        items = category.get("items") or []
        if not isinstance(items, list):
            raise FormValidationError("Invalid menu items")
        try:
            MenuCategory.model_validate({**category, "id": "new", "order": 0, "items": []})
        except ValidationError as e:
            raise FormValidationError(f"Invalid menu category: {e.errors()[0]['msg']}")
        for item in items:
            if not isinstance(item, dict) or _blank(item.get("name")):
                raise FormValidationError("Every menu item needs a name")
            try:
                if float(item.get("price", 0)) < 0:
                    raise FormValidationError("Prices cannot be negative")
            except (TypeError, ValueError):
                raise FormValidationError("Invalid price")
            try:
                MenuItem.model_validate({**item, "id": "new", "categoryId": "new", "order": 0})
            except ValidationError as e:
                raise FormValidationError(f"Invalid menu item '{item['name']}': {e.errors()[0]['msg']}")
    return data


class SetupWizard:
    def __init__(self, uid: str, email: str = "", geocode: Callable[[Address], Optional[Coordinates]] = geocode_address):
        self.uid = uid
        self.email = email
        self.geocode = geocode
        self.current_step = STEPS[0]
        self.data: Dict[str, Any] = {}
        self.error: Optional[str] = None
        self.loading = True
        self.saving = False
        self.restaurant_id: Optional[str] = None

    def load(self) -> "SetupWizard":
        try:
            draft = restaurants.get_restaurant_draft(self.uid)
        except BackendError as e:
            self.error = e.message
            raise
        finally:
            self.loading = False
        if draft:
            self.data = draft
            pending = [step for step in STEPS if not draft.get(step)]
            if pending:
                self.current_step = pending[0]
        return self

    def _validate(self, step_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if step_id == "basic":
            return validate_basic(data)
        if step_id == "location":
            return validate_location(data, self.geocode)
        if step_id == "schedule":
            return validate_schedule(data)
        return validate_menu(data)

    def complete_step(self, step_id: str, data: Dict[str, Any]) -> Optional[str]:
        """Validate, merge and persist one step.

        Returns the new restaurant id once the last step has been completed,
        None before that. On failure the wizard stays on the current step.
        """
        if step_id not in STEPS:
            raise NotFoundError(f"Unknown setup step: {step_id}")
        self.error = None
        try:
            # Completed steps may be redone; later ones wait their turn.
            if STEPS.index(step_id) > STEPS.index(self.current_step):
                raise FormValidationError(f"Complete the {self.current_step} step first")
            step_data = self._validate(step_id, data)
        except FormValidationError as e:
            self.error = e.message
            raise

        self.saving = True
        try:
            merged = {**self.data, **step_data}
            if not merged.get(step_id):
                merged[step_id] = True
            restaurants.save_restaurant_draft(self.uid, merged)
            self.data = merged
            if step_id == STEPS[-1]:
                self.restaurant_id = self._finish()
                return self.restaurant_id
            self.current_step = STEPS[STEPS.index(step_id) + 1]
            return None
        except AppError as e:
            logger.error("Error saving restaurant data for %s: %s", self.uid, e.message)
            self.error = e.message
            raise
        finally:
            self.saving = False

    def back(self, step_id: str) -> str:
        index = STEPS.index(step_id)
        if index > 0:
            self.current_step = STEPS[index - 1]
        return self.current_step

    def _finish(self) -> str:
        profile = {k: v for k, v in self.data.items() if k not in WIZARD_KEYS}
        profile.update({
            "uid": self.uid,
            "email": self.email or profile.get("email", ""),
            "role": "restaurant",
            "status": "pending",
            "displayName": profile.get("restaurantName", ""),
            "menuItems": [],
            "reviews": [],
            "ratings": {"average": 0, "count": 0},
        })
        restaurant_id = restaurants.create_restaurant_profile(self.uid, profile)

        owner = users.get_user_profile(self.uid)
        if owner is not None and owner.role == "restaurant":
            users.update_user_profile(self.uid, {
                "restaurantId": restaurant_id,
                "restaurantName": profile.get("restaurantName", ""),
            })

        self._save_menu(restaurant_id, self.data.get("categories") or [])
        logger.info("Restaurant setup finished for %s -> %s", self.uid, restaurant_id)
        return restaurant_id

    def _save_menu(self, restaurant_id: str, categories: List[Dict[str, Any]]) -> None:
        menu = Menu(id=restaurant_id, restaurant_id=restaurant_id, slug=slugify(self.data.get("restaurantName", "")))
        builder = MenuBuilder(menu)
        for category in categories:
            added = builder.add_category({k: v for k, v in category.items() if k not in ("id", "items", "order")})
            builder.select_category(added.id)
            for item in category.get("items") or []:
                builder.add_item({k: v for k, v in item.items() if k not in ("id", "categoryId", "order")})
        builder.save()

    def state(self) -> Dict[str, Any]:
        return {
            "steps": list(STEPS),
            "currentStep": self.current_step,
            "data": self.data,
            "error": self.error,
            "restaurantId": self.restaurant_id,
        }
