"""Restaurant profiles, setup drafts and restaurant lookups."""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING

import database
from errors import FormValidationError, NotFoundError
from filters import address_text
from schemas import RestaurantProfile

logger = logging.getLogger(__name__)

SEARCH_PAGE_SIZE = 10
PROTECTED_FIELDS = ("id", "_id", "uid", "role", "createdAt", "updatedAt")


def _validate(data: Dict[str, Any]) -> RestaurantProfile:
    try:
        return RestaurantProfile.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        raise FormValidationError(f"Invalid restaurant data ({'.'.join(str(p) for p in err['loc'])}): {err['msg']}")


@database.backend_call("Error loading restaurant")
def get_restaurant_profile(restaurant_id: str) -> Optional[dict]:
    return database.get_document(database.RESTAURANTS, restaurant_id)


@database.backend_call("Error creating restaurant profile")
def create_restaurant_profile(uid: str, data: Dict[str, Any]) -> str:
    """Store the permanent restaurant record for `uid` and drop their setup draft."""
    profile = _validate({**data, "uid": uid, "role": "restaurant", "status": data.get("status") or "pending"})
    restaurant_id = database.create_document(database.RESTAURANTS, profile)
    database.delete_document(database.RESTAURANT_DRAFTS, uid)
    logger.info("Created restaurant %s for %s", restaurant_id, uid)
    return restaurant_id


@database.backend_call("Error updating restaurant profile")
def update_restaurant_profile(restaurant_id: str, data: Dict[str, Any]) -> dict:
    current = database.get_document(database.RESTAURANTS, restaurant_id)
    if current is None:
        raise NotFoundError(f"No restaurant with id {restaurant_id}")
    updates = {k: v for k, v in data.items() if k not in PROTECTED_FIELDS}
    _validate({**current, **updates})
    database.update_document(database.RESTAURANTS, restaurant_id, updates)
    return database.get_document(database.RESTAURANTS, restaurant_id)


@database.backend_call("Error deleting restaurant profile")
def delete_restaurant_profile(restaurant_id: str) -> None:
    if not database.delete_document(database.RESTAURANTS, restaurant_id):
        raise NotFoundError(f"No restaurant with id {restaurant_id}")


@database.backend_call("Error updating restaurant status")
def toggle_restaurant_status(restaurant_id: str) -> dict:
    """Admin switch: active restaurants get suspended, anything else is activated."""
    current = database.get_document(database.RESTAURANTS, restaurant_id)
    if current is None:
        raise NotFoundError(f"No restaurant with id {restaurant_id}")
    status = "suspended" if current.get("status") == "active" else "active"
    database.update_document(database.RESTAURANTS, restaurant_id, {"status": status})
    logger.info("Restaurant %s is now %s", restaurant_id, status)
    return database.get_document(database.RESTAURANTS, restaurant_id)


# ---------------------- Drafts ----------------------
@database.backend_call("Error loading restaurant draft")
def get_restaurant_draft(uid: str) -> Optional[dict]:
    draft = database.get_document(database.RESTAURANT_DRAFTS, uid)
    if draft is not None:
        draft.pop("id", None)
    return draft


@database.backend_call("Error saving restaurant draft")
def save_restaurant_draft(uid: str, data: Dict[str, Any]) -> None:
    if not uid:
        raise FormValidationError("A user id is required to save a draft")
    existing = database.get_document(database.RESTAURANT_DRAFTS, uid)
    draft = {
        **data,
        "uid": uid,
        "role": "restaurant",
        "status": data.get("status") or "pending",
        "updatedAt": database.server_timestamp(),
    }
    if existing is None:
        draft["createdAt"] = draft["updatedAt"]
    database.set_document(database.RESTAURANT_DRAFTS, uid, draft, merge=True)
    logger.debug("Saved draft for %s: %s", uid, sorted(draft))


@database.backend_call("Error deleting restaurant draft")
def delete_restaurant_draft(uid: str) -> None:
    database.delete_document(database.RESTAURANT_DRAFTS, uid)


# ---------------------- Lookups ----------------------
@database.backend_call("Error searching restaurants")
def search_restaurants(query: str, after_name: Optional[str] = None) -> List[dict]:
    """One page of active restaurants by name, filtered on name, description or cuisine."""
    q = query.lower().strip()
    filters: Dict[str, Any] = {"status": "active"}
    if after_name:
        filters["restaurantName"] = {"$gt": after_name}
    page = database.get_documents(
        database.RESTAURANTS, filters, order_by=[("restaurantName", ASCENDING)], limit=SEARCH_PAGE_SIZE
    )
    return [
        r for r in page
        if q in r.get("restaurantName", "").lower()
        or q in r.get("description", "").lower()
        or any(q in c.lower() for c in r.get("cuisine", []))
    ]


@database.backend_call("Error loading restaurants")
def list_active_restaurants(cuisine: Optional[str] = None) -> List[dict]:
    filters: Dict[str, Any] = {"status": "active"}
    if cuisine:
        filters["cuisine"] = cuisine
    return database.get_documents(database.RESTAURANTS, filters)


@database.backend_call("Error loading restaurants")
def get_user_restaurants(uid: str) -> List[dict]:
    return database.get_documents(database.RESTAURANTS, {"uid": uid})


@database.backend_call("Error loading restaurants")
def list_restaurants(search_term: str = "") -> List[dict]:
    term = search_term.lower()
    docs = database.get_documents(database.RESTAURANTS, order_by=[("createdAt", DESCENDING)])
    return [
        r for r in docs
        if term in r.get("restaurantName", "").lower() or term in address_text(r).lower()
    ]
