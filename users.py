"""User profiles, favorites and reviews."""
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING

import database
from errors import AuthorizationError, FormValidationError, NotFoundError
from schemas import Review, ReviewCreate, ReviewUpdate, UserProfile, user_profile_adapter

logger = logging.getLogger(__name__)

# Fields the profile-update path never writes.
PROTECTED_FIELDS = ("id", "_id", "uid", "role", "createdAt", "updatedAt")


def to_user_profile(doc: Dict[str, Any]) -> UserProfile:
    data = dict(doc)
    data["uid"] = data.pop("id", None) or data.get("uid")
    try:
        return user_profile_adapter.validate_python(data)
    except ValidationError as e:
        raise FormValidationError(f"Invalid user profile: {e.errors()[0]['msg']}")


def dump_profile(profile: UserProfile) -> Dict[str, Any]:
    return profile.model_dump(by_alias=True, mode="json")


@database.backend_call("Failed to get user profile")
def get_user_profile(uid: str) -> Optional[UserProfile]:
    doc = database.get_document(database.USERS, uid)
    if doc is None:
        return None
    return to_user_profile(doc)


@database.backend_call("Failed to create user profile")
def create_user_profile(uid: str, data: Dict[str, Any]) -> UserProfile:
    profile = to_user_profile({**data, "uid": uid})
    now = database.server_timestamp()
    doc = profile.model_dump(by_alias=True, exclude_none=True)
    doc.update({"createdAt": now, "updatedAt": now})
    database.set_document(database.USERS, uid, doc)
    return get_user_profile(uid)


@database.backend_call("Failed to update user profile")
def update_user_profile(uid: str, updates: Dict[str, Any]) -> UserProfile:
    """Shallow-merge `updates` into the profile. The stored role always wins."""
    current = database.get_document(database.USERS, uid)
    if current is None:
        raise NotFoundError("User profile not found")
    if "role" in updates and updates["role"] != current["role"]:
        logger.warning("Ignoring role change for %s (%s -> %s)", uid, current["role"], updates["role"])
    data = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}
    data["role"] = current["role"]
    # Validate the merged result before writing anything.
    to_user_profile({**current, **data})
    database.update_document(database.USERS, uid, data)
    return get_user_profile(uid)


@database.backend_call("Error loading users")
def list_users(search_term: str = "") -> List[UserProfile]:
    docs = database.get_documents(
        database.USERS,
        {"role": {"$ne": "admin"}},
        order_by=[("role", ASCENDING), ("createdAt", DESCENDING)],
    )
    term = search_term.lower()
    return [
        to_user_profile(doc) for doc in docs
        if term in (doc.get("displayName") or "").lower() or term in doc.get("email", "").lower()
    ]


# ---------------------- Favorites ----------------------
@database.backend_call("Error toggling favorite restaurant")
def toggle_favorite_restaurant(uid: str, restaurant_id: str) -> List[str]:
    doc = database.get_document(database.USERS, uid)
    if doc is None:
        raise NotFoundError("User profile not found")
    favorites = doc.get("favoriteRestaurants") or []
    if restaurant_id in favorites:
        favorites = [rid for rid in favorites if rid != restaurant_id]
    else:
        favorites = favorites + [restaurant_id]
    database.update_document(database.USERS, uid, {"favoriteRestaurants": favorites})
    return favorites


@database.backend_call("Error getting favorite restaurants")
def get_favorite_restaurants(uid: str) -> List[str]:
    doc = database.get_document(database.USERS, uid)
    if doc is None:
        return []
    return doc.get("favoriteRestaurants") or []


# ---------------------- Reviews ----------------------
@database.backend_call("Error getting reviews")
def get_user_reviews(uid: str) -> List[Review]:
    docs = database.get_documents(database.REVIEWS, {"userId": uid}, order_by=[("createdAt", DESCENDING)])
    return [Review.model_validate(doc) for doc in docs]


@database.backend_call("Error getting reviews")
def get_restaurant_reviews(restaurant_id: str, limit: Optional[int] = None) -> List[Review]:
    docs = database.get_documents(
        database.REVIEWS, {"restaurantId": restaurant_id}, order_by=[("createdAt", DESCENDING)], limit=limit
    )
    return [Review.model_validate(doc) for doc in docs]


@database.backend_call("Error getting reviews")
def get_item_reviews(menu_item_id: str, limit: int = 10) -> List[Review]:
    docs = database.get_documents(
        database.REVIEWS, {"menuItemId": menu_item_id}, order_by=[("createdAt", DESCENDING)], limit=limit
    )
    return [Review.model_validate(doc) for doc in docs]


@database.backend_call("Error creating review")
def create_review(user_id: str, body: ReviewCreate) -> str:
    restaurant = database.get_document(database.RESTAURANTS, body.restaurant_id)
    if restaurant is None:
        raise NotFoundError("Restaurant not found")
    review = Review(
        user_id=user_id,
        restaurant_id=body.restaurant_id,
        menu_item_id=body.menu_item_id,
        restaurant_name=restaurant.get("restaurantName"),
        restaurant_image=restaurant.get("photoURL"),
        rating=body.rating,
        comment=body.comment,
        images=body.images,
        likes=0,
    )
    review_id = database.create_document(database.REVIEWS, review)
    author = database.get_document(database.USERS, user_id)
    if author is not None and author["role"] == "customer":
        reviews = author.get("reviews") or []
        database.update_document(database.USERS, user_id, {"reviews": reviews + [review_id]})
    return review_id


@database.backend_call("Error updating review")
def update_review(review_id: str, user_id: str, updates: ReviewUpdate) -> Review:
    doc = database.get_document(database.REVIEWS, review_id)
    if doc is None:
        raise NotFoundError("Review not found")
    if doc["userId"] != user_id:
        raise AuthorizationError("You can only edit your own reviews")
    database.update_document(database.REVIEWS, review_id, updates.model_dump(by_alias=True, exclude_none=True))
    return Review.model_validate(database.get_document(database.REVIEWS, review_id))
