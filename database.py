"""
Database Helper Functions

MongoDB helpers used by the data-access modules. Documents use string ids
(`_id`) so profile-style records can be keyed by user id, the same way the
drafts and menus are keyed by user and restaurant id. Returned documents
expose the id as `id` instead of `_id`.
"""
import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from config import DATABASE_NAME, DATABASE_URL
from errors import BackendError, NotFoundError

logger = logging.getLogger(__name__)

USERS = "users"
RESTAURANTS = "restaurants"
RESTAURANT_DRAFTS = "restaurantDrafts"
MENUS = "menus"
MENU_ITEMS = "menuItems"
REVIEWS = "reviews"
ACCOUNTS = "accounts"
REVOKED_TOKENS = "revokedTokens"

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    # Reads get the driver's single retry; writes are attempted once.
    _client = MongoClient(
        DATABASE_URL,
        tz_aware=True,
        retryReads=True,
        retryWrites=False,
        serverSelectionTimeoutMS=10000,
    )
    db = _client[DATABASE_NAME]


def backend_call(message: str):
    """Turn driver failures into a BackendError carrying a user-facing message."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PyMongoError as e:
                logger.error("%s: %s", message, e)
                raise BackendError(message) from e
        return wrapper
    return decorator


def server_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(ObjectId())


def get_collection(collection_name: str):
    if db is None:
        raise BackendError("Database not configured")
    return db[collection_name]


def _to_dict(data: Union[BaseModel, dict]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, exclude_none=True)
    return dict(data)


def _out(doc: Optional[dict]) -> Optional[dict]:
    if doc is None:
        return None
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


def _strip_id(data: Dict[str, Any]) -> Dict[str, Any]:
    data.pop("_id", None)
    data.pop("id", None)
    return data


def get_document(collection_name: str, doc_id: str) -> Optional[dict]:
    return _out(get_collection(collection_name).find_one({"_id": doc_id}))


def get_documents(
    collection_name: str,
    filter_dict: Optional[dict] = None,
    order_by: Optional[Sequence[Tuple[str, int]]] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    cursor = get_collection(collection_name).find(filter_dict or {})
    if order_by:
        cursor = cursor.sort(list(order_by))
    if limit:
        cursor = cursor.limit(limit)
    return [_out(doc) for doc in cursor]


def create_document(collection_name: str, data: Union[BaseModel, dict], doc_id: Optional[str] = None) -> str:
    data_dict = _strip_id(_to_dict(data))
    now = server_timestamp()
    data_dict["createdAt"] = now
    data_dict["updatedAt"] = now
    data_dict["_id"] = doc_id or new_id()
    get_collection(collection_name).insert_one(data_dict)
    return data_dict["_id"]


def set_document(collection_name: str, doc_id: str, data: Union[BaseModel, dict], merge: bool = False) -> None:
    """Write a whole document (or shallow-merge its top-level fields) under `doc_id`."""
    data_dict = _strip_id(_to_dict(data))
    coll = get_collection(collection_name)
    if merge:
        coll.update_one({"_id": doc_id}, {"$set": data_dict}, upsert=True)
    else:
        coll.replace_one({"_id": doc_id}, data_dict, upsert=True)


def update_document(collection_name: str, doc_id: str, data: Union[BaseModel, dict]) -> None:
    """Shallow-merge fields into an existing document and stamp `updatedAt`."""
    data_dict = _strip_id(_to_dict(data))
    data_dict["updatedAt"] = server_timestamp()
    res = get_collection(collection_name).update_one({"_id": doc_id}, {"$set": data_dict})
    if res.matched_count == 0:
        raise NotFoundError(f"{collection_name}/{doc_id} not found")


def delete_document(collection_name: str, doc_id: str) -> bool:
    res = get_collection(collection_name).delete_one({"_id": doc_id})
    return res.deleted_count > 0


def ping() -> bool:
    if _client is None:
        return db is not None
    _client.admin.command("ping")
    return True
