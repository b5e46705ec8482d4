"""
Furniture catalog and recently-viewed routes.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from roomielab.auth import require_admin, require_identity
from roomielab.db import DbClient
from roomielab.dependencies import get_db_client, json_body
from roomielab.errors import ApiError, ErrorKind
from roomielab.firebase_constants import FURNITURE_COLLECTION, recently_viewed_path
from roomielab.identity import Identity
from roomielab.routes.helpers import load_furniture, now_iso
from roomielab.sanitize import sanitize_string
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import (
    CREATE_FURNITURE_RULES,
    ITEM_REFERENCE_RULES,
    SEARCH_FURNITURE_RULES,
    validated,
)

router = APIRouter()

FEATURED_LIMIT = 10
RECENTLY_VIEWED_LIMIT = 10


def _within_price(item: dict, min_price: float | None, max_price: float | None) -> bool:
    price = item.get("price")
    if min_price is None and max_price is None:
        return True
    if not isinstance(price, (int, float)):
        return False
    if min_price is not None and price < min_price:
        return False
    return max_price is None or price <= max_price


@router.get("", response_model=ApiResponse)
def list_furniture(
    category: str | None = Query(None),
    room_type: str | None = Query(None, alias="roomType"),
    min_price: float | None = Query(None, alias="minPrice", ge=0),
    max_price: float | None = Query(None, alias="maxPrice", ge=0),
    db: DbClient = Depends(get_db_client),
):
    filters = []
    if category:
        filters.append(("category", "==", sanitize_string(category)))
    if room_type:
        filters.append(("roomType", "==", sanitize_string(room_type)))
    items = [
        doc.as_dict()
        for doc in db.query(FURNITURE_COLLECTION, filters)
        if _within_price(doc.data, min_price, max_price)
    ]
    return ok(items)


@router.post("", response_model=ApiResponse, status_code=201)
def create_furniture(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    values = validated(CREATE_FURNITURE_RULES, body)
    timestamp = now_iso()
    item = {
        "featured": False,
        "tags": [],
        **values,
        "createdAt": timestamp,
        "updatedAt": timestamp,
    }
    item_id = db.add(FURNITURE_COLLECTION, item)
    return ok({"id": item_id}, message="Furniture item created")


@router.get("/featured", response_model=ApiResponse)
def featured_furniture(db: DbClient = Depends(get_db_client)):
    docs = db.query(
        FURNITURE_COLLECTION, [("featured", "==", True)], limit=FEATURED_LIMIT
    )
    return ok([doc.as_dict() for doc in docs])


@router.get("/search", response_model=ApiResponse)
def search_furniture(
    q: str | None = Query(None),
    db: DbClient = Depends(get_db_client),
):
    values = validated(SEARCH_FURNITURE_RULES, query={"q": q} if q else {})
    needle = values["q"].lower()
    items = []
    for doc in db.query(FURNITURE_COLLECTION):
        haystack = " ".join(
            str(doc.data.get(key) or "") for key in ("name", "description", "category")
        ).lower()
        if needle in haystack:
            items.append(doc.as_dict())
    return ok(items)


@router.get("/room/{room_type}", response_model=ApiResponse)
def furniture_by_room(room_type: str, db: DbClient = Depends(get_db_client)):
    docs = db.query(
        FURNITURE_COLLECTION, [("roomType", "==", sanitize_string(room_type))]
    )
    return ok([doc.as_dict() for doc in docs])


@router.get("/user/recently-viewed", response_model=ApiResponse)
def recently_viewed(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    views = db.query(
        recently_viewed_path(identity.uid),
        order_by="viewedAt",
        descending=True,
        limit=RECENTLY_VIEWED_LIMIT,
    )
    return ok(load_furniture(db, [view.data["itemId"] for view in views]))


@router.post("/user/track-view", response_model=ApiResponse)
def track_view(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    item_id = validated(ITEM_REFERENCE_RULES, body)["itemId"]
    db.set(
        recently_viewed_path(identity.uid),
        item_id,
        {"itemId": item_id, "viewedAt": now_iso()},
        merge=True,
    )
    return ok(message="View tracked")


@router.get("/{item_id}", response_model=ApiResponse)
def get_furniture(item_id: str, db: DbClient = Depends(get_db_client)):
    doc = db.get(FURNITURE_COLLECTION, item_id)
    if doc is None:
        raise ApiError(ErrorKind.NOT_FOUND, "Item not found")
    return ok(doc.as_dict())
