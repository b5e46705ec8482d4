"""
Favorite furniture routes. A favorite record's existence is the favorited state.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from roomielab.auth import require_identity
from roomielab.db import DbClient
from roomielab.dependencies import get_db_client, json_body
from roomielab.firebase_constants import favorites_path
from roomielab.identity import Identity
from roomielab.routes.helpers import load_furniture, now_iso
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import ITEM_REFERENCE_RULES, validated

router = APIRouter()


@router.get("", response_model=ApiResponse)
def list_favorites(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    favorites = db.query(
        favorites_path(identity.uid), order_by="createdAt", descending=True
    )
    return ok(load_furniture(db, [fav.data["itemId"] for fav in favorites]))


@router.post("", response_model=ApiResponse)
def add_favorite(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    item_id = validated(ITEM_REFERENCE_RULES, body)["itemId"]
    db.set(
        favorites_path(identity.uid),
        item_id,
        {"itemId": item_id, "createdAt": now_iso()},
    )
    return ok(message="Added to favorites")


@router.delete("/{item_id}", response_model=ApiResponse)
def remove_favorite(
    item_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    db.delete(favorites_path(identity.uid), item_id)
    return ok(message="Removed from favorites")


@router.get("/check/{item_id}", response_model=ApiResponse)
def check_favorite(
    item_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    is_favorite = db.get(favorites_path(identity.uid), item_id) is not None
    return ok({"isFavorite": is_favorite})
