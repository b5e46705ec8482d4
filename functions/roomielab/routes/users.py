"""
User profile, preference and lookup routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Query

from roomielab.accounts import delete_user_data
from roomielab.auth import require_identity
from roomielab.config import get_settings
from roomielab.db import DbClient
from roomielab.dependencies import get_auth_client, get_db_client, json_body
from roomielab.errors import ApiError, ErrorKind
from roomielab.firebase_constants import (
    DESIGNS_COLLECTION,
    PROJECTS_COLLECTION,
    USERS_COLLECTION,
    favorites_path,
)
from roomielab.identity import AuthClient, Identity
from roomielab.routes.helpers import get_user_doc, now_iso, public_profile
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import (
    BATCH_USERS_RULES,
    SEARCH_USERS_RULES,
    UPDATE_PREFERENCE_RULES,
    UPDATE_PREFERENCES_RULES,
    UPDATE_PROFILE_RULES,
    USER_BY_EMAIL_RULES,
    validated,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Upper bound of a Firestore prefix range query.
PREFIX_RANGE_END = "\uf8ff"


@router.get("/profile", response_model=ApiResponse)
def get_profile(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    return ok(get_user_doc(db, identity.uid).data)


@router.put("/profile", response_model=ApiResponse)
def update_profile(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
):
    updates = validated(UPDATE_PROFILE_RULES, body)
    updates["updatedAt"] = now_iso()
    db.update(USERS_COLLECTION, identity.uid, updates)

    if "displayName" in updates or updates.get("profileImageUrl"):
        auth_client.update_user(
            identity.uid,
            display_name=updates.get("displayName"),
            photo_url=updates.get("profileImageUrl"),
        )
    logger.info("Profile updated for UID %s", identity.uid)
    return ok(message="Profile updated successfully")


@router.get("/preferences", response_model=ApiResponse)
def get_preferences(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    user = get_user_doc(db, identity.uid)
    return ok(user.data.get("preferences") or {})


@router.put("/preferences", response_model=ApiResponse)
def update_preferences(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(UPDATE_PREFERENCES_RULES, {"preferences": body})
    db.update(
        USERS_COLLECTION,
        identity.uid,
        {"preferences": values["preferences"], "updatedAt": now_iso()},
    )
    return ok(message="Preferences updated successfully")


@router.patch("/preferences", response_model=ApiResponse)
def update_preference(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(UPDATE_PREFERENCE_RULES, body)
    user = get_user_doc(db, identity.uid)
    preferences = dict(user.data.get("preferences") or {})
    preferences[values["key"]] = values.get("value")
    db.update(
        USERS_COLLECTION,
        identity.uid,
        {"preferences": preferences, "updatedAt": now_iso()},
    )
    return ok(message=f"Preference '{values['key']}' updated successfully")


@router.put("/last-login", response_model=ApiResponse)
def update_last_login(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    db.update(USERS_COLLECTION, identity.uid, {"lastLogin": now_iso()})
    return ok(message="Last login updated")


@router.get("/stats", response_model=ApiResponse)
def get_user_stats(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    owned = [("userId", "==", identity.uid)]
    return ok(
        {
            "projectsCount": db.count(PROJECTS_COLLECTION, owned),
            "designsCount": db.count(DESIGNS_COLLECTION, owned),
            "favoritesCount": db.count(favorites_path(identity.uid)),
        }
    )


@router.get("/search", response_model=ApiResponse)
def search_users(
    query: str | None = Query(None),
    limit: int = Query(10, ge=1, le=50),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(SEARCH_USERS_RULES, query={"query": query} if query else {})
    term = values["query"]
    docs = db.query(
        USERS_COLLECTION,
        [
            ("displayName", ">=", term),
            ("displayName", "<=", term + PREFIX_RANGE_END),
        ],
        limit=limit,
    )
    users = [public_profile(doc.data) for doc in docs]
    return ok({"users": users, "count": len(users)})


@router.get("/by-email", response_model=ApiResponse)
def get_user_by_email(
    email: str | None = Query(None),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(USER_BY_EMAIL_RULES, query={"email": email} if email else {})
    docs = db.query(USERS_COLLECTION, [("email", "==", values["email"])], limit=1)
    if not docs:
        raise ApiError(ErrorKind.NOT_FOUND, "User not found")
    return ok(public_profile(docs[0].data))


@router.post("/batch", response_model=ApiResponse)
def get_users_by_ids(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(BATCH_USERS_RULES, body)
    docs = db.get_many(USERS_COLLECTION, values["userIds"])
    users = [public_profile(doc.data) for doc in docs]
    return ok({"users": users, "count": len(users)})


@router.delete("/account", response_model=ApiResponse)
def delete_account(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
):
    delete_user_data(
        db,
        auth_client,
        identity.uid,
        max_workers=get_settings().cascade_delete_workers,
    )
    return ok(message="Account deleted successfully")


@router.get("/{user_id}/exists", response_model=ApiResponse)
def check_user_exists(
    user_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    return ok({"exists": db.get(USERS_COLLECTION, user_id) is not None})


@router.get("/{user_id}", response_model=ApiResponse)
def get_user_by_id(
    user_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    user = get_user_doc(db, user_id)
    return ok(public_profile(user.data, include_email=False))
