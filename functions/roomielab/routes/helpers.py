"""Helpers shared by the resource routers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from roomielab.db import DbClient, Document
from roomielab.errors import ApiError, ErrorKind
from roomielab.firebase_constants import (
    FURNITURE_COLLECTION,
    PROJECTS_COLLECTION,
    USERS_COLLECTION,
)
from roomielab.identity import Identity


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def public_profile(data: dict, *, include_email: bool = True) -> dict:
    profile = {
        "uid": data.get("uid"),
        "displayName": data.get("displayName"),
        "profileImageUrl": data.get("profileImageUrl"),
    }
    if include_email:
        profile["email"] = data.get("email")
    return profile


def get_user_doc(db: DbClient, uid: str) -> Document:
    doc = db.get(USERS_COLLECTION, uid)
    if doc is None:
        raise ApiError(ErrorKind.NOT_FOUND, "User not found")
    return doc


def is_project_member(project: Document, uid: str) -> bool:
    return project.data.get("userId") == uid or uid in (
        project.data.get("collaborators") or []
    )


def load_project(
    db: DbClient, project_id: str, identity: Identity, *, owner_only: bool = False
) -> Document:
    """Fetch a project the caller may access.

    Owners may do anything; collaborators may only read and manage items.
    """
    project = db.get(PROJECTS_COLLECTION, project_id)
    if project is None:
        raise ApiError(ErrorKind.NOT_FOUND, "Project not found")
    if owner_only:
        if project.data.get("userId") != identity.uid:
            raise ApiError(ErrorKind.AUTHORIZATION, "Access denied")
    elif not is_project_member(project, identity.uid):
        raise ApiError(ErrorKind.AUTHORIZATION, "Access denied")
    return project


def load_furniture(db: DbClient, item_ids: Iterable[str]) -> list[dict]:
    """Resolve furniture ids in order, skipping items that no longer exist."""
    return [doc.as_dict() for doc in db.get_many(FURNITURE_COLLECTION, item_ids)]
