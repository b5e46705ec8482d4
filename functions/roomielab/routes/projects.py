"""
Project routes: CRUD, furniture items, sharing and collaborators.

Only the owner may mutate a project or manage its collaborators; owners and
collaborators may read it and add or remove items.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from roomielab.auth import require_identity
from roomielab.db import DbClient
from roomielab.dependencies import get_db_client, json_body
from roomielab.errors import ApiError, ErrorKind
from roomielab.firebase_constants import PROJECTS_COLLECTION, USERS_COLLECTION
from roomielab.identity import Identity
from roomielab.routes.helpers import (
    get_user_doc,
    load_furniture,
    load_project,
    now_iso,
    public_profile,
)
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import (
    ADD_COLLABORATOR_RULES,
    CREATE_PROJECT_RULES,
    DEFAULT_COLLABORATOR_ROLE,
    PROJECT_ITEM_RULES,
    SHARE_PROJECT_RULES,
    UPDATE_PROJECT_RULES,
    UPDATE_ROLE_RULES,
    validated,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ApiResponse)
def list_projects(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    docs = db.query(
        PROJECTS_COLLECTION,
        [("userId", "==", identity.uid)],
        order_by="createdAt",
        descending=True,
    )
    return ok([doc.as_dict() for doc in docs])


@router.post("", response_model=ApiResponse, status_code=201)
def create_project(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(CREATE_PROJECT_RULES, body)
    timestamp = now_iso()
    project_id = db.add(
        PROJECTS_COLLECTION,
        {
            "userId": identity.uid,
            "name": values["name"],
            "description": values["description"],
            "roomType": values.get("roomType"),
            "isPublic": values.get("isPublic", False),
            "tags": values.get("tags", []),
            "collaborators": [],
            "collaboratorRoles": {},
            "items": [],
            "createdAt": timestamp,
            "updatedAt": timestamp,
        },
    )
    return ok({"projectId": project_id}, message="Project created")


@router.get("/{project_id}", response_model=ApiResponse)
def get_project(
    project_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    return ok(load_project(db, project_id, identity).as_dict())


@router.put("/{project_id}", response_model=ApiResponse)
def update_project(
    project_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    updates = validated(UPDATE_PROJECT_RULES, body)
    load_project(db, project_id, identity, owner_only=True)
    updates["updatedAt"] = now_iso()
    db.update(PROJECTS_COLLECTION, project_id, updates)
    return ok(message="Project updated")


@router.delete("/{project_id}", response_model=ApiResponse)
def delete_project(
    project_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    load_project(db, project_id, identity, owner_only=True)
    db.delete(PROJECTS_COLLECTION, project_id)
    return ok(message="Project deleted")


@router.post("/{project_id}/items", response_model=ApiResponse)
def add_item_to_project(
    project_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    item_id = validated(PROJECT_ITEM_RULES, body)["itemId"]
    project = load_project(db, project_id, identity)
    items = list(project.data.get("items") or [])
    if item_id not in items:
        items.append(item_id)
    db.update(PROJECTS_COLLECTION, project_id, {"items": items, "updatedAt": now_iso()})
    return ok(message="Item added to project")


@router.delete("/{project_id}/items/{item_id}", response_model=ApiResponse)
def remove_item_from_project(
    project_id: str,
    item_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    project = load_project(db, project_id, identity)
    items = [i for i in project.data.get("items") or [] if i != item_id]
    db.update(PROJECTS_COLLECTION, project_id, {"items": items, "updatedAt": now_iso()})
    return ok(message="Item removed from project")


@router.get("/{project_id}/items", response_model=ApiResponse)
def get_project_items(
    project_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    project = load_project(db, project_id, identity)
    return ok(load_furniture(db, project.data.get("items") or []))


def _add_collaborator(
    db: DbClient, project_id: str, project_data: dict, user_id: str, role: str
) -> bool:
    """Add ``user_id`` with ``role``; returns False if already a collaborator."""
    collaborators = list(project_data.get("collaborators") or [])
    if user_id in collaborators:
        return False
    roles = dict(project_data.get("collaboratorRoles") or {})
    collaborators.append(user_id)
    roles[user_id] = role
    db.update(
        PROJECTS_COLLECTION,
        project_id,
        {
            "collaborators": collaborators,
            "collaboratorRoles": roles,
            "updatedAt": now_iso(),
        },
    )
    return True


@router.post("/{project_id}/share", response_model=ApiResponse)
def share_project(
    project_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    email = validated(SHARE_PROJECT_RULES, body)["email"]
    project = load_project(db, project_id, identity, owner_only=True)
    matches = db.query(USERS_COLLECTION, [("email", "==", email)], limit=1)
    if not matches:
        raise ApiError(ErrorKind.NOT_FOUND, "User not found")
    collaborator_id = matches[0].id
    if collaborator_id == identity.uid:
        raise ApiError(ErrorKind.VALIDATION, "Cannot share a project with its owner")
    _add_collaborator(
        db, project_id, project.data, collaborator_id, DEFAULT_COLLABORATOR_ROLE
    )
    logger.info("Project %s shared with %s", project_id, collaborator_id)
    return ok(message="Project shared successfully")


@router.get("/{project_id}/collaborators", response_model=ApiResponse)
def get_collaborators(
    project_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    project = load_project(db, project_id, identity)
    roles = project.data.get("collaboratorRoles") or {}
    collaborators = [
        {
            **public_profile(doc.data),
            "role": roles.get(doc.id, DEFAULT_COLLABORATOR_ROLE),
        }
        for doc in db.get_many(USERS_COLLECTION, project.data.get("collaborators") or [])
    ]
    return ok(collaborators)


@router.post(
    "/{project_id}/collaborators", response_model=ApiResponse, status_code=201
)
def add_collaborator(
    project_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(ADD_COLLABORATOR_RULES, body)
    project = load_project(db, project_id, identity, owner_only=True)
    user_id = values["userId"]
    if user_id == identity.uid:
        raise ApiError(ErrorKind.VALIDATION, "The owner cannot be a collaborator")
    get_user_doc(db, user_id)
    role = values.get("role") or DEFAULT_COLLABORATOR_ROLE
    if not _add_collaborator(db, project_id, project.data, user_id, role):
        raise ApiError(ErrorKind.CONFLICT, "User is already a collaborator")
    return ok({"userId": user_id, "role": role}, message="Collaborator added")


@router.put("/{project_id}/collaborators/{user_id}", response_model=ApiResponse)
def update_collaborator_role(
    project_id: str,
    user_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    role = validated(UPDATE_ROLE_RULES, body)["role"]
    project = load_project(db, project_id, identity, owner_only=True)
    if user_id not in (project.data.get("collaborators") or []):
        raise ApiError(ErrorKind.NOT_FOUND, "Collaborator not found")
    roles = dict(project.data.get("collaboratorRoles") or {})
    roles[user_id] = role
    db.update(
        PROJECTS_COLLECTION,
        project_id,
        {"collaboratorRoles": roles, "updatedAt": now_iso()},
    )
    return ok({"userId": user_id, "role": role}, message="Collaborator role updated")


@router.delete("/{project_id}/collaborators/{user_id}", response_model=ApiResponse)
def remove_collaborator(
    project_id: str,
    user_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    project = load_project(db, project_id, identity, owner_only=True)
    collaborators = list(project.data.get("collaborators") or [])
    if user_id not in collaborators:
        raise ApiError(ErrorKind.NOT_FOUND, "Collaborator not found")
    collaborators.remove(user_id)
    roles = dict(project.data.get("collaboratorRoles") or {})
    roles.pop(user_id, None)
    db.update(
        PROJECTS_COLLECTION,
        project_id,
        {
            "collaborators": collaborators,
            "collaboratorRoles": roles,
            "updatedAt": now_iso(),
        },
    )
    return ok(message="Collaborator removed")
