"""
Design routes. A design belongs to one project and holds the canvas state and
the list of furniture objects placed in the AR scene.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, Depends

from roomielab.auth import require_identity
from roomielab.config import get_settings
from roomielab.db import DbClient, Document
from roomielab.dependencies import get_db_client, json_body
from roomielab.errors import ApiError, ErrorKind
from roomielab.firebase_constants import DESIGNS_COLLECTION
from roomielab.identity import Identity
from roomielab.routes.helpers import load_project, now_iso
from roomielab.sanitize import validate_object_size
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import (
    ADD_DESIGN_OBJECT_RULES,
    CREATE_DESIGN_RULES,
    UPDATE_DESIGN_OBJECT_RULES,
    UPDATE_DESIGN_RULES,
    VECTOR_FIELDS,
    validated,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_VECTOR_DEFAULTS = {
    "position": 0,
    "rotation": 0,
    "scale": 1,
}


def _vector(value, default: float) -> dict:
    value = value if isinstance(value, dict) else {}
    return {axis: value.get(axis, default) for axis in ("x", "y", "z")}


def _scene_object(values: dict, timestamp: str, object_id: str | None = None) -> dict:
    """Build a placed object with every transform present and only x, y, z kept."""
    scene_object = {
        "id": object_id or values.get("id") or uuid.uuid4().hex,
        "furnitureItemId": values.get("furnitureItemId"),
    }
    for name in VECTOR_FIELDS:
        scene_object[name] = _vector(values.get(name), _VECTOR_DEFAULTS[name])
    scene_object["createdAt"] = values.get("createdAt") or timestamp
    scene_object["updatedAt"] = timestamp
    return scene_object


def _load_design(db: DbClient, design_id: str, identity: Identity) -> Document:
    design = db.get(DESIGNS_COLLECTION, design_id)
    if design is None:
        raise ApiError(ErrorKind.NOT_FOUND, "Design not found")
    if design.data.get("userId") != identity.uid:
        raise ApiError(ErrorKind.AUTHORIZATION, "Access denied")
    return design


def _save_objects(db: DbClient, design_id: str, objects: list[dict]) -> None:
    if not validate_object_size(objects, get_settings().max_canvas_size_kb):
        raise ApiError(
            ErrorKind.VALIDATION,
            errors=[
                {
                    "field": "objects",
                    "location": "body",
                    "message": "Design objects is too large",
                }
            ],
        )
    db.update(
        DESIGNS_COLLECTION, design_id, {"objects": objects, "updatedAt": now_iso()}
    )


@router.get("", response_model=ApiResponse)
def list_designs(
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    docs = db.query(
        DESIGNS_COLLECTION,
        [("userId", "==", identity.uid)],
        order_by="createdAt",
        descending=True,
    )
    return ok([doc.as_dict() for doc in docs])


@router.post("", response_model=ApiResponse, status_code=201)
def create_design(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(CREATE_DESIGN_RULES, body)
    load_project(db, values["projectId"], identity)
    timestamp = now_iso()
    objects = [
        _scene_object(item, timestamp)
        for item in values.get("objects") or []
        if isinstance(item, dict)
    ]
    design_id = db.add(
        DESIGNS_COLLECTION,
        {
            "userId": identity.uid,
            "projectId": values["projectId"],
            "name": values["name"],
            "canvasData": values.get("canvasData") or {},
            "objects": objects,
            "imageUrl": values.get("imageUrl"),
            "createdAt": timestamp,
            "updatedAt": timestamp,
        },
    )
    logger.info("Design %s created in project %s", design_id, values["projectId"])
    return ok({"designId": design_id}, message="Design created")


@router.get("/project/{project_id}", response_model=ApiResponse)
def list_project_designs(
    project_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    load_project(db, project_id, identity)
    docs = db.query(
        DESIGNS_COLLECTION,
        [("projectId", "==", project_id)],
        order_by="createdAt",
        descending=True,
    )
    return ok([doc.as_dict() for doc in docs])


@router.get("/{design_id}", response_model=ApiResponse)
def get_design(
    design_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    return ok(_load_design(db, design_id, identity).as_dict())


@router.put("/{design_id}", response_model=ApiResponse)
def update_design(
    design_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    updates = validated(UPDATE_DESIGN_RULES, body)
    _load_design(db, design_id, identity)
    timestamp = now_iso()
    if "objects" in updates:
        updates["objects"] = [
            _scene_object(item, timestamp)
            for item in updates["objects"] or []
            if isinstance(item, dict)
        ]
    updates["updatedAt"] = timestamp
    db.update(DESIGNS_COLLECTION, design_id, updates)
    return ok(message="Design updated")


@router.delete("/{design_id}", response_model=ApiResponse)
def delete_design(
    design_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    _load_design(db, design_id, identity)
    db.delete(DESIGNS_COLLECTION, design_id)
    return ok(message="Design deleted")


@router.post("/{design_id}/objects", response_model=ApiResponse, status_code=201)
def add_object(
    design_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(ADD_DESIGN_OBJECT_RULES, body)
    design = _load_design(db, design_id, identity)
    scene_object = _scene_object(values, now_iso(), object_id=uuid.uuid4().hex)
    objects = list(design.data.get("objects") or [])
    objects.append(scene_object)
    _save_objects(db, design_id, objects)
    return ok(scene_object, message="Object added to design")


@router.put("/{design_id}/objects/{object_id}", response_model=ApiResponse)
def update_object(
    design_id: str,
    object_id: str,
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    values = validated(UPDATE_DESIGN_OBJECT_RULES, body)
    design = _load_design(db, design_id, identity)
    objects = list(design.data.get("objects") or [])
    for index, existing in enumerate(objects):
        if existing.get("id") == object_id:
            break
    else:
        raise ApiError(ErrorKind.NOT_FOUND, "Object not found")

    merged = dict(existing)
    for name in VECTOR_FIELDS:
        if name in values:
            current = _vector(existing.get(name), _VECTOR_DEFAULTS[name])
            merged[name] = {**current, **values[name]}
    objects[index] = _scene_object(merged, now_iso(), object_id=object_id)
    _save_objects(db, design_id, objects)
    return ok(objects[index], message="Object updated")


@router.delete("/{design_id}/objects/{object_id}", response_model=ApiResponse)
def remove_object(
    design_id: str,
    object_id: str,
    identity: Identity = Depends(require_identity),
    db: DbClient = Depends(get_db_client),
):
    design = _load_design(db, design_id, identity)
    objects = design.data.get("objects") or []
    remaining = [item for item in objects if item.get("id") != object_id]
    if len(remaining) == len(objects):
        raise ApiError(ErrorKind.NOT_FOUND, "Object not found")
    _save_objects(db, design_id, remaining)
    return ok(message="Object removed from design")
