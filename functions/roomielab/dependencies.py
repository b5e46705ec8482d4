"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import json
import logging

import firebase_admin
from fastapi import Request
from firebase_admin import credentials, firestore

from roomielab.config import get_settings
from roomielab.db import DbClient, FirestoreDbClient, InMemoryDbClient
from roomielab.errors import ApiError, ErrorKind
from roomielab.identity import AuthClient, FirebaseAuthClient, InMemoryAuthClient

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_auth_client: AuthClient | None = None


def _use_in_memory() -> bool:
    settings = get_settings()
    return settings.use_in_memory_backends or not settings.firebase_configured


def get_firebase_app() -> firebase_admin.App:
    """Initialise the default Firebase app once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    settings = get_settings()
    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id
    if settings.firebase_credentials_path:
        credential = credentials.Certificate(settings.firebase_credentials_path)
    else:
        credential = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(credential, options or None)
    logger.info("Firebase Admin initialized for project %s", app.project_id)
    return app


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so in-memory state persists across requests.
    """
    global _db_client
    if _db_client:
        return _db_client

    if _use_in_memory():
        _db_client = InMemoryDbClient()
    else:
        _db_client = FirestoreDbClient(firestore.client(app=get_firebase_app()))
    return _db_client


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    if _use_in_memory():
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = FirebaseAuthClient(
            get_firebase_app(), web_api_key=get_settings().firebase_web_api_key
        )
    return _auth_client


def _reject_constant(name: str):
    raise ValueError(f"Unsupported JSON constant: {name}")


async def json_body(request: Request) -> dict:
    """Parse the request body as a JSON object; an empty body reads as {}."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        payload = json.loads(raw, parse_constant=_reject_constant)
    except ValueError as exc:
        raise ApiError(ErrorKind.VALIDATION, "Malformed JSON body") from exc
    if not isinstance(payload, dict):
        raise ApiError(ErrorKind.VALIDATION, "Request body must be a JSON object")
    return payload
