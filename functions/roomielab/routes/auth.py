"""
Signup, login bookkeeping, password management and account routes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from roomielab.auth import require_identity
from roomielab.config import get_settings
from roomielab.db import DbClient
from roomielab.dependencies import get_auth_client, get_db_client, json_body
from roomielab.firebase_constants import USERS_COLLECTION
from roomielab.identity import AuthClient, Identity
from roomielab.routes import users
from roomielab.routes.helpers import now_iso
from roomielab.schemas import ApiResponse, ok
from roomielab.validators import (
    CHANGE_PASSWORD_RULES,
    FORGOT_PASSWORD_RULES,
    LOGIN_RULES,
    RESET_PASSWORD_RULES,
    SIGNUP_RULES,
    validated,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/signup", response_model=ApiResponse, status_code=201)
def signup(
    body: dict = Depends(json_body),
    db: DbClient = Depends(get_db_client),
    auth_client: AuthClient = Depends(get_auth_client),
):
    values = validated(SIGNUP_RULES, body)
    uid = auth_client.create_user(
        values["email"], values["password"], values["displayName"]
    )
    timestamp = now_iso()
    db.set(
        USERS_COLLECTION,
        uid,
        {
            "uid": uid,
            "email": values["email"],
            "displayName": values["displayName"],
            "profileImageUrl": None,
            "preferences": {},
            "createdAt": timestamp,
            "updatedAt": timestamp,
            "lastLogin": timestamp,
        },
    )
    logger.info("User signed up: %s", uid)
    return ok(
        {"uid": uid, "email": values["email"], "displayName": values["displayName"]},
        message="User registered successfully",
    )


@router.post("/login", response_model=ApiResponse)
def login(body: dict = Depends(json_body), db: DbClient = Depends(get_db_client)):
    values = validated(LOGIN_RULES, body)
    db.update(USERS_COLLECTION, values["uid"], {"lastLogin": now_iso()})
    logger.info("User logged in: %s", values["uid"])
    return ok(message="Login recorded successfully")


@router.post("/logout", response_model=ApiResponse)
def logout():
    # Tokens are held by the client; nothing to revoke server-side.
    return ok(message="Logged out successfully")


@router.post("/forgot-password", response_model=ApiResponse)
def forgot_password(
    body: dict = Depends(json_body),
    auth_client: AuthClient = Depends(get_auth_client),
):
    values = validated(FORGOT_PASSWORD_RULES, body)
    link = auth_client.generate_password_reset_link(values["email"])
    logger.info("Password reset link generated")
    # The link is a credential; it is only echoed back outside production.
    data = None if get_settings().is_production else {"link": link}
    return ok(data, message="Password reset email sent")


@router.post("/reset-password", response_model=ApiResponse)
def reset_password(
    body: dict = Depends(json_body),
    auth_client: AuthClient = Depends(get_auth_client),
):
    values = validated(RESET_PASSWORD_RULES, body)
    auth_client.confirm_password_reset(values["oobCode"], values["newPassword"])
    logger.info("Password reset completed")
    return ok(message="Password reset successfully")


router.add_api_route(
    "/profile", users.get_profile, methods=["GET"], response_model=ApiResponse
)
router.add_api_route(
    "/profile", users.update_profile, methods=["PUT"], response_model=ApiResponse
)
router.add_api_route(
    "/account", users.delete_account, methods=["DELETE"], response_model=ApiResponse
)


@router.post("/change-password", response_model=ApiResponse)
def change_password(
    body: dict = Depends(json_body),
    identity: Identity = Depends(require_identity),
    auth_client: AuthClient = Depends(get_auth_client),
):
    values = validated(CHANGE_PASSWORD_RULES, body)
    auth_client.update_user(identity.uid, password=values["newPassword"])
    logger.info("Password changed for UID %s", identity.uid)
    return ok(message="Password changed successfully")


@router.get("/verify-token", response_model=ApiResponse)
def verify_token(identity: Identity = Depends(require_identity)):
    return ok({"uid": identity.uid, "email": identity.email}, message="Token is valid")
