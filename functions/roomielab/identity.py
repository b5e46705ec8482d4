"""
Identity-provider abstraction for Firebase Auth and an in-memory test implementation.

Provider failures are translated into ``ApiError`` kinds here so route
handlers behave the same against either backend.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

import requests
from firebase_admin import App
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from roomielab.errors import ApiError, ErrorKind

logger = logging.getLogger(__name__)

RESET_PASSWORD_ENDPOINT = (
    "https://identitytoolkit.googleapis.com/v1/accounts:resetPassword"
)
RESET_CODE_ERRORS = ("INVALID_OOB_CODE", "EXPIRED_OOB_CODE")


class TokenVerificationError(Exception):
    """Raised when a bearer token is invalid, expired or revoked."""


@dataclass
class Identity:
    """A verified caller, as attached to ``request.state.identity``."""

    uid: str
    email: Optional[str] = None
    claims: dict = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.claims.get("admin") is True


class AuthClient(Protocol):
    """Operations the API needs from the identity provider."""

    def verify_id_token(self, token: str) -> Identity:
        ...

    def create_user(self, email: str, password: str, display_name: str) -> str:
        ...

    def update_user(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        ...

    def delete_user(self, uid: str) -> None:
        ...

    def generate_password_reset_link(self, email: str) -> str:
        ...

    def confirm_password_reset(self, oob_code: str, new_password: str) -> str:
        ...


@dataclass
class InMemoryUser:
    uid: str
    email: str
    password: str
    display_name: str
    photo_url: Optional[str] = None


class InMemoryAuthClient:
    """Test double for Firebase Auth. Tokens are minted with ``issue_token``."""

    def __init__(self):
        self.users: dict[str, InMemoryUser] = {}
        self.tokens: dict[str, tuple[Identity, float]] = {}
        self.reset_codes: dict[str, str] = {}

    def reset(self) -> None:
        """Clear all users, tokens and reset codes (useful in tests)."""
        self.users.clear()
        self.tokens.clear()
        self.reset_codes.clear()

    def issue_token(
        self,
        uid: str,
        email: Optional[str] = None,
        *,
        expires_in: float = 3600,
        claims: Optional[dict] = None,
    ) -> str:
        token = uuid.uuid4().hex
        identity = Identity(uid=uid, email=email, claims=dict(claims or {}))
        self.tokens[token] = (identity, time.time() + expires_in)
        return token

    def verify_id_token(self, token: str) -> Identity:
        entry = self.tokens.get(token)
        if entry is None:
            raise TokenVerificationError("Unknown token")
        identity, expires_at = entry
        if expires_at <= time.time():
            raise TokenVerificationError("Token has expired")
        return identity

    def _find_by_email(self, email: str) -> Optional[InMemoryUser]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def _require(self, uid: str) -> InMemoryUser:
        user = self.users.get(uid)
        if user is None:
            raise ApiError(ErrorKind.NOT_FOUND, "User not found")
        return user

    def create_user(self, email: str, password: str, display_name: str) -> str:
        if self._find_by_email(email):
            raise ApiError(ErrorKind.CONFLICT, "Email already in use")
        uid = uuid.uuid4().hex
        self.users[uid] = InMemoryUser(
            uid=uid, email=email, password=password, display_name=display_name
        )
        return uid

    def update_user(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        user = self._require(uid)
        if display_name is not None:
            user.display_name = display_name
        if photo_url is not None:
            user.photo_url = photo_url
        if password is not None:
            user.password = password

    def delete_user(self, uid: str) -> None:
        self._require(uid)
        del self.users[uid]
        self.tokens = {
            token: entry
            for token, entry in self.tokens.items()
            if entry[0].uid != uid
        }

    def generate_password_reset_link(self, email: str) -> str:
        user = self._find_by_email(email)
        if user is None:
            raise ApiError(ErrorKind.NOT_FOUND, "No user found with this email")
        code = uuid.uuid4().hex
        self.reset_codes[code] = user.uid
        return f"https://example.test/reset-password?oobCode={code}"

    def confirm_password_reset(self, oob_code: str, new_password: str) -> str:
        uid = self.reset_codes.pop(oob_code, None)
        if uid is None or uid not in self.users:
            raise ApiError(ErrorKind.VALIDATION, "Invalid or expired reset code")
        user = self.users[uid]
        user.password = new_password
        return user.email


class FirebaseAuthClient:
    """Firebase Admin SDK implementation.

    Password-reset confirmation is not exposed by the Admin SDK, so it goes
    through the Identity Toolkit REST API with the project's web API key.
    """

    def __init__(self, app: App, web_api_key: Optional[str] = None):
        self.app = app
        self.web_api_key = web_api_key

    def verify_id_token(self, token: str) -> Identity:
        try:
            decoded = firebase_auth.verify_id_token(
                token, app=self.app, check_revoked=True
            )
        except (ValueError, firebase_exceptions.FirebaseError) as exc:
            raise TokenVerificationError(str(exc)) from exc
        return Identity(uid=decoded["uid"], email=decoded.get("email"), claims=decoded)

    def create_user(self, email: str, password: str, display_name: str) -> str:
        try:
            record = firebase_auth.create_user(
                email=email,
                password=password,
                display_name=display_name,
                app=self.app,
            )
        except firebase_auth.EmailAlreadyExistsError as exc:
            raise ApiError(ErrorKind.CONFLICT, "Email already in use") from exc
        return record.uid

    def update_user(
        self,
        uid: str,
        *,
        display_name: Optional[str] = None,
        photo_url: Optional[str] = None,
        password: Optional[str] = None,
    ) -> None:
        changes = {}
        if display_name is not None:
            changes["display_name"] = display_name
        if photo_url is not None:
            changes["photo_url"] = photo_url
        if password is not None:
            changes["password"] = password
        if not changes:
            return
        try:
            firebase_auth.update_user(uid, app=self.app, **changes)
        except firebase_auth.UserNotFoundError as exc:
            raise ApiError(ErrorKind.NOT_FOUND, "User not found") from exc

    def delete_user(self, uid: str) -> None:
        try:
            firebase_auth.delete_user(uid, app=self.app)
        except firebase_auth.UserNotFoundError as exc:
            raise ApiError(ErrorKind.NOT_FOUND, "User not found") from exc

    def generate_password_reset_link(self, email: str) -> str:
        try:
            return firebase_auth.generate_password_reset_link(email, app=self.app)
        except firebase_auth.UserNotFoundError as exc:
            raise ApiError(
                ErrorKind.NOT_FOUND, "No user found with this email"
            ) from exc

    def confirm_password_reset(self, oob_code: str, new_password: str) -> str:
        if not self.web_api_key:
            raise ApiError(ErrorKind.INTERNAL, "Password reset is not configured")
        response = requests.post(
            RESET_PASSWORD_ENDPOINT,
            params={"key": self.web_api_key},
            json={"oobCode": oob_code, "newPassword": new_password},
            timeout=10,
        )
        if response.status_code == 400:
            message = response.json().get("error", {}).get("message", "")
            if any(code in message for code in RESET_CODE_ERRORS):
                raise ApiError(ErrorKind.VALIDATION, "Invalid or expired reset code")
            logger.warning("Password reset rejected by identity provider: %s", message)
            raise ApiError(ErrorKind.VALIDATION, "Password reset failed")
        response.raise_for_status()
        return response.json().get("email", "")
