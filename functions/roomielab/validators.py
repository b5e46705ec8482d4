"""
Declarative request validation.

Each operation declares an ordered tuple of ``FieldRule`` descriptors. A single
interpreter, ``validate_request``, runs all of them, accumulates every failure
and returns the sanitized, allow-listed values. ``validated`` is the gate used
by route handlers: it raises a VALIDATION ``ApiError`` carrying the full error
list, so a handler only ever sees clean input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import phonenumbers
from phonenumbers import NumberParseException

from roomielab.config import get_settings
from roomielab.errors import ApiError, ErrorKind
from roomielab.sanitize import (
    is_safe_url,
    normalize_email,
    sanitize_array,
    sanitize_object,
    sanitize_string,
    validate_object_size,
)

MAX_COORDINATE = 1_000_000
MAX_TAGS = 10
MAX_DOCUMENT_ID_LENGTH = 256
COLLABORATOR_ROLES = ("viewer", "editor", "admin")
DEFAULT_COLLABORATOR_ROLE = "viewer"
VECTOR_FIELDS = ("position", "rotation", "scale")

_MISSING = object()


@dataclass(frozen=True)
class Check:
    """One constraint on a field value and the message reported on failure."""

    test: Callable[[Any], bool]
    message: str


@dataclass(frozen=True)
class FieldRule:
    """Constraints and sanitizer for one field of one request type.

    ``required`` holds the message reported when the field is absent or
    empty; ``None`` makes the field optional.
    """

    field: str
    checks: tuple[Check, ...] = ()
    required: Optional[str] = None
    location: str = "body"
    trim: bool = True
    sanitizer: Optional[Callable[[Any], Any]] = sanitize_string


@dataclass
class ValidationResult:
    values: dict = field(default_factory=dict)
    errors: list[dict] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# --- checks -----------------------------------------------------------------


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # An int too large to convert to float.
        return False


def length(min_len: int = 0, max_len: Optional[int] = None, message: str = "") -> Check:
    def test(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        if len(value) < min_len:
            return False
        return max_len is None or len(value) <= max_len

    return Check(test, message)


def is_email(message: str) -> Check:
    return Check(lambda value: normalize_email(value) is not None, message)


def is_boolean(message: str) -> Check:
    return Check(lambda value: isinstance(value, bool), message)


def is_array(message: str, max_items: Optional[int] = None) -> Check:
    return Check(
        lambda value: isinstance(value, list)
        and (max_items is None or len(value) <= max_items),
        message,
    )


def is_string_list(message: str, min_items: int = 1, max_items: int = 10) -> Check:
    def test(value: Any) -> bool:
        if not isinstance(value, list) or not min_items <= len(value) <= max_items:
            return False
        return all(
            isinstance(item, str) and item.strip() and "/" not in item for item in value
        )

    return Check(test, message)


def is_document_id(message: str) -> Check:
    def test(value: Any) -> bool:
        if not isinstance(value, str) or not 0 < len(value) <= MAX_DOCUMENT_ID_LENGTH:
            return False
        return "/" not in value and value not in (".", "..")

    return Check(test, message)


def is_object(message: str) -> Check:
    return Check(lambda value: isinstance(value, dict), message)


def is_number(message: str, minimum: Optional[float] = None) -> Check:
    return Check(
        lambda value: _is_number(value) and (minimum is None or value >= minimum),
        message,
    )


def is_coordinate(message: str, bound: float = MAX_COORDINATE) -> Check:
    return Check(lambda value: _is_number(value) and abs(value) <= bound, message)


def is_in(choices: tuple[str, ...], message: str) -> Check:
    return Check(lambda value: value in choices, message)


def is_phone_number(message: str) -> Check:
    def test(value: Any) -> bool:
        if not isinstance(value, str):
            return False
        try:
            number = phonenumbers.parse(value, None)
        except NumberParseException:
            return False
        return phonenumbers.is_valid_number(number)

    return Check(test, message)


def is_safe_url_or_null(message: str) -> Check:
    return Check(lambda value: value is None or is_safe_url(value), message)


def fits_size(setting: str, message: str) -> Check:
    """Size cap read from settings at evaluation time."""

    def test(value: Any) -> bool:
        return validate_object_size(value, getattr(get_settings(), setting))

    return Check(test, message)


def _vector_ok(vector: Any) -> bool:
    if not isinstance(vector, dict):
        return False
    return all(
        _is_number(vector[axis]) and abs(vector[axis]) <= MAX_COORDINATE
        for axis in ("x", "y", "z")
        if axis in vector
    )


def has_bounded_vectors(message: str) -> Check:
    """Every placed object in a scene list keeps its transforms in range."""

    def test(value: Any) -> bool:
        if not isinstance(value, list):
            return False
        for item in value:
            if not isinstance(item, dict):
                return False
            for name in VECTOR_FIELDS:
                if name in item and not _vector_ok(item[name]):
                    return False
        return True

    return Check(test, message)


# --- sanitizers -------------------------------------------------------------


def clean_email(value: Any) -> str:
    return normalize_email(value) or sanitize_string(value)


def clean_url(value: Any) -> Optional[str]:
    return value.strip() if isinstance(value, str) else None


def keep(value: Any) -> Any:
    return value


# --- interpreter ------------------------------------------------------------


def _lookup(source: Any, path: str) -> Any:
    current = source
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _assign(target: dict, path: str, value: Any) -> None:
    parts = path.split(".")
    for part in parts[:-1]:
        child = target.get(part)
        if not isinstance(child, dict):
            child = {}
            target[part] = child
        target = child
    target[parts[-1]] = value


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def validate_request(
    rules: tuple[FieldRule, ...],
    body: Optional[dict] = None,
    params: Optional[dict] = None,
    query: Optional[dict] = None,
) -> ValidationResult:
    """Run every rule and collect all failures along with sanitized values."""
    sources = {"body": body or {}, "params": params or {}, "query": query or {}}
    result = ValidationResult()

    for rule in rules:
        value = _lookup(sources[rule.location], rule.field)

        def fail(message: str) -> None:
            result.errors.append(
                {"field": rule.field, "location": rule.location, "message": message}
            )

        if value is _MISSING:
            if rule.required:
                fail(rule.required)
            continue

        if rule.trim and isinstance(value, str):
            value = value.strip()

        errors_before = len(result.errors)
        if rule.required and _is_empty(value):
            fail(rule.required)
        for check in rule.checks:
            if not check.test(value):
                fail(check.message)

        if value is not None and rule.sanitizer is not None:
            value = rule.sanitizer(value)
            if len(result.errors) == errors_before and isinstance(value, str):
                # Re-check the text that will be stored.
                if rule.required and _is_empty(value):
                    fail(rule.required)
                else:
                    for check in rule.checks:
                        if not check.test(value):
                            fail(check.message)
        _assign(result.values, rule.field, value)

    return result


def validated(
    rules: tuple[FieldRule, ...],
    body: Optional[dict] = None,
    params: Optional[dict] = None,
    query: Optional[dict] = None,
) -> dict:
    """Return sanitized values or raise a VALIDATION error listing every failure."""
    result = validate_request(rules, body=body, params=params, query=query)
    if not result.ok:
        raise ApiError(ErrorKind.VALIDATION, errors=result.errors)
    return result.values


# --- rule sets --------------------------------------------------------------


def _text(
    name: str,
    label: str,
    min_len: int,
    max_len: int,
    required: bool = False,
    location: str = "body",
) -> FieldRule:
    return FieldRule(
        name,
        checks=(
            length(
                min_len,
                max_len,
                f"{label} must be between {min_len} and {max_len} characters",
            ),
        ),
        required=f"{label} is required" if required else None,
        location=location,
    )


def _document_id(name: str, label: str, location: str = "body") -> FieldRule:
    return FieldRule(
        name,
        checks=(is_document_id(f"{label} must be a valid document ID"),),
        required=f"{label} is required",
        location=location,
    )


def _password(name: str, label: str) -> FieldRule:
    return FieldRule(
        name,
        checks=(length(6, 128, "Password must be at least 6 characters"),),
        required=f"{label} is required",
        trim=False,
        sanitizer=None,
    )


def _email(name: str = "email", required: bool = True) -> FieldRule:
    return FieldRule(
        name,
        checks=(is_email("Please provide a valid email"),),
        required="Email is required" if required else None,
        sanitizer=clean_email,
    )


def _url(name: str, label: str) -> FieldRule:
    return FieldRule(
        name,
        checks=(is_safe_url_or_null(f"{label} must be a safe http(s) URL"),),
        sanitizer=clean_url,
    )


def _tags(name: str = "tags") -> FieldRule:
    return FieldRule(
        name,
        checks=(is_array(f"Tags must be an array of at most {MAX_TAGS} items", MAX_TAGS),),
        sanitizer=lambda value: sanitize_array(value, max_items=MAX_TAGS),
    )


def _flag(name: str) -> FieldRule:
    return FieldRule(
        name, checks=(is_boolean(f"{name} must be a boolean"),), sanitizer=keep
    )


def _payload(name: str, label: str, setting: str, checks: tuple[Check, ...]) -> FieldRule:
    return FieldRule(
        name,
        checks=checks + (fits_size(setting, f"{label} is too large"),),
        sanitizer=sanitize_object,
    )


def _vector(name: str) -> tuple[FieldRule, ...]:
    label = name.capitalize()
    rules = [
        FieldRule(
            name,
            checks=(is_object(f"{label} must be an object"),),
            sanitizer=sanitize_object,
        )
    ]
    for axis in ("x", "y", "z"):
        rules.append(
            FieldRule(
                f"{name}.{axis}",
                checks=(
                    is_coordinate(
                        f"{label} {axis} must be a finite number no larger than "
                        f"{MAX_COORDINATE} in magnitude"
                    ),
                ),
                sanitizer=keep,
            )
        )
    return tuple(rules)


VECTOR_RULES = _vector("position") + _vector("rotation") + _vector("scale")

# auth

SIGNUP_RULES = (
    _email(),
    _password("password", "Password"),
    _text("displayName", "Display name", 2, 50, required=True),
)
LOGIN_RULES = (_document_id("uid", "User ID"),)
FORGOT_PASSWORD_RULES = (_email(),)
RESET_PASSWORD_RULES = (
    FieldRule(
        "oobCode", required="Reset code is required", trim=False, sanitizer=None
    ),
    _password("newPassword", "New password"),
)
CHANGE_PASSWORD_RULES = (_password("newPassword", "New password"),)

# users

CREATE_USER_RULES = (
    _email(),
    _text("firstName", "First name", 2, 50, required=True),
    _text("lastName", "Last name", 2, 50, required=True),
)
UPDATE_PROFILE_RULES = (
    _text("displayName", "Display name", 2, 50),
    _text("firstName", "First name", 2, 50),
    _text("lastName", "Last name", 2, 50),
    FieldRule(
        "phoneNumber",
        checks=(is_phone_number("Please provide a valid phone number"),),
    ),
    _url("profileImageUrl", "Profile image URL"),
    _payload(
        "preferences",
        "Preferences",
        "max_field_size_kb",
        (is_object("Preferences must be an object"),),
    ),
)
UPDATE_PREFERENCES_RULES = (
    _payload(
        "preferences",
        "Preferences",
        "max_field_size_kb",
        (is_object("Preferences must be an object"),),
    ),
)
UPDATE_PREFERENCE_RULES = (
    _text("key", "Preference key", 1, 100, required=True),
    FieldRule(
        "value",
        checks=(fits_size("max_field_size_kb", "Preference value is too large"),),
        trim=False,
        sanitizer=sanitize_object,
    ),
)
SEARCH_USERS_RULES = (
    FieldRule(
        "query",
        checks=(length(2, 100, "Search query must be at least 2 characters"),),
        required="Search query must be at least 2 characters",
        location="query",
    ),
)
USER_BY_EMAIL_RULES = (
    FieldRule(
        "email",
        checks=(is_email("Please provide a valid email"),),
        required="Email is required",
        location="query",
        sanitizer=clean_email,
    ),
)
BATCH_USERS_RULES = (
    FieldRule(
        "userIds",
        checks=(
            is_string_list(
                "userIds must be an array of 1 to 10 user IDs", min_items=1, max_items=10
            ),
        ),
        required="User IDs array is required",
        sanitizer=lambda value: sanitize_array(value, max_items=10),
    ),
)

# projects

_PROJECT_NAME = ("name", "Project name", 3, 100)
_DESCRIPTION = ("description", "Description", 10, 1000)

CREATE_PROJECT_RULES = (
    _text(*_PROJECT_NAME, required=True),
    _text(*_DESCRIPTION, required=True),
    _text("roomType", "Room type", 1, 50),
    _flag("isPublic"),
    _tags(),
)
UPDATE_PROJECT_RULES = (
    _text(*_PROJECT_NAME),
    _text(*_DESCRIPTION),
    _text("roomType", "Room type", 1, 50),
    _flag("isPublic"),
    _tags(),
)
PROJECT_ITEM_RULES = (_document_id("itemId", "Item ID"),)
SHARE_PROJECT_RULES = (_email(),)
ADD_COLLABORATOR_RULES = (
    _document_id("userId", "User ID"),
    FieldRule(
        "role",
        checks=(is_in(COLLABORATOR_ROLES, "Role must be viewer, editor, or admin"),),
    ),
)
UPDATE_ROLE_RULES = (
    FieldRule(
        "role",
        checks=(is_in(COLLABORATOR_ROLES, "Role must be viewer, editor, or admin"),),
        required="Role is required",
    ),
)

# designs

_CANVAS = _payload(
    "canvasData",
    "Canvas data",
    "max_canvas_size_kb",
    (is_object("Canvas data must be an object"),),
)
_SCENE_OBJECTS = _payload(
    "objects",
    "Design objects",
    "max_canvas_size_kb",
    (
        is_array("Objects must be an array"),
        has_bounded_vectors(
            "Each object's position, rotation and scale must hold finite numbers "
            f"no larger than {MAX_COORDINATE} in magnitude"
        ),
    ),
)
_DESIGN_NAME = ("name", "Design name", 3, 100)

CREATE_DESIGN_RULES = (
    _document_id("projectId", "Project ID"),
    _text(*_DESIGN_NAME, required=True),
    _CANVAS,
    _SCENE_OBJECTS,
    _url("imageUrl", "Image URL"),
)
UPDATE_DESIGN_RULES = (
    _text(*_DESIGN_NAME),
    _CANVAS,
    _SCENE_OBJECTS,
    _url("imageUrl", "Image URL"),
)
ADD_DESIGN_OBJECT_RULES = (
    _document_id("furnitureItemId", "Furniture item ID"),
) + VECTOR_RULES
UPDATE_DESIGN_OBJECT_RULES = VECTOR_RULES

# furniture

CREATE_FURNITURE_RULES = (
    _text("name", "Name", 3, 100, required=True),
    _text(*_DESCRIPTION, required=True),
    _text("category", "Category", 1, 50, required=True),
    FieldRule(
        "price",
        checks=(is_number("Price must be a positive number", minimum=0),),
        required="Price is required",
        sanitizer=keep,
    ),
    _text("roomType", "Room type", 1, 50),
    _tags(),
    _url("modelUrl", "Model URL"),
    _url("thumbnailUrl", "Thumbnail URL"),
    _flag("featured"),
)
SEARCH_FURNITURE_RULES = (
    FieldRule(
        "q",
        checks=(length(2, 100, "Search query must be at least 2 characters"),),
        required="Search query required",
        location="query",
    ),
)

# favorites / recently viewed

ITEM_REFERENCE_RULES = (_document_id("itemId", "Item ID"),)
