"""
Sanitization primitives applied to every value that crosses the API boundary.
"""

from __future__ import annotations

import ipaddress
import json
import re
from typing import Any, Optional
from urllib.parse import urlparse

import bleach
from email_validator import EmailNotValidError, validate_email

from roomielab.config import get_settings

MAX_STRING_LENGTH = 1000
MAX_ARRAY_ITEMS = 20
MAX_OBJECT_DEPTH = 5
DEFAULT_MAX_SIZE_KB = 10
MAX_URL_LENGTH = 2048

MAX_DEPTH_SENTINEL = "[MAX_DEPTH_EXCEEDED]"

# HTML/SQL/shell metacharacters removed before the markup pass.
DANGEROUS_CHARS_RE = re.compile(r"[<>'\"`\x00]")
# An entity cut in half by the final length cap, e.g. "&am".
TRAILING_PARTIAL_ENTITY_RE = re.compile(r"&[#a-zA-Z0-9]*$")

ALLOWED_URL_SCHEMES = ("http", "https")
BLOCKED_HOST_PREFIXES = (
    "localhost",
    "127.",
    "10.",
    "192.168.",
    "169.254.",
    "0.",
) + tuple(f"172.{octet}." for octet in range(16, 32))
BLOCKED_HOST_SUFFIXES = (".local", ".internal", ".localhost")
# Dotted numeric hosts (octal, hex or short forms) that ipaddress will not parse.
NUMERIC_HOST_RE = re.compile(r"^(0x[0-9a-f]*|[0-9]+)(\.(0x[0-9a-f]*|[0-9]+))*\.?$")


def sanitize_string(value: Any, max_length: int = MAX_STRING_LENGTH) -> str:
    """Trim, strip dangerous characters, cap the length and drop all markup.

    Non-string input yields an empty string.
    """
    if not isinstance(value, str):
        return ""
    cleaned = DANGEROUS_CHARS_RE.sub("", value.strip())[:max_length]
    cleaned = bleach.clean(cleaned, tags=[], attributes={}, strip=True)
    if len(cleaned) > max_length:
        # Entity escaping ("&" -> "&amp;") can push the text past the cap.
        cleaned = TRAILING_PARTIAL_ENTITY_RE.sub("", cleaned[:max_length])
    return cleaned


def sanitize_array(values: Any, max_items: int = MAX_ARRAY_ITEMS) -> list:
    """Sanitize strings element-wise, drop empties and cap the length."""
    if not isinstance(values, list):
        return []
    result = []
    for item in values:
        if isinstance(item, str):
            item = sanitize_string(item)
            if not item:
                continue
        result.append(item)
        if len(result) >= max_items:
            break
    return result


def sanitize_object(
    value: Any, max_depth: int = MAX_OBJECT_DEPTH, _depth: int = 0
) -> Any:
    """Recursively sanitize a JSON-like structure.

    Anything nested deeper than ``max_depth`` is replaced with
    ``MAX_DEPTH_SENTINEL``. Scalars other than strings pass through.
    """
    if _depth > max_depth:
        return MAX_DEPTH_SENTINEL
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return [sanitize_object(item, max_depth, _depth + 1) for item in value]
    if isinstance(value, dict):
        clean = {}
        for key, item in value.items():
            clean_key = sanitize_string(key) if isinstance(key, str) else ""
            if not clean_key:
                continue
            clean[clean_key] = sanitize_object(item, max_depth, _depth + 1)
        return clean
    return value


def sanitize(value: Any) -> Any:
    """Dispatch to the sanitizer matching the value's shape."""
    if isinstance(value, str):
        return sanitize_string(value)
    if isinstance(value, list):
        return sanitize_array(value)
    return sanitize_object(value)


def serialized_size(value: Any) -> int:
    return len(
        json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    )


def validate_object_size(value: Any, max_kb: float = DEFAULT_MAX_SIZE_KB) -> bool:
    """Return True if the compact JSON encoding fits in ``max_kb`` kilobytes."""
    try:
        size = serialized_size(value)
    except (TypeError, ValueError):
        return False
    return size <= max_kb * 1024


def _is_internal_host(host: str) -> bool:
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        ip = None
    if ip is not None:
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_reserved
            or ip.is_unspecified
            or ip.is_multicast
        )
    if NUMERIC_HOST_RE.match(host):
        return True
    return host.startswith(BLOCKED_HOST_PREFIXES) or host.endswith(
        BLOCKED_HOST_SUFFIXES
    )


def is_safe_url(candidate: Any, production: Optional[bool] = None) -> bool:
    """Allow-list gate for user-supplied URLs.

    Only http(s) URLs with a dotted host pass. In production, hosts that
    point at loopback, private or otherwise internal addresses are rejected.
    """
    if not isinstance(candidate, str) or not candidate:
        return False
    if len(candidate) > MAX_URL_LENGTH:
        return False
    try:
        parsed = urlparse(candidate)
        host = parsed.hostname
        if parsed.port == 0:
            return False
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES:
        return False
    if not host or "." not in host:
        return False
    if production is None:
        production = get_settings().is_production
    if production and _is_internal_host(host.lower()):
        return False
    return True


def normalize_email(value: Any) -> Optional[str]:
    """Return the normalised address, or None if it is not a valid email."""
    if not isinstance(value, str):
        return None
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return None
    return result.normalized.lower()
