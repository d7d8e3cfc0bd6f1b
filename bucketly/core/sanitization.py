"""Sanitization helpers for user-generated content."""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlparse

import bleach
from werkzeug.utils import secure_filename

from bucketly import constants

logger = logging.getLogger(__name__)

_ESCAPES = (
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#x27;"),
    ("/", "&#x2F;"),
)
_UNESCAPES = tuple((escaped, raw) for raw, escaped in _ESCAPES) + (("&amp;", "&"),)


def _block_pattern(tag: str) -> re.Pattern[str]:
    return re.compile(rf"<{tag}\b[^<]*(?:(?!</{tag}>)<[^<]*)*</{tag}>", re.IGNORECASE)


_SCRIPT_RE = _block_pattern("script")
_STYLE_RE = _block_pattern("style")
_IFRAME_RE = _block_pattern("iframe")
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)
_DATA_HTML_RE = re.compile(r"data:text/html", re.IGNORECASE)
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")
_DANGEROUS_URL_RE = re.compile(r"^(javascript|data|vbscript|file):", re.IGNORECASE)
_SAFE_URL_RE = re.compile(r"^(https?:|mailto:|/|\./|\.\./)", re.IGNORECASE)

_SQL_PATTERNS = (
    re.compile(
        r"\b(SELECT|INSERT|UPDATE|DELETE|DROP|CREATE|ALTER|EXEC|EXECUTE)\b",
        re.IGNORECASE,
    ),
    re.compile(r"(--|#|/\*|\*/)"),
    re.compile(r"\bOR\b.*=.*", re.IGNORECASE),
    re.compile(r"\bAND\b.*=.*", re.IGNORECASE),
    re.compile(r"('|\")\s*(OR|AND)\s*('|\")", re.IGNORECASE),
    re.compile(r"UNION.*SELECT", re.IGNORECASE),
    re.compile(r";.*DROP", re.IGNORECASE),
)

DISPLAY_NAME_MAX_LENGTH = 100
FILENAME_MAX_LENGTH = 255


def sanitize_text(text: str | None) -> str:
    """Escape the characters that can open markup or attributes."""
    if not text:
        return ""
    for raw, escaped in _ESCAPES:
        text = text.replace(raw, escaped)
    return text


def sanitize_multiline_text(text: str | None) -> str:
    """Remove active content from free text, keep line breaks, then escape it."""
    if not text:
        return ""
    for pattern in (_SCRIPT_RE, _STYLE_RE, _IFRAME_RE):
        text = pattern.sub("", text)
    text = bleach.clean(text, tags=[], attributes={}, strip=True)
    text = _DATA_HTML_RE.sub("", _JS_PROTOCOL_RE.sub("", text))
    return sanitize_text(text)


def sanitize_url(url: str | None) -> str:
    """Return the URL when it is http(s), mailto or relative, otherwise ''."""
    if not url:
        return ""
    url = url.strip()
    if _DANGEROUS_URL_RE.match(url):
        return ""
    if _SAFE_URL_RE.match(url) or ":" not in url:
        return url
    return ""


def sanitize_filename(filename: str | None) -> str:
    """Reduce a client-supplied filename to a safe storage object name."""
    if not filename:
        return "file"
    sanitized = secure_filename(_CONTROL_RE.sub("", filename))
    if sanitized.startswith("."):
        sanitized = "_" + sanitized[1:]
    if len(sanitized) > FILENAME_MAX_LENGTH:
        stem, dot, extension = sanitized.rpartition(".")
        if dot:
            sanitized = f"{stem[:250]}.{extension}"
        else:
            sanitized = sanitized[:FILENAME_MAX_LENGTH]
    return sanitized or "file"


def sanitize_metadata(metadata: Any) -> dict[str, Any]:
    """Escape every string in a metadata mapping, recursing into nested dicts.

    Values that are neither strings, numbers, booleans, lists nor dicts are
    dropped.
    """
    if not isinstance(metadata, dict):
        return {}

    sanitized: dict[str, Any] = {}
    for key, value in metadata.items():
        safe_key = sanitize_text(str(key))
        if isinstance(value, str):
            sanitized[safe_key] = sanitize_text(value)
        elif isinstance(value, (bool, int, float)):
            sanitized[safe_key] = value
        elif isinstance(value, list):
            sanitized[safe_key] = [
                sanitize_text(item) if isinstance(item, str) else item
                for item in value
            ]
        elif isinstance(value, dict):
            sanitized[safe_key] = sanitize_metadata(value)
    return sanitized


def strip_html(html: str | None) -> str:
    """Remove tags and decode the entities produced by sanitize_text."""
    if not html:
        return ""
    text = bleach.clean(html, tags=[], attributes={}, strip=True)
    for escaped, raw in _UNESCAPES:
        text = text.replace(escaped, raw)
    return text


def detect_sql_injection(value: str | None) -> bool:
    if not value:
        return False
    return any(pattern.search(value) for pattern in _SQL_PATTERNS)


def sanitize_search_query(query: str | None) -> str:
    """Normalize free-text search input."""
    if not query:
        return ""
    query = _CONTROL_RE.sub("", query).strip()
    return query[: constants.SEARCH_QUERY_MAX_LENGTH].strip()


def create_safe_display_name(name: str | None) -> str:
    if not name:
        return ""
    safe = strip_html(_CONTROL_RE.sub("", name)).strip()
    return safe[:DISPLAY_NAME_MAX_LENGTH]


def sanitize_photo_url(url: str | None, allowed_domains: list[str]) -> str:
    """Only keep photo URLs served from one of the allowed hosts."""
    if not url:
        return ""
    try:
        parsed = urlparse(url)
    except ValueError:
        return ""
    hostname = parsed.hostname or ""
    if parsed.scheme not in ("http", "https") or not hostname:
        return ""

    if not any(
        hostname == domain or hostname.endswith(f".{domain}")
        for domain in allowed_domains
    ):
        logger.warning(f"Photo URL from untrusted domain: {hostname}")
        return ""
    return url


def sanitize_bio(bio: str | None) -> str:
    return sanitize_multiline_text(bio)[: constants.BIO_MAX_LENGTH]


def sanitize_reflection(reflection: str | None) -> str:
    return sanitize_multiline_text(reflection)[: constants.REFLECTION_MAX_LENGTH]
