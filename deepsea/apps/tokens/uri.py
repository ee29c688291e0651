"""
Token metadata URI templating.

A base URI template carries a single ``{id}`` marker which is replaced by
the token id rendered as 64 lowercase hex characters, zero-padded on the
left (the ERC-1155 metadata convention).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List
from urllib.parse import urlparse

from .errors import InvalidArgument

PLACEHOLDER = "{id}"
HEX_WIDTH = 64
MAX_TOKEN_ID = 2**256 - 1


def encode_token_id(token_id: int) -> str:
    """Render a token id as a fixed-width lowercase hex string"""
    if isinstance(token_id, bool) or not isinstance(token_id, int):
        raise InvalidArgument(f"Token id must be an integer, got {token_id!r}")
    if token_id < 0 or token_id > MAX_TOKEN_ID:
        raise InvalidArgument(f"Token id {token_id} is outside the uint256 range")
    return format(token_id, f"0{HEX_WIDTH}x")


def resolve(template: str, token_id: int) -> str:
    """
    Substitute the first ``{id}`` marker in ``template``.

    Text around the marker is copied verbatim. A template without a
    marker is returned unchanged.
    """
    head, marker, tail = template.partition(PLACEHOLDER)
    if not marker:
        return template
    return head + encode_token_id(token_id) + tail


@dataclass
class TemplateCheck:
    is_valid: bool
    has_id_placeholder: bool
    suggestions: List[str] = field(default_factory=list)


def is_valid_uri(uri: str) -> bool:
    parsed = urlparse(uri)
    return bool(parsed.scheme) and bool(parsed.netloc or parsed.path)


def validate_uri_template(template: str) -> TemplateCheck:
    """Check a base URI template and collect suggestions for the operator."""
    suggestions: List[str] = []

    is_valid = is_valid_uri(template)
    if not is_valid:
        suggestions.append("URI format is invalid")

    has_placeholder = PLACEHOLDER in template
    if not has_placeholder:
        suggestions.append("Consider adding {id} placeholder for dynamic token IDs")

    if not template.endswith("/") and "?" not in template and not has_placeholder:
        suggestions.append("URI should end with '/' or include query parameters")

    if not template.startswith("https://"):
        suggestions.append("Consider using HTTPS for security")

    return TemplateCheck(
        is_valid=is_valid,
        has_id_placeholder=has_placeholder,
        suggestions=suggestions,
    )
