"""
Payload Validation - JSON Schema checks for remote WordPress responses.

WordPress sites return whatever their plugins make of the REST API, so
post lists and individual posts are validated before they are trusted.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

logger = logging.getLogger(__name__)

RENDERED_FIELD_SCHEMA: Dict[str, Any] = {
    "anyOf": [
        {"type": "string"},
        {
            "type": "object",
            "properties": {"rendered": {"type": "string"}},
            "required": ["rendered"],
        },
    ]
}

REMOTE_POST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["id", "title", "content"],
    "properties": {
        "id": {"type": "integer", "minimum": 1},
        "title": RENDERED_FIELD_SCHEMA,
        "content": RENDERED_FIELD_SCHEMA,
        "excerpt": {"anyOf": [RENDERED_FIELD_SCHEMA, {"type": "null"}]},
        "slug": {"type": ["string", "null"]},
        "link": {"type": ["string", "null"]},
        "status": {"type": ["string", "null"]},
        "date": {"type": ["string", "null"]},
        "date_gmt": {"type": ["string", "null"]},
        "modified": {"type": ["string", "null"]},
        "modified_gmt": {"type": ["string", "null"]},
        "lang": {"type": ["string", "null"]},
        "language": {"type": ["string", "null"]},
        "locale": {"type": ["string", "null"]},
    },
}

POST_LIST_SCHEMA: Dict[str, Any] = {"type": "array"}

_post_validator = Draft7Validator(REMOTE_POST_SCHEMA)
_post_list_validator = Draft7Validator(POST_LIST_SCHEMA)


def _validate(
    validator: Draft7Validator, payload: Any
) -> Tuple[bool, Optional[str]]:
    try:
        errors = list(validator.iter_errors(payload))

        if not errors:
            return True, None

        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"


def validate_remote_post(payload: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate a single post object from /wp/v2/posts.

    Args:
        payload: Decoded JSON for one post

    Returns:
        Tuple of (is_valid, error_message)
    """
    return _validate(_post_validator, payload)


def validate_post_list(payload: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate the body of a /wp/v2/posts listing.

    Only the outer shape is checked here; individual posts are validated
    one at a time so that a single bad post does not discard the page.

    Args:
        payload: Decoded JSON body

    Returns:
        Tuple of (is_valid, error_message)
    """
    if payload is None:
        return False, "Response body is empty or not JSON"
    return _validate(_post_list_validator, payload)
