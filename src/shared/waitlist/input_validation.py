"""
Request body normalization and validation for waitlist submissions.
Accepts JSON and form bodies with several key aliases and reduces them to one shape.
"""

from typing import Any, Dict, Mapping, Optional

from fastapi import Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from src.shared.waitlist.schemas import WaitlistPayload

# Accepted keys, in priority order
USE_CASE_KEYS = ("useCase", "use_case", "intent", "description")
WEBSITE_KEYS = ("website", "company")

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


class InvalidPayloadError(Exception):
    """Raised when a submission does not pass validation."""

    def __init__(self, errors: Optional[list] = None):
        super().__init__("invalid_payload")
        self.errors = errors or []


async def parse_request_body(request: Request) -> Dict[str, Any]:
    """
    Decode the request body according to its content type.

    Malformed bodies are returned as an empty dict rather than raising, so every
    parse failure ends in the same "email required" validation error.

    Args:
        request: Incoming request

    Returns:
        Key/value mapping of the submitted fields
    """
    content_type = request.headers.get("content-type", "").lower()

    if "application/json" in content_type:
        try:
            body = await request.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    if any(form_type in content_type for form_type in FORM_CONTENT_TYPES):
        output = {}
        try:
            # Leaving the block closes any spooled upload files
            async with request.form() as form:
                for key, value in form.multi_items():
                    # Uploaded files contribute their filename
                    output[key] = value.filename if isinstance(value, UploadFile) else value
        except (MultiPartException, StarletteHTTPException):
            return {}
        return output

    return {}


def to_optional_string(value: Any) -> Optional[str]:
    """Trim a string value. Non-strings and blank strings become None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _first_present(raw: Mapping[str, Any], keys) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def normalize_payload(raw: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    """Reduce a decoded body to the email/use_case/website triple."""
    return {
        "email": to_optional_string(raw.get("email")),
        "use_case": to_optional_string(_first_present(raw, USE_CASE_KEYS)),
        "website": to_optional_string(_first_present(raw, WEBSITE_KEYS)),
    }


def validate_payload(normalized: Mapping[str, Optional[str]]) -> WaitlistPayload:
    """
    Validate a normalized submission.

    Raises:
        InvalidPayloadError if the email is missing or malformed, or a field is too long
    """
    try:
        return WaitlistPayload(**normalized)
    except ValidationError as e:
        raise InvalidPayloadError(e.errors()) from e
