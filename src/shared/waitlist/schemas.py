"""Pydantic schemas for waitlist API."""

from typing import Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_EMAIL_LENGTH = 320
MAX_USE_CASE_LENGTH = 1200
MAX_WEBSITE_LENGTH = 200


class WaitlistPayload(BaseModel):
    """Validated waitlist submission."""
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str
    use_case: Optional[str] = Field(default=None, max_length=MAX_USE_CASE_LENGTH)
    website: Optional[str] = Field(default=None, max_length=MAX_WEBSITE_LENGTH)  # Honeypot, hidden from real users

    @field_validator('email', mode='before')
    @classmethod
    def validate_email_address(cls, v):
        """
        Trim the email, enforce the length ceiling, then check syntax.

        The submitted value itself must be an address: display-name forms such as
        "Name <addr@host>" are rejected. email-validator also caps addresses at 254
        characters (RFC 5321), below the 320 column limit.
        """
        if not isinstance(v, str):
            raise ValueError("Email must be a string")
        v = v.strip()
        if len(v) > MAX_EMAIL_LENGTH:
            raise ValueError(f"Email must be no more than {MAX_EMAIL_LENGTH} characters")
        try:
            result = validate_email(v, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(str(e)) from e
        return result.normalized


class WaitlistResponse(BaseModel):
    """Schema for a successful (or silently accepted) submission."""
    ok: bool = True
    message: str


class WaitlistErrorResponse(BaseModel):
    """Schema for a rejected submission."""
    ok: bool = False
    error: str
    message: str


class HealthResponse(BaseModel):
    """Schema for the liveness endpoint."""
    ok: bool = True
    service: str
