"""Waitlist routes: signup submission with honeypot and per-IP daily rate limiting."""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from src.shared.database import get_db
from src.shared.waitlist.database import WaitlistStore
from src.shared.waitlist.edge_metadata import get_edge_context, read_edge_snapshot
from src.shared.waitlist.input_validation import (
    InvalidPayloadError,
    normalize_payload,
    parse_request_body,
    validate_payload
)
from src.shared.waitlist.rate_limit_utils import (
    check_rate_limit,
    get_client_ip,
    get_now,
    get_rate_limit_per_day,
    seconds_until_next_utc_day
)
from src.shared.waitlist.schemas import WaitlistErrorResponse, WaitlistResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/waitlist", tags=["waitlist"])

HONEYPOT_RESPONSE = WaitlistResponse(message="Thanks for your interest.")
INVALID_PAYLOAD_RESPONSE = WaitlistErrorResponse(
    error="invalid_payload",
    message="Please submit a valid email address."
)
RATE_LIMITED_RESPONSE = WaitlistErrorResponse(
    error="rate_limited",
    message="Rate limit reached. Please try again tomorrow."
)


def get_store(db: Session = Depends(get_db)) -> WaitlistStore:
    """Dependency wrapping the request's database session."""
    return WaitlistStore(db)


def _honeypot_response(ip_address: str) -> JSONResponse:
    # Pretend success so bots get no signal that they were detected
    logger.info(f"Waitlist honeypot triggered from {ip_address}")
    return JSONResponse(status_code=status.HTTP_200_OK, content=HONEYPOT_RESPONSE.model_dump())


@router.options("", status_code=status.HTTP_204_NO_CONTENT)
async def waitlist_options():
    """Advertise the methods accepted by the waitlist endpoint."""
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"Allow": "POST, OPTIONS"})


@router.post(
    "",
    response_model=WaitlistResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        200: {"model": WaitlistResponse, "description": "Silently accepted"},
        400: {"model": WaitlistErrorResponse},
        429: {"model": WaitlistErrorResponse},
    },
)
async def submit_waitlist(
    request: Request,
    store: WaitlistStore = Depends(get_store),
    now: datetime = Depends(get_now),
    edge_context: Optional[Mapping[str, Any]] = Depends(get_edge_context)
):
    """
    Add an email to the waitlist.

    Accepts a JSON object or a form body. Fields:
    - email (required)
    - useCase / use_case / intent / description (optional, max 1200 characters)
    - website / company (honeypot, must stay empty)

    Resubmitting an email updates its existing entry. Each IP address may add at
    most WAITLIST_RATE_LIMIT_PER_DAY entries per UTC day.
    """
    ip_address = get_client_ip(request)
    normalized = normalize_payload(await parse_request_body(request))

    try:
        payload = validate_payload(normalized)
    except InvalidPayloadError:
        if normalized["website"]:
            return _honeypot_response(ip_address)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=INVALID_PAYLOAD_RESPONSE.model_dump()
        )

    if payload.website:
        return _honeypot_response(ip_address)

    limit = get_rate_limit_per_day()
    if not check_rate_limit(store, ip_address, now, limit):
        logger.warning(f"Waitlist rate limit reached for {ip_address} (limit {limit}/day)")
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content=RATE_LIMITED_RESPONSE.model_dump(),
            headers={"Retry-After": str(seconds_until_next_utc_day(now))}
        )

    email = payload.email.lower()
    snapshot = read_edge_snapshot(edge_context, request.headers)
    store.upsert_entry({
        "email": email,
        "use_case": payload.use_case,
        "ip_address": ip_address,
        "user_agent": request.headers.get("user-agent"),
        "accept_language": request.headers.get("accept-language"),
        **snapshot.to_columns(),
        "created_at": now,
        "updated_at": now,
    })

    logger.info(f"Waitlist signup stored for domain {email.rsplit('@', 1)[-1]}")
    return WaitlistResponse(message="You are on the waitlist.")
