"""Typed snapshot of the geo/network context attached to a request by the edge."""

import math
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping, Optional

from fastapi import Request

# Cloudflare uses these in CF-IPCountry for unknown origin and Tor exits
UNKNOWN_COUNTRY_CODES = {"XX", "T1"}


@dataclass
class EdgeSnapshot:
    country: Optional[str] = None
    region: Optional[str] = None
    region_code: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    continent: Optional[str] = None
    timezone: Optional[str] = None
    colo: Optional[str] = None
    asn: Optional[int] = None
    as_organization: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bot_score: Optional[int] = None
    tls_version: Optional[str] = None
    http_protocol: Optional[str] = None

    def to_columns(self) -> Dict[str, Any]:
        """Map to waitlist_entries column names (cf_ prefixed)."""
        return {f"cf_{key}": value for key, value in asdict(self).items()}


def get_edge_context(request: Request) -> Optional[Mapping[str, Any]]:
    """Dependency returning the edge request context (request.cf), if the host supplied one."""
    cf = request.scope.get("cf")
    return cf if isinstance(cf, Mapping) else None


def read_string(source: Optional[Mapping[str, Any]], key: str) -> Optional[str]:
    if not source:
        return None
    value = source.get(key)
    return value if isinstance(value, str) and value else None


def read_float(source: Optional[Mapping[str, Any]], key: str) -> Optional[float]:
    if not source:
        return None
    value = source.get(key)
    # bool is an int subclass but never a coordinate or score
    is_number = isinstance(value, (int, float)) and not isinstance(value, bool)
    if not is_number and not (isinstance(value, str) and value.strip()):
        return None
    try:
        parsed = float(value)
    except (ValueError, OverflowError):
        return None
    return parsed if math.isfinite(parsed) else None


def read_int(source: Optional[Mapping[str, Any]], key: str) -> Optional[int]:
    value = read_float(source, key)
    return None if value is None else int(value)  # truncates toward zero


def read_edge_snapshot(cf: Optional[Mapping[str, Any]], headers: Optional[Mapping[str, str]] = None) -> EdgeSnapshot:
    """
    Build an EdgeSnapshot from the edge context mapping.

    Every field is optional: missing or malformed values become None. When the
    context carries no country, the CF-IPCountry header is used instead.
    """
    bot_management = cf.get("botManagement") if cf else None
    if not isinstance(bot_management, Mapping):
        bot_management = None

    country = read_string(cf, "country")
    if country is None and headers is not None:
        header_country = (headers.get("cf-ipcountry") or "").strip().upper()
        if header_country and header_country not in UNKNOWN_COUNTRY_CODES:
            country = header_country

    return EdgeSnapshot(
        country=country,
        region=read_string(cf, "region"),
        region_code=read_string(cf, "regionCode"),
        city=read_string(cf, "city"),
        postal_code=read_string(cf, "postalCode"),
        continent=read_string(cf, "continent"),
        timezone=read_string(cf, "timezone"),
        colo=read_string(cf, "colo"),
        asn=read_int(cf, "asn"),
        as_organization=read_string(cf, "asOrganization"),
        latitude=read_float(cf, "latitude"),
        longitude=read_float(cf, "longitude"),
        bot_score=read_int(bot_management, "score"),
        tls_version=read_string(cf, "tlsVersion"),
        http_protocol=read_string(cf, "httpProtocol"),
    )
