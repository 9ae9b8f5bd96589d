"""
Request Signer.

SharedKey authorization for the Log Analytics HTTP Data Collector API.
"""

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Optional

CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class SignedRequest:
    """Signature material for a single outbound request."""
    method: str
    resource: str
    date: str
    content_length: int
    authorization: str


def rfc1123_date(now: Optional[datetime] = None) -> str:
    """Format a time as an RFC 1123 date labelled GMT, independent of locale."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return format_datetime(now, usegmt=True)


def canonical_string(date: str, content_length: int, method: str, resource: str) -> str:
    """The newline-joined text that gets hashed."""
    return f"{method}\n{content_length}\n{CONTENT_TYPE}\nx-ms-date:{date}\n{resource}"


def sign(
    customer_id: str,
    shared_key: str,
    date: str,
    content_length: int,
    method: str,
    resource: str,
) -> str:
    """Return the Authorization header value for a request."""
    key = base64.b64decode(shared_key)
    message = canonical_string(date, content_length, method, resource).encode("utf-8")
    digest = hmac.new(key, message, hashlib.sha256).digest()
    return f"SharedKey {customer_id}:{base64.b64encode(digest).decode('ascii')}"


def sign_request(
    customer_id: str,
    shared_key: str,
    content_length: int,
    method: str = "POST",
    resource: str = "/api/logs",
    date: Optional[str] = None,
) -> SignedRequest:
    """Sign a request stamped with the current time unless a date is given."""
    date = date or rfc1123_date()
    return SignedRequest(
        method=method,
        resource=resource,
        date=date,
        content_length=content_length,
        authorization=sign(customer_id, shared_key, date, content_length, method, resource),
    )
