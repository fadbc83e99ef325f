"""
HMAC-SHA256 request signing for Communication Services endpoints.

A request is canonicalized into a three line string::

    POST
    <path>?<query>   (as the transport sends them)
    <date>;<host>;<content hash>

and signed with the base64-decoded access key. The service recomputes the
same string from the received request, so every byte matters.
"""

import base64
import datetime
import email.utils
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Union
from urllib.parse import urlsplit

import requests

from .constants import (
    AUTH_SCHEME,
    CONTENT_TYPE_JSON,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_TYPE,
    HEADER_MS_CONTENT_SHA256,
    HEADER_MS_DATE,
    SIGNED_HEADERS,
)
from .exceptions import SigningError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


def _utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def compute_content_hash(body: bytes) -> str:
    """Return base64(SHA-256(body))."""
    return base64.b64encode(hashlib.sha256(body).digest()).decode('ascii')


def format_http_date(moment: datetime.datetime) -> str:
    """
    Format a datetime as an HTTP date (``Wed, 01 Jan 2025 00:00:00 GMT``).

    Uses the email formatter rather than strftime, whose day and month
    names follow the process locale.
    """
    if moment.tzinfo is None:
        raise ValueError("moment must be timezone-aware")
    return email.utils.format_datetime(
        moment.astimezone(datetime.timezone.utc), usegmt=True
    )


def build_string_to_sign(path_and_query: str, date: str, host: str, content_hash: str) -> str:
    return f"POST\n{path_and_query}\n{date};{host};{content_hash}"


def _wire_target(url: str):
    """
    Return (path?query, host) exactly as requests will put them on the wire.

    requests normalizes URLs before sending (unreserved escapes are decoded,
    invalid characters encoded, dot segments removed), so the signed path is
    taken from its own URL preparation.
    """
    if not url:
        raise SigningError("url for signed request can not be empty")
    try:
        url.encode('utf-8')
    except UnicodeEncodeError as e:
        raise SigningError("string to sign is not valid utf-8") from e

    prepared = requests.PreparedRequest()
    try:
        prepared.prepare_url(url, None)
    except (requests.RequestException, ValueError) as e:
        raise SigningError(f"url for signed request is not usable: {e}") from e

    parts = urlsplit(prepared.url)
    # Drop userinfo; the host header never carries it.
    host = parts.netloc.rpartition('@')[2]
    if not host:
        raise SigningError(f"url for signed request has no host: {url!r}")
    return f"{parts.path}?{parts.query}", host


@dataclass(frozen=True)
class SignedHeaders:
    """Authentication material for exactly one outbound request."""

    date: str
    content_hash: str
    authorization: str

    def as_headers(self) -> Dict[str, str]:
        return {
            HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON,
            HEADER_MS_DATE: self.date,
            HEADER_MS_CONTENT_SHA256: self.content_hash,
            HEADER_AUTHORIZATION: self.authorization,
        }


class RequestSigner:
    """
    Signs POST requests with a shared access key.

    Args:
        secret: Decoded access key bytes
        clock: Callable returning the current aware datetime (for tests)
    """

    def __init__(self, secret: bytes, clock: Optional[Clock] = None):
        if not secret:
            raise SigningError("secret can not be empty")
        self._secret = bytes(secret)
        self._clock = clock or _utc_now

    def _signature(self, string_to_sign: str) -> str:
        try:
            message = string_to_sign.encode('utf-8')
        except UnicodeEncodeError as e:
            raise SigningError("string to sign is not valid utf-8") from e

        mac = hmac.new(self._secret, message, hashlib.sha256)
        return base64.b64encode(mac.digest()).decode('ascii')

    def _canonical(self, url: str, date: str, content_hash: str) -> str:
        path_and_query, host = _wire_target(url)
        return build_string_to_sign(path_and_query, date, host, content_hash)

    def sign(self, url: str, body: Union[bytes, str, None] = b'') -> SignedHeaders:
        """
        Produce signed headers for a POST to ``url``.

        The URL must be final, query string included: the query is part of
        the signed material.

        Raises:
            SigningError: If the URL is empty or the string to sign is not
                valid UTF-8
        """
        if body is None:
            body = b''
        elif isinstance(body, str):
            body = body.encode('utf-8')

        content_hash = compute_content_hash(body)
        date = format_http_date(self._clock())
        string_to_sign = self._canonical(url, date, content_hash)
        signature = self._signature(string_to_sign)

        logger.debug("Signed POST %s at %s", urlsplit(url).path, date)
        return SignedHeaders(
            date=date,
            content_hash=content_hash,
            authorization=f"{AUTH_SCHEME} SignedHeaders={SIGNED_HEADERS}&Signature={signature}",
        )

    def verify(self, url: str, body: bytes, headers: Mapping[str, str]) -> bool:
        """
        Check the signature carried by ``headers`` for a received request.

        Returns:
            True if the content hash and signature both match
        """
        lowered = {k.lower(): v for k, v in headers.items()}
        date = lowered.get(HEADER_MS_DATE.lower())
        content_hash = lowered.get(HEADER_MS_CONTENT_SHA256.lower())
        authorization = lowered.get(HEADER_AUTHORIZATION.lower())
        if not (date and content_hash and authorization):
            return False

        if not hmac.compare_digest(compute_content_hash(body or b''), content_hash):
            return False

        prefix = f"{AUTH_SCHEME} SignedHeaders={SIGNED_HEADERS}&Signature="
        if not authorization.startswith(prefix):
            return False

        try:
            expected = self._signature(self._canonical(url, date, content_hash))
        except SigningError:
            return False
        return hmac.compare_digest(expected, authorization[len(prefix):])
