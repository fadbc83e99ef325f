"""
Response models for the Communication Identity service.
"""

import datetime
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

# Fractions are padded or cut to 6 digits; older fromisoformat accepts only 3 or 6.
_FRACTION_RE = re.compile(r'(?<=\d\d:\d\d)\.(\d+)')


def parse_timestamp(value: str) -> datetime.datetime:
    """Parse an ISO 8601 timestamp into an aware datetime (UTC if unqualified)."""
    if not isinstance(value, str):
        raise TypeError(f"timestamp must be a string, got {type(value).__name__}")
    normalized = _FRACTION_RE.sub(
        lambda m: '.' + m.group(1).ljust(6, '0')[:6], value.replace('Z', '+00:00')
    )
    moment = datetime.datetime.fromisoformat(normalized)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=datetime.timezone.utc)
    return moment


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_on: datetime.datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AccessToken':
        token = data['token']
        if not isinstance(token, str):
            raise TypeError("token must be a string")
        return cls(token=token, expires_on=parse_timestamp(data['expiresOn']))


@dataclass(frozen=True)
class IdentityTokenResult:
    """Result of creating an identity, with its token when scopes were requested."""

    identity_id: str
    access_token: Optional[AccessToken] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IdentityTokenResult':
        identity_id = data['identity']['id']
        if not isinstance(identity_id, str):
            raise TypeError("identity.id must be a string")
        raw_token = data.get('accessToken')
        return cls(
            identity_id=identity_id,
            access_token=AccessToken.from_dict(raw_token) if raw_token is not None else None,
        )


@dataclass(frozen=True)
class CommunicationError:
    """
    Machine-readable error returned by Communication Services endpoints.

    ``code`` is stable enough to branch on, though new codes may appear.
    The inner error is plain data: it is not chained as an exception cause.
    """

    code: str
    message: str
    target: Optional[str] = None
    details: Tuple['CommunicationError', ...] = field(default_factory=tuple)
    innererror: Optional['CommunicationError'] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CommunicationError':
        if not isinstance(data, dict):
            raise TypeError("error must be an object")
        details = data.get('details') or []
        if not isinstance(details, list):
            raise TypeError("error.details must be a list")
        inner = data.get('innererror')
        return cls(
            code=str(data.get('code') or ''),
            message=str(data.get('message') or ''),
            target=data.get('target') or None,
            details=tuple(cls.from_dict(d) for d in details),
            innererror=cls.from_dict(inner) if inner is not None else None,
        )

    def _lines(self, indent: str = '') -> List[str]:
        prefix = f"[target:{self.target}]" if self.target else ''
        lines = [f"{indent}{prefix}{self.code} - {self.message}"]
        if self.details:
            lines.append(f"{indent}details:")
            for detail in self.details:
                lines.extend(detail._lines(indent + '  '))
        if self.innererror is not None:
            lines.append(f"{indent}inner error:")
            lines.extend(self.innererror._lines(indent + '  '))
        return lines

    def __str__(self) -> str:
        return '\n'.join(self._lines())


def parse_error_envelope(data: Any) -> CommunicationError:
    """Decode ``{"error": {...}}``; raises on any other shape."""
    if not isinstance(data, dict) or not isinstance(data.get('error'), dict):
        raise ValueError("body is not an error envelope")
    return CommunicationError.from_dict(data['error'])
