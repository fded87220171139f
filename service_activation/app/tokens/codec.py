"""
Activation token codec.

A token carries four claims joined with ``|`` (identifier, expiry, plan,
nonce), followed by ``.`` and the lowercase-hex HMAC-SHA256 of that payload,
all wrapped in unpadded URL-safe base64::

    base64url("user-1|2030-01-01T00:00:00.000000Z|basic|a1b2c3d4.<hex sig>")

Verification is total: untrusted input never raises, it yields an
``Invalid`` result carrying one ``InvalidReason``. Checks run in a fixed
order (structure, then signature, then expiry) so that an expired but
authentic token can be told apart from a forged one.
"""

import base64
import binascii
import hashlib
import hmac
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from shared.errors import InvalidInputError
from shared.logging import get_logger

FIELD_DELIMITER = "|"
SIGNATURE_SEPARATOR = "."
EXPIRY_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

logger = get_logger("activation.tokens.codec")


class InvalidReason(str, Enum):
    """Why a token failed verification."""

    MALFORMED_ENCODING = "malformed_encoding"
    MALFORMED_PAYLOAD = "malformed_payload"
    MALFORMED_SIGNATURE_SECTION = "malformed_signature_section"
    SIGNATURE_MISMATCH = "signature_mismatch"
    INVALID_EXPIRY_FORMAT = "invalid_expiry_format"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Claims:
    """Claims carried by an activation token."""
    identifier: str
    expiry: datetime
    plan: str
    nonce: str


@dataclass(frozen=True)
class Valid:
    """Successful verification."""
    claims: Claims

    @property
    def identifier(self) -> str:
        return self.claims.identifier

    @property
    def expiry(self) -> datetime:
        return self.claims.expiry

    @property
    def plan(self) -> str:
        return self.claims.plan

    @property
    def nonce(self) -> str:
        return self.claims.nonce


@dataclass(frozen=True)
class Invalid:
    """Failed verification."""
    reason: InvalidReason


VerificationResult = Union[Valid, Invalid]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_expiry(expiry: datetime) -> str:
    """Serialize an instant as fixed-precision UTC text.

    Naive datetimes are taken to already be UTC.
    """
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=timezone.utc)
    return expiry.astimezone(timezone.utc).strftime(EXPIRY_FORMAT)


def parse_expiry(value: str) -> Optional[datetime]:
    """Parse ISO-8601 expiry text into an aware UTC datetime, or None."""
    text = value.strip()
    if not text:
        return None
    if text[-1] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def sign_payload(payload: str, secret: Union[str, bytes]) -> str:
    """Return the lowercase-hex HMAC-SHA256 of ``payload``."""
    key = secret.encode("utf-8") if isinstance(secret, str) else secret
    return hmac.new(key, payload.encode("utf-8"), hashlib.sha256).hexdigest()


def _b64url_encode(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _b64url_decode(token: str) -> str:
    if "=" in token:
        raise ValueError("padded token")
    padding = "=" * (-len(token) % 4)
    raw = base64.b64decode(token + padding, altchars=b"-_", validate=True)
    if base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=") != token:
        raise ValueError("non-canonical encoding")
    return raw.decode("utf-8")


def _check_field(name: str, value: str) -> None:
    if not isinstance(value, str):
        raise InvalidInputError(f"Claim '{name}' must be a string", details={"field": name})
    if FIELD_DELIMITER in value:
        raise InvalidInputError(
            f"Claim '{name}' must not contain '{FIELD_DELIMITER}'",
            details={"field": name}
        )


def encode_token(identifier: str, expiry: datetime, plan: str, nonce: str, secret: Union[str, bytes]) -> str:
    """Build a signed activation token from its claims.

    Raises InvalidInputError when a claim contains the field delimiter or the
    identifier is empty.
    """
    _check_field("identifier", identifier)
    _check_field("plan", plan)
    _check_field("nonce", nonce)
    if not identifier:
        raise InvalidInputError("Claim 'identifier' must not be empty", details={"field": "identifier"})

    payload = FIELD_DELIMITER.join([identifier, format_expiry(expiry), plan, nonce])
    signature = sign_payload(payload, secret)
    return _b64url_encode(f"{payload}{SIGNATURE_SEPARATOR}{signature}")


def encode_claims(claims: Claims, secret: Union[str, bytes]) -> str:
    """Encode a ``Claims`` value."""
    return encode_token(claims.identifier, claims.expiry, claims.plan, claims.nonce, secret)


def verify_token(token: str, secret: Union[str, bytes], now: Optional[datetime] = None) -> VerificationResult:
    """Decode and verify an activation token."""
    if not isinstance(token, str) or not token:
        return _reject(InvalidReason.MALFORMED_ENCODING)

    try:
        decoded = _b64url_decode(token)
    except (binascii.Error, ValueError):
        return _reject(InvalidReason.MALFORMED_ENCODING)

    payload, separator, provided_signature = decoded.rpartition(SIGNATURE_SEPARATOR)
    if not separator:
        return _reject(InvalidReason.MALFORMED_SIGNATURE_SECTION)

    fields = payload.split(FIELD_DELIMITER)
    if len(fields) != 4:
        return _reject(InvalidReason.MALFORMED_PAYLOAD)

    expected_signature = sign_payload(payload, secret)
    if not hmac.compare_digest(provided_signature.encode("utf-8"), expected_signature.encode("utf-8")):
        return _reject(InvalidReason.SIGNATURE_MISMATCH)

    identifier, expiry_text, plan, nonce = fields
    expiry = parse_expiry(expiry_text)
    if expiry is None:
        return _reject(InvalidReason.INVALID_EXPIRY_FORMAT)

    current = now or utc_now()
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    if expiry <= current:
        return _reject(InvalidReason.EXPIRED)

    return Valid(Claims(identifier=identifier, expiry=expiry, plan=plan, nonce=nonce))


def _reject(reason: InvalidReason) -> Invalid:
    logger.debug("Activation token rejected", reason=reason.value)
    return Invalid(reason)
