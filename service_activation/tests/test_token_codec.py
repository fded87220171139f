"""
Tests for the activation token codec.
"""

import base64
import pytest
from datetime import datetime, timedelta, timezone

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_activation.app.tokens.codec import (
    Claims,
    Invalid,
    InvalidReason,
    Valid,
    encode_claims,
    encode_token,
    format_expiry,
    sign_payload,
    verify_token,
)
from shared.errors import InvalidInputError

SECRET = "test-secret"
NOW = datetime(2026, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)


def raw_token(text: str) -> str:
    """Encode arbitrary text the way tokens are wrapped."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def unwrap(token: str) -> str:
    padding = "=" * (-len(token) % 4)
    return base64.urlsafe_b64decode(token + padding).decode("utf-8")


def signed_token(payload: str, secret: str = SECRET) -> str:
    return raw_token(f"{payload}.{sign_payload(payload, secret)}")


class TestEncodeToken:
    """Test cases for token construction."""

    def test_token_is_url_safe_without_padding(self):
        """Test the wire form uses only the URL-safe alphabet."""
        token = encode_token("user~?+/", NOW + timedelta(days=1), "basic", "n" * 7, SECRET)

        assert "=" not in token
        assert "+" not in token
        assert "/" not in token

    def test_token_layout(self):
        """Test payload fields, separator and hex signature."""
        expiry = NOW + timedelta(days=30)
        token = encode_token("u1", expiry, "basic", "abc123", SECRET)

        decoded = unwrap(token)
        payload, signature = decoded.rsplit(".", 1)
        assert payload == f"u1|{format_expiry(expiry)}|basic|abc123"
        assert signature == sign_payload(payload, SECRET)
        assert len(signature) == 64
        assert signature == signature.lower()

    def test_expiry_serialization_is_canonical(self):
        """Test the same instant always yields the same token."""
        utc_expiry = datetime(2030, 5, 1, 10, 0, 0, tzinfo=timezone.utc)
        offset_expiry = utc_expiry.astimezone(timezone(timedelta(hours=2)))
        naive_expiry = utc_expiry.replace(tzinfo=None)

        token = encode_token("u1", utc_expiry, "basic", "n1", SECRET)
        assert encode_token("u1", offset_expiry, "basic", "n1", SECRET) == token
        assert encode_token("u1", naive_expiry, "basic", "n1", SECRET) == token
        assert format_expiry(utc_expiry) == "2030-05-01T10:00:00.000000Z"

    @pytest.mark.parametrize("field", ["identifier", "plan", "nonce"])
    def test_field_delimiter_rejected(self, field):
        """Test claims containing the field delimiter are refused."""
        claims = {"identifier": "u1", "plan": "basic", "nonce": "n1"}
        claims[field] = "bad|value"

        with pytest.raises(InvalidInputError) as exc_info:
            encode_token(claims["identifier"], NOW, claims["plan"], claims["nonce"], SECRET)

        assert exc_info.value.details["field"] == field

    def test_empty_identifier_rejected(self):
        """Test an empty identifier is refused."""
        with pytest.raises(InvalidInputError):
            encode_token("", NOW, "basic", "n1", SECRET)


class TestVerifyToken:
    """Test cases for token verification."""

    @pytest.mark.parametrize("identifier", [
        "u1",
        "user.name@example.com",
        "ünïcødé-☃",
        "with spaces and.dots.",
    ])
    def test_round_trip(self, identifier):
        """Test verify inverts encode for valid claims."""
        claims = Claims(identifier=identifier, expiry=NOW + timedelta(days=30), plan="premium", nonce="9f86d081")

        result = verify_token(encode_claims(claims, SECRET), SECRET, now=NOW)

        assert result == Valid(claims)
        assert result.identifier == identifier
        assert result.plan == "premium"

    def test_empty_plan_and_nonce_round_trip(self):
        """Test empty plan and nonce are carried through."""
        claims = Claims(identifier="u1", expiry=NOW + timedelta(hours=1), plan="", nonce="")

        assert verify_token(encode_claims(claims, SECRET), SECRET, now=NOW) == Valid(claims)

    def test_bytes_secret(self):
        """Test str and bytes secrets sign identically."""
        token = encode_token("u1", NOW + timedelta(days=1), "basic", "n1", SECRET)

        assert isinstance(verify_token(token, SECRET.encode("utf-8"), now=NOW), Valid)

    def test_any_signature_character_flip_is_detected(self):
        """Test flipping each signature character yields a mismatch."""
        token = encode_token("u1", NOW + timedelta(days=30), "basic", "n1", SECRET)
        payload, signature = unwrap(token).rsplit(".", 1)

        for index, char in enumerate(signature):
            replacement = "0" if char != "0" else "1"
            tampered = signature[:index] + replacement + signature[index + 1:]
            result = verify_token(raw_token(f"{payload}.{tampered}"), SECRET, now=NOW)
            assert result == Invalid(InvalidReason.SIGNATURE_MISMATCH)

    def test_payload_tampering_is_detected(self):
        """Test changing a claim invalidates the signature."""
        token = encode_token("u1", NOW + timedelta(days=30), "basic", "n1", SECRET)
        decoded = unwrap(token).replace("|basic|", "|enterprise|")

        assert verify_token(raw_token(decoded), SECRET, now=NOW) == Invalid(InvalidReason.SIGNATURE_MISMATCH)

    def test_wrong_secret(self):
        """Test a token signed with another secret is rejected."""
        token = encode_token("u1", NOW + timedelta(days=30), "basic", "n1", "secret-a")

        assert verify_token(token, "secret-b", now=NOW) == Invalid(InvalidReason.SIGNATURE_MISMATCH)

    def test_expiry_equal_to_now_is_expired(self):
        """Test expiry is exclusive of the present instant."""
        token = encode_token("u1", NOW, "basic", "n1", SECRET)

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.EXPIRED)

    def test_expiry_one_microsecond_ago_is_expired(self):
        """Test an expiry just before now is expired."""
        token = encode_token("u1", NOW - timedelta(microseconds=1), "basic", "n1", SECRET)

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.EXPIRED)

    def test_expiry_one_second_ahead_is_valid(self):
        """Test an expiry just after now is valid."""
        token = encode_token("u1", NOW + timedelta(seconds=1), "basic", "n1", SECRET)

        assert isinstance(verify_token(token, SECRET, now=NOW), Valid)

    def test_naive_now_treated_as_utc(self):
        """Test a naive reference time is compared as UTC."""
        token = encode_token("u1", NOW + timedelta(seconds=1), "basic", "n1", SECRET)

        assert isinstance(verify_token(token, SECRET, now=NOW.replace(tzinfo=None)), Valid)

    def test_signature_checked_before_expiry(self):
        """Test an expired forgery reports a mismatch, not expiry."""
        token = encode_token("u1", NOW - timedelta(days=1), "basic", "n1", "other-secret")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.SIGNATURE_MISMATCH)

    def test_expired_authentic_token_reports_expired(self):
        """Test an authentic expired token is distinguishable from a forgery."""
        token = encode_token("u1", NOW - timedelta(days=1), "basic", "n1", SECRET)

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.EXPIRED)

    @pytest.mark.parametrize("token", [
        "",
        "not base64!!",
        "a",
        "abc=def",
        raw_token("x") + "==",
    ])
    def test_malformed_encoding(self, token):
        """Test tokens that are not valid unpadded base64url."""
        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_ENCODING)

    def test_non_utf8_payload_is_malformed_encoding(self):
        """Test decoded bytes must be UTF-8."""
        token = base64.urlsafe_b64encode(b"\xff\xfe\xfd").decode("ascii").rstrip("=")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_ENCODING)

    def test_missing_signature_separator(self):
        """Test a token without a signature section."""
        token = raw_token("u1|someday|basic|n1")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_SIGNATURE_SECTION)

    def test_too_few_payload_fields(self):
        """Test a payload with three fields."""
        token = signed_token(f"u1|{format_expiry(NOW + timedelta(days=1))}|basic")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_PAYLOAD)

    def test_too_many_payload_fields(self):
        """Test a payload with five fields."""
        token = signed_token(f"u1|{format_expiry(NOW + timedelta(days=1))}|basic|n1|extra")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_PAYLOAD)

    def test_invalid_expiry_format(self):
        """Test an authentic token whose expiry is not a timestamp."""
        token = signed_token("u1|next tuesday|basic|n1")

        assert verify_token(token, SECRET, now=NOW) == Invalid(InvalidReason.INVALID_EXPIRY_FORMAT)

    def test_millisecond_expiry_accepted(self):
        """Test expiries issued with millisecond precision still verify."""
        token = signed_token("u1|2030-01-01T00:00:00.000Z|basic|n1")

        result = verify_token(token, SECRET, now=NOW)

        assert isinstance(result, Valid)
        assert result.expiry == datetime(2030, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("identifier", ["u", "u1", "u12", "u123"])
    def test_only_canonical_final_character_verifies(self, identifier):
        """Test rewriting the last character never yields another valid token."""
        token = encode_token(identifier, NOW + timedelta(days=1), "basic", "n1", SECRET)
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"

        for char in alphabet:
            variant = token[:-1] + char
            result = verify_token(variant, SECRET, now=NOW)
            if variant == token:
                assert isinstance(result, Valid)
            else:
                assert isinstance(result, Invalid)

    def test_unused_trailing_bits_rejected(self):
        """Test a final character carrying stray low bits is malformed encoding."""
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        token = next(
            candidate for candidate in (
                encode_token(identifier, NOW + timedelta(days=1), "basic", "n1", SECRET)
                for identifier in ("u", "u1", "u12")
            )
            if len(candidate) % 4 in (2, 3)
        )
        last = alphabet.index(token[-1])
        variant = token[:-1] + alphabet[last ^ 1]

        assert unwrap(variant) == unwrap(token)
        assert verify_token(variant, SECRET, now=NOW) == Invalid(InvalidReason.MALFORMED_ENCODING)
