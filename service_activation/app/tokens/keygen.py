"""
Activation key issuance helpers.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Union

from .codec import encode_token, format_expiry, utc_now

DEFAULT_DEV_SECRETS = ("replace_me", "demo_secret_change_me")

DEMO_PLANS = (
    ("demo-user-basic", "basic", 30),
    ("demo-user-premium", "premium", 90),
    ("demo-user-enterprise", "enterprise", 365),
)


@dataclass(frozen=True)
class IssuedKey:
    """An issued activation key and the claims it carries."""
    key: str
    identifier: str
    plan: str
    expiry: datetime
    days_valid: int

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "identifier": self.identifier,
            "plan": self.plan,
            "expiry": format_expiry(self.expiry),
            "days_valid": self.days_valid,
        }


def generate_nonce() -> str:
    return secrets.token_hex(8)


def generate_activation_key(
    identifier: str,
    plan: str,
    days_valid: int,
    secret: Union[str, bytes],
    now: Optional[datetime] = None,
) -> IssuedKey:
    """Issue a key for ``identifier`` valid for ``days_valid`` days from now."""
    expiry = (now or utc_now()) + timedelta(days=days_valid)
    key = encode_token(identifier, expiry, plan, generate_nonce(), secret)
    return IssuedKey(key=key, identifier=identifier, plan=plan, expiry=expiry, days_valid=days_valid)


def generate_demo_keys(secret: Union[str, bytes], now: Optional[datetime] = None) -> List[IssuedKey]:
    """Issue one key per demo plan."""
    return [
        generate_activation_key(identifier, plan, days, secret, now=now)
        for identifier, plan, days in DEMO_PLANS
    ]


def is_default_secret(secret: str) -> bool:
    return secret in DEFAULT_DEV_SECRETS
