"""
Activation token package.

- codec: build and verify signed activation tokens.
- keygen: issue activation keys for a plan and validity window.
"""

from .codec import (
    Claims,
    Invalid,
    InvalidReason,
    Valid,
    VerificationResult,
    encode_claims,
    encode_token,
    verify_token,
)
from .keygen import IssuedKey, generate_activation_key, generate_demo_keys

__all__ = [
    "Claims",
    "Invalid",
    "InvalidReason",
    "Valid",
    "VerificationResult",
    "encode_claims",
    "encode_token",
    "verify_token",
    "IssuedKey",
    "generate_activation_key",
    "generate_demo_keys",
]
