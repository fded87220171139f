"""
Client for the external translation provider.

The provider is only ever called after the activation gate has confirmed the
caller's session is live.
"""

from .client import TranslationClient, TranslationResult, is_valid_language_code

__all__ = ["TranslationClient", "TranslationResult", "is_valid_language_code"]
