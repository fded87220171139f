"""
Translation provider client.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError

LANGUAGE_CODE_PATTERN = re.compile(r"^[a-z]{2,3}(-[A-Z]{2})?$")

PROVIDER_ERROR_MESSAGES = {
    400: "Invalid request parameters or unsupported language",
    403: "Access denied. Check your API key or service account permissions",
    413: "Text too long. Please try with shorter text",
    429: "Rate limit exceeded. Please try again later",
}


def is_valid_language_code(code: str, allow_auto: bool = False) -> bool:
    """ISO 639-1/2 code with optional region, or ``auto`` where allowed."""
    if allow_auto and code == "auto":
        return True
    return bool(LANGUAGE_CODE_PATTERN.match(code))


@dataclass
class TranslationResult:
    """Result of a provider call."""
    ok: bool
    translated_text: Optional[str] = None
    detected_language: Optional[str] = None
    confidence: Optional[float] = None
    languages: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    status_code: Optional[int] = None


class TranslationClient:
    """Client for the external translation provider."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("activation.translation.client")

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=json,
                    headers=self._headers()
                )
        except httpx.HTTPError as e:
            self.logger.error("Translation provider HTTP error", path=path, error=str(e))
            raise ExternalServiceError(
                "translation",
                "Translation service unavailable",
                details={"http_error": str(e)}
            )

    def _failure(self, response: httpx.Response, default: str) -> TranslationResult:
        error = PROVIDER_ERROR_MESSAGES.get(response.status_code, default)
        self.logger.warning(
            "Translation provider error",
            status_code=response.status_code,
            error=error
        )
        return TranslationResult(ok=False, error=error, status_code=response.status_code)

    def _json_body(self, response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            self.logger.warning(
                "Translation provider returned an unreadable body",
                status_code=response.status_code,
                content_type=response.headers.get("content-type")
            )
            return None
        return data

    def _bad_response(self) -> TranslationResult:
        return TranslationResult(ok=False, error="Invalid response from translation service", status_code=502)

    async def translate(self, text: str, source_language: str, target_language: str) -> TranslationResult:
        """Translate ``text``; ``source_language="auto"`` lets the provider detect it."""
        if not is_valid_language_code(source_language, allow_auto=True) or not is_valid_language_code(target_language):
            return TranslationResult(
                ok=False,
                error="Invalid language code. Please use ISO 639-1 language codes (e.g., en, fr, es, de)",
                status_code=400
            )

        body: Dict[str, Any] = {"text": text, "target": target_language}
        if source_language != "auto":
            body["source"] = source_language

        response = await self._request("POST", "/translate", json=body)
        if response.status_code != 200:
            return self._failure(response, "Translation service unavailable")

        data = self._json_body(response)
        if data is None:
            return self._bad_response()
        translated = data.get("translatedText")
        if isinstance(translated, list):
            translated = translated[0] if translated else None
        return TranslationResult(
            ok=True,
            translated_text=translated,
            detected_language=data.get("detectedSourceLanguage")
        )

    async def detect_language(self, text: str) -> TranslationResult:
        """Detect the language of ``text``."""
        response = await self._request("POST", "/detect", json={"text": text})
        if response.status_code != 200:
            return self._failure(response, "Failed to detect language")

        data = self._json_body(response)
        if data is None:
            return self._bad_response()
        return TranslationResult(
            ok=True,
            detected_language=data.get("language"),
            confidence=data.get("confidence")
        )

    async def get_supported_languages(self) -> TranslationResult:
        """List languages supported by the provider."""
        response = await self._request("GET", "/languages")
        if response.status_code != 200:
            return self._failure(response, "Failed to fetch supported languages")

        data = self._json_body(response)
        if data is None:
            return self._bad_response()
        return TranslationResult(ok=True, languages=data.get("languages", []))

    async def check_health(self) -> str:
        """Return ``ok`` if the provider answers, ``error`` otherwise."""
        try:
            response = await self._request("GET", "/health")
        except ExternalServiceError:
            return "error"
        return "ok" if response.status_code == 200 else "error"
