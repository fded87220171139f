"""
Activation service for the Activation Access layer.
"""

from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from .auth import ActivationGate
from .sessions.registry import Accepted, SessionRegistry
from .sessions.sweeper import SessionSweeper
from .tokens.codec import InvalidReason
from .translation.client import TranslationClient, TranslationResult

SERVICE_NAME = "activation"
DEFAULT_PORT = 4000

GENERIC_REJECTION = "Invalid activation key"
EXPIRED_REJECTION = "Activation key has expired"


class ActivateRequest(BaseModel):
    """Request model for key activation."""
    key: Optional[str] = None


class TranslateRequest(BaseModel):
    """Request model for translation."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    source_language: Optional[str] = Field(default=None, alias="sourceLanguage")
    target_language: Optional[str] = Field(default=None, alias="targetLanguage")


class DetectLanguageRequest(BaseModel):
    """Request model for language detection."""
    text: Optional[str] = None


def public_rejection_reason(reason: InvalidReason) -> str:
    """Message shown to callers for a rejected key.

    Only expiry is reported distinctly; structural and signature failures share
    one message so responses do not help with forging.
    """
    if reason is InvalidReason.EXPIRED:
        return EXPIRED_REJECTION
    return GENERIC_REJECTION


def provider_status_code(result: TranslationResult) -> int:
    """HTTP status for a failed provider call."""
    if result.status_code in (400, 403, 413, 429):
        return result.status_code
    return 502


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


class ActivationService(BaseService):
    """Activation service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        registry: Optional[SessionRegistry] = None,
        translation_client: Optional[TranslationClient] = None
    ):
        config = config or get_config(SERVICE_NAME, DEFAULT_PORT)
        secret = config.require_activation_secret()
        super().__init__(SERVICE_NAME, config.port, config=config)

        self.registry = registry or SessionRegistry(secret)
        self.sweeper = SessionSweeper(
            self.registry,
            interval_seconds=self.config.session_sweep_interval_seconds,
            metrics=self.metrics
        )
        self.translation_client = translation_client or TranslationClient(
            self.config.translation_service_url,
            api_key=self.config.translation_api_key,
            timeout=self.config.translation_timeout_seconds
        )
        self.gate = ActivationGate(self.registry)

        self._setup_activation_routes()

    async def on_startup(self):
        await self.sweeper.start()

    async def on_shutdown(self):
        await self.sweeper.stop()

    def _setup_activation_routes(self):
        """Set up activation-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Activation Access - Activation Service",
                "version": "1.0.0"
            }

        @self.app.post("/api/activate")
        async def activate(request: ActivateRequest):
            """Activate a key and open a session for its identifier."""
            if not request.key or not request.key.strip():
                return JSONResponse(
                    status_code=400,
                    content={"ok": False, "reason": "Missing activation key"}
                )

            outcome = self.registry.activate(request.key.strip())
            self.metrics.set_gauge("active_sessions", len(self.registry))

            if isinstance(outcome, Accepted):
                self.metrics.increment_counter("activations_total", outcome="accepted")
                response = outcome.to_response()
                return {
                    "ok": True,
                    "identifier": response["identifier"],
                    "plan": response["plan"],
                    "expiry": response["expiry"]
                }

            self.metrics.increment_counter("activations_total", outcome=outcome.reason.value)
            self.logger.warning("Activation failed", reason=outcome.reason.value)
            return JSONResponse(
                status_code=400,
                content={"ok": False, "reason": public_rejection_reason(outcome.reason)}
            )

        @self.app.post("/api/translate")
        async def translate(request: TranslateRequest, identifier: str = Depends(self.gate)):
            """Translate text for an activated identifier."""
            if not request.text or not request.source_language or not request.target_language:
                return _error(400, "Missing required fields: text, sourceLanguage, targetLanguage")

            if not request.text.strip():
                return _error(400, "Text must be a non-empty string")

            if len(request.text) > self.config.max_text_length:
                return _error(
                    400,
                    f"Text is too long. Maximum length is {self.config.max_text_length} characters"
                )

            result = await self.translation_client.translate(
                request.text,
                request.source_language,
                request.target_language
            )
            self._record_provider_call("translate", result)

            if not result.ok:
                return _error(provider_status_code(result), result.error or "Translation service unavailable")

            return {
                "ok": True,
                "translatedText": result.translated_text,
                "detectedLanguage": result.detected_language
            }

        @self.app.post("/api/detect")
        async def detect(request: DetectLanguageRequest, identifier: str = Depends(self.gate)):
            """Detect the language of a text for an activated identifier."""
            if not request.text or not request.text.strip():
                return _error(400, "Text is required and must be a non-empty string")

            result = await self.translation_client.detect_language(request.text)
            self._record_provider_call("detect", result)

            if not result.ok:
                return _error(502, result.error or "Failed to detect language")

            return {
                "ok": True,
                "detectedLanguage": result.detected_language,
                "confidence": result.confidence
            }

        @self.app.get("/api/languages")
        async def languages(identifier: str = Depends(self.gate)):
            """List languages supported by the provider."""
            result = await self.translation_client.get_supported_languages()
            self._record_provider_call("languages", result)

            if not result.ok:
                return _error(502, result.error or "Failed to fetch supported languages")

            return {"ok": True, "languages": result.languages}

    def _record_provider_call(self, operation: str, result: TranslationResult):
        self.metrics.increment_counter(
            "translation_requests_total",
            operation=operation,
            status="ok" if result.ok else "error"
        )

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report session registry state and provider reachability."""
        return {
            "active_sessions": len(self.registry),
            "translation": await self.translation_client.check_health()
        }


def create_app(
    config: Optional[ServiceConfig] = None,
    registry: Optional[SessionRegistry] = None,
    translation_client: Optional[TranslationClient] = None
):
    """Create FastAPI application."""
    service = ActivationService(config=config, registry=registry, translation_client=translation_client)
    return service.app


if __name__ == "__main__":
    service = ActivationService()
    service.run()
