"""
Activation gate for protected routes.
"""

from fastapi import Request

from shared.logging import get_logger, set_identifier_context
from shared.errors import AuthenticationError
from .sessions.registry import SessionRegistry

IDENTIFIER_HEADER = "X-Identifier"


class ActivationGate:
    """FastAPI dependency that admits only identifiers with a live session."""

    def __init__(self, registry: SessionRegistry):
        self.registry = registry
        self.logger = get_logger("activation.auth")

    async def __call__(self, request: Request) -> str:
        identifier = request.headers.get(IDENTIFIER_HEADER)
        if not identifier:
            raise AuthenticationError("Missing identifier header")

        if not self.registry.is_active(identifier):
            self.logger.info("Request denied, no active session", path=request.url.path)
            raise AuthenticationError("Invalid or expired activation")

        set_identifier_context(identifier)
        request.state.identifier = identifier
        return identifier
