"""
Activation Service package.

This package exposes the FastAPI application that activates signed keys and
gates the translation endpoints on session liveness:

- app.main: Application entrypoint that wires routes and lifecycle.
- app.tokens: Activation token codec and key issuance.
- app.sessions: In-memory session registry and its periodic sweeper.
- app.auth: Activation gate dependency for protected routes.
- app.translation: Client for the external translation provider.

Design notes:
- Keep the package import side-effects minimal; module import must not
  perform network calls or read the signing secret.
- Sessions live in process memory only and are lost on restart.
"""
