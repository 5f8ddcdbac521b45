"""
Application Layer

The aiohttp web application that receives OAuth callbacks and serves stored credentials.

Key Components:
- cli.py: Entry point, logging configuration
- server.py: Application factory, middleware and lifecycle (store, HTTP session, metrics)
- config.py: Configuration management using pydantic-settings, AppKeys for dependency injection
- metrics.py: Metrics backends
- cors.py: CORS response headers
- handlers/: Request handlers
- util/: Administrative command line utilities

Endpoints:
- GET / - Health payload
- GET /meta/auth/url - Consent dialog URL
- GET /meta/auth/callback - OAuth callback, runs the credential exchange
- GET /meta/tokens - Paginated list of stored credentials
- GET /meta/tokens/{id} - Single stored credential
- GET /internal/alive, GET /internal/ready - Liveness and readiness probes
"""
