# Middleware package init
"""
UniHelp Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every HTTP request.

Middleware Chain (outermost first):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Rate Limit first: reject abusive clients before any other work
    2. Request ID: correlation id for logs and error bodies
    3. Logging: one access line per request, tagged with that id

WebSocket traffic (/notificationHub) passes straight through these
HTTP-only middlewares.
"""
