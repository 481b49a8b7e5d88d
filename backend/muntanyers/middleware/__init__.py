# Middleware package init
"""
muntanyers Backend: Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [Session] → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route

    1. Session:    decodes the signed cookie into request.session
    2. Rate Limit: throttles credential endpoints per client IP
    3. Request ID: correlation ID for logs and the X-Request-ID header
    4. Logging:    one access line per request with status and duration
"""
