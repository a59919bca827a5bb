# Middleware package init
"""
NoteDigest Backend: Middleware Package
======================================

Middleware Chain (outermost first):
    Request → [Request ID] → [Logging] → [Rate Limit] → [GZip] → [CORS] → Route

    - Request ID is outermost so every later log line, including rate-limit
      rejections, carries the correlation id.
    - Logging wraps the rate limiter so 429 responses appear in the access log.
"""
