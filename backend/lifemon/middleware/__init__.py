"""
LifeMon Backend — Middleware Package
======================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (outermost first):
    Request → [CORS] → [Request ID] → [Logging] → [Caller Identity] → Route Handler

    - CORS answers preflights and tags allowed origins before anything else
    - Request ID is set before the access log line needs it
    - Caller Identity runs last so handlers see request.state.user_id
"""
