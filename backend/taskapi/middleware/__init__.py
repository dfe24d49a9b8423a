"""
Task API — Middleware Package
==============================

What:  Cross-cutting concerns applied around the route handlers.

Middleware Chain (order matters!):
    Request → [Request ID] → [Logging] → [Rate Limit] → Route Handler

    1. Request ID first: every later log line and error body can quote it
    2. Logging: records status and duration, including 429 rejections
    3. Rate Limit: only inspects /auth/login and /auth/register

Authentication is NOT in this chain: authentication.py provides a FastAPI
dependency that protected routes declare explicitly.
"""
