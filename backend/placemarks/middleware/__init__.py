# Middleware package init
"""
Placemarks Backend: Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters):
    Request → [Request ID] → [Logging] → [Cache Headers] → [GZip] → [CORS] → Route

    1. Request ID first, so every later log line carries it
    2. Logging measures the full downstream duration and final status
    3. Cache Headers only touches /api/ responses without their own
       Cache-Control
    4. GZip and CORS are Starlette's stock middleware

Nothing here keeps state across requests.
"""
