# Routes package init
"""
Placemarks Backend: API Routes Package
========================================

Route Inventory:
    - places.py:       GET  /api/places/search
                       GET  /api/places/details
                       GET  /api/places/photo
    - maintenance.py:  GET  /api/maintenance/report   (markdown download)
                       POST /api/maintenance/report   (JSON)
    - monitoring.py:   GET  /api/monitoring/indexes?action=...
    - health.py:       GET  /health
                       GET  /api/health/database
    - version.py:      GET  /api/version
    - auth.py:         GET  /auth/callback
                       GET  /auth/error

Handlers stay thin: read the query string, await one collaborator from
app.state (via placemarks.dependencies), serialize the result. Failures are
raised as ValidationError / UpstreamServiceError and rendered by the global
handlers in main.py.
"""
