# Services package init
"""
Placemarks Backend: Services Layer
====================================

Clients for the systems the routes proxy or report on. Each is built once
by create_app() and stored on app.state.

Service Inventory:
    - PlacesClient:         Google Places text search, details and photos (httpx)
    - SupabaseAuthService:  OAuth code-for-session exchange (supabase)
    - MaintenanceService:   table bloat health and the markdown maintenance report
    - IndexMonitor:         index usage, unused/missing indexes, index health
    - MonitoringQueries:    shared base for the two SQL-backed services
"""
