"""
Placemarks Backend: Dependency Providers
==========================================

What:  FastAPI `Depends` providers for the collaborators built by create_app().
How:   Each provider reads one object off `request.app.state`. Tests replace
       a provider through `app.dependency_overrides` to inject a fake.
"""

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from placemarks.config import Settings
from placemarks.services.auth_service import SupabaseAuthService
from placemarks.services.index_monitor import IndexMonitor
from placemarks.services.maintenance_service import MaintenanceService
from placemarks.services.places_client import PlacesClient


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_places_client(request: Request) -> PlacesClient:
    return request.app.state.places_client


def get_auth_service(request: Request) -> SupabaseAuthService:
    return request.app.state.auth_service


def get_maintenance_service(request: Request) -> MaintenanceService:
    return request.app.state.maintenance_service


def get_index_monitor(request: Request) -> IndexMonitor:
    return request.app.state.index_monitor


def get_engine(request: Request) -> AsyncEngine:
    return request.app.state.engine
