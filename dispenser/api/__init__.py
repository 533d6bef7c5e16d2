"""
API Module — FastAPI Dispenser Host

Public API:
- app: FastAPI application instance
- router: dispenser routes
- DispenserService: host wiring engine, notifier and settings store
"""

from .main import app
from .routes import router
from .services import DispenserService, get_dispenser_service

__all__ = [
    "app",
    "router",
    "DispenserService",
    "get_dispenser_service",
]
