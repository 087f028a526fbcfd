"""
FastAPI health service.

Provides:
- GET / - Liveness banner
- GET /health - Monitor health snapshot
"""

from src.api.app import create_app

__all__ = ["create_app"]
