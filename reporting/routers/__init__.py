"""
Reporting Engine - Routers Package

FastAPI route handlers.

Routers:
- exports: Excel downloads of rendered tables and declarative reports
"""

from reporting.routers import exports

__all__ = ["exports"]
