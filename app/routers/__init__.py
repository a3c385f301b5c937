"""
API Routers
Separate router modules for each domain.
"""

from app.routers import artifacts

__all__ = ["artifacts"]
