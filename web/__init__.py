"""FastAPI web application for gearforge.

This module provides the HTTP API for temporary builds and validation.
All business logic is delegated to core modules in gearforge/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
