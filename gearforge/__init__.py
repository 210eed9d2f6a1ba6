"""gearforge - build composition and sharing for a drone-gear catalog.

This package provides the parts assembly model, build validation rules,
the temporary build lifecycle (TEMP -> SHARED promotion), and a
credentialed asset cache with revocable handles.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
