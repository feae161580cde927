"""
API middleware and exception handlers.
"""

from .error_handler import error_response, setup_exception_handlers

__all__ = ["error_response", "setup_exception_handlers"]
