"""API middleware."""

from estoque.api.middleware.error_handler import ErrorHandlerMiddleware
from estoque.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware"]
