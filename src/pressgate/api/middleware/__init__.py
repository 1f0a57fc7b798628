"""HTTP middleware for Pressgate."""

from pressgate.api.middleware.correlation import CorrelationMiddleware

__all__ = ["CorrelationMiddleware"]
