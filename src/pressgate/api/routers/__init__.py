"""API routers for Pressgate."""

from pressgate.api.routers import cache, content, health, metrics, revalidate, webhook

__all__ = ["cache", "content", "health", "metrics", "revalidate", "webhook"]
