"""HTTP surface for Pressgate."""

from pressgate.api.app import create_app

__all__ = ["create_app"]
