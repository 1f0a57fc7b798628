"""Pressgate: caching content gateway for a headless WordPress CMS."""

__version__ = "0.1.0"
