"""Cached content reads for the rendering layer."""

from pressgate.content.service import ContentService, empty_page, merge_post

__all__ = ["ContentService", "empty_page", "merge_post"]
