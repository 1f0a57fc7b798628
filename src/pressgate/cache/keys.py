"""Cache key schema for Pressgate.

Keys are scoped to their category's engine, so they carry no category
prefix. Format: {kind}:{identifier}

- posts:      post:{slug}, list:{params}, related:{post_id}:{limit}
- categories: all
- tags:       all
- media:      media:{media_id}
- search:     query:{params}
- downloads:  list:{category}:{page}:{per_page}

{params} is the canonical JSON of the query parameters (sorted keys, None
values dropped), so equal queries share an entry regardless of argument order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import orjson

WILDCARD = "*"


def canonical_params(params: Mapping[str, Any]) -> str:
    cleaned = {k: v for k, v in params.items() if v is not None}
    return orjson.dumps(cleaned, option=orjson.OPT_SORT_KEYS).decode()


class CacheKeys:
    """Cache key generator following a consistent naming convention."""

    POST = "post"
    LIST = "list"
    RELATED = "related"
    MEDIA = "media"
    QUERY = "query"
    ALL = "all"

    @classmethod
    def post(cls, slug: str) -> str:
        """Key for a single post by slug."""
        return f"{cls.POST}:{slug}"

    @classmethod
    def post_list(cls, params: Mapping[str, Any]) -> str:
        """Key for one page of a post listing."""
        return f"{cls.LIST}:{canonical_params(params)}"

    @classmethod
    def related(cls, post_id: int, limit: int) -> str:
        return f"{cls.RELATED}:{post_id}:{limit}"

    @classmethod
    def taxonomy(cls) -> str:
        """Key for the full category or tag listing."""
        return cls.ALL

    @classmethod
    def media(cls, media_id: int) -> str:
        return f"{cls.MEDIA}:{media_id}"

    @classmethod
    def search(cls, query: str, page: int, per_page: int) -> str:
        return f"{cls.QUERY}:{canonical_params({'q': query, 'page': page, 'per_page': per_page})}"

    @classmethod
    def downloads(cls, category: str | None, page: int, per_page: int) -> str:
        return f"{cls.LIST}:{category or 'all'}:{page}:{per_page}"

    @classmethod
    def prefix_pattern(cls, kind: str) -> str:
        """Pattern matching every key of one kind, e.g. "list:*"."""
        return f"{kind}:{WILDCARD}"

    @classmethod
    def parse_key(cls, key: str) -> tuple[str, str] | None:
        """Split a key into (kind, identifier). Returns None for single-part keys."""
        kind, sep, identifier = key.partition(":")
        if not sep:
            return None
        return kind, identifier
