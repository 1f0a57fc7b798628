"""Shared FastAPI dependencies for Pressgate routers.

Components live on the Runtime stored in app.state; routers never reach
for module-level instances.
"""

from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Depends, Header, Request

from pressgate.api.errors import UnauthorizedError
from pressgate.cache.invalidation import InvalidationGateway
from pressgate.cache.registry import CacheRegistry
from pressgate.config import Settings
from pressgate.content.service import ContentService
from pressgate.runtime import Runtime


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]


def get_settings(runtime: RuntimeDep) -> Settings:
    return runtime.settings


def get_content(runtime: RuntimeDep) -> ContentService:
    return runtime.content


def get_registry(runtime: RuntimeDep) -> CacheRegistry:
    return runtime.registry


def get_gateway(runtime: RuntimeDep) -> InvalidationGateway:
    return runtime.gateway


SettingsDep = Annotated[Settings, Depends(get_settings)]
ContentDep = Annotated[ContentService, Depends(get_content)]
RegistryDep = Annotated[CacheRegistry, Depends(get_registry)]
GatewayDep = Annotated[InvalidationGateway, Depends(get_gateway)]


def secret_matches(expected: str | None, provided: str | None) -> bool:
    """Constant-time comparison; an unset expected secret never matches."""
    if not expected or provided is None:
        return False
    return secrets.compare_digest(expected.encode(), provided.encode())


def require_admin_token(
    config: SettingsDep,
    x_admin_token: Annotated[str | None, Header()] = None,
) -> None:
    """Gate the admin cache endpoint when an admin token is configured."""
    if config.admin_token and not secret_matches(config.admin_token, x_admin_token):
        raise UnauthorizedError("Invalid admin token")
