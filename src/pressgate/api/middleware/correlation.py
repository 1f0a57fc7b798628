"""Correlation context middleware.

Propagates request and correlation IDs into logging context and response
headers so a webhook delivery or revalidation call can be followed through
the logs.
"""

from __future__ import annotations

import uuid

from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pressgate.observability.logging import correlation_id_var, request_id_var


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Extracts or generates correlation IDs for each request.

    Headers:
    - x-request-id: Unique ID for this request
    - x-correlation-id: ID for tracking across services (passed through)
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        correlation_id = request.headers.get("x-correlation-id") or request_id

        request_token = request_id_var.set(request_id)
        correlation_token = correlation_id_var.set(correlation_id)

        try:
            request.state.request_id = request_id
            request.state.correlation_id = correlation_id

            response = await call_next(request)

            response.headers["x-request-id"] = request_id
            response.headers["x-correlation-id"] = correlation_id

            span_context = trace.get_current_span().get_span_context()
            if span_context.is_valid:
                response.headers["x-trace-id"] = format(span_context.trace_id, "032x")

            return response
        finally:
            request_id_var.reset(request_token)
            correlation_id_var.reset(correlation_token)
