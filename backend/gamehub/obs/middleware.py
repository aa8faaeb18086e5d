"""Request instrumentation: id propagation, latency metrics and access logs."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from gamehub.obs import logging as obs_logging
from gamehub.obs import metrics
from gamehub.settings import settings

# Probe and scrape traffic is counted but not written to the access log.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})


def _route_template(request: Request) -> str:
	route = request.scope.get("route")
	path = getattr(route, "path", None)
	return path or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	def __init__(self, app) -> None:
		super().__init__(app)
		self._logger = obs_logging.get_logger("gamehub.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		request_id = request.headers.get("X-Request-Id") or uuid4().hex
		request.state.request_id = request_id
		tokens = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			actor_id=request.headers.get("X-User-Id"),
			actor_role=request.headers.get("X-User-Role"),
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			self._logger.exception("unhandled request error", extra={"method": request.method})
			raise
		finally:
			elapsed = time.perf_counter() - started
			template = _route_template(request)
			metrics.observe_request(template, request.method, status_code, elapsed)
			if request.url.path not in _QUIET_PATHS:
				self._logger.info(
					"http_request",
					extra={
						"method": request.method,
						"route_template": template,
						"status": status_code,
						"latency_ms": round(elapsed * 1000, 2),
					},
				)
			obs_logging.reset_context(tokens)

		response.headers.setdefault("X-Request-Id", request_id)
		return response


def install(app) -> None:
	if settings.obs_enabled:
		app.add_middleware(ObservabilityMiddleware)
