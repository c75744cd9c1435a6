import json
import logging
import threading
import time
import uuid
from collections import defaultdict
from typing import DefaultDict

from fastapi import Request
from jose import jwt
from starlette.middleware.base import BaseHTTPMiddleware


logger = logging.getLogger("storefront.observability")


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.http_requests_total = 0
        self.http_request_errors_5xx_total = 0
        self.http_request_duration_ms_sum = 0.0
        self.requests_by_route_method_status: DefaultDict[tuple[str, str, int], int] = defaultdict(int)
        self.stock_adjustments: DefaultDict[tuple[str, str], int] = defaultdict(int)

    def observe(self, method: str, path: str, status_code: int, duration_ms: float) -> None:
        with self._lock:
            self.http_requests_total += 1
            if status_code >= 500:
                self.http_request_errors_5xx_total += 1
            self.http_request_duration_ms_sum += duration_ms
            self.requests_by_route_method_status[(path, method, status_code)] += 1

    def observe_adjustment(self, movement_type: str, outcome: str) -> None:
        with self._lock:
            self.stock_adjustments[(movement_type, outcome)] += 1

    def adjustment_count(self, movement_type: str, outcome: str) -> int:
        with self._lock:
            return self.stock_adjustments.get((movement_type, outcome), 0)

    def render_prometheus(self) -> str:
        lines: list[str] = []
        with self._lock:
            lines.append("# HELP http_requests_total Total number of HTTP requests processed.")
            lines.append("# TYPE http_requests_total counter")
            lines.append(f"http_requests_total {self.http_requests_total}")

            lines.append("# HELP http_request_errors_5xx_total Total number of HTTP 5xx responses.")
            lines.append("# TYPE http_request_errors_5xx_total counter")
            lines.append(f"http_request_errors_5xx_total {self.http_request_errors_5xx_total}")

            lines.append("# HELP http_request_duration_ms_sum Sum of request durations in milliseconds.")
            lines.append("# TYPE http_request_duration_ms_sum counter")
            lines.append(f"http_request_duration_ms_sum {self.http_request_duration_ms_sum:.3f}")

            lines.append("# HELP http_requests_by_route_method_status HTTP requests split by route, method and status code.")
            lines.append("# TYPE http_requests_by_route_method_status counter")
            for (path, method, status_code), count in sorted(self.requests_by_route_method_status.items()):
                lines.append(
                    f'http_requests_by_route_method_status{{path="{_escape_label(path)}",method="{method}",status="{status_code}"}} {count}'
                )

            lines.append("# HELP stock_adjustments_total Stock adjustments split by movement type and outcome.")
            lines.append("# TYPE stock_adjustments_total counter")
            for (movement_type, outcome), count in sorted(self.stock_adjustments.items()):
                lines.append(
                    f'stock_adjustments_total{{type="{_escape_label(movement_type)}",outcome="{_escape_label(outcome)}"}} {count}'
                )

        return "\n".join(lines) + "\n"


metrics_registry = MetricsRegistry()


def _extract_subject_from_auth(request: Request) -> str | None:
    auth = request.headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        return None
    token = auth[7:].strip()
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except Exception:
        return None
    sub = claims.get("sub")
    return str(sub) if sub else None


class ObservabilityMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, registry: MetricsRegistry, exclude_paths: set[str] | None = None) -> None:
        super().__init__(app)
        self.registry = registry
        self.exclude_paths = exclude_paths or set()

    def _record(self, request: Request, status_code: int, started: float, failed: bool = False) -> None:
        duration_ms = (time.perf_counter() - started) * 1000.0
        path = request.url.path
        if path not in self.exclude_paths:
            self.registry.observe(request.method, path, status_code, duration_ms)
        line = json.dumps(
            {
                "event": "http_request",
                "request_id": request.state.request_id,
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 3),
                "client_ip": request.client.host if request.client else None,
                "subject": _extract_subject_from_auth(request),
            },
            ensure_ascii=False,
        )
        if failed:
            logger.exception(line)
        else:
            logger.info(line)

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            self._record(request, 500, started, failed=True)
            raise

        response.headers["X-Request-ID"] = request_id
        self._record(request, response.status_code, started)
        return response
