"""Prometheus metrics helpers for HTTP and scheduling observability."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from time import perf_counter

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

HTTP_REQUESTS_TOTAL = Counter(
    "kiteschool_http_requests_total",
    "Total number of HTTP requests handled by the API.",
    ["method", "path", "status_code"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "kiteschool_http_request_duration_seconds",
    "HTTP request latency in seconds.",
    ["method", "path"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

QUEUE_SUBMISSIONS_TOTAL = Counter(
    "kiteschool_queue_submissions_total",
    "Teacher queue submissions by outcome.",
    ["outcome"],
)

QUEUE_EVENTS_CREATED_TOTAL = Counter(
    "kiteschool_queue_events_created_total",
    "Calendar events created from teacher queues.",
)

EVENT_EDITS_TOTAL = Counter(
    "kiteschool_event_edits_total",
    "Saves of edited committed events by outcome.",
    ["outcome"],
)

EVENTS_UPDATED_TOTAL = Counter(
    "kiteschool_events_updated_total",
    "Committed events rescheduled through the event editor.",
)


def _request_path_label(request: Request) -> str:
    route = request.scope.get("route")
    route_path = getattr(route, "path", None)
    if route_path:
        return str(route_path)
    return request.url.path


async def instrument_http_request(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Track request count and latency for each endpoint."""
    started_at = perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        path_label = _request_path_label(request)
        method_label = request.method.upper()

        HTTP_REQUESTS_TOTAL.labels(
            method=method_label,
            path=path_label,
            status_code=str(status_code),
        ).inc()
        HTTP_REQUEST_DURATION_SECONDS.labels(
            method=method_label,
            path=path_label,
        ).observe(perf_counter() - started_at)


def record_queue_submission(outcome: str, events_created: int = 0) -> None:
    """Count a queue submission attempt and the events it produced."""
    QUEUE_SUBMISSIONS_TOTAL.labels(outcome=outcome).inc()
    if events_created:
        QUEUE_EVENTS_CREATED_TOTAL.inc(events_created)


def record_event_edit(outcome: str, events_updated: int = 0) -> None:
    EVENT_EDITS_TOTAL.labels(outcome=outcome).inc()
    if events_updated:
        EVENTS_UPDATED_TOTAL.inc(events_updated)


def build_metrics_response() -> Response:
    """Return metrics payload in Prometheus text format."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
