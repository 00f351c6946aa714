"""
Prometheus metrics registration and helpers.

Exports:
- observe_request(...): record HTTP request metrics
- observe_rate_limited(route): count 429s per route budget
- observe_ai_call(preset, outcome, seconds): AI facade calls
- observe_media_upload(outcome): Cloudinary uploads
- metrics_latest(): return text exposition from correct registry (handles multiprocess)
- CONTENT_TYPE_LATEST: correct Prometheus content type
"""

import os
from prometheus_client import Counter, Histogram, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from prometheus_client import multiprocess


REQUEST_COUNTER = Counter(
    's37_http_requests_total', 'Total HTTP requests', ['endpoint', 'status']
)

REQUEST_LATENCY = Histogram(
    's37_http_request_latency_seconds', 'HTTP request latency seconds', ['endpoint']
)

RATE_LIMITED = Counter(
    's37_rate_limited_total', 'Requests rejected by the rate limiter', ['route']
)

AI_CALLS = Counter(
    's37_ai_calls_total', 'AI facade calls', ['preset', 'outcome']
)

AI_LATENCY = Histogram(
    's37_ai_call_latency_seconds', 'AI facade call latency seconds', ['preset']
)

MEDIA_UPLOADS = Counter(
    's37_media_uploads_total', 'Cloudinary uploads', ['outcome']
)


def observe_request(endpoint: str, status: int, latency_seconds: float) -> None:
    REQUEST_COUNTER.labels(endpoint=endpoint, status=str(status)).inc()
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(latency_seconds)


def observe_rate_limited(route: str) -> None:
    RATE_LIMITED.labels(route=route).inc()


def observe_ai_call(preset: str, outcome: str, latency_seconds: float) -> None:
    AI_CALLS.labels(preset=preset, outcome=outcome).inc()
    AI_LATENCY.labels(preset=preset).observe(latency_seconds)


def observe_media_upload(outcome: str) -> None:
    MEDIA_UPLOADS.labels(outcome=outcome).inc()


def metrics_latest() -> bytes:
    """Return the Prometheus text exposition, multiprocess-aware if configured."""
    prom_mp_dir = os.getenv('PROMETHEUS_MULTIPROC_DIR')
    if prom_mp_dir:
        registry = CollectorRegistry()
        multiprocess.MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest()
