from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

REQUEST_COUNT = Counter("http_requests_total", "Total HTTP requests", ["path", "method", "status"])
REQUEST_LATENCY = Histogram("http_request_latency_seconds", "HTTP request latency", ["path", "method"])
WEBHOOK_DISPATCH = Counter(
    "webhook_dispatch_total", "Inbound platform webhooks by outcome", ["platform", "outcome"]
)
LLM_COMPLETIONS = Counter("llm_completions_total", "Chat completions by model kind", ["kind"])


def metrics_response() -> Response:
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
