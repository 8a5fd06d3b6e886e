from prometheus_client import Counter, Histogram, make_asgi_app

# Low-cardinality labels: route templates such as /api/v1/objects/{key:path}
REQUESTS = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "route", "status"],
)

LATENCY = Histogram(
    "http_request_duration_seconds",
    "Request latency in seconds",
    ["method", "route"],
)

# operation: init/write/read/exists; outcome: ok/error/missing
STORAGE_OPERATIONS = Counter(
    "storage_operations_total",
    "Object storage operations by outcome",
    ["operation", "outcome"],
)

metrics_app = make_asgi_app()
