from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "newsdesk_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "newsdesk_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

TASK_COUNT = Counter(
    "newsdesk_task_total",
    "Total task executions",
    ["task", "status"],
)

LLM_LATENCY = Histogram(
    "newsdesk_llm_latency_seconds",
    "LLM call latency",
    ["stage", "provider", "model"],
)

ITEM_OUTCOMES = Counter(
    "newsdesk_items_total",
    "Pipeline item outcomes",
    ["mode", "outcome"],
)

TRANSFORM_FALLBACKS = Counter(
    "newsdesk_transform_fallback_total",
    "Transformer results built from the local fallback",
    ["stage"],
)
