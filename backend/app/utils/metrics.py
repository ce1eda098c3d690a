"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Ledger metrics
credits_consumed_total = Counter(
    'credits_consumed_total',
    'Total credits consumed',
    ['ledger', 'feature']
)

credits_granted_total = Counter(
    'credits_granted_total',
    'Total credits granted by administrators',
    ['ledger']
)

insufficient_credits_total = Counter(
    'insufficient_credits_total',
    'Consumptions rejected for insufficient balance',
    ['ledger']
)

audit_write_failures_total = Counter(
    'audit_write_failures_total',
    'Change-log writes dropped by the best-effort sink',
    ['ledger', 'action']
)

# Automation metrics
automation_activations_total = Counter(
    'automation_activations_total',
    'Auto-comment activations',
    ['platform']
)

automation_comments_logged_total = Counter(
    'automation_comments_logged_total',
    'Auto-comments reported by the automation worker',
    ['platform', 'comment_type', 'status']
)

# AI provider metrics
ai_provider_requests_total = Counter(
    'ai_provider_requests_total',
    'Total AI provider requests',
    ['provider', 'operation']
)

ai_provider_failures_total = Counter(
    'ai_provider_failures_total',
    'Total AI provider failures',
    ['provider', 'operation']
)

ai_provider_latency_seconds = Histogram(
    'ai_provider_latency_seconds',
    'AI provider request latency in seconds',
    ['provider', 'operation'],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0]
)
